"""
Plume faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain Enums
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the logging level a caller should use when reporting.
    """
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Warning, should be reviewed
    ERROR = "error"     # Error, immediate attention
    FATAL = "fatal"     # Fatal, unrecoverable, abort


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name  # For compatibility with Enum consumers
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.MESSAGE = FaultDomain("message", "Message construction and transformation")
FaultDomain.UPLOAD = FaultDomain("upload", "Uploaded file handling")
FaultDomain.IO = FaultDomain("io", "Stream I/O operations")
FaultDomain.SECURITY = FaultDomain("security", "Header legality and injection")


# Domain defaults
DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.MESSAGE: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.UPLOAD: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.IO: {"severity": Severity.WARN, "retryable": False},
    FaultDomain.SECURITY: {"severity": Severity.WARN, "retryable": False},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault is NOT a bare exception. It is a first-class value with:
    - Stable machine-readable code
    - Human-readable message
    - Severity level
    - Domain classification
    - Retry semantics
    - Public exposure control

    Attributes:
        code: Stable machine-readable identifier (e.g., "INVALID_HEADER")
        message: Human-readable summary
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        domain: Fault domain (MESSAGE, UPLOAD, IO, ...)
        retryable: Whether this fault can be retried
        public: Whether safe to expose to client
        metadata: Additional context data

    Example:
        ```python
        raise Fault(
            code="UPLOAD_ERROR",
            message="Uploaded file can not be retrieved",
            domain=FaultDomain.UPLOAD,
        )
        ```
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        # Fallback to class attributes if not provided
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        # Default to ERROR/non-retryable for custom domains
        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "retryable": False})
        self.severity = severity or defaults["severity"]
        self.retryable = retryable if retryable is not None else defaults["retryable"]

        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging/serialization
        """
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }
