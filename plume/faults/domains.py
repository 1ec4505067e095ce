"""
Plume faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults
- MESSAGE faults
- SECURITY faults
- UPLOAD faults
- IO faults
"""

from typing import Any, Optional
from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            public=False,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# MESSAGE Faults
# ============================================================================

class InvalidArgumentFault(Fault):
    """Malformed input to a constructor or a ``with_*`` method."""

    code = "INVALID_ARGUMENT"
    domain = FaultDomain.MESSAGE

    def __init__(self, message: str, **metadata):
        super().__init__(
            code=self.code,
            message=message,
            domain=self.domain,
            public=True,
            metadata=metadata,
        )


# ============================================================================
# SECURITY Faults
# ============================================================================

class InvalidHeaderFault(Fault):
    """Header name or value is not RFC 7230 compatible (injection attempt)."""

    code = "INVALID_HEADER"
    domain = FaultDomain.SECURITY

    def __init__(self, message: str, **metadata):
        super().__init__(
            code=self.code,
            message=message,
            domain=self.domain,
            public=True,
            metadata=metadata,
        )


# ============================================================================
# UPLOAD Faults
# ============================================================================

class UploadFault(Fault):
    """Base class for uploaded file faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.UPLOAD,
            retryable=False,
            public=False,
            metadata=metadata,
        )


class AlreadyMovedFault(UploadFault):
    """Operation attempted on an uploaded file after it was moved."""

    def __init__(self, **kwargs):
        super().__init__(
            code="UPLOAD_ALREADY_MOVED",
            message="Uploaded file has already been moved",
            metadata=kwargs.get("metadata"),
        )


class UploadErrorFault(UploadFault):
    """Stream access attempted on an upload that did not succeed."""

    def __init__(self, error: int, **kwargs):
        self.error = error
        super().__init__(
            code="UPLOAD_ERROR",
            message=f"Uploaded file can not be retrieved due to upload error {int(error)}",
            metadata={"error": int(error), **kwargs.get("metadata", {})},
        )


# ============================================================================
# IO Faults
# ============================================================================

class StreamFault(Fault):
    """Underlying stream read/write/seek failure."""

    def __init__(self, operation: str, reason: str, **kwargs):
        super().__init__(
            code="STREAM_ERROR",
            message=f"Stream {operation} failed: {reason}",
            domain=FaultDomain.IO,
            severity=Severity.WARN,
            retryable=False,
            public=False,
            metadata={"operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )
        self.operation = operation
