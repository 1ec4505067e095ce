"""
Plume faults - typed fault signals for the message layer.

Every failure raised by Plume is a ``Fault``: an exception carrying a stable
code, a domain, a severity and metadata. Faults surface synchronously to the
caller that triggered them; the library never retries or swallows them.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
- Concrete faults for each domain
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigInvalidFault,
    InvalidArgumentFault,
    InvalidHeaderFault,
    UploadFault,
    AlreadyMovedFault,
    UploadErrorFault,
    StreamFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "ConfigFault",
    "ConfigInvalidFault",
    "InvalidArgumentFault",
    "InvalidHeaderFault",
    "UploadFault",
    "AlreadyMovedFault",
    "UploadErrorFault",
    "StreamFault",
]
