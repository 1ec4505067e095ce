"""
Plume - Immutable HTTP message layer for Python

Provides:
- Message, Request, ServerRequest, Response: copy-on-write HTTP messages
- Stream: byte stream bodies over binary file objects
- URI: immutable URI value
- UploadedFile and UploadTreeNormalizer: uniform uploaded file trees
- Faults: structured errors raised by every operation
"""

__version__ = "0.1.0"

from .message import Message, PROTOCOL_VERSIONS
from .request import Request, ServerRequest, METHODS
from .response import Response
from .streams import ByteStream, Stream
from ._datastructures import URI, parse_query
from ._headers import HeaderBag
from ._uploads import (
    UploadErrorCode,
    UploadedFile,
    UploadTreeNormalizer,
    normalize_uploaded_files,
)
from .config import MessageConfig, ConfigLoader, configure, get_config, reset_config
from .factory import (
    create_request,
    create_response,
    create_server_request,
    create_stream,
    create_stream_from_file,
    create_stream_from_resource,
    create_uploaded_file,
    create_uri,
    server_request_from_globals,
)
from .faults import (
    Fault,
    FaultDomain,
    Severity,
    InvalidArgumentFault,
    InvalidHeaderFault,
    AlreadyMovedFault,
    UploadErrorFault,
    StreamFault,
    ConfigInvalidFault,
)

__all__ = [
    "__version__",
    # Messages
    "Message",
    "Request",
    "ServerRequest",
    "Response",
    "PROTOCOL_VERSIONS",
    "METHODS",
    "HeaderBag",
    # Streams & URIs
    "ByteStream",
    "Stream",
    "URI",
    "parse_query",
    # Uploads
    "UploadErrorCode",
    "UploadedFile",
    "UploadTreeNormalizer",
    "normalize_uploaded_files",
    # Config
    "MessageConfig",
    "ConfigLoader",
    "configure",
    "get_config",
    "reset_config",
    # Factories
    "create_request",
    "create_response",
    "create_server_request",
    "create_stream",
    "create_stream_from_file",
    "create_stream_from_resource",
    "create_uploaded_file",
    "create_uri",
    "server_request_from_globals",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "InvalidArgumentFault",
    "InvalidHeaderFault",
    "AlreadyMovedFault",
    "UploadErrorFault",
    "StreamFault",
    "ConfigInvalidFault",
]
