"""
Factory functions for Plume messages, streams, uploads and URIs.

Also provides ``server_request_from_globals``, which builds a ServerRequest
from explicitly supplied server environment tables (the shape of a CGI/WSGI
environ plus cookie, upload and form tables).
"""

from __future__ import annotations

import logging
import re
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Union

from ._datastructures import URI
from ._uploads import UploadErrorCode, UploadedFile, normalize_uploaded_files
from .faults import InvalidArgumentFault
from .message import PROTOCOL_VERSIONS
from .request import Request, ServerRequest
from .response import Response
from .streams import ByteStream, PathLike, Stream


logger = logging.getLogger("plume.factory")

_FILE_MODE_RE = re.compile(r"[rwax]\+?b?|[rwax]b\+?")
_CONTENT_KEYS = ("CONTENT_TYPE", "CONTENT_LENGTH")


# ============================================================================
# Messages
# ============================================================================

def create_request(method: str, uri: Union[URI, str]) -> Request:
    return Request(method, uri)


def create_response(code: int = 200, reason_phrase: str = "") -> Response:
    return Response(code, reason_phrase)


def create_server_request(
    method: str,
    uri: Union[URI, str],
    server_params: Optional[Mapping[str, Any]] = None,
) -> ServerRequest:
    """Server params are taken as given; method and URI are not derived from them."""
    return ServerRequest(method, uri, server_params or {})


# ============================================================================
# Streams
# ============================================================================

def create_stream(content: Union[bytes, str] = b"") -> Stream:
    return Stream.from_bytes(content)


def create_stream_from_file(filename: PathLike, mode: str = "r") -> Stream:
    """
    Open ``filename`` with ``mode`` (r, r+, w, w+, a, a+, x, x+, optionally with b).

    Raises:
        InvalidArgumentFault: If the mode is invalid
        StreamFault: If the file cannot be opened
    """
    if not isinstance(mode, str) or not _FILE_MODE_RE.fullmatch(mode):
        raise InvalidArgumentFault(f"Mode {mode!r} is invalid", mode=repr(mode))
    return Stream.open(filename, mode)


def create_stream_from_resource(resource: BinaryIO, mode: Optional[str] = None) -> Stream:
    return Stream(resource, mode)


# ============================================================================
# Uploads & URIs
# ============================================================================

def create_uploaded_file(
    stream: ByteStream,
    size: Optional[int] = None,
    error: int = UploadErrorCode.OK,
    client_filename: Optional[str] = None,
    client_media_type: Optional[str] = None,
) -> UploadedFile:
    """Size defaults to the stream size when not given."""
    return UploadedFile(stream, size, error, client_filename, client_media_type)


def create_uri(uri: str = "") -> URI:
    return URI.parse(uri)


# ============================================================================
# Server environment ingestion
# ============================================================================

def _header_name(key: str) -> str:
    """HTTP_X_FORWARDED_FOR -> X-Forwarded-For"""
    return "-".join(part.capitalize() for part in key.split("_"))


def headers_from_server(server: Mapping[str, Any]) -> Dict[str, List[str]]:
    """
    Request headers encoded in CGI-style ``HTTP_*`` keys.

    CONTENT_TYPE and CONTENT_LENGTH take precedence over their ``HTTP_*``
    duplicates, which some servers also set.
    """
    headers: Dict[str, List[str]] = {}
    for key, value in server.items():
        if not isinstance(key, str) or value is None:
            continue
        if key.startswith("HTTP_"):
            if key[5:] in _CONTENT_KEYS and server.get(key[5:]) not in (None, ""):
                continue
            name = _header_name(key[5:])
        elif key in _CONTENT_KEYS:
            if value == "":
                continue
            name = _header_name(key)
        else:
            continue
        headers.setdefault(name, []).append(str(value))
    return headers


def uri_from_server(server: Mapping[str, Any]) -> URI:
    """Rebuild the request URI from CGI-style server params."""
    https = str(server.get("HTTPS", "")).lower()
    scheme = "https" if https and https != "off" else "http"

    host = str(server.get("HTTP_HOST") or server.get("SERVER_NAME") or "")
    port: Optional[int] = None
    if host.startswith("[") and "]" in host:
        # IPv6 literal
        literal, _, rest = host.partition("]")
        host = literal + "]"
        if rest.startswith(":") and rest[1:].isdigit():
            port = int(rest[1:])
    elif ":" in host:
        host, _, port_part = host.rpartition(":")
        port = int(port_part) if port_part.isdigit() else None
    elif str(server.get("SERVER_PORT", "")).isdigit():
        server_port = int(server["SERVER_PORT"])
        if (scheme, server_port) not in (("http", 80), ("https", 443)):
            port = server_port

    request_uri = str(server.get("REQUEST_URI") or "")
    path, _, query = request_uri.partition("?")
    if not request_uri:
        path = str(server.get("PATH_INFO") or "/")
    query = query or str(server.get("QUERY_STRING") or "")
    path, _, fragment = path.partition("#")

    return URI(
        scheme=scheme,
        host=host.lower(),
        port=port,
        path=path,
        query=query,
        fragment=fragment,
    )


def server_request_from_globals(
    server: Mapping[str, Any],
    *,
    cookies: Optional[Mapping[str, Any]] = None,
    files: Optional[Mapping[str, Any]] = None,
    post: Any = None,
    body: Optional[ByteStream] = None,
) -> ServerRequest:
    """
    Build a ServerRequest from a server environment snapshot.

    Args:
        server: CGI/WSGI style environment (REQUEST_METHOD, HTTP_* ...)
        cookies: Parsed cookie table
        files: Raw upload table (parallel tmp_name/size/error/name/type)
        post: Parsed form body
        body: Raw body stream

    Returns:
        ServerRequest with headers, uploads and parsed body populated
    """
    method = str(server.get("REQUEST_METHOD") or "GET")
    uri = uri_from_server(server)

    protocol_version = None
    protocol = str(server.get("SERVER_PROTOCOL") or "")
    if protocol.upper().startswith("HTTP/"):
        version = protocol[5:]
        if version in PROTOCOL_VERSIONS:
            protocol_version = version

    request = ServerRequest(
        method,
        uri,
        server,
        cookies=cookies,
        parsed_body=post if post else None,
        body=body,
        protocol_version=protocol_version,
    )

    # Headers come from the environment only, not from the configured default
    headers = headers_from_server(server)
    request = request.without_header("Content-Type")
    for name, values in headers.items():
        request = request.with_header(name, values)

    # Upload streams are opened only once everything else has validated
    if files:
        request = request.with_uploaded_files(normalize_uploaded_files(files))

    logger.debug(
        "Built server request %s %s with %d header(s)",
        request.method, request.request_target, len(headers),
    )
    return request
