"""
Request - immutable client and server request messages.

Provides:
- Request: method, URI and request target on top of Message
- ServerRequest: server params, cookies, query params, uploaded files,
  parsed body and attributes on top of Request

Incoming environment data (server params, cookies, upload tables) is always
passed in explicitly; nothing here reads process state.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, TypeVar, Union

from ._datastructures import URI, parse_query
from ._headers import HeaderValues
from ._uploads import UploadedFile, UploadTree
from .faults import InvalidArgumentFault
from .message import Message
from .streams import ByteStream


logger = logging.getLogger("plume.request")

METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD", "CONNECT")

R = TypeVar("R", bound="Request")
S = TypeVar("S", bound="ServerRequest")

_SCALARS = (str, bytes, bytearray, int, float, bool)


def _normalize_method(method: object) -> str:
    if not isinstance(method, str) or method.upper() not in METHODS:
        raise InvalidArgumentFault(
            f"Method {method!r} is invalid",
            method=repr(method),
            allowed=list(METHODS),
        )
    return method.upper()


def _coerce_uri(uri: object) -> URI:
    if isinstance(uri, URI):
        return uri
    if isinstance(uri, str):
        return URI.parse(uri)
    raise InvalidArgumentFault(
        "URI must be a string or an instance of URI",
        uri_type=type(uri).__name__,
    )


# ============================================================================
# Request
# ============================================================================

class Request(Message):
    """
    Immutable outgoing/incoming HTTP request.

    The request target defaults to the URI path ("/" when the path is empty)
    until overridden with ``with_request_target``.
    """

    def __init__(
        self,
        method: str,
        uri: Union[URI, str],
        *,
        body: Optional[ByteStream] = None,
        headers: Optional[Mapping[str, HeaderValues]] = None,
        protocol_version: Optional[str] = None,
    ):
        method = _normalize_method(method)
        uri = _coerce_uri(uri)

        super().__init__(body=body, headers=headers, protocol_version=protocol_version)

        self._method = method
        self._uri = uri
        self._request_target = uri.path or "/"

    def _state(self) -> tuple:
        return super()._state() + (self._method, self._uri, self._request_target)

    # ========================================================================
    # Request target
    # ========================================================================

    @property
    def request_target(self) -> str:
        return self._request_target

    def with_request_target(self: R, request_target: str) -> R:
        if not isinstance(request_target, str) or " " in request_target:
            raise InvalidArgumentFault(
                "Request target cannot contain whitespace",
                request_target=repr(request_target),
            )
        return self._clone(request_target=request_target)

    # ========================================================================
    # Method
    # ========================================================================

    @property
    def method(self) -> str:
        return self._method

    def with_method(self: R, method: str) -> R:
        return self._clone(method=_normalize_method(method))

    # ========================================================================
    # URI
    # ========================================================================

    @property
    def uri(self) -> URI:
        return self._uri

    def with_uri(self: R, uri: URI, preserve_host: bool = False) -> R:
        """
        Return a request for ``uri``.

        The Host header is rewritten from the URI (and moved first) when the
        URI has a host, unless ``preserve_host`` is set and the request already
        carries a non-empty Host header.
        """
        if uri is self._uri:
            return self
        if not isinstance(uri, URI):
            raise InvalidArgumentFault(
                "URI must be an instance of URI",
                uri_type=type(uri).__name__,
            )

        headers = self._headers
        keep_host = preserve_host and headers.line("Host") != ""
        if not keep_host and uri.host:
            host = uri.host if uri.port is None else f"{uri.host}:{uri.port}"
            headers = headers.with_first_header("Host", host)
            logger.debug("Host header set to %s", host)

        return self._clone(uri=uri, headers=headers)


# ============================================================================
# ServerRequest
# ============================================================================

class ServerRequest(Request):
    """
    Immutable request as received by a server.

    Server params are a read-only snapshot taken at construction. Query
    params are parsed from the URI unless given explicitly.
    """

    def __init__(
        self,
        method: str,
        uri: Union[URI, str],
        server_params: Optional[Mapping[str, Any]] = None,
        *,
        cookies: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        uploaded_files: Optional[UploadTree] = None,
        parsed_body: Any = None,
        body: Optional[ByteStream] = None,
        headers: Optional[Mapping[str, HeaderValues]] = None,
        protocol_version: Optional[str] = None,
    ):
        # Validate before the parent allocates a default body stream
        _check_parsed_body(parsed_body)
        if uploaded_files is not None:
            _check_upload_tree(uploaded_files)

        super().__init__(
            method,
            uri,
            body=body,
            headers=headers,
            protocol_version=protocol_version,
        )

        self._server_params = MappingProxyType(dict(server_params or {}))
        self._cookie_params = _copy_tree(cookies or {})
        self._query_params = (
            _copy_tree(query_params) if query_params is not None
            else parse_query(self._uri.query)
        )
        self._uploaded_files = _copy_tree(uploaded_files) if uploaded_files is not None else {}
        self._parsed_body = _copy_tree(parsed_body)
        self._attributes: Dict[str, Any] = {}

    def _state(self) -> tuple:
        return super()._state() + (
            dict(self._server_params),
            self._cookie_params,
            self._query_params,
            self._uploaded_files,
            self._parsed_body,
            self._attributes,
        )

    # ========================================================================
    # Server params
    # ========================================================================

    @property
    def server_params(self) -> Mapping[str, Any]:
        return self._server_params

    # ========================================================================
    # Cookies
    # ========================================================================

    @property
    def cookie_params(self) -> Dict[str, Any]:
        return _copy_tree(self._cookie_params)

    def with_cookie_params(self: S, cookies: Mapping[str, Any]) -> S:
        if not isinstance(cookies, Mapping):
            raise InvalidArgumentFault(
                "Cookie params must be a mapping",
                cookies_type=type(cookies).__name__,
            )
        return self._clone(cookie_params=_copy_tree(cookies))

    # ========================================================================
    # Query params
    # ========================================================================

    @property
    def query_params(self) -> Dict[str, Any]:
        return _copy_tree(self._query_params)

    def with_query_params(self: S, query: Mapping[str, Any]) -> S:
        """Replace the query params; the URI is left untouched."""
        if not isinstance(query, Mapping):
            raise InvalidArgumentFault(
                "Query params must be a mapping",
                query_type=type(query).__name__,
            )
        return self._clone(query_params=_copy_tree(query))

    # ========================================================================
    # Uploaded files
    # ========================================================================

    @property
    def uploaded_files(self) -> UploadTree:
        return _copy_tree(self._uploaded_files)

    def with_uploaded_files(self: S, uploaded_files: UploadTree) -> S:
        _check_upload_tree(uploaded_files)
        return self._clone(uploaded_files=_copy_tree(uploaded_files))

    # ========================================================================
    # Parsed body
    # ========================================================================

    @property
    def parsed_body(self) -> Any:
        return _copy_tree(self._parsed_body)

    def with_parsed_body(self: S, data: Any) -> S:
        _check_parsed_body(data)
        return self._clone(parsed_body=_copy_tree(data))

    # ========================================================================
    # Attributes
    # ========================================================================

    @property
    def attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def with_attribute(self: S, name: str, value: Any) -> S:
        attributes = dict(self._attributes)
        attributes[name] = value
        return self._clone(attributes=attributes)

    def without_attribute(self: S, name: str) -> S:
        if name not in self._attributes:
            return self
        attributes = {k: v for k, v in self._attributes.items() if k != name}
        return self._clone(attributes=attributes)


def _check_parsed_body(data: Any) -> None:
    """Parsed bodies are None, a mapping, an object, or a list of those."""
    if data is None or isinstance(data, Mapping):
        return

    if isinstance(data, _SCALARS):
        raise InvalidArgumentFault(
            "Parsed body must be a mapping, an object or None",
            body_type=type(data).__name__,
        )

    if isinstance(data, Sequence):
        for item in data:
            if item is None or isinstance(item, _SCALARS):
                raise InvalidArgumentFault(
                    "Parsed body must not be a list of scalars",
                    item_type=type(item).__name__,
                )


def _check_upload_tree(tree: Any, path: str = "") -> None:
    if isinstance(tree, Mapping):
        children = tree.items()
    elif isinstance(tree, (list, tuple)):
        children = enumerate(tree)
    else:
        raise InvalidArgumentFault(
            "Uploaded files must be a tree of mappings and lists",
            path=path or "<root>",
            node_type=type(tree).__name__,
        )

    for key, child in children:
        child_path = f"{path}[{key}]" if path else str(key)
        if isinstance(child, UploadedFile):
            continue
        _check_upload_tree(child, child_path)


def _copy_tree(value: Any) -> Any:
    """Copy nested mappings and lists; leaves (files, objects, strings) are shared."""
    if isinstance(value, Mapping):
        return {key: _copy_tree(child) for key, child in value.items()}
    if isinstance(value, list):
        return [_copy_tree(child) for child in value]
    if isinstance(value, tuple):
        return tuple(_copy_tree(child) for child in value)
    return value
