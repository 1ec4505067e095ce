"""
Message - immutable protocol-version + headers + body triple.

Every ``with_*`` method returns a new message and leaves the receiver
untouched. ``with_protocol_version`` and ``with_body`` return the receiver
itself when the value is unchanged.
"""

from __future__ import annotations

import copy
from typing import Dict, List, Mapping, Optional, TypeVar

from ._headers import HeaderBag, HeaderValues
from .config import get_config
from .faults import InvalidArgumentFault
from .streams import ByteStream, Stream


PROTOCOL_VERSIONS = ("1.0", "1.1", "2.0", "2")

M = TypeVar("M", bound="Message")


class Message:
    """
    Base immutable HTTP message.

    Headers start with a ``Content-Type`` entry taken from the active
    configuration; ``headers`` passed to the constructor are applied on top
    of it. The body defaults to an empty temporary stream.
    """

    def __init__(
        self,
        body: Optional[ByteStream] = None,
        headers: Optional[Mapping[str, HeaderValues]] = None,
        protocol_version: Optional[str] = None,
    ):
        config = get_config()

        version = str(protocol_version) if protocol_version is not None else config.protocol_version
        _check_protocol_version(version)
        if body is not None:
            _check_body(body)

        bag = HeaderBag({"Content-Type": config.default_content_type})
        for name, values in (headers or {}).items():
            bag = bag.with_header(name, values)

        self._protocol_version = version
        self._headers = bag
        self._body: ByteStream = body if body is not None else Stream.temporary()

    def _clone(self: M, **fields) -> M:
        """Shallow copy with the given private fields replaced."""
        message = copy.copy(self)
        for name, value in fields.items():
            setattr(message, f"_{name}", value)
        return message

    def _state(self) -> tuple:
        """Values compared by ``__eq__``; extended by each subclass."""
        return (self._protocol_version, self._headers, self._body)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._state() == other._state()

    __hash__ = None

    # ========================================================================
    # Protocol version
    # ========================================================================

    @property
    def protocol_version(self) -> str:
        return self._protocol_version

    def with_protocol_version(self: M, version: str) -> M:
        version = str(version)
        if version == self._protocol_version:
            return self
        _check_protocol_version(version)
        return self._clone(protocol_version=version)

    # ========================================================================
    # Headers
    # ========================================================================

    @property
    def headers(self) -> Dict[str, List[str]]:
        """All headers in emission order, keyed by their stored casing."""
        return self._headers.to_dict()

    def has_header(self, name: str) -> bool:
        return self._headers.has(name)

    def get_header(self, name: str) -> List[str]:
        return self._headers.get(name)

    def get_header_line(self, name: str) -> str:
        return self._headers.line(name)

    def with_header(self: M, name: str, value: HeaderValues) -> M:
        return self._clone(headers=self._headers.with_header(name, value))

    def with_added_header(self: M, name: str, value: HeaderValues) -> M:
        return self._clone(headers=self._headers.with_added_header(name, value))

    def without_header(self: M, name: str) -> M:
        return self._clone(headers=self._headers.without_header(name))

    # ========================================================================
    # Body
    # ========================================================================

    @property
    def body(self) -> ByteStream:
        return self._body

    def with_body(self: M, body: ByteStream) -> M:
        if body is self._body:
            return self
        _check_body(body)
        return self._clone(body=body)


def _check_protocol_version(version: str) -> None:
    if version not in PROTOCOL_VERSIONS:
        raise InvalidArgumentFault(
            f"Unsupported HTTP protocol version {version!r}",
            protocol_version=version,
            allowed=list(PROTOCOL_VERSIONS),
        )


def _check_body(body: object) -> None:
    if not isinstance(body, ByteStream):
        raise InvalidArgumentFault(
            "Message body must be a byte stream",
            body_type=type(body).__name__,
        )
