"""
Response - immutable HTTP response message.

Adds a status code and reason phrase to Message. Known status codes get
their standard reason phrase when none is given.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Mapping, Optional, TypeVar

from ._headers import HeaderValues
from .faults import InvalidArgumentFault
from .message import Message
from .streams import ByteStream


T = TypeVar("T", bound="Response")


def _reason_for(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def _check_status(status: object) -> int:
    if isinstance(status, bool) or not isinstance(status, int) or not 100 <= status <= 599:
        raise InvalidArgumentFault(
            f"Invalid HTTP status code {status!r}; must be an integer between 100 and 599",
            status=repr(status),
        )
    return status


class Response(Message):
    """Immutable HTTP response."""

    def __init__(
        self,
        status: int = 200,
        reason: str = "",
        *,
        body: Optional[ByteStream] = None,
        headers: Optional[Mapping[str, HeaderValues]] = None,
        protocol_version: Optional[str] = None,
    ):
        status = _check_status(status)
        super().__init__(body=body, headers=headers, protocol_version=protocol_version)

        self._status_code = status
        self._reason_phrase = reason or _reason_for(status)

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def reason_phrase(self) -> str:
        return self._reason_phrase

    def _state(self) -> tuple:
        return super()._state() + (self._status_code, self._reason_phrase)

    def with_status(self: T, code: int, reason: str = "") -> T:
        code = _check_status(code)
        if not isinstance(reason, str):
            raise InvalidArgumentFault("Reason phrase must be a string", reason=repr(reason))
        return self._clone(status_code=code, reason_phrase=reason or _reason_for(code))

    def __repr__(self) -> str:
        return f"Response({self._status_code} {self._reason_phrase!r})"
