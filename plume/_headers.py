"""
Header storage and legality checks shared by every message.

Provides:
- HeaderBag: Case-insensitive, case-preserving, multi-valued header store
- validate_header_name / validate_header_values: RFC 7230 legality checks
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .faults import InvalidHeaderFault


HeaderValue = Union[str, int, float]
HeaderValues = Union[HeaderValue, Sequence[HeaderValue]]

# RFC 7230 token characters
_NAME_RE = re.compile(r"[a-zA-Z0-9'`#$%&*+.^_|~!-]+")

# LF without CR, CR without LF, or CRLF not followed by a folding space/tab
_BAD_LINE_BREAK_RE = re.compile(r"(?:(?<!\r)\n)|(?:\r(?!\n))|(?:\r\n(?![ \t]))")
_BAD_CHAR_RE = re.compile(r"[^\x09\x0a\x0d\x20-\x7e\x80-\xfe]")

_TRIM_CHARS = " \t\n\r\x00\x0b"


# ============================================================================
# Validation
# ============================================================================

def validate_header_name(name: object) -> str:
    """
    Return ``name`` if it is a legal header field name.

    Raises:
        InvalidHeaderFault: If name is empty, not a string or not a token
    """
    if not isinstance(name, str) or not _NAME_RE.fullmatch(name):
        raise InvalidHeaderFault(
            "Header name must be an RFC 7230 compatible string",
            header_name=repr(name),
        )
    return name


def validate_header_values(name: str, values: HeaderValues) -> List[str]:
    """
    Normalize ``values`` to a list of trimmed strings, rejecting illegal ones.

    Numbers are accepted and converted to strings.

    Raises:
        InvalidHeaderFault: If any value is not transport safe
    """
    if isinstance(values, (str, int, float)) and not isinstance(values, bool):
        values = [values]
    elif isinstance(values, (bytes, bytearray, Mapping)) or not isinstance(values, Iterable):
        raise InvalidHeaderFault(
            "Header values must be a string, a number or a sequence of those",
            header_name=name,
        )

    result = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise InvalidHeaderFault(
                "Header values must be RFC 7230 compatible strings",
                header_name=name,
                header_value=repr(value),
            )

        text = str(value)
        if _BAD_LINE_BREAK_RE.search(text) or _BAD_CHAR_RE.search(text):
            raise InvalidHeaderFault(
                "Header values must be RFC 7230 compatible strings",
                header_name=name,
                header_value=repr(text),
            )
        result.append(text.strip(_TRIM_CHARS))

    if not result:
        raise InvalidHeaderFault("Header values must not be empty", header_name=name)

    return result


# ============================================================================
# HeaderBag
# ============================================================================

class HeaderBag:
    """
    Ordered header store keyed by lowercase name.

    Each entry keeps the emission casing of its name next to its values.
    A HeaderBag is never modified after construction; ``with_*`` methods
    build a new bag.
    """

    __slots__ = ("_entries",)

    def __init__(self, headers: Optional[Mapping[str, HeaderValues]] = None):
        self._entries: Dict[str, Tuple[str, Tuple[str, ...]]] = {}
        for name, values in (headers or {}).items():
            name = validate_header_name(name)
            normalized = tuple(validate_header_values(name, values))
            key = name.lower()
            if key in self._entries:
                _, existing = self._entries.pop(key)
                normalized = existing + normalized
            self._entries[key] = (name, normalized)

    @classmethod
    def _from_entries(cls, entries: Dict[str, Tuple[str, Tuple[str, ...]]]) -> "HeaderBag":
        bag = cls.__new__(cls)
        bag._entries = entries
        return bag

    # ========================================================================
    # Reading
    # ========================================================================

    def has(self, name: str) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def get(self, name: str) -> List[str]:
        entry = self._entries.get(name.lower()) if isinstance(name, str) else None
        return list(entry[1]) if entry else []

    def line(self, name: str) -> str:
        return ", ".join(self.get(name))

    def to_dict(self) -> Dict[str, List[str]]:
        """Headers in emission order, keyed by stored casing."""
        return {name: list(values) for name, values in self._entries.values()}

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        for name, values in self._entries.values():
            yield name, list(values)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        for name, _ in self._entries.values():
            yield name

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderBag):
            return NotImplemented
        return list(self._entries.values()) == list(other._entries.values())

    def __repr__(self) -> str:
        return f"HeaderBag({self.to_dict()})"

    # ========================================================================
    # Copy-on-write
    # ========================================================================

    def with_header(self, name: str, values: HeaderValues) -> "HeaderBag":
        """Replace any case-insensitive match; the new entry goes last."""
        name = validate_header_name(name)
        normalized = tuple(validate_header_values(name, values))

        key = name.lower()
        entries = {k: v for k, v in self._entries.items() if k != key}
        entries[key] = (name, normalized)
        return self._from_entries(entries)

    def with_added_header(self, name: str, values: HeaderValues) -> "HeaderBag":
        """Append to an existing entry (keeping its casing) or add a new one."""
        name = validate_header_name(name)
        normalized = tuple(validate_header_values(name, values))

        key = name.lower()
        if key not in self._entries:
            return self.with_header(name, normalized)

        entries = dict(self._entries)
        stored, existing = entries[key]
        entries[key] = (stored, existing + normalized)
        return self._from_entries(entries)

    def without_header(self, name: str) -> "HeaderBag":
        key = name.lower() if isinstance(name, str) else None
        return self._from_entries({k: v for k, v in self._entries.items() if k != key})

    def with_first_header(self, name: str, values: HeaderValues) -> "HeaderBag":
        """Set ``name`` and move it to the front of the emission order."""
        name = validate_header_name(name)
        normalized = tuple(validate_header_values(name, values))

        key = name.lower()
        entries = {key: (name, normalized)}
        entries.update((k, v) for k, v in self._entries.items() if k != key)
        return self._from_entries(entries)
