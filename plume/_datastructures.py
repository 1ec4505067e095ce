"""
Core data structures for Plume messages.

Provides:
- URI: Immutable URI value with component accessors
- parse_query: Query string decoding with nested bracket keys
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace as dataclass_replace
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .faults import InvalidArgumentFault


# ============================================================================
# URI
# ============================================================================

@dataclass(frozen=True)
class URI:
    """
    Parsed URI representation.

    Components are stored exactly as given; ``path`` may be empty and
    ``port`` is only set when explicit in the source string.
    """

    scheme: str = ""
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""
    user_info: str = ""

    @classmethod
    def parse(cls, uri: str) -> "URI":
        """Parse URI string into components."""
        if not isinstance(uri, str):
            raise InvalidArgumentFault(
                "URI must be a string",
                uri_type=type(uri).__name__,
            )

        try:
            parsed = urlsplit(uri)
            port = parsed.port
        except ValueError as exc:
            raise InvalidArgumentFault(f"Unable to parse URI: {exc}", uri=uri) from exc

        user_info = ""
        if parsed.username is not None:
            user_info = parsed.username
            if parsed.password is not None:
                user_info += f":{parsed.password}"

        host = (parsed.hostname or "").lower()
        if ":" in host:
            # IPv6 literal; hostname drops the brackets
            host = f"[{host}]"

        return cls(
            scheme=parsed.scheme.lower(),
            host=host,
            port=port,
            path=parsed.path,
            query=parsed.query,
            fragment=parsed.fragment,
            user_info=user_info,
        )

    @property
    def authority(self) -> str:
        """Build ``[user-info@]host[:port]``."""
        if not self.host:
            return ""

        authority = self.host
        if self.user_info:
            authority = f"{self.user_info}@{authority}"
        if self.port is not None:
            authority += f":{self.port}"
        return authority

    def __str__(self) -> str:
        """Build full URI string."""
        return urlunsplit((
            self.scheme,
            self.authority,
            self.path,
            self.query,
            self.fragment,
        ))

    def replace(self, **kwargs) -> "URI":
        """Create new URI with replaced components."""
        return dataclass_replace(self, **kwargs)

    def with_query(self, **params) -> "URI":
        """Create new URI with the query string built from ``params``."""
        return self.replace(query=urlencode(params, doseq=True))


# ============================================================================
# Query strings
# ============================================================================

_KEY_SEGMENT = re.compile(r"\[([^\[\]]*)\]")

QueryValue = Union[str, List[Any], Dict[str, Any]]


def _split_key(key: str) -> List[str]:
    """
    Split ``a[b][]`` into ``["a", "b", ""]``.

    Text after the last closing bracket is ignored, as is an unbalanced
    opening bracket (the key is then taken literally).
    """
    bracket = key.find("[")
    if bracket <= 0:
        return [key]

    segments = _KEY_SEGMENT.findall(key[bracket:])
    if not segments or not key[bracket:].startswith("["):
        return [key]
    return [key[:bracket], *segments]


def _child_for(rest: List[str], current: Any) -> Union[List[Any], Dict[str, Any]]:
    """Container to descend into for the remaining ``rest`` segments."""
    if rest[0] == "":
        if isinstance(current, (list, dict)):
            return current
        return []

    # A named key turns an appended list into a mapping keyed by index
    if isinstance(current, list):
        return {str(index): item for index, item in enumerate(current)}
    if isinstance(current, dict):
        return current
    return {}


def _assign(container: Union[List[Any], Dict[str, Any]], segments: List[str], value: str) -> None:
    head, rest = segments[0], segments[1:]

    if isinstance(container, list):
        # Lists are only ever addressed with "[]"
        if not rest:
            container.append(value)
            return
        child = _child_for(rest, None)
        container.append(child)
        _assign(child, rest, value)
        return

    if head == "":
        head = str(len(container))

    if not rest:
        container[head] = value
        return

    child = _child_for(rest, container.get(head))
    container[head] = child
    _assign(child, rest, value)


def parse_query(query: str) -> Dict[str, QueryValue]:
    """
    Decode a query string into nested mappings.

    Examples:
        "a=1&b=2"           -> {"a": "1", "b": "2"}
        "a[]=1&a[]=2"       -> {"a": ["1", "2"]}
        "f[x][y]=z"         -> {"f": {"x": {"y": "z"}}}
        "a=1&a=2"           -> {"a": "2"}  (later value wins)
    """
    result: Dict[str, QueryValue] = {}
    if not query:
        return result

    for key, value in parse_qsl(query, keep_blank_values=True):
        if not key:
            continue
        _assign(result, _split_key(key), value)

    return result
