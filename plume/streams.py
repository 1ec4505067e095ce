"""
Byte streams for message bodies and uploaded files.

Provides:
- ByteStream: capability protocol consumed by messages and uploaded files
- Stream: ByteStream implementation wrapping a binary file object
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Protocol, Union, runtime_checkable

from .config import get_config
from .faults import InvalidArgumentFault, StreamFault


logger = logging.getLogger("plume.streams")

PathLike = Union[str, Path]

READABLE_MODES = frozenset({"r", "r+", "w+", "a+", "x+"})
WRITABLE_MODES = frozenset({"r+", "w", "w+", "a", "a+", "x", "x+"})


def normalize_mode(mode: str) -> str:
    """Strip the binary/text flags from an open-mode string ("w+b" -> "w+")."""
    return mode.replace("b", "").replace("t", "")


def _seekable(resource: BinaryIO) -> bool:
    seekable = getattr(resource, "seekable", None)
    if seekable is None:
        return hasattr(resource, "seek")
    try:
        return bool(seekable())
    except (OSError, ValueError):
        return False


# ============================================================================
# ByteStream Protocol
# ============================================================================

@runtime_checkable
class ByteStream(Protocol):
    """Readable/writable/seekable byte sequence with size and position."""

    def read(self, size: int) -> bytes:
        ...

    def write(self, data: bytes) -> int:
        ...

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> None:
        ...

    def tell(self) -> int:
        ...

    def eof(self) -> bool:
        ...

    def is_readable(self) -> bool:
        ...

    def is_writable(self) -> bool:
        ...

    def is_seekable(self) -> bool:
        ...

    def get_size(self) -> Optional[int]:
        ...

    def get_metadata(self, key: Optional[str] = None) -> Any:
        ...

    def close(self) -> None:
        ...


# ============================================================================
# Stream
# ============================================================================

class Stream:
    """
    ByteStream over a binary file object.

    Readability and writability come from the open mode; the resource is
    closed when the Stream is closed or garbage collected, unless it was
    detached first.
    """

    def __init__(self, resource: BinaryIO, mode: Optional[str] = None):
        if resource is None or not hasattr(resource, "read"):
            raise InvalidArgumentFault(
                "Stream resource must be a binary file object",
                resource_type=type(resource).__name__,
            )

        self._resource: Optional[BinaryIO] = resource
        self._mode = normalize_mode(mode or getattr(resource, "mode", None) or "r+")
        self._eof = False
        self._metadata: Optional[Dict[str, Any]] = None

    # ========================================================================
    # Constructors
    # ========================================================================

    @classmethod
    def open(cls, path: PathLike, mode: str = "r") -> "Stream":
        """
        Open ``path`` in binary ``mode``.

        Raises:
            StreamFault: If the file cannot be opened
        """
        if not isinstance(path, (str, os.PathLike)) or not str(path):
            raise InvalidArgumentFault("Stream path must be a non-empty path", path=repr(path))

        binary_mode = normalize_mode(mode) + "b"
        try:
            resource = open(path, binary_mode)
        except OSError as exc:
            raise StreamFault("open", f"unable to open '{path}': {exc.strerror or exc}", metadata={"path": str(path)}) from exc

        logger.debug("Opened stream on %s (%s)", path, binary_mode)
        return cls(resource, mode)

    @classmethod
    def from_bytes(cls, content: Union[bytes, str] = b"") -> "Stream":
        """Create a temporary stream holding ``content``, positioned at the start."""
        stream = cls.temporary()
        if content:
            stream.write(content)
            stream.rewind()
        return stream

    @classmethod
    def temporary(cls) -> "Stream":
        """Create an empty read/write stream that spills to disk past the configured size."""
        resource = tempfile.SpooledTemporaryFile(
            max_size=get_config().temp_stream_max_memory,
            mode="w+b",
        )
        return cls(resource, "w+")

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def close(self) -> None:
        """Close the underlying resource and detach it."""
        resource = self.detach()
        if resource is not None and not resource.closed:
            resource.close()

    def detach(self) -> Optional[BinaryIO]:
        """Separate the underlying resource; the stream is unusable afterwards."""
        resource = self._resource
        self._resource = None
        self._metadata = None
        return resource

    @property
    def closed(self) -> bool:
        return self._resource is None or self._resource.closed

    def __enter__(self) -> "Stream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self):
        resource = getattr(self, "_resource", None)
        if resource is not None and not resource.closed:
            resource.close()

    def _require_open(self, operation: str) -> BinaryIO:
        if self._resource is None:
            raise StreamFault(operation, "stream is detached")
        if self._resource.closed:
            raise StreamFault(operation, "stream is closed")
        return self._resource

    # ========================================================================
    # Capabilities
    # ========================================================================

    def is_readable(self) -> bool:
        return not self.closed and self._mode in READABLE_MODES

    def is_writable(self) -> bool:
        return not self.closed and self._mode in WRITABLE_MODES

    def is_seekable(self) -> bool:
        return bool(self.get_metadata("seekable"))

    def get_size(self) -> Optional[int]:
        """Size in bytes, or None if unknown."""
        if self.closed:
            return None

        resource = self._resource
        if _seekable(resource):
            position = resource.tell()
            resource.seek(0, os.SEEK_END)
            size = resource.tell()
            resource.seek(position)
            return size

        try:
            return os.fstat(resource.fileno()).st_size
        except (AttributeError, OSError):
            return None

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """
        Stream metadata as a dict, or a single entry.

        Keys: ``uri`` (file name, if any), ``mode``, ``seekable``, ``stream_type``.
        Returns None for an unknown key.
        """
        if self._metadata is None:
            if self.closed:
                self._metadata = {}
            else:
                name = getattr(self._resource, "name", None)
                self._metadata = {
                    "uri": name if isinstance(name, (str, bytes, os.PathLike)) else None,
                    "mode": self._mode,
                    "seekable": _seekable(self._resource),
                    "stream_type": type(self._resource).__name__,
                }

        if key is None:
            return dict(self._metadata)
        return self._metadata.get(key)

    # ========================================================================
    # Positioning
    # ========================================================================

    def tell(self) -> int:
        resource = self._require_open("tell")
        try:
            return resource.tell()
        except OSError as exc:
            raise StreamFault("tell", str(exc)) from exc

    def eof(self) -> bool:
        """True once a read came back shorter than requested."""
        return self.closed or self._eof

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> None:
        resource = self._require_open("seek")
        if not self.is_seekable():
            raise StreamFault("seek", "stream is not seekable")
        try:
            resource.seek(int(offset), int(whence))
        except (OSError, ValueError) as exc:
            raise StreamFault("seek", str(exc)) from exc
        self._eof = False

    def rewind(self) -> None:
        self.seek(0)

    # ========================================================================
    # Reading & Writing
    # ========================================================================

    def read(self, size: int) -> bytes:
        resource = self._require_open("read")
        if not self.is_readable():
            raise StreamFault("read", "stream is not readable")
        try:
            data = resource.read(int(size))
        except OSError as exc:
            raise StreamFault("read", str(exc)) from exc

        if data is None:
            data = b""
        if len(data) < size:
            self._eof = True
        return data

    def write(self, data: Union[bytes, str]) -> int:
        resource = self._require_open("write")
        if not self.is_writable():
            raise StreamFault("write", "stream is not writable")
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            written = resource.write(data)
        except OSError as exc:
            raise StreamFault("write", str(exc)) from exc
        return written if written is not None else len(data)

    def get_contents(self) -> bytes:
        """Remaining contents from the current position."""
        resource = self._require_open("read")
        if not self.is_readable():
            raise StreamFault("read", "stream is not readable")
        try:
            data = resource.read()
        except OSError as exc:
            raise StreamFault("read", str(exc)) from exc
        self._eof = True
        return data or b""

    def __bytes__(self) -> bytes:
        """Whole contents from the start of the stream."""
        self.rewind()
        return self.get_contents()

    def __repr__(self) -> str:
        return f"Stream(uri={self.get_metadata('uri')!r}, mode={self._mode!r}, closed={self.closed})"
