"""
Upload file handling for Plume server requests.

Provides:
- UploadErrorCode: Upload outcome codes (CGI upload table compatible)
- UploadedFile: Stream plus client metadata with a one-shot move
- UploadTreeNormalizer: Raw parallel-array upload table -> tree of UploadedFile
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .config import get_config
from .faults import AlreadyMovedFault, InvalidArgumentFault, UploadErrorFault
from .streams import ByteStream, Stream


logger = logging.getLogger("plume.uploads")

PathLike = Union[str, Path]

DESCRIPTOR_FIELDS = ("tmp_name", "size", "error", "name", "type")


class UploadErrorCode(IntEnum):
    """Outcome of a single file upload."""

    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8


def _coerce_error(error: Any) -> UploadErrorCode:
    try:
        return UploadErrorCode(int(error))
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentFault(
            f"Invalid upload error code {error!r}",
            error=repr(error),
        ) from exc


# ============================================================================
# UploadedFile
# ============================================================================

class UploadedFile:
    """
    A single uploaded file.

    ``client_filename`` and ``client_media_type`` come straight from the
    client and must not be trusted (never build filesystem paths from them).
    The file can be moved once; afterwards its stream is no longer available.
    """

    def __init__(
        self,
        stream: ByteStream,
        size: Optional[int] = None,
        error: int = UploadErrorCode.OK,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
    ):
        if not isinstance(stream, ByteStream):
            raise InvalidArgumentFault(
                "Uploaded file stream must be a byte stream",
                stream_type=type(stream).__name__,
            )

        if size is not None:
            try:
                size = int(size)
            except (TypeError, ValueError) as exc:
                raise InvalidArgumentFault(f"Invalid upload size {size!r}", size=repr(size)) from exc

        self._stream = stream
        self._error = _coerce_error(error)
        self._size = size if size is not None else stream.get_size()
        self._client_filename = client_filename
        self._client_media_type = client_media_type
        self._moved = False

    @property
    def size(self) -> Optional[int]:
        return self._size

    @property
    def error(self) -> UploadErrorCode:
        return self._error

    @property
    def client_filename(self) -> Optional[str]:
        """Filename sent by the client. Untrusted."""
        return self._client_filename

    @property
    def client_media_type(self) -> Optional[str]:
        """Media type sent by the client. Untrusted."""
        return self._client_media_type

    @property
    def moved(self) -> bool:
        return self._moved

    @property
    def temporary_path(self) -> Optional[str]:
        """Where the upload currently lives, if it is backed by a file."""
        if self._moved:
            return None
        return self._stream.get_metadata("uri")

    def get_stream(self) -> ByteStream:
        """
        Stream over the uploaded content.

        Raises:
            AlreadyMovedFault: If the file was moved
            UploadErrorFault: If the upload did not succeed
        """
        if self._moved:
            raise AlreadyMovedFault(metadata={"client_filename": self._client_filename})
        if self._error != UploadErrorCode.OK:
            raise UploadErrorFault(self._error, metadata={"client_filename": self._client_filename})
        return self._stream

    def move_to(self, target_path: PathLike) -> None:
        """
        Copy the upload to ``target_path`` and release the source stream.

        Copies in chunks of ``upload_chunk_size`` bytes until the source is
        exhausted or a write comes back short. This is a one-shot operation.

        Raises:
            InvalidArgumentFault: If target_path is empty
            AlreadyMovedFault: If the file was already moved
            UploadErrorFault: If the upload did not succeed
            StreamFault: If reading, writing or opening fails
        """
        if not isinstance(target_path, (str, Path)) or not str(target_path):
            raise InvalidArgumentFault(
                "Target path is invalid",
                target_path=repr(target_path),
            )

        source = self.get_stream()
        if source.is_seekable():
            source.seek(0)

        chunk_size = get_config().upload_chunk_size
        copied = 0

        with Stream.open(target_path, "w") as destination:
            while not source.eof():
                chunk = source.read(chunk_size)
                written = destination.write(chunk)
                copied += written
                if written < len(chunk) or not written:
                    break

        self._moved = True
        source.close()

        logger.debug(
            "Moved upload %r to %s (%d bytes)",
            self._client_filename, target_path, copied,
        )

    def __repr__(self) -> str:
        return (
            f"UploadedFile(client_filename={self._client_filename!r}, "
            f"size={self._size!r}, error={self._error.name}, moved={self._moved})"
        )


UploadTree = Union[Dict[Any, Any], List[Any]]


# ============================================================================
# Descriptor variants
# ============================================================================

@dataclass(frozen=True)
class UploadLeaf:
    """One file: every field holds a scalar."""
    tmp_name: Any
    size: Any
    error: Any
    name: Any
    type: Any


@dataclass(frozen=True)
class UploadList:
    """``field[]`` uploads: every field holds a list of scalars."""
    leaves: List[UploadLeaf]


@dataclass(frozen=True)
class UploadNest:
    """Deeper structure: one sub-descriptor per key of ``tmp_name``."""
    children: Dict[Any, Mapping[str, Any]]
    as_list: bool


UploadDescriptor = Union[UploadLeaf, UploadList, UploadNest]


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (Mapping, list, tuple))


def _pick(values: Any, key: Any) -> Any:
    """Value at ``key`` of a parallel field, or None when it is missing."""
    if isinstance(values, Mapping):
        return values.get(key)
    if isinstance(values, (list, tuple)) and isinstance(key, int) and 0 <= key < len(values):
        return values[key]
    return None


def _is_index_mapping(value: Any) -> bool:
    """Non-empty mapping keyed exactly by the ints 0..n-1."""
    return (
        isinstance(value, Mapping)
        and len(value) > 0
        and all(type(key) is int for key in value)
        and set(value) == set(range(len(value)))
    )


def classify_descriptor(descriptor: Mapping[str, Any]) -> UploadDescriptor:
    """
    Decide once which shape a raw descriptor node has.

    Raises:
        InvalidArgumentFault: If the node is not a mapping with ``tmp_name``
    """
    if not isinstance(descriptor, Mapping) or "tmp_name" not in descriptor:
        raise InvalidArgumentFault(
            "Upload descriptor must be a mapping with a 'tmp_name' entry",
            descriptor_type=type(descriptor).__name__,
        )

    tmp_name = descriptor["tmp_name"]
    if _is_index_mapping(tmp_name):
        # files[] tables decoded into mappings keyed by position
        tmp_name = [tmp_name[index] for index in range(len(tmp_name))]
    fields = {name: descriptor.get(name) for name in DESCRIPTOR_FIELDS}

    if _is_scalar(tmp_name):
        return UploadLeaf(**fields)

    if isinstance(tmp_name, (list, tuple)) and all(_is_scalar(item) for item in tmp_name):
        return UploadList([
            UploadLeaf(**{name: _pick(fields[name], index) for name in DESCRIPTOR_FIELDS})
            for index in range(len(tmp_name))
        ])

    keys = tmp_name.keys() if isinstance(tmp_name, Mapping) else range(len(tmp_name))
    children = {
        key: {name: _pick(fields[name], key) for name in DESCRIPTOR_FIELDS}
        for key in keys
    }
    return UploadNest(children, as_list=not isinstance(tmp_name, Mapping))


# ============================================================================
# UploadTreeNormalizer
# ============================================================================

class UploadTreeNormalizer:
    """
    Turns a raw upload table into a tree of UploadedFile.

    The raw table maps each form field name to a descriptor whose
    ``tmp_name``/``size``/``error``/``name``/``type`` entries share one
    shape. The output mirrors that shape with an UploadedFile at each leaf.
    Leaves with a failed upload keep their place and carry the error code;
    no file is opened for them.

    Streams opened during a call are closed again if the call fails.
    """

    def __init__(self) -> None:
        self._opened: List[Stream] = []

    def normalize(self, files: Mapping[str, Any]) -> Dict[str, Any]:
        if not isinstance(files, Mapping):
            raise InvalidArgumentFault(
                "Upload table must be a mapping of field names to descriptors",
                files_type=type(files).__name__,
            )

        self._opened = []
        try:
            tree = {field: self._build(descriptor) for field, descriptor in files.items()}
        except Exception:
            for stream in self._opened:
                stream.close()
            logger.debug("Upload normalization failed, closed %d stream(s)", len(self._opened))
            raise
        finally:
            opened, self._opened = len(self._opened), []

        logger.debug("Normalized %d upload field(s), %d file(s) opened", len(tree), opened)
        return tree

    def _build(self, descriptor: Mapping[str, Any]) -> Any:
        node = classify_descriptor(descriptor)

        if isinstance(node, UploadLeaf):
            return self._build_leaf(node)
        if isinstance(node, UploadList):
            return [self._build_leaf(leaf) for leaf in node.leaves]

        built = {key: self._build(child) for key, child in node.children.items()}
        return list(built.values()) if node.as_list else built

    def _build_leaf(self, leaf: UploadLeaf) -> UploadedFile:
        error = _coerce_error(leaf.error if leaf.error is not None else UploadErrorCode.OK)

        if error == UploadErrorCode.OK:
            if not isinstance(leaf.tmp_name, (str, Path)) or not str(leaf.tmp_name):
                raise InvalidArgumentFault(
                    "Upload descriptor has no temporary file",
                    client_filename=leaf.name,
                )
            stream = Stream.open(leaf.tmp_name, "r")
        else:
            stream = Stream.from_bytes(b"")
        self._opened.append(stream)

        return UploadedFile(
            stream,
            size=leaf.size,
            error=error,
            client_filename=leaf.name,
            client_media_type=leaf.type,
        )


def normalize_uploaded_files(files: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalize a raw upload table; see UploadTreeNormalizer."""
    return UploadTreeNormalizer().normalize(files)
