"""
Shared test fixtures and helpers for the Plume test suite.
"""

import pytest
from pathlib import Path
from typing import Dict, List

from plume import ServerRequest, Stream, URI, reset_config


@pytest.fixture(autouse=True)
def default_config():
    """Every test starts (and ends) with the default configuration."""
    reset_config()
    yield
    reset_config()


# ============================================================================
# Upload Helpers
# ============================================================================


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    """Directory standing in for the server's upload temp dir."""
    directory = tmp_path / "uploads"
    directory.mkdir()
    return directory


@pytest.fixture
def make_upload(upload_dir: Path):
    """Write a temporary upload file and return its path as a string."""
    counter = {"n": 0}

    def _make(content: bytes = b"file-content") -> str:
        counter["n"] += 1
        path = upload_dir / f"upload{counter['n']:04d}.tmp"
        path.write_bytes(content)
        return str(path)

    return _make


def _leaf_descriptor(tmp_name: str, name: str = "a.txt", size: int = 12,
                     error: int = 0, media_type: str = "text/plain") -> Dict:
    """Raw descriptor for a single file field."""
    return {
        "tmp_name": tmp_name,
        "size": size,
        "error": error,
        "name": name,
        "type": media_type,
    }


def _list_descriptor(tmp_names: List[str]) -> Dict:
    """Raw descriptor for a ``field[]`` upload."""
    return {
        "tmp_name": list(tmp_names),
        "size": [12] * len(tmp_names),
        "error": [0] * len(tmp_names),
        "name": [f"file{i}.txt" for i in range(len(tmp_names))],
        "type": ["text/plain"] * len(tmp_names),
    }


# ============================================================================
# Request Helpers
# ============================================================================


@pytest.fixture
def server_request() -> ServerRequest:
    return ServerRequest(
        "POST",
        URI.parse("https://example.com/submit?page=2&tags[]=a&tags[]=b"),
        {"REMOTE_ADDR": "10.0.0.1"},
        cookies={"session": "abc"},
    )


@pytest.fixture
def body_stream() -> Stream:
    return Stream.from_bytes(b"hello world")


@pytest.fixture
def leaf_descriptor():
    return _leaf_descriptor


@pytest.fixture
def list_descriptor():
    return _list_descriptor
