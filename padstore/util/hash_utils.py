import hashlib
from pathlib import Path

from padstore.util.format_utils import path_str

DEFAULT_ID_ALGORITHM = "blake2b"


def _new_hasher(algorithm: str):
    # shake_* digests are variable-length.
    if algorithm not in hashlib.algorithms_available or algorithm.startswith("shake_"):
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")
    return hashlib.new(algorithm)


def stable_id(path: str | Path, algorithm: str = DEFAULT_ID_ALGORITHM) -> str:
    """
    Stable identifier for a project: the hex digest of its absolute path string, in
    the same UTF-8-lossy form the project's `path` field carries. Depends only on the
    path, never on file contents, so an unmoved file keeps its id across scans.
    """
    hasher = _new_hasher(algorithm)
    hasher.update(path_str(path).encode("utf-8"))
    return hasher.hexdigest()


## Tests


def test_stable_id():
    import pytest

    path = "/home/user/Workspace/Notes/b.txt"
    assert stable_id(path) == stable_id(path)
    assert stable_id(path) == stable_id(Path(path))
    assert stable_id(path) != stable_id(path + "x")
    assert len(stable_id(path)) == 128
    assert len(stable_id(path, algorithm="sha256")) == 64

    assert stable_id("/ws/caf\udce9.txt") == stable_id("/ws/caf\ufffd.txt")

    with pytest.raises(ValueError):
        stable_id(path, algorithm="shake_256")
    with pytest.raises(ValueError):
        stable_id(path, algorithm="nope")
