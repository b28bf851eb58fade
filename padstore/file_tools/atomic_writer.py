"""
Crash-safe file replacement. Content is written to a hidden temp file next to the
destination and then renamed over it, so the destination is always either the old
file or the complete new one.
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from padstore.config.logger import get_logger
from padstore.errors import InvalidPath, IoFailure
from padstore.util.format_utils import fmt_path

log = get_logger(__name__)


def temp_path_for(final_path: str | Path) -> Path:
    """
    Pick an unused temp path beside `final_path`: `.{name}.tmp`, then `.{name}.tmp1`,
    `.{name}.tmp2`, and so on. Saves of different files never share a temp name, and
    leftovers from failed attempts are skipped rather than clobbered.
    """
    final_path = Path(final_path)
    if not final_path.name:
        raise InvalidPath(f"Invalid path: {fmt_path(final_path, resolve=False)}")
    parent = final_path.parent

    candidate = parent / f".{final_path.name}.tmp"
    i = 0
    while candidate.exists():
        i += 1
        candidate = parent / f".{final_path.name}.tmp{i}"
    return candidate


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("Could not remove temp file: %s: %s", fmt_path(path, resolve=False), e)


def replace(temp_path: str | Path, final_path: str | Path) -> None:
    """
    Move a fully written temp file onto `final_path`. If the rename fails while the
    destination exists (some platforms won't rename over an existing file), the
    destination is removed and the rename retried once. On failure the temp file is
    removed and the original error raised as `IoFailure`. Other errors leave the
    destination alone.
    """
    temp_path = Path(temp_path)
    final_path = Path(final_path)
    try:
        os.replace(temp_path, final_path)
        return
    except OSError as e:
        first_error = e

    # Windows reports an existing destination as FileExistsError or PermissionError.
    if isinstance(first_error, (FileExistsError, PermissionError)) and final_path.exists():
        log.info(
            "Rename onto existing file failed, removing and retrying: %s: %s",
            fmt_path(final_path, resolve=False),
            first_error,
        )
        try:
            final_path.unlink()
            os.rename(temp_path, final_path)
            return
        except OSError as e:
            log.warning("Retry of replace failed: %s: %s", fmt_path(final_path, resolve=False), e)

    _remove_quietly(temp_path)
    raise IoFailure(
        f"Failed to replace file: {fmt_path(final_path, resolve=False)}: {first_error}"
    ) from first_error


@contextmanager
def atomic_output_file(final_path: str | Path) -> Generator[Path, None, None]:
    """
    Context manager that yields a temp path to write to. When the block completes
    the temp file replaces `final_path`. If the block raises, the temp file is
    removed and `final_path` is untouched.

        with atomic_output_file(path) as tmp:
            tmp.write_bytes(data)
    """
    final_path = Path(final_path)
    temp_path = temp_path_for(final_path)
    try:
        yield temp_path
    except BaseException:
        _remove_quietly(temp_path)
        raise
    replace(temp_path, final_path)


def write_text_atomic(path: str | Path, contents: str) -> None:
    """
    Save plain text so a crash mid-write never leaves a truncated file.
    """
    path = Path(path)
    try:
        with atomic_output_file(path) as temp_path:
            with open(temp_path, "w", encoding="utf-8", newline="") as f:
                f.write(contents)
                f.flush()
                os.fsync(f.fileno())
    except IoFailure:
        raise
    except OSError as e:
        raise IoFailure(f"Failed to write file: {fmt_path(path, resolve=False)}: {e}") from e


## Tests


def test_temp_path_probing(tmp_path: Path):
    final = tmp_path / "notes.rpad"
    assert temp_path_for(final) == tmp_path / ".notes.rpad.tmp"

    (tmp_path / ".notes.rpad.tmp").write_text("stale")
    (tmp_path / ".notes.rpad.tmp1").write_text("stale")
    assert temp_path_for(final) == tmp_path / ".notes.rpad.tmp2"

    assert temp_path_for(tmp_path / "other.txt") == tmp_path / ".other.txt.tmp"


def test_write_text_atomic(tmp_path: Path):
    path = tmp_path / "a.txt"
    write_text_atomic(path, "first")
    write_text_atomic(path, "second\r\nline")
    assert path.read_bytes() == b"second\r\nline"
    assert [p.name for p in tmp_path.iterdir()] == ["a.txt"]


def test_failed_write_leaves_original(tmp_path: Path):
    import pytest

    path = tmp_path / "a.txt"
    path.write_text("original")

    with pytest.raises(RuntimeError):
        with atomic_output_file(path) as temp_path:
            temp_path.write_text("partial")
            raise RuntimeError("crash mid-write")

    assert path.read_text() == "original"
    assert [p.name for p in tmp_path.iterdir()] == ["a.txt"]


def test_replace_failure_removes_temp(tmp_path: Path):
    import pytest

    temp = tmp_path / ".a.txt.tmp"
    temp.write_text("new")
    # Destination inside a missing directory: rename fails and there is nothing to remove.
    with pytest.raises(IoFailure):
        replace(temp, tmp_path / "missing" / "a.txt")
    assert not temp.exists()


def test_replace_retries_when_destination_exists(tmp_path: Path, monkeypatch):
    final = tmp_path / "a.txt"
    final.write_text("old")
    temp = tmp_path / ".a.txt.tmp"
    temp.write_text("new")

    def refuse_overwrite(src, dst):
        raise FileExistsError(dst)

    monkeypatch.setattr(os, "replace", refuse_overwrite)
    replace(temp, final)

    assert final.read_text() == "new"
    assert not temp.exists()
