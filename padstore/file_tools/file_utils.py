from pathlib import Path

from padstore.config.logger import get_logger
from padstore.util.format_utils import fmt_path

log = get_logger(__name__)

COMPARE_CHUNK_SIZE = 8192


def unique_dest(dest: Path, keep_suffix: bool = True) -> Path:
    """
    Return `dest` if nothing exists there, else the first free sibling named
    `stem (1).ext`, `stem (2).ext`, ... so an existing file is never overwritten.
    With `keep_suffix=False` (for directories) the number goes at the very end.
    """
    if not dest.exists():
        return dest

    if keep_suffix:
        stem, suffix = dest.stem or "file", dest.suffix
    else:
        stem, suffix = dest.name, ""
    i = 1
    while True:
        candidate = dest.parent / f"{stem} ({i}){suffix}"
        if not candidate.exists():
            log.info("Name taken, using: %s", fmt_path(candidate, resolve=False))
            return candidate
        i += 1


def files_equal(a: Path, b: Path) -> bool:
    """
    Full byte comparison of two files, short-circuited by a size mismatch.
    Any read error counts as not equal.
    """
    try:
        if a.stat().st_size != b.stat().st_size:
            return False
        with open(a, "rb") as fa, open(b, "rb") as fb:
            while True:
                chunk_a = fa.read(COMPARE_CHUNK_SIZE)
                chunk_b = fb.read(COMPARE_CHUNK_SIZE)
                if chunk_a != chunk_b:
                    return False
                if not chunk_a:
                    return True
    except OSError as e:
        log.info("Could not compare files, assuming different: %s", e)
        return False


## Tests


def test_unique_dest(tmp_path: Path):
    dest = tmp_path / "doc.pdf"
    assert unique_dest(dest) == dest

    dest.write_bytes(b"1")
    assert unique_dest(dest) == tmp_path / "doc (1).pdf"

    (tmp_path / "doc (1).pdf").write_bytes(b"2")
    assert unique_dest(dest) == tmp_path / "doc (2).pdf"

    (tmp_path / "README").write_text("x")
    assert unique_dest(tmp_path / "README") == tmp_path / "README (1)"

    (tmp_path / "v1.2").mkdir()
    assert unique_dest(tmp_path / "v1.2", keep_suffix=False) == tmp_path / "v1.2 (1)"


def test_files_equal(tmp_path: Path):
    a = tmp_path / "a.bin"
    b = tmp_path / "b.bin"
    c = tmp_path / "c.bin"
    a.write_bytes(b"x" * 20000)
    b.write_bytes(b"x" * 20000)
    c.write_bytes(b"x" * 19999 + b"y")

    assert files_equal(a, b)
    assert not files_equal(a, c)
    assert not files_equal(a, tmp_path / "missing.bin")
