import os
import shlex
from pathlib import Path
from textwrap import indent
from typing import Any, Iterable

import regex
from humanize import naturalsize


def fmt_lines(values: Iterable[Any], prefix: str = "    ", line_break: str = "\n") -> str:
    """
    Simple indented or prefixed formatting of values one per line.
    """
    return indent(line_break.join(str(value) for value in values), prefix).rstrip()


def single_line(text: str) -> str:
    """
    Convert newlines and other whitespace to spaces.
    """
    return regex.sub(r"\s+", " ", text).strip()


def fmt_path(path: str | Path, resolve: bool = True) -> str:
    """
    Format a path or filename for display. This quotes it if it contains whitespace.

    :param resolve: If true paths are resolved. If they are within the current working
    directory, they are formatted as relative. Otherwise, they are formatted as absolute.
    """
    if resolve:
        path = Path(path).resolve()
        cwd = Path.cwd().resolve()
        if path.is_relative_to(cwd):
            path = path.relative_to(cwd)
    else:
        path = Path(path)

    return shlex.quote(str(path))


def path_str(path: str | Path) -> str:
    """
    A path as a plain string that is always valid UTF-8. Undecodable bytes in file
    names become U+FFFD, so the result is safe to put in JSON.
    """
    return os.fsencode(path).decode("utf-8", errors="replace")


def fmt_size_human(size: int) -> str:
    """
    Format a size (typically a file size) in bytes as a human-readable string,
    e.g. "1.2MB".
    """
    # gnu is briefer, uses B instead of Bytes.
    return naturalsize(size, gnu=True)


def fmt_size_dual(size: int, human_min: int = 1000000) -> str:
    """
    Format a size in bytes in both exact and human-readable formats, e.g.
    "1200000 bytes (1.2MB)". The human-readable format is included if the size is
    at least `human_min`.
    """
    readable_size_str = ""
    if size >= human_min:
        readable_size = fmt_size_human(size)
        readable_size_str += f" ({readable_size})"
    return f"{size} bytes{readable_size_str}"


## Tests


def test_fmt_path():
    assert fmt_path("/tmp/some file.txt", resolve=False) == "'/tmp/some file.txt'"
    assert fmt_path("/tmp/notes.rpad", resolve=False) == "/tmp/notes.rpad"


def test_path_str():
    assert path_str(Path("/tmp/notes.rpad")) == "/tmp/notes.rpad"
    assert path_str("/tmp/caf\udce9.txt") == "/tmp/caf\ufffd.txt"


def test_fmt_lines():
    assert fmt_lines(["a", "b"]) == "    a\n    b"
    assert single_line("one\n two\tthree ") == "one two three"


def test_fmt_size_dual():
    assert fmt_size_dual(12) == "12 bytes"
