"""
Classification of workspace files: which files are shown at all, and what kind
of project each one is.
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


class ProjectKind(str, Enum):
    """
    Kind of project, derived purely from the file extension.
    """

    rpad = "rpad"
    doc = "doc"
    pdf = "pdf"
    txt = "txt"

    def __str__(self):
        return self.value


BLOCKED_EXTS = frozenset(
    [
        # Executables and libraries.
        "exe", "dll", "so", "dylib", "bin", "apk", "msi", "dmg", "iso", "img", "jar", "war",
        # Archives.
        "zip", "tar", "tgz", "gz", "bz2", "xz", "7z", "rar",
        # Images.
        "jpg", "jpeg", "png", "gif", "bmp", "webp", "ico", "psd", "ai", "sketch",
        # Audio and video.
        "mp3", "wav", "flac", "ogg", "mp4", "mkv", "avi", "mov", "wmv",
        # Fonts.
        "woff", "woff2", "ttf", "otf",
    ]
)  # fmt: skip
"""
Clearly binary or heavy formats that are kept out of the workspace index.
Everything else, including unknown extensions, is shown as text.
"""

_kind_for_ext = {
    "rpad": (ProjectKind.rpad, None),
    "doc": (ProjectKind.doc, "doc"),
    "docx": (ProjectKind.doc, "doc"),
    "pdf": (ProjectKind.pdf, "pdf"),
    "txt": (ProjectKind.txt, "txt"),
    "": (ProjectKind.txt, None),
}


def file_ext(path: str | Path) -> str:
    """
    Lowercased extension without the dot, or "" if there is none.
    """
    return Path(path).suffix.lstrip(".").lower()


def allowed_ext(path: str | Path) -> bool:
    """
    Is this file shown in the workspace? Extension-less files are allowed.
    """
    return file_ext(path) not in BLOCKED_EXTS


def detect_kind_ext(ext: str) -> Tuple[ProjectKind, Optional[str]]:
    """
    Map a lowercased extension to a project kind and the extension label shown
    with it. Text and code formats (md, json, py, ...) and unknown extensions are
    `txt` but keep their own extension as the label.
    """
    return _kind_for_ext.get(ext, (ProjectKind.txt, ext))


def is_hidden(name: str) -> bool:
    """
    Hidden entries (dotfiles) are never indexed. This also covers in-progress
    temp files like `.notes.rpad.tmp1`.
    """
    return len(name) > 1 and name.startswith(".")


## Tests


def test_allowed_ext():
    assert allowed_ext("notes.rpad")
    assert allowed_ext("README")
    assert allowed_ext("script.PY")
    assert allowed_ext("data.unknownext")
    assert not allowed_ext("photo.JPG")
    assert not allowed_ext("bundle.tar")
    assert not allowed_ext("font.woff2")


def test_detect_kind_ext():
    assert detect_kind_ext("rpad") == (ProjectKind.rpad, None)
    assert detect_kind_ext("docx") == (ProjectKind.doc, "doc")
    assert detect_kind_ext("pdf") == (ProjectKind.pdf, "pdf")
    assert detect_kind_ext("txt") == (ProjectKind.txt, "txt")
    assert detect_kind_ext("") == (ProjectKind.txt, None)
    assert detect_kind_ext("md") == (ProjectKind.txt, "md")
    assert detect_kind_ext("weird") == (ProjectKind.txt, "weird")


def test_is_hidden():
    assert is_hidden(".notes.rpad.tmp")
    assert is_hidden(".DS_Store")
    assert not is_hidden("notes.rpad")
    assert not is_hidden(".")
