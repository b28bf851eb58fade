"""
The `.rpad` document format.

An `.rpad` file is a ZIP archive with two required entries:

- `manifest.json`: `{"title": str, "version": int}`
- `data.json`: `{"html": str}`

Any other entries (attachments, or auxiliary files written by other versions) are
opaque to us. Rewrites keep them byte-for-byte, with the same compression method,
so title and body edits never drop data. The format is additive: new entries can
appear at any time and must survive.

Writes go to a temp file beside the document and are then renamed into place,
so a crash leaves either the old archive or the new one.
"""

import json
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple

from padstore.config.logger import get_logger
from padstore.config.settings import global_settings
from padstore.config.text_styles import EMOJI_SAVED
from padstore.errors import ArchiveCorrupt, DataNotFound, io_failure, IoFailure
from padstore.file_tools.atomic_writer import atomic_output_file
from padstore.util.format_utils import fmt_path

log = get_logger(__name__)

MANIFEST_ENTRY = "manifest.json"

DATA_ENTRY = "data.json"

DATA_ENTRY_CANDIDATES = ("data.json", "content.json", "document.json", "data/data.json")
"""Body entries to look for, in priority order. Older documents used other names."""

HTML_FALLBACK_ENTRY = "content.html"


@dataclass(frozen=True)
class PreservedEntry:
    """
    An archive entry carried over verbatim on rewrite.
    """

    info: zipfile.ZipInfo
    data: bytes

    @property
    def name(self) -> str:
        return self.info.filename

    @property
    def compress_type(self) -> int:
        return self.info.compress_type


def _json_compact(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _read_text(archive: zipfile.ZipFile, name: str) -> str:
    try:
        return archive.read(name).decode("utf-8")
    except (zipfile.BadZipFile, NotImplementedError, UnicodeDecodeError, OSError) as e:
        raise ArchiveCorrupt(f"Failed to read archive entry {name!r}: {e}")


def _open_archive(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path, "r")
    except zipfile.BadZipFile as e:
        raise ArchiveCorrupt(f"Not a valid .rpad archive: {fmt_path(path, resolve=False)}: {e}")
    except OSError as e:
        raise io_failure(f"Cannot open archive: {fmt_path(path, resolve=False)}: {e}", e) from e


def _parse_manifest(text: str) -> Tuple[Optional[str], Optional[int]]:
    try:
        manifest = json.loads(text)
    except json.JSONDecodeError:
        return None, None
    if not isinstance(manifest, dict):
        return None, None
    title = manifest.get("title")
    version = manifest.get("version")
    return (
        title if isinstance(title, str) else None,
        version if isinstance(version, int) and not isinstance(version, bool) else None,
    )


def read_title(path: str | Path) -> Optional[str]:
    """
    Title from the manifest, or None if the archive or its manifest can't be read.
    A missing title just means "unknown", so this never raises.
    """
    try:
        with zipfile.ZipFile(path, "r") as archive:
            text = archive.read(MANIFEST_ENTRY).decode("utf-8")
    except (OSError, KeyError, zipfile.BadZipFile, NotImplementedError, UnicodeDecodeError) as e:
        log.debug("No title for %s: %s", fmt_path(path, resolve=False), e)
        return None
    title, _version = _parse_manifest(text)
    return title


def read_body(path: str | Path) -> str:
    """
    The HTML body. Tries each known data entry in order: a JSON object with an
    `html` string yields that string, anything else yields the entry's raw text.
    Falls back to a plain `content.html` entry.
    """
    path = Path(path)
    with _open_archive(path) as archive:
        names = set(archive.namelist())
        for candidate in DATA_ENTRY_CANDIDATES:
            if candidate in names:
                text = _read_text(archive, candidate)
                try:
                    data = json.loads(text)
                except json.JSONDecodeError:
                    return text
                if isinstance(data, dict) and isinstance(data.get("html"), str):
                    return data["html"]
                return text

        if HTML_FALLBACK_ENTRY in names:
            return _read_text(archive, HTML_FALLBACK_ENTRY)

    raise DataNotFound(f"Data not found in .rpad: {fmt_path(path, resolve=False)}")


def _read_existing(path: Path) -> Tuple[List[PreservedEntry], Optional[str], Optional[int]]:
    """
    Load everything a rewrite needs from an existing archive: every entry other than
    the manifest and body, plus the current title and version.
    """
    preserved: List[PreservedEntry] = []
    title: Optional[str] = None
    version: Optional[int] = None
    seen_manifest = False

    with _open_archive(path) as archive:
        for info in archive.infolist():
            if info.filename == MANIFEST_ENTRY:
                if not seen_manifest:
                    seen_manifest = True
                    try:
                        title, version = _parse_manifest(
                            archive.read(info).decode("utf-8", errors="replace")
                        )
                    except (zipfile.BadZipFile, NotImplementedError, OSError) as e:
                        log.warning("Ignoring unreadable manifest in %s: %s", fmt_path(path), e)
                continue
            if info.filename == DATA_ENTRY:
                continue
            try:
                data = archive.read(info)
            except (zipfile.BadZipFile, NotImplementedError, OSError) as e:
                raise ArchiveCorrupt(f"Failed to copy existing entry {info.filename!r}: {e}")
            preserved.append(PreservedEntry(info, data))

    return preserved, title, version


def _copy_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    new_info = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    new_info.compress_type = info.compress_type
    new_info.external_attr = info.external_attr
    new_info.create_system = info.create_system
    new_info.comment = info.comment
    return new_info


def write_body(
    path: str | Path,
    html: str,
    title: Optional[str] = None,
    *,
    untitled: Optional[str] = None,
    default_version: Optional[int] = None,
) -> None:
    """
    Write the HTML body (and optionally a new title) to an `.rpad` archive, creating
    it if needed. Existing extra entries are preserved unchanged. The title is kept
    unless `title` is given (falling back to "Untitled" for new documents), and the
    existing manifest version is kept (falling back to 1).

    If any preserved entry can't be read or rewritten the whole write fails and the
    original archive is untouched.
    """
    path = Path(path)
    settings = global_settings()
    if untitled is None:
        untitled = settings.untitled_title
    if default_version is None:
        default_version = settings.archive_version

    preserved: List[PreservedEntry] = []
    existing_title: Optional[str] = None
    existing_version: Optional[int] = None
    if path.exists():
        preserved, existing_title, existing_version = _read_existing(path)

    if title is not None:
        chosen_title = title
    elif existing_title is not None:
        chosen_title = existing_title
    else:
        chosen_title = untitled
    version = existing_version if existing_version is not None else default_version

    manifest = _json_compact({"title": chosen_title, "version": version})
    data = _json_compact({"html": html})

    try:
        with atomic_output_file(path) as temp_path:
            with zipfile.ZipFile(temp_path, "w") as archive:
                for entry in preserved:
                    try:
                        archive.writestr(_copy_info(entry.info), entry.data)
                    except (NotImplementedError, RuntimeError, ValueError) as e:
                        raise ArchiveCorrupt(
                            f"Failed to write preserved entry {entry.name!r}: {e}"
                        )
                archive.writestr(MANIFEST_ENTRY, manifest, compress_type=zipfile.ZIP_DEFLATED)
                archive.writestr(DATA_ENTRY, data, compress_type=zipfile.ZIP_DEFLATED)
    except IoFailure:
        raise
    except OSError as e:
        raise IoFailure(f"Failed to write archive: {fmt_path(path, resolve=False)}: {e}") from e

    log.info(
        "%s Wrote .rpad: %s (%s preserved entries, title %r)",
        EMOJI_SAVED,
        fmt_path(path, resolve=False),
        len(preserved),
        chosen_title,
    )


## Tests


def test_write_then_read(tmp_path: Path):
    path = tmp_path / "doc.rpad"
    write_body(path, "<p>Hello</p>", "Intro")
    assert read_body(path) == "<p>Hello</p>"
    assert read_title(path) == "Intro"

    # Title kept when not given.
    write_body(path, "<p>Edited</p>")
    assert read_body(path) == "<p>Edited</p>"
    assert read_title(path) == "Intro"

    with zipfile.ZipFile(path) as archive:
        assert json.loads(archive.read(MANIFEST_ENTRY)) == {"title": "Intro", "version": 1}
        assert archive.getinfo(DATA_ENTRY).compress_type == zipfile.ZIP_DEFLATED


def test_new_archive_defaults(tmp_path: Path):
    path = tmp_path / "blank.rpad"
    write_body(path, "")
    assert read_title(path) == "Untitled"
    assert read_body(path) == ""

    # An existing empty title is a title, not a missing one.
    path = tmp_path / "empty-title.rpad"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(MANIFEST_ENTRY, '{"title": "", "version": 2}')
    write_body(path, "<p>one</p>")
    write_body(path, "<p>two</p>")
    with zipfile.ZipFile(path) as archive:
        assert json.loads(archive.read(MANIFEST_ENTRY)) == {"title": "", "version": 2}
    assert read_title(path) == ""


def test_read_body_fallbacks(tmp_path: Path):
    import pytest

    path = tmp_path / "old.rpad"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("document.json", '{"html": "<p>doc</p>"}')
        archive.writestr("content.html", "<p>ignored</p>")
    assert read_body(path) == "<p>doc</p>"

    path = tmp_path / "raw.rpad"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("data.json", '{"text": "no html key"}')
    assert read_body(path) == '{"text": "no html key"}'

    path = tmp_path / "html.rpad"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("content.html", "<h1>plain</h1>")
    assert read_body(path) == "<h1>plain</h1>"

    path = tmp_path / "empty.rpad"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("manifest.json", '{"title": "t", "version": 1}')
    with pytest.raises(DataNotFound):
        read_body(path)


def test_read_title_never_raises(tmp_path: Path):
    broken = tmp_path / "broken.rpad"
    broken.write_bytes(b"not a zip")
    assert read_title(broken) is None
    assert read_title(tmp_path / "missing.rpad") is None

    bad_manifest = tmp_path / "bad.rpad"
    with zipfile.ZipFile(bad_manifest, "w") as archive:
        archive.writestr("manifest.json", "{not json")
    assert read_title(bad_manifest) is None


def test_corrupt_archive_is_not_overwritten(tmp_path: Path):
    import pytest

    path = tmp_path / "broken.rpad"
    path.write_bytes(b"not a zip")
    with pytest.raises(ArchiveCorrupt):
        write_body(path, "<p>new</p>", "t")
    assert path.read_bytes() == b"not a zip"
    assert [p.name for p in tmp_path.iterdir()] == ["broken.rpad"]
