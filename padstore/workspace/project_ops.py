"""
Mutations of workspace files and physical folders.

Every path argument is checked against the workspace root before anything on disk
is touched, and a failed check raises `OutsideRoot` with no side effects. Names
that would collide with an existing entry get a numbered suffix (`name (1).ext`)
instead of overwriting it.

Returned paths keep the form of the paths passed in (the root as given, not its
canonical form), so they match what scans of the same root report.
"""

import os
import shutil
from pathlib import Path

from padstore.config.logger import get_logger
from padstore.config.settings import RPAD_EXT
from padstore.config.text_styles import EMOJI_SAVED
from padstore.errors import (
    InvalidInput,
    io_failure,
    IoFailure,
    NotADirectory,
    NotAFile,
    UnsupportedFileType,
)
from padstore.file_formats.rpad_archive import read_body, write_body
from padstore.file_tools.atomic_writer import atomic_output_file
from padstore.file_tools.file_utils import files_equal, unique_dest
from padstore.file_tools.path_guard import canonical_root, resolve_and_check
from padstore.model.file_kinds import allowed_ext, file_ext
from padstore.util.format_utils import fmt_path, fmt_size_dual
from padstore.util.log_calls import log_calls

log = get_logger(__name__)


def check_name(name: str) -> str:
    """
    A new file or folder name must be a single plain path component.
    """
    if not name or not name.strip():
        raise InvalidInput("Name must not be empty")
    if name in (".", "..") or "/" in name or (os.sep != "/" and os.sep in name):
        raise InvalidInput(f"Invalid name: {name!r}")
    return name


def _rename(src: Path, dest: Path) -> None:
    try:
        os.rename(src, dest)
    except OSError as e:
        raise io_failure(
            f"Failed to rename {fmt_path(src, resolve=False)} -> {fmt_path(dest, resolve=False)}: {e}",
            e,
        ) from e


@log_calls()
def rename_project(root: str | Path, old_path: str | Path, new_name: str) -> str:
    """
    Rename a project. An `.rpad` document keeps its file name and only its embedded
    title changes, since several documents may share a title but each must keep a
    stable path. Other files are renamed on disk, keeping their extension.
    """
    path = Path(old_path)
    resolve_and_check(root, path)
    if not path.is_file():
        raise NotAFile(f"Not a file: {fmt_path(path, resolve=False)}")

    if file_ext(path) == RPAD_EXT:
        html = read_body(path)
        write_body(path, html, new_name)
        return str(path)

    check_name(new_name)
    target = path.parent / f"{new_name}{path.suffix}"
    if target == path:
        return str(path)
    resolve_and_check(root, target)
    dest = unique_dest(target)
    _rename(path, dest)
    log.message("Renamed: %s -> %s", fmt_path(path), fmt_path(dest))
    return str(dest)


@log_calls()
def delete_project(root: str | Path, path: str | Path) -> None:
    path = Path(path)
    resolve_and_check(root, path)
    try:
        path.unlink()
    except OSError as e:
        raise io_failure(f"Failed to delete {fmt_path(path, resolve=False)}: {e}", e) from e
    log.message("Deleted: %s", fmt_path(path))


@log_calls()
def move_project(root: str | Path, old_path: str | Path, dest_dir: str | Path) -> str:
    """
    Move a file into another directory in the workspace, renaming it with a
    numbered suffix if the name is taken there.
    """
    src = Path(old_path)
    resolve_and_check(root, src)
    if not src.is_file():
        raise NotAFile(f"Not a file: {fmt_path(src, resolve=False)}")
    dest_dir = Path(dest_dir)
    resolve_and_check(root, dest_dir)
    if not dest_dir.is_dir():
        raise NotADirectory(f"Destination is not a directory: {fmt_path(dest_dir, resolve=False)}")

    candidate = dest_dir / src.name
    if candidate.exists() and candidate.samefile(src):
        return str(src)
    new_path = unique_dest(candidate)
    _rename(src, new_path)
    log.message("Moved: %s -> %s", fmt_path(src), fmt_path(new_path))
    return str(new_path)


def _check_folder(root: str | Path, path: Path) -> None:
    checked = resolve_and_check(root, path)
    if not path.is_dir():
        raise NotADirectory(f"Not a directory: {fmt_path(path, resolve=False)}")
    if checked == canonical_root(root):
        raise InvalidInput("The workspace root itself can't be changed")


@log_calls()
def rename_physical_folder(root: str | Path, path: str | Path, new_name: str) -> str:
    path = Path(path)
    _check_folder(root, path)
    check_name(new_name)

    target = path.parent / new_name
    if target == path:
        return str(path)
    resolve_and_check(root, target)
    dest = unique_dest(target, keep_suffix=False)
    _rename(path, dest)
    log.message("Renamed folder: %s -> %s", fmt_path(path), fmt_path(dest))
    return str(dest)


@log_calls()
def delete_physical_folder(root: str | Path, path: str | Path) -> None:
    """
    Delete a folder and everything in it.
    """
    path = Path(path)
    _check_folder(root, path)
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise io_failure(
            f"Failed to delete folder {fmt_path(path, resolve=False)}: {e}", e
        ) from e
    log.message("Deleted folder: %s", fmt_path(path))


@log_calls()
def create_physical_folder(root: str | Path, name: str) -> str:
    """
    Create a folder in the root, along with any missing parents if `name` has
    several components. Idempotent: an existing folder is returned as is.
    """
    root_path = Path(root)
    resolve_and_check(root, root_path)
    if not root_path.is_dir():
        raise NotADirectory(f"Root is not a directory: {fmt_path(root_path, resolve=False)}")

    parts = Path(name).parts
    if not name.strip() or not parts or Path(name).is_absolute() or ".." in parts:
        raise InvalidInput(f"Invalid folder name: {name!r}")
    new_path = root_path / name

    # Check the deepest part that exists now, then the new path below it.
    existing = new_path
    while not existing.exists():
        existing = existing.parent
    resolve_and_check(root, existing)

    if new_path.exists():
        if not new_path.is_dir():
            raise NotADirectory(f"Exists and is not a directory: {fmt_path(new_path)}")
        return str(new_path)

    try:
        new_path.mkdir(parents=True)
    except FileExistsError:
        # Created concurrently, which is fine.
        if not new_path.is_dir():
            raise NotADirectory(f"Exists and is not a directory: {fmt_path(new_path)}")
    except OSError as e:
        raise IoFailure(f"Failed to create folder {fmt_path(new_path)}: {e}") from e
    log.message("Created folder: %s", fmt_path(new_path))
    return str(new_path)


def _copy_file_atomic(src: Path, dest: Path) -> int:
    try:
        with atomic_output_file(dest) as temp_path:
            shutil.copyfile(src, temp_path)
            size = temp_path.stat().st_size
    except IoFailure:
        raise
    except OSError as e:
        raise IoFailure(
            f"Failed to copy {fmt_path(src, resolve=False)} -> {fmt_path(dest, resolve=False)}: {e}"
        ) from e
    return size


@log_calls()
def import_project(root: str | Path, src: str | Path, copy: bool = False) -> str:
    """
    Bring an external file into the workspace. Files already inside the root are
    returned unchanged. Otherwise, by default the file is referenced where it is and
    its own path is returned. With `copy`, it is copied into the root, reusing an
    identical file of the same name if one is already there.
    """
    root_path = Path(root)
    src_path = Path(src)
    if not root_path.is_dir():
        raise NotADirectory(f"Workspace root is not a directory: {fmt_path(root_path)}")
    if not src_path.is_file():
        raise NotAFile(f"Selected import path is not a file: {fmt_path(src_path)}")
    if not allowed_ext(src_path):
        raise UnsupportedFileType(f"Unsupported file type: {fmt_path(src_path)}")

    if src_path.resolve().is_relative_to(canonical_root(root_path)):
        log.info("Already in workspace: %s", fmt_path(src_path))
        return str(src_path)

    if not copy:
        log.info("Referencing external file in place: %s", fmt_path(src_path))
        return str(src_path)

    dest = root_path / src_path.name
    resolve_and_check(root_path, dest)
    if dest.exists():
        if files_equal(src_path, dest):
            log.message("Identical file already in workspace: %s", fmt_path(dest))
            return str(dest)
        dest = unique_dest(dest)

    size = _copy_file_atomic(src_path, dest)
    log.message(
        "%s Imported: %s -> %s (%s)",
        EMOJI_SAVED,
        fmt_path(src_path),
        fmt_path(dest),
        fmt_size_dual(size),
    )
    return str(dest)


@log_calls()
def create_rpad_project(dest_dir: str | Path, name: str) -> str:
    """
    Create an empty `.rpad` document titled `name`, with a file name that doesn't
    collide with anything already in `dest_dir`.
    """
    dest_dir = Path(dest_dir)
    if not dest_dir.is_dir():
        raise NotADirectory(f"Destination is not a directory: {fmt_path(dest_dir)}")
    check_name(name)

    path = unique_dest(dest_dir / f"{name}.{RPAD_EXT}")
    write_body(path, "", name)
    log.message("Created document: %s", fmt_path(path))
    return str(path)


## Tests


def test_rename_project(tmp_path: Path):
    import pytest

    from padstore.file_formats.rpad_archive import read_title

    (tmp_path / "a.txt").write_text("a")
    (tmp_path / "b.txt").write_text("b")
    assert rename_project(tmp_path, tmp_path / "a.txt", "b") == str(tmp_path / "b (1).txt")
    assert (tmp_path / "b (1).txt").read_text() == "a"
    assert rename_project(tmp_path, tmp_path / "b.txt", "b") == str(tmp_path / "b.txt")

    doc = tmp_path / "doc.rpad"
    write_body(doc, "<p>body</p>", "Old")
    assert rename_project(tmp_path, doc, "New") == str(doc)
    assert read_title(doc) == "New"
    assert read_body(doc) == "<p>body</p>"

    with pytest.raises(InvalidInput):
        rename_project(tmp_path, tmp_path / "b.txt", "../x")
    with pytest.raises(NotAFile):
        rename_project(tmp_path, tmp_path / "missing.txt", "x")


def test_physical_folders(tmp_path: Path):
    import pytest

    created = create_physical_folder(tmp_path, "Notes")
    assert created == str(tmp_path / "Notes")
    assert create_physical_folder(tmp_path, "Notes") == created
    assert create_physical_folder(tmp_path, "Deep/Er") == str(tmp_path / "Deep" / "Er")

    (tmp_path / "file").write_text("x")
    with pytest.raises(NotADirectory):
        create_physical_folder(tmp_path, "file")
    with pytest.raises(InvalidInput):
        create_physical_folder(tmp_path, "../escape")

    (tmp_path / "Archive").mkdir()
    renamed = rename_physical_folder(tmp_path, tmp_path / "Notes", "Archive")
    assert renamed == str(tmp_path / "Archive (1)")

    (tmp_path / "Archive" / "x.txt").write_text("x")
    delete_physical_folder(tmp_path, tmp_path / "Archive")
    assert not (tmp_path / "Archive").exists()
    with pytest.raises(InvalidInput):
        delete_physical_folder(tmp_path, tmp_path)


def test_create_rpad_project(tmp_path: Path):
    from padstore.file_formats.rpad_archive import read_title

    first = create_rpad_project(tmp_path, "Plan")
    second = create_rpad_project(tmp_path, "Plan")
    assert first == str(tmp_path / "Plan.rpad")
    assert second == str(tmp_path / "Plan (1).rpad")
    assert read_title(second) == "Plan"
    assert read_body(second) == ""
