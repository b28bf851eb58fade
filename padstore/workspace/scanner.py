"""
Full scan of a workspace into a project index.

The workspace is exactly two levels deep: files directly in the root are root
projects, directories directly in the root are physical folders, and files directly
inside those are the folders' projects. Anything deeper is not indexed.
"""

import os
import time
from pathlib import Path
from typing import List, Optional

from padstore.config.logger import get_logger
from padstore.errors import IoFailure, NotADirectory
from padstore.file_formats.rpad_archive import read_title
from padstore.model.file_kinds import (
    allowed_ext,
    detect_kind_ext,
    file_ext,
    is_hidden,
    ProjectKind,
)
from padstore.model.projects_model import PhysicalFolder, Project, ScanResult, SkippedItem
from padstore.util.format_utils import fmt_path, path_str
from padstore.util.hash_utils import DEFAULT_ID_ALGORITHM, stable_id
from padstore.util.log_calls import format_duration

log = get_logger(__name__)


def mtime_ms(stat: os.stat_result) -> int:
    return stat.st_mtime_ns // 1_000_000


def project_for_path(
    path: Path,
    parent_physical_folder: Optional[str] = None,
    id_algorithm: str = DEFAULT_ID_ALGORITHM,
) -> Project:
    """
    Snapshot of one file as a Project. Raises `OSError` if the file can't be stat'ed.
    Only `.rpad` documents get a title.
    """
    stat = path.stat()
    kind, ext_label = detect_kind_ext(file_ext(path))
    path_text = path_str(path)
    return Project(
        id=stable_id(path_text, id_algorithm),
        kind=kind,
        name=path_str(path.stem),
        path=path_text,
        ext=ext_label,
        title=read_title(path) if kind == ProjectKind.rpad else None,
        last_modified_ms=mtime_ms(stat),
        size=stat.st_size,
        parent_physical_folder=parent_physical_folder,
    )


def list_folder_projects(
    folder: Path,
    skipped: List[SkippedItem],
    id_algorithm: str = DEFAULT_ID_ALGORITHM,
) -> List[Project]:
    """
    Projects for the files directly inside a physical folder. Unreadable folders or
    files are recorded in `skipped` and left out.
    """
    projects: List[Project] = []
    try:
        entries = sorted(os.scandir(folder), key=lambda e: e.name)
    except OSError as e:
        log.info("Skipping unreadable folder: %s: %s", fmt_path(folder, resolve=False), e)
        skipped.append(SkippedItem(path=path_str(folder), reason=str(e)))
        return projects

    for entry in entries:
        if is_hidden(entry.name) or not allowed_ext(entry.name):
            continue
        child = folder / entry.name
        try:
            if not entry.is_file():
                continue
            projects.append(project_for_path(child, path_str(folder), id_algorithm))
        except OSError as e:
            log.info("Skipping unreadable file: %s: %s", fmt_path(child, resolve=False), e)
            skipped.append(SkippedItem(path=path_str(child), reason=str(e)))

    return projects


def scan_workspace(root: str | Path, id_algorithm: str = DEFAULT_ID_ALGORITHM) -> ScanResult:
    """
    Scan the workspace root and its immediate subdirectories. Unreadable
    subdirectories are skipped (and listed in `skipped`) rather than failing the
    whole scan, but a root that can't be listed at all is an error.
    """
    start_time = time.time()

    root_path = Path(root)
    if not root_path.is_dir():
        raise NotADirectory(f"Workspace root is not a directory: {fmt_path(root_path)}")

    try:
        entries = sorted(os.scandir(root_path), key=lambda e: e.name)
    except OSError as e:
        raise IoFailure(f"Cannot read workspace root: {fmt_path(root_path)}: {e}") from e

    result = ScanResult()
    for entry in entries:
        if is_hidden(entry.name):
            continue
        path = root_path / entry.name
        try:
            if entry.is_dir():
                folder = PhysicalFolder(path=path_str(path), name=path_str(entry.name))
                items = list_folder_projects(path, result.skipped, id_algorithm)
                result.physical_folders.append((folder, items))
            elif entry.is_file() and allowed_ext(entry.name):
                result.root_projects.append(project_for_path(path, None, id_algorithm))
        except OSError as e:
            log.info("Skipping unreadable entry: %s: %s", fmt_path(path, resolve=False), e)
            result.skipped.append(SkippedItem(path=path_str(path), reason=str(e)))

    log.info(
        "Scanned %s: %s root projects, %s folders, %s skipped, in %s",
        fmt_path(root_path),
        len(result.root_projects),
        len(result.physical_folders),
        len(result.skipped),
        format_duration(time.time() - start_time),
    )
    return result
