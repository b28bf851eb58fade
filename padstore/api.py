"""
The entry points the app layer calls. Each is a thin wrapper that reads the
current settings once and hands explicit values to the components below.

Errors propagate as `PadstoreError` subclasses (or `OSError` wrapped as
`IoFailure`), whose string form is a message fit to show the user.
"""

from pathlib import Path
from typing import Iterable, List, Optional

from padstore.config.settings import global_settings
from padstore.file_formats import rpad_archive
from padstore.file_tools import atomic_writer
from padstore.model.projects_model import AnalyzeResult, ScanResult
from padstore.watch.folder_watcher import FolderWatcher
from padstore.workspace import change_analyzer, project_ops, scanner


def scan_workspace(root: str | Path) -> ScanResult:
    return scanner.scan_workspace(root, global_settings().hash_algorithm)


def analyze_paths(root: str | Path, paths: Iterable[str | Path]) -> AnalyzeResult:
    return change_analyzer.analyze_paths(root, paths, global_settings().hash_algorithm)


def rename_project(root: str | Path, old_path: str | Path, new_name: str) -> str:
    return project_ops.rename_project(root, old_path, new_name)


def delete_project(root: str | Path, path: str | Path) -> None:
    project_ops.delete_project(root, path)


def move_project(root: str | Path, old_path: str | Path, dest_dir: str | Path) -> str:
    return project_ops.move_project(root, old_path, dest_dir)


def rename_physical_folder(root: str | Path, path: str | Path, new_name: str) -> str:
    return project_ops.rename_physical_folder(root, path, new_name)


def delete_physical_folder(root: str | Path, path: str | Path) -> None:
    project_ops.delete_physical_folder(root, path)


def create_physical_folder(root: str | Path, name: str) -> str:
    return project_ops.create_physical_folder(root, name)


def watch_physical_folders(watcher: FolderWatcher, folders: Iterable[str | Path]) -> List[str]:
    """
    Replace the watched set of `watcher`. The watcher is owned by the caller.
    """
    return watcher.set_watched_folders(folders)


def read_rpad_data(path: str | Path) -> str:
    return rpad_archive.read_body(path)


def write_rpad_html(path: str | Path, html: str, title: Optional[str] = None) -> None:
    settings = global_settings()
    rpad_archive.write_body(
        path,
        html,
        title,
        untitled=settings.untitled_title,
        default_version=settings.archive_version,
    )


def write_text_atomic(path: str | Path, contents: str) -> None:
    atomic_writer.write_text_atomic(path, contents)


def import_project(root: str | Path, src: str | Path, copy: bool = False) -> str:
    return project_ops.import_project(root, src, copy)


def create_rpad_project(dest_dir: str | Path, name: str) -> str:
    return project_ops.create_rpad_project(dest_dir, name)
