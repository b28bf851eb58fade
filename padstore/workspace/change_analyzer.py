"""
Incremental index updates from filesystem change notifications.

Rather than rescanning the whole workspace after every watcher event, each changed
path is looked at on its own and turned into upserts or delete signals that the
caller applies to its index as a small patch.
"""

from pathlib import Path
from typing import Dict, Iterable, Optional

from padstore.config.logger import get_logger
from padstore.file_tools.path_guard import is_inside
from padstore.model.file_kinds import allowed_ext, is_hidden
from padstore.model.projects_model import AnalyzeResult, PhysicalFolder, Project
from padstore.util.format_utils import fmt_lines, fmt_path, path_str
from padstore.util.hash_utils import DEFAULT_ID_ALGORITHM
from padstore.workspace.scanner import list_folder_projects, project_for_path

log = get_logger(__name__)


def physical_folder_of(root: Path, path: Path) -> Optional[str]:
    """
    The physical folder a file belongs to, if its parent is a direct child of the
    root. Files in the root itself or nested deeper have none.
    """
    parent = path.parent
    if parent != root and parent.parent == root:
        return path_str(parent)
    return None


def analyze_paths(
    root: str | Path,
    paths: Iterable[str | Path],
    id_algorithm: str = DEFAULT_ID_ALGORITHM,
) -> AnalyzeResult:
    """
    Classify each changed path as an upsert or delete of a project or physical folder:

    - Outside the root: skipped.
    - An existing file: upserted if it's an allowed kind. If it can't be stat'ed it
      most likely vanished after the event, so it's reported as deleted.
    - An existing directory directly under the root: upserted as a physical folder
      along with a shallow rescan of its files. The root itself and deeper
      directories are ignored.
    - Anything else no longer exists and is reported as a deleted project path.

    Hidden entries (including in-progress temp files) and anything under a hidden
    directory are ignored, matching scans.
    """
    root_path = Path(root)
    result = AnalyzeResult()
    upserts: Dict[str, Project] = {}

    unique_paths = list(dict.fromkeys(str(p) for p in paths))
    log.debug("Analyzing changed paths:\n%s", fmt_lines(unique_paths))
    for raw in unique_paths:
        path = Path(raw)
        if not is_inside(root_path, path):
            log.debug("Ignoring change outside workspace: %s", fmt_path(path, resolve=False))
            continue
        if any(is_hidden(part) for part in path.relative_to(root_path).parts):
            continue

        if path.is_file():
            if not allowed_ext(path):
                continue
            try:
                project = project_for_path(
                    path, physical_folder_of(root_path, path), id_algorithm
                )
                upserts[project.path] = project
            except OSError as e:
                log.info("File vanished before analysis: %s: %s", fmt_path(path), e)
                result.delete_project_paths.append(path_str(path))
        elif path.is_dir():
            if path == root_path or path.parent != root_path:
                continue
            if path.exists():
                result.physical_folders.append(
                    PhysicalFolder(path=path_str(path), name=path_str(path.name))
                )
                for project in list_folder_projects(path, result.skipped, id_algorithm):
                    upserts[project.path] = project
            else:
                result.delete_physical_folders.append(path_str(path))
        else:
            result.delete_project_paths.append(path_str(path))

    result.projects = list(upserts.values())

    log.info(
        "Analyzed %s changed paths: %s upserts, %s deletes, %s folders, %s folder deletes",
        len(unique_paths),
        len(result.projects),
        len(result.delete_project_paths),
        len(result.physical_folders),
        len(result.delete_physical_folders),
    )
    return result
