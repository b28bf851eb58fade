import threading
from pathlib import Path
from typing import Dict, List, Optional

from padstore.config.logger import get_logger
from padstore.file_tools.path_guard import is_inside
from padstore.model.projects_model import AnalyzeResult, PhysicalFolder, Project, ScanResult
from padstore.util.format_utils import fmt_path
from padstore.util.thread_utils import synchronized

log = get_logger(__name__)


class WorkspaceIndex:
    """
    In-memory view of one workspace, kept current by applying full scans and
    incremental analysis results. Owned by the caller: padstore never keeps one
    itself. Safe to update from the watcher thread while other threads read.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self._projects: Dict[str, Project] = {}
        self._folders: Dict[str, PhysicalFolder] = {}
        self._lock = threading.RLock()

    def __str__(self):
        return f"WorkspaceIndex({fmt_path(self.root)})"

    def _under_root(self, path: str) -> bool:
        return is_inside(self.root, path)

    @synchronized
    def reconcile_from_scan(self, scan: ScanResult) -> None:
        """
        Make the index match a full scan: upsert everything seen and drop anything
        under the root that the scan didn't see.
        """
        seen_projects = set()
        seen_folders = set()

        for project in scan.root_projects:
            self._projects[project.path] = project.model_copy(
                update={"parent_physical_folder": None}
            )
            seen_projects.add(project.path)

        for folder, items in scan.physical_folders:
            self._folders[folder.path] = folder
            seen_folders.add(folder.path)
            for project in items:
                self._projects[project.path] = project.model_copy(
                    update={"parent_physical_folder": folder.path}
                )
                seen_projects.add(project.path)

        stale_projects = [
            p for p in self._projects if self._under_root(p) and p not in seen_projects
        ]
        stale_folders = [f for f in self._folders if self._under_root(f) and f not in seen_folders]
        for path in stale_projects:
            del self._projects[path]
        for path in stale_folders:
            del self._folders[path]

        log.info(
            "Reconciled scan of %s: %s projects, %s folders, %s stale removed",
            fmt_path(self.root),
            len(seen_projects),
            len(seen_folders),
            len(stale_projects) + len(stale_folders),
        )

    def _delete_folder(self, path: str) -> None:
        self._folders.pop(path, None)
        for project_path in [
            p.path for p in self._projects.values() if p.parent_physical_folder == path
        ]:
            del self._projects[project_path]

    @synchronized
    def reconcile_from_analyze(self, result: AnalyzeResult) -> None:
        """
        Apply an analysis patch, in order: folder upserts, folder deletes (with
        their projects), project upserts, project deletes. A deleted path that
        names a known folder removes the folder too, since a vanished directory
        can't be told apart from a vanished file.
        """
        if result.is_empty():
            return

        for folder in result.physical_folders:
            self._folders[folder.path] = folder

        for path in result.delete_physical_folders:
            self._delete_folder(path)

        for project in result.projects:
            self._projects[project.path] = project

        for path in result.delete_project_paths:
            self._projects.pop(path, None)
            if path in self._folders:
                self._delete_folder(path)

    @synchronized
    def get(self, path: str | Path) -> Optional[Project]:
        return self._projects.get(str(path))

    @synchronized
    def by_id(self, project_id: str) -> Optional[Project]:
        for project in self._projects.values():
            if project.id == project_id:
                return project
        return None

    @synchronized
    def folders(self) -> List[PhysicalFolder]:
        return sorted(self._folders.values(), key=lambda f: f.name)

    @synchronized
    def tree(self) -> ScanResult:
        """
        Snapshot of the index in scan shape: root projects, then each folder with
        its projects, all sorted by name.
        """
        by_folder: Dict[str, List[Project]] = {path: [] for path in self._folders}
        root_projects: List[Project] = []
        for project in self._projects.values():
            parent = project.parent_physical_folder
            if parent is None:
                root_projects.append(project)
            elif parent in by_folder:
                by_folder[parent].append(project)

        def sort_key(p: Project):
            return (p.name.lower(), p.path)

        return ScanResult(
            root_projects=sorted(root_projects, key=sort_key),
            physical_folders=[
                (folder, sorted(by_folder[folder.path], key=sort_key))
                for folder in sorted(self._folders.values(), key=lambda f: f.name.lower())
            ],
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._projects)


## Tests


def _project(path: str, parent: Optional[str] = None) -> Project:
    return Project(
        id=f"id-{path}",
        kind="txt",
        name=Path(path).stem,
        path=path,
        ext="txt",
        last_modified_ms=0,
        size=1,
        parent_physical_folder=parent,
    )


def test_reconcile_from_scan_drops_stale():
    index = WorkspaceIndex("/ws")
    notes = PhysicalFolder(path="/ws/Notes", name="Notes")
    index.reconcile_from_scan(
        ScanResult(
            root_projects=[_project("/ws/a.txt")],
            physical_folders=[(notes, [_project("/ws/Notes/b.txt")])],
        )
    )
    assert len(index) == 2
    assert index.get("/ws/Notes/b.txt").parent_physical_folder == "/ws/Notes"
    assert index.by_id("id-/ws/a.txt").path == "/ws/a.txt"

    index.reconcile_from_scan(ScanResult(root_projects=[_project("/ws/a.txt")]))
    assert len(index) == 1
    assert index.folders() == []


def test_reconcile_from_analyze():
    index = WorkspaceIndex("/ws")
    notes = PhysicalFolder(path="/ws/Notes", name="Notes")
    index.reconcile_from_analyze(
        AnalyzeResult(
            physical_folders=[notes],
            projects=[_project("/ws/Notes/b.txt", "/ws/Notes"), _project("/ws/c.txt")],
        )
    )
    tree = index.tree()
    assert [p.name for p in tree.root_projects] == ["c"]
    assert [(f.name, [p.name for p in items]) for f, items in tree.physical_folders] == [
        ("Notes", ["b"])
    ]

    # A removed directory arrives as a plain deleted path.
    index.reconcile_from_analyze(AnalyzeResult(delete_project_paths=["/ws/Notes"]))
    assert index.get("/ws/Notes/b.txt") is None
    assert index.folders() == []
    assert index.get("/ws/c.txt") is not None
