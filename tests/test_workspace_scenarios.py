"""
End-to-end workspace behavior on a real temp directory.
"""

from pathlib import Path

import pytest

from padstore import api
from padstore.errors import NotADirectory, NotAFile, OutsideRoot, UnsupportedFileType
from padstore.file_formats.rpad_archive import write_body
from padstore.model.file_kinds import ProjectKind
from padstore.util.hash_utils import stable_id
from padstore.workspace.workspace_index import WorkspaceIndex


@pytest.fixture
def root(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    root.mkdir()
    write_body(root / "a.rpad", "<p>intro</p>", "Intro")
    (root / "Notes").mkdir()
    (root / "Notes" / "b.txt").write_text("b")
    return root


def snapshot(root: Path) -> dict:
    return {
        str(p.relative_to(root)): p.read_bytes() if p.is_file() else None
        for p in sorted(root.rglob("*"))
    }


def test_scan(root: Path):
    (root / "photo.png").write_bytes(b"\x89PNG")
    (root / ".hidden.txt").write_text("x")
    (root / "Notes" / "deeper").mkdir()
    (root / "Notes" / "deeper" / "c.txt").write_text("c")

    result = api.scan_workspace(root)

    assert len(result.root_projects) == 1
    a = result.root_projects[0]
    assert (a.name, a.kind, a.title, a.ext) == ("a", ProjectKind.rpad, "Intro", None)
    assert a.parent_physical_folder is None
    assert a.id == stable_id(str(root / "a.rpad"))

    assert len(result.physical_folders) == 1
    folder, items = result.physical_folders[0]
    assert (folder.name, folder.path) == ("Notes", str(root / "Notes"))
    assert [(p.name, p.kind, p.title) for p in items] == [("b", ProjectKind.txt, None)]
    assert items[0].parent_physical_folder == str(root / "Notes")
    assert items[0].size == 1


def test_scan_ids_are_stable(root: Path):
    first = {p.path: p.id for p in api.scan_workspace(root).all_projects()}
    second = {p.path: p.id for p in api.scan_workspace(root).all_projects()}
    assert first == second
    assert len(set(first.values())) == len(first)


def test_scan_rejects_file_root(root: Path):
    with pytest.raises(NotADirectory):
        api.scan_workspace(root / "a.rpad")


def test_incremental_delete(root: Path):
    b = root / "Notes" / "b.txt"
    b.unlink()
    result = api.analyze_paths(root, [str(b)])
    assert result.delete_project_paths == [str(b)]
    assert result.projects == []
    assert result.physical_folders == []


def test_analyze_upserts_and_ignores(root: Path, tmp_path: Path):
    (root / "new.txt").write_text("new")
    (root / "Notes" / "c.md").write_text("c")
    (root / "Notes" / "deep").mkdir()
    outside = tmp_path / "outside.txt"
    outside.write_text("x")

    result = api.analyze_paths(
        root,
        [
            root / "new.txt",
            root / "Notes" / "c.md",
            root / "Notes" / "c.md",
            root / "Notes" / "deep",
            root,
            outside,
            root / ".new.txt.tmp",
        ],
    )
    by_path = {p.path: p for p in result.projects}
    assert set(by_path) == {str(root / "new.txt"), str(root / "Notes" / "c.md")}
    assert by_path[str(root / "new.txt")].parent_physical_folder is None
    assert by_path[str(root / "Notes" / "c.md")].parent_physical_folder == str(root / "Notes")
    assert result.delete_project_paths == []
    assert result.physical_folders == []


def test_analyze_folder_upsert_rescans(root: Path):
    (root / "Drafts").mkdir()
    (root / "Drafts" / "d.txt").write_text("d")
    result = api.analyze_paths(root, [root / "Drafts"])
    assert [f.name for f in result.physical_folders] == ["Drafts"]
    assert [p.path for p in result.projects] == [str(root / "Drafts" / "d.txt")]


def test_analyze_skips_hidden_directories(root: Path):
    (root / ".trash").mkdir()
    (root / ".trash" / "old.txt").write_text("old")
    scan = api.scan_workspace(root)
    assert all(".trash" not in p.path for p in scan.all_projects())

    changed = [root / ".trash", root / ".trash" / "old.txt"]
    assert api.analyze_paths(root, changed).is_empty()

    index = WorkspaceIndex(root)
    index.reconcile_from_scan(scan)
    count = len(index)
    index.reconcile_from_analyze(api.analyze_paths(root, changed))
    assert len(index) == count


def test_index_follows_scan_and_analyze(root: Path):
    index = WorkspaceIndex(root)
    index.reconcile_from_scan(api.scan_workspace(root))
    assert index.get(root / "Notes" / "b.txt") is not None

    moved = api.move_project(root, root / "Notes" / "b.txt", root)
    index.reconcile_from_analyze(api.analyze_paths(root, [root / "Notes" / "b.txt", moved]))
    assert index.get(root / "Notes" / "b.txt") is None
    assert index.get(moved).parent_physical_folder is None

    api.delete_physical_folder(root, root / "Notes")
    index.reconcile_from_analyze(api.analyze_paths(root, [root / "Notes"]))
    assert index.folders() == []


def test_idempotent_folder_creation(root: Path):
    first = api.create_physical_folder(root, "Ideas")
    second = api.create_physical_folder(root, "Ideas")
    assert first == second == str(root / "Ideas")
    assert (root / "Ideas").is_dir()


def test_collision_safe_naming(root: Path):
    (root / "Archive").mkdir()
    (root / "Archive" / "b.txt").write_text("existing")

    first = api.move_project(root, root / "Notes" / "b.txt", root / "Archive")
    assert first == str(root / "Archive" / "b (1).txt")

    (root / "Notes" / "b.txt").write_text("again")
    second = api.move_project(root, root / "Notes" / "b.txt", root / "Archive")
    assert second == str(root / "Archive" / "b (2).txt")
    assert (root / "Archive" / "b.txt").read_text() == "existing"

    (root / "c.txt").write_text("c")
    assert api.rename_project(root, root / "c.txt", "b (1)") == str(root / "b (1).txt")


def test_rpad_rename_keeps_file(root: Path):
    path = api.rename_project(root, root / "a.rpad", "Renamed")
    assert path == str(root / "a.rpad")
    assert api.scan_workspace(root).root_projects[0].title == "Renamed"
    assert api.read_rpad_data(path) == "<p>intro</p>"


def test_traversal_rejected_without_mutation(root: Path, tmp_path: Path):
    outside_dir = tmp_path / "outside"
    outside_dir.mkdir()
    victim = outside_dir / "victim.txt"
    victim.write_text("keep")
    before = snapshot(root)

    calls = [
        lambda: api.delete_project(root, victim),
        lambda: api.delete_project(root, root / ".." / "outside" / "victim.txt"),
        lambda: api.rename_project(root, victim, "renamed"),
        lambda: api.move_project(root, root / "Notes" / "b.txt", outside_dir),
        lambda: api.move_project(root, victim, root),
        lambda: api.rename_physical_folder(root, outside_dir, "x"),
        lambda: api.delete_physical_folder(root, outside_dir),
    ]
    for call in calls:
        with pytest.raises(OutsideRoot):
            call()

    assert snapshot(root) == before
    assert victim.read_text() == "keep"
    assert outside_dir.is_dir()


def test_symlink_escape_rejected(root: Path, tmp_path: Path):
    outside_dir = tmp_path / "outside"
    outside_dir.mkdir()
    (root / "link").symlink_to(outside_dir)
    with pytest.raises(OutsideRoot):
        api.create_physical_folder(root, "link/sub")
    assert not (outside_dir / "sub").exists()


def test_import_without_copy(root: Path, tmp_path: Path):
    src = tmp_path / "outside" / "doc.pdf"
    src.parent.mkdir()
    src.write_bytes(b"%PDF-1")
    assert api.import_project(root, src) == str(src)
    assert not (root / "doc.pdf").exists()


def test_import_with_copy(root: Path, tmp_path: Path):
    src_dir = tmp_path / "outside"
    src_dir.mkdir()
    src = src_dir / "doc.pdf"
    src.write_bytes(b"%PDF-1 same")

    copied = api.import_project(root, src, copy=True)
    assert copied == str(root / "doc.pdf")
    assert (root / "doc.pdf").read_bytes() == b"%PDF-1 same"

    # Identical file already there: reused.
    assert api.import_project(root, src, copy=True) == str(root / "doc.pdf")
    assert not (root / "doc (1).pdf").exists()

    # Different content: numbered copy.
    src.write_bytes(b"%PDF-1 different")
    assert api.import_project(root, src, copy=True) == str(root / "doc (1).pdf")
    assert (root / "doc.pdf").read_bytes() == b"%PDF-1 same"

    # Already inside the root: unchanged.
    assert api.import_project(root, root / "doc.pdf", copy=True) == str(root / "doc.pdf")


def test_import_rejects(root: Path, tmp_path: Path):
    image = tmp_path / "photo.png"
    image.write_bytes(b"\x89PNG")
    with pytest.raises(UnsupportedFileType):
        api.import_project(root, image, copy=True)
    with pytest.raises(NotAFile):
        api.import_project(root, tmp_path / "missing.pdf")


def test_create_rpad_and_write_text(root: Path):
    path = api.create_rpad_project(root / "Notes", "Plan")
    assert path == str(root / "Notes" / "Plan.rpad")
    assert api.read_rpad_data(path) == ""

    api.write_rpad_html(path, "<h1>Plan</h1>")
    assert api.read_rpad_data(path) == "<h1>Plan</h1>"

    text_path = root / "Notes" / "b.txt"
    api.write_text_atomic(text_path, "line 1\r\nline 2\n")
    assert text_path.read_bytes() == b"line 1\r\nline 2\n"
    assert sorted(p.name for p in (root / "Notes").iterdir()) == ["Plan.rpad", "b.txt"]
