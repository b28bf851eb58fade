"""
The JSON routes, exercised in-process with FastAPI's test client.
"""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from padstore.file_formats.rpad_archive import write_body
from padstore.server.local_server import app_setup
from padstore.watch.change_feed import ChangeFeed


@pytest.fixture
def root(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    (root / "Notes").mkdir(parents=True)
    write_body(root / "a.rpad", "<p>intro</p>", "Intro")
    (root / "Notes" / "b.txt").write_text("b")
    return root


@pytest.fixture
def client():
    feed = ChangeFeed(debounce_secs=60)
    with TestClient(app_setup(feed)) as client:
        yield client
    feed.stop()


def test_scan_uses_camel_case(client: TestClient, root: Path):
    response = client.post("/scan_workspace", json={"root": str(root)})
    assert response.status_code == 200
    body = response.json()

    [a] = body["rootProjects"]
    assert a["title"] == "Intro"
    assert a["kind"] == "rpad"
    assert "lastModifiedMs" in a and "parentPhysicalFolder" in a

    [[folder, items]] = body["physicalFolders"]
    assert folder == {"path": str(root / "Notes"), "name": "Notes"}
    assert [p["name"] for p in items] == ["b"]
    assert body["skipped"] == []


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts raw byte names")
def test_scan_with_undecodable_name(client: TestClient, root: Path):
    Path(os.fsdecode(os.fsencode(root) + b"/caf\xe9.txt")).write_text("x")

    response = client.post("/scan_workspace", json={"root": str(root)})
    assert response.status_code == 200
    names = {p["name"]: p["path"] for p in response.json()["rootProjects"]}
    assert names["caf\ufffd"] == str(root) + "/caf\ufffd.txt"


def test_analyze(client: TestClient, root: Path):
    (root / "Notes" / "b.txt").unlink()
    response = client.post(
        "/analyze_paths", json={"root": str(root), "paths": [str(root / "Notes" / "b.txt")]}
    )
    assert response.status_code == 200
    assert response.json()["deleteProjectPaths"] == [str(root / "Notes" / "b.txt")]


def test_mutations(client: TestClient, root: Path):
    response = client.post("/create_physical_folder", json={"root": str(root), "name": "Ideas"})
    assert response.json() == str(root / "Ideas")

    response = client.post(
        "/move_project",
        json={"root": str(root), "oldPath": str(root / "Notes" / "b.txt"), "destDir": str(root / "Ideas")},
    )
    assert response.json() == str(root / "Ideas" / "b.txt")

    response = client.post(
        "/rename_physical_folder",
        json={"root": str(root), "path": str(root / "Ideas"), "newName": "Thoughts"},
    )
    assert response.json() == str(root / "Thoughts")

    response = client.post(
        "/create_rpad_project", json={"destDir": str(root / "Thoughts"), "name": "Plan"}
    )
    plan = response.json()
    assert plan == str(root / "Thoughts" / "Plan.rpad")

    response = client.post(
        "/write_rpad_html", json={"path": plan, "html": "<p>plan</p>", "title": "The plan"}
    )
    assert response.status_code == 200
    assert client.post("/read_rpad_data", json={"path": plan}).json() == "<p>plan</p>"

    response = client.post(
        "/rename_project", json={"root": str(root), "oldPath": plan, "newName": "Renamed"}
    )
    assert response.json() == plan

    response = client.post("/delete_project", json={"root": str(root), "path": plan})
    assert response.status_code == 200
    assert not Path(plan).exists()

    response = client.post(
        "/delete_physical_folder", json={"root": str(root), "path": str(root / "Thoughts")}
    )
    assert response.status_code == 200
    assert not (root / "Thoughts").exists()


def test_import_and_write_text(client: TestClient, root: Path, tmp_path: Path):
    src = tmp_path / "doc.pdf"
    src.write_bytes(b"%PDF")
    response = client.post("/import_project", json={"root": str(root), "src": str(src)})
    assert response.json() == str(src)

    response = client.post(
        "/import_project", json={"root": str(root), "src": str(src), "copy": True}
    )
    assert response.json() == str(root / "doc.pdf")

    target = root / "Notes" / "b.txt"
    response = client.post("/write_text_atomic", json={"path": str(target), "contents": "new"})
    assert response.status_code == 200
    assert target.read_text() == "new"


def test_error_status_codes(client: TestClient, root: Path, tmp_path: Path):
    outside = tmp_path / "outside.txt"
    outside.write_text("x")

    response = client.post("/delete_project", json={"root": str(root), "path": str(outside)})
    assert response.status_code == 403
    assert "outside workspace root" in response.json()["message"]
    assert outside.exists()

    response = client.post("/scan_workspace", json={"root": str(root / "a.rpad")})
    assert response.status_code == 400

    response = client.post(
        "/move_project",
        json={"root": str(root), "oldPath": str(root / "Notes"), "destDir": str(root)},
    )
    assert response.status_code == 400

    empty = root / "empty.rpad"
    import zipfile

    with zipfile.ZipFile(empty, "w") as archive:
        archive.writestr("manifest.json", '{"title": "t", "version": 1}')
    assert client.post("/read_rpad_data", json={"path": str(empty)}).status_code == 404

    broken = root / "broken.rpad"
    broken.write_bytes(b"not a zip")
    response = client.post("/read_rpad_data", json={"path": str(broken)})
    assert response.status_code == 422
    assert "Not a valid .rpad archive" in response.json()["message"]

    response = client.post("/read_rpad_data", json={"path": str(root / "missing.rpad")})
    assert response.status_code == 404

    response = client.post(
        "/delete_project", json={"root": str(root), "path": str(root / "missing.txt")}
    )
    assert response.status_code == 404
    assert "Failed to delete" in response.json()["message"]


def test_watch_and_drain_changes(client: TestClient, root: Path):
    response = client.post("/watch_physical_folders", json={"folders": [str(root)]})
    assert response.json() == [str(root)]
    assert client.get("/fs_changes").json() == []

    response = client.post("/stop_watching")
    assert response.status_code == 200
