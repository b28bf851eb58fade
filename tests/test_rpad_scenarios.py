"""
Archive rewrites: extra entries survive, and failed writes leave the original intact.
"""

import json
import os
import zipfile
from pathlib import Path

import pytest

from padstore import api
from padstore.errors import ArchiveCorrupt, IoFailure
from padstore.file_formats.rpad_archive import read_body, read_title, write_body
from padstore.workspace.scanner import scan_workspace

ATTACHMENT = bytes(range(256)) * 40


def make_archive(path: Path) -> None:
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("manifest.json", '{"title": "Original", "version": 3}')
        archive.writestr("data.json", '{"html": "<p>v0</p>"}', compress_type=zipfile.ZIP_DEFLATED)
        archive.writestr("attachment.bin", ATTACHMENT, compress_type=zipfile.ZIP_STORED)
        archive.writestr("images/pic.txt", "deflated", compress_type=zipfile.ZIP_DEFLATED)


def test_preserved_entries_survive_rewrites(tmp_path: Path):
    path = tmp_path / "doc.rpad"
    make_archive(path)

    write_body(path, "<p>v1</p>")
    write_body(path, "<p>v2</p>", "New title")

    with zipfile.ZipFile(path) as archive:
        assert archive.read("attachment.bin") == ATTACHMENT
        assert archive.getinfo("attachment.bin").compress_type == zipfile.ZIP_STORED
        assert archive.read("images/pic.txt") == b"deflated"
        assert archive.getinfo("images/pic.txt").compress_type == zipfile.ZIP_DEFLATED
        assert sorted(archive.namelist()) == [
            "attachment.bin",
            "data.json",
            "images/pic.txt",
            "manifest.json",
        ]
        # Existing version is kept.
        assert json.loads(archive.read("manifest.json")) == {"title": "New title", "version": 3}

    assert read_body(path) == "<p>v2</p>"
    assert read_title(path) == "New title"


def test_failed_replace_leaves_original(tmp_path: Path, monkeypatch):
    path = tmp_path / "doc.rpad"
    make_archive(path)
    original = path.read_bytes()

    def failing_replace(src, dst):
        raise OSError(5, "Simulated I/O error")

    monkeypatch.setattr(os, "replace", failing_replace)
    with pytest.raises(IoFailure):
        api.write_rpad_html(path, "<p>lost</p>", "Lost")
    monkeypatch.undo()

    assert path.read_bytes() == original
    assert [p.name for p in tmp_path.iterdir()] == ["doc.rpad"]


def test_failure_while_writing_leaves_original(tmp_path: Path, monkeypatch):
    path = tmp_path / "doc.rpad"
    make_archive(path)
    original = path.read_bytes()

    real_writestr = zipfile.ZipFile.writestr

    def failing_writestr(self, zinfo_or_arcname, data, *args, **kwargs):
        name = getattr(zinfo_or_arcname, "filename", zinfo_or_arcname)
        if name == "data.json":
            raise OSError(28, "No space left on device")
        return real_writestr(self, zinfo_or_arcname, data, *args, **kwargs)

    monkeypatch.setattr(zipfile.ZipFile, "writestr", failing_writestr)
    with pytest.raises(IoFailure):
        write_body(path, "<p>lost</p>")
    monkeypatch.undo()

    assert path.read_bytes() == original
    assert [p.name for p in tmp_path.iterdir()] == ["doc.rpad"]


def test_leftover_temp_files_are_not_indexed(tmp_path: Path):
    path = tmp_path / "doc.rpad"
    make_archive(path)
    (tmp_path / ".doc.rpad.tmp").write_bytes(b"partial")
    (tmp_path / ".doc.rpad.tmp1").write_bytes(b"partial")

    write_body(path, "<p>new</p>")
    result = scan_workspace(tmp_path)
    assert [p.path for p in result.root_projects] == [str(path)]
    assert (tmp_path / ".doc.rpad.tmp").read_bytes() == b"partial"


def test_unreadable_preserved_entry_fails_whole_write(tmp_path: Path, monkeypatch):
    path = tmp_path / "doc.rpad"
    make_archive(path)
    original = path.read_bytes()

    real_read = zipfile.ZipFile.read

    def failing_read(self, name, pwd=None):
        if getattr(name, "filename", name) == "attachment.bin":
            raise zipfile.BadZipFile("Bad CRC-32 for file 'attachment.bin'")
        return real_read(self, name, pwd)

    monkeypatch.setattr(zipfile.ZipFile, "read", failing_read)
    with pytest.raises(ArchiveCorrupt):
        write_body(path, "<p>new</p>")
    monkeypatch.undo()

    assert path.read_bytes() == original
