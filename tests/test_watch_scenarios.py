"""
Real filesystem events flowing through the watcher, batcher, analyzer, and index.
"""

import threading
import time
from pathlib import Path
from typing import List

from padstore import api
from padstore.watch.change_batcher import ChangeBatcher
from padstore.watch.change_feed import ChangeFeed
from padstore.watch.folder_watcher import FolderWatcher
from padstore.workspace.workspace_index import WorkspaceIndex

TIMEOUT = 10.0


def wait_for(predicate, timeout: float = TIMEOUT) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


def test_watcher_feeds_index(tmp_path: Path):
    root = tmp_path / "ws"
    (root / "Notes").mkdir(parents=True)
    index = WorkspaceIndex(root)
    index.reconcile_from_scan(api.scan_workspace(root))

    applied = threading.Event()

    def on_batch(paths: List[str]):
        index.reconcile_from_analyze(api.analyze_paths(root, paths))
        applied.set()

    batcher = ChangeBatcher(on_batch, debounce_secs=0.1)
    watcher = FolderWatcher(batcher.add)
    try:
        watcher.set_watched_folders([root])
        (root / "Notes" / "new.txt").write_text("hello")
        assert wait_for(lambda: index.get(root / "Notes" / "new.txt") is not None)
        assert index.get(root / "Notes" / "new.txt").parent_physical_folder == str(root / "Notes")

        (root / "Notes" / "new.txt").unlink()
        assert wait_for(lambda: index.get(root / "Notes" / "new.txt") is None)
    finally:
        watcher.stop()
        batcher.cancel()


def test_rewatching_converges(tmp_path: Path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.mkdir()
    b.mkdir()

    feed = ChangeFeed(debounce_secs=0.05)
    try:
        feed.watch([a])
        feed.watch([b])
        (a / "ignored.txt").write_text("x")
        (b / "seen.txt").write_text("x")

        seen: List[str] = []

        def saw_b() -> bool:
            for batch in feed.drain(flush=True):
                seen.extend(batch)
            return str(b / "seen.txt") in seen

        assert wait_for(saw_b)
        # Give any stray event from the unwatched folder time to show up.
        time.sleep(0.3)
        for batch in feed.drain(flush=True):
            seen.extend(batch)
        assert str(a / "ignored.txt") not in seen
    finally:
        feed.stop()
    assert not feed.is_watching
