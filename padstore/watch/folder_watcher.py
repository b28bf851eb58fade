"""
A single filesystem watcher whose set of watched folders can be swapped out.

The watcher only reports changed paths. Turning them into index updates is left
to the sink (usually a `ChangeBatcher` feeding `analyze_paths`), so the watcher
thread never touches shared index state.
"""

import os
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from padstore.config.logger import get_logger
from padstore.errors import InvalidState, WatcherInitFailure
from padstore.util.format_utils import fmt_path

log = get_logger(__name__)

PathSink = Callable[[List[str]], None]


def event_paths(event: FileSystemEvent) -> List[str]:
    """
    Absolute paths touched by one event. Moves report both ends.
    """
    paths = [os.fsdecode(event.src_path)]
    dest_path = getattr(event, "dest_path", None)
    if dest_path:
        paths.append(os.fsdecode(dest_path))
    return paths


class _SinkHandler(FileSystemEventHandler):
    def __init__(self, sink: PathSink):
        super().__init__()
        self.sink = sink

    def on_any_event(self, event: FileSystemEvent) -> None:
        # Open/close notifications don't change anything we index.
        if event.event_type in ("opened", "closed", "closed_no_write"):
            return
        try:
            self.sink(event_paths(event))
        except Exception as e:
            log.error("Error delivering change event %s: %s", event, e, exc_info=True)


class FolderWatcher:
    """
    Owns one watchdog observer. `set_watched_folders()` is the only way to change
    what is watched, and always converges on exactly the requested set. A folder
    that can't be watched is logged and skipped without affecting the others.
    """

    def __init__(self, sink: PathSink, recursive: bool = True):
        self.recursive = recursive
        self._handler = _SinkHandler(sink)
        self._watches: Dict[str, Optional[ObservedWatch]] = {}
        self._lock = threading.Lock()
        self._stopped = False
        try:
            self._observer = Observer()
            self._observer.daemon = True
            self._observer.start()
        except (OSError, RuntimeError) as e:
            raise WatcherInitFailure(f"Failed to create file watcher: {e}") from e
        log.info("Started folder watcher")

    def _unwatch(self, path: str, watch: Optional[ObservedWatch]) -> None:
        if watch is None:
            return
        try:
            self._observer.unschedule(watch)
        except (KeyError, OSError) as e:
            log.warning("Could not unwatch %s: %s", fmt_path(path, resolve=False), e)

    def _watch(self, path: str) -> Optional[ObservedWatch]:
        try:
            return self._observer.schedule(self._handler, path, recursive=self.recursive)
        except OSError as e:
            log.warning("Could not watch %s: %s", fmt_path(path, resolve=False), e)
            return None

    def set_watched_folders(self, folders: Iterable[str | Path]) -> List[str]:
        """
        Unwatch everything currently watched, then watch `folders`. Returns the
        folders that are now actually being watched.
        """
        new_folders = list(dict.fromkeys(str(f) for f in folders))
        with self._lock:
            if self._stopped:
                raise InvalidState("Folder watcher has been stopped")
            for path, watch in self._watches.items():
                self._unwatch(path, watch)
            self._watches = {path: self._watch(path) for path in new_folders}
            active = [path for path, watch in self._watches.items() if watch is not None]

        log.info("Watching %s of %s folders", len(active), len(new_folders))
        return active

    def watched_folders(self) -> List[str]:
        with self._lock:
            return list(self._watches)

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._watches = {}
        self._observer.stop()
        self._observer.join()
        log.info("Stopped folder watcher")


## Tests


def test_event_paths():
    from watchdog.events import FileModifiedEvent, FileMovedEvent

    assert event_paths(FileModifiedEvent("/ws/a.txt")) == ["/ws/a.txt"]
    assert event_paths(FileMovedEvent("/ws/a.txt", "/ws/Notes/a.txt")) == [
        "/ws/a.txt",
        "/ws/Notes/a.txt",
    ]


def test_set_watched_folders(tmp_path: Path):
    import pytest

    a = tmp_path / "a"
    b = tmp_path / "b"
    a.mkdir()
    b.mkdir()

    watcher = FolderWatcher(lambda paths: None)
    try:
        assert watcher.set_watched_folders([a, b]) == [str(a), str(b)]
        # Replacing the set, with one folder that can't be watched.
        assert watcher.set_watched_folders([b, tmp_path / "missing"]) == [str(b)]
        assert watcher.watched_folders() == [str(b), str(tmp_path / "missing")]
        assert watcher.set_watched_folders([]) == []
    finally:
        watcher.stop()

    with pytest.raises(InvalidState):
        watcher.set_watched_folders([a])
