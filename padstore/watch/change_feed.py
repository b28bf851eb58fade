"""
Queue of changed-path batches for a client that polls.

Watcher events are debounced by a `ChangeBatcher` and each resulting batch is
queued until the client drains it. A client would typically pass each batch to
`analyze_paths` and apply the result to its index.
"""

import threading
from collections import deque
from pathlib import Path
from typing import Deque, Iterable, List, Optional

from padstore.config.logger import get_logger
from padstore.config.settings import CHANGE_DEBOUNCE_SECS
from padstore.watch.change_batcher import ChangeBatcher
from padstore.watch.folder_watcher import FolderWatcher

log = get_logger(__name__)

MAX_QUEUED_BATCHES = 1000


class ChangeFeed:
    def __init__(self, debounce_secs: float = CHANGE_DEBOUNCE_SECS):
        self._batches: Deque[List[str]] = deque(maxlen=MAX_QUEUED_BATCHES)
        self._batcher = ChangeBatcher(self._enqueue, debounce_secs)
        self._watcher: Optional[FolderWatcher] = None
        self._lock = threading.Lock()

    def _enqueue(self, paths: List[str]) -> None:
        with self._lock:
            if len(self._batches) == self._batches.maxlen:
                log.warning("Change queue full, dropping oldest batch")
            self._batches.append(paths)

    def watch(self, folders: Iterable[str | Path]) -> List[str]:
        """
        Watch exactly `folders`, starting the watcher on first use.
        """
        with self._lock:
            if not self._watcher:
                self._watcher = FolderWatcher(self._batcher.add)
            watcher = self._watcher
        return watcher.set_watched_folders(folders)

    def stop(self) -> None:
        """
        Stop watching and drop pending events. Already queued batches are kept.
        """
        with self._lock:
            watcher = self._watcher
            self._watcher = None
        if watcher:
            watcher.stop()
        self._batcher.cancel()

    def drain(self, flush: bool = False) -> List[List[str]]:
        """
        Take all queued batches, oldest first. With `flush`, events still inside
        the debounce window are delivered first.
        """
        if flush:
            self._batcher.flush()
        with self._lock:
            batches = list(self._batches)
            self._batches.clear()
        return batches

    @property
    def is_watching(self) -> bool:
        with self._lock:
            return self._watcher is not None


## Tests


def test_drain_after_flush():
    feed = ChangeFeed(debounce_secs=60)
    feed._batcher.add(["/ws/a.txt", "/ws/a.txt"])
    assert feed.drain() == []
    assert feed.drain(flush=True) == [["/ws/a.txt"]]
    assert feed.drain() == []
