"""
Coalescing of filesystem change events.

Native watchers report a burst of events for a single save (temp file created,
written, renamed over the document). Paths are collected until no new event has
arrived for `debounce_secs`, then delivered once as a sorted, de-duplicated list.
"""

import threading
from typing import Callable, Iterable, List, Optional, Set

from padstore.config.logger import get_logger
from padstore.config.settings import CHANGE_DEBOUNCE_SECS

log = get_logger(__name__)

ChangeCallback = Callable[[List[str]], None]


class ChangeBatcher:
    def __init__(self, callback: ChangeCallback, debounce_secs: float = CHANGE_DEBOUNCE_SECS):
        self.callback = callback
        self.debounce_secs = debounce_secs
        self._pending: Set[str] = set()
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def add(self, paths: Iterable[str]) -> None:
        """
        Queue paths and restart the quiet-period timer.
        """
        with self._lock:
            self._pending.update(str(p) for p in paths)
            if not self._pending:
                return
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_secs, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def _take(self) -> List[str]:
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
            batch = sorted(self._pending)
            self._pending = set()
            return batch

    def flush(self) -> None:
        """
        Deliver whatever is pending right away. The callback runs without the lock
        held, so it may call `add()` itself.
        """
        batch = self._take()
        if not batch:
            return
        log.info("Delivering %s changed paths", len(batch))
        try:
            self.callback(batch)
        except Exception as e:
            # Runs on the timer thread, where an exception would otherwise vanish.
            log.error("Error handling changed paths: %s", e, exc_info=True)

    def cancel(self) -> None:
        dropped = self._take()
        if dropped:
            log.info("Dropped %s pending changed paths", len(dropped))

    def pending(self) -> List[str]:
        with self._lock:
            return sorted(self._pending)


## Tests


def test_flush_batches_and_dedupes():
    batches: List[List[str]] = []
    batcher = ChangeBatcher(batches.append, debounce_secs=60)
    batcher.add(["/ws/b.txt", "/ws/a.txt"])
    batcher.add(["/ws/a.txt"])
    assert batcher.pending() == ["/ws/a.txt", "/ws/b.txt"]
    batcher.flush()
    assert batches == [["/ws/a.txt", "/ws/b.txt"]]
    batcher.flush()
    assert len(batches) == 1


def test_debounce_fires():
    done = threading.Event()
    batches: List[List[str]] = []

    def on_change(paths: List[str]):
        batches.append(paths)
        done.set()

    batcher = ChangeBatcher(on_change, debounce_secs=0.05)
    batcher.add(["/ws/a.txt"])
    assert done.wait(5)
    assert batches == [["/ws/a.txt"]]


def test_cancel():
    batches: List[List[str]] = []
    batcher = ChangeBatcher(batches.append, debounce_secs=60)
    batcher.add(["/ws/a.txt"])
    batcher.cancel()
    batcher.flush()
    assert batches == []
