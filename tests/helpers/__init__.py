"""Test doubles for the tree watcher."""

import threading
import time
from collections import deque
from pathlib import Path
from typing import Callable, Deque, Dict, List, Optional, Set, Tuple, Union

from treewatch.watcher.errors import WatchInterrupted
from treewatch.watcher.events import EventKind, RawEvent
from treewatch.watcher.facility import WatchFacility

ScriptItem = Union[Tuple[Path, List[RawEvent]], Callable[[], Optional[Tuple[Path, List[RawEvent]]]]]


class ScriptedFacility(WatchFacility):
    """
    In-memory facility replaying scripted batches.

    Handles are integers. Batches are queued per directory path and resolved
    to the directory's current handle when they are handed out. Once the
    script is exhausted ``wait_for_events`` behaves as if interrupted, so a
    loop run synchronously in the test returns.
    """

    def __init__(self):
        self.handles: Dict[int, Path] = {}
        self.registrations: List[Path] = []
        self.invalid: Set[int] = set()
        self.fail_on: Set[Path] = set()
        self.rearmed: List[int] = []
        self.script: Deque[ScriptItem] = deque()
        self.closed = False
        self.interrupted = False
        self._next_handle = 0

    def register_directory(self, path, event_kinds):
        if path in self.fail_on:
            raise PermissionError(f"Permission denied: {path}")
        if not path.is_dir():
            raise FileNotFoundError(f"Directory does not exist: {path}")

        self._next_handle += 1
        self.handles[self._next_handle] = path
        self.registrations.append(path)
        return self._next_handle

    def handle_for(self, path: Path) -> int:
        for handle in sorted(self.handles, reverse=True):
            if self.handles[handle] == path:
                return handle
        return -1

    def push(self, path: Path, *events: RawEvent):
        self.script.append((path, list(events)))

    def push_call(self, func: Callable[[], Optional[Tuple[Path, List[RawEvent]]]]):
        """Run func when the batch is due; it may return a (path, events) batch"""
        self.script.append(func)

    def invalidate(self, path: Path):
        self.invalid.add(self.handle_for(path))

    def wait_for_events(self):
        while True:
            if self.interrupted or not self.script:
                raise WatchInterrupted()

            item = self.script.popleft()
            if callable(item):
                item = item()
                if item is None:
                    continue

            path, events = item
            return self.handle_for(path), events

    def rearm(self, handle):
        self.rearmed.append(handle)
        return handle in self.handles and handle not in self.invalid

    def interrupt(self):
        self.interrupted = True

    def close(self):
        self.closed = True


class RecordingObserver:
    """Observer remembering every notification, safe to read from other threads"""

    def __init__(self):
        self.events: List[Tuple[EventKind, Path]] = []
        self._lock = threading.Lock()

    def _record(self, kind: EventKind, path: Path):
        with self._lock:
            self.events.append((kind, path))

    def on_created(self, path):
        self._record(EventKind.CREATED, path)

    def on_deleted(self, path):
        self._record(EventKind.DELETED, path)

    def on_modified(self, path):
        self._record(EventKind.MODIFIED, path)

    def snapshot(self) -> List[Tuple[EventKind, Path]]:
        with self._lock:
            return list(self.events)

    def paths(self, kind: Optional[EventKind] = None) -> List[Path]:
        return [path for event_kind, path in self.snapshot() if kind is None or event_kind is kind]


def created(name: str) -> RawEvent:
    return RawEvent(EventKind.CREATED, name)


def deleted(name: str) -> RawEvent:
    return RawEvent(EventKind.DELETED, name)


def modified(name: str) -> RawEvent:
    return RawEvent(EventKind.MODIFIED, name)


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
