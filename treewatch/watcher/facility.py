# treewatch/watcher/facility.py

"""
OS notification facility backed by watchdog observers
"""
import logging
import os
import queue
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Any, Deque, Dict, FrozenSet, Hashable, Iterable, List, NamedTuple, Tuple

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .errors import WatchInterrupted
from .events import ALL_EVENT_KINDS, EventKind, RawEvent

logger = logging.getLogger(__name__)

Batch = Tuple[Any, List[RawEvent]]

_WATCHDOG_KINDS = {
    EVENT_TYPE_CREATED: EventKind.CREATED,
    EVENT_TYPE_DELETED: EventKind.DELETED,
    EVENT_TYPE_MODIFIED: EventKind.MODIFIED,
}

# Posted to the queue to unblock wait_for_events
_INTERRUPT = object()


class WatchFacility(ABC):
    """
    Boundary to the platform's directory notification mechanism.

    One directory per handle: the tree watcher decides which directories get
    handles and extends the watch set itself. All methods except ``interrupt`` are called from the
    thread owning the watcher.
    """

    @abstractmethod
    def register_directory(self, path: Path, event_kinds: FrozenSet[EventKind]) -> Hashable:
        """
        Start watching a single directory

        Raises:
            OSError: If the directory cannot be watched
        """

    @abstractmethod
    def wait_for_events(self) -> Batch:
        """
        Block until events are available for some handle

        Returns:
            Tuple of (handle, events) where event names are relative to the
            handle's directory

        Raises:
            WatchInterrupted: If interrupt() was called
        """

    @abstractmethod
    def rearm(self, handle: Hashable) -> bool:
        """Check handle after a batch; False means it can never report again"""

    @abstractmethod
    def interrupt(self):
        """Wake up a blocked wait_for_events; safe to call from any thread"""

    @abstractmethod
    def close(self):
        """Release all watches and threads; idempotent"""


class _Change(NamedTuple):
    kind: EventKind
    path: str
    is_directory: bool


class DirectoryWatch:
    """Handle for one registered directory"""

    def __init__(self, directory: Path, event_kinds: FrozenSet[EventKind]):
        self.directory = directory
        self.event_kinds = event_kinds
        self.invalidated = False

    def __repr__(self):
        return f"DirectoryWatch({str(self.directory)!r})"


class _TreeFunnel(FileSystemEventHandler):
    """
    watchdog handler shared by every scheduled tree.

    Runs on watchdog's threads and only translates: routing to directory
    handles happens on the consumer thread, after directories created by
    earlier events have been registered.
    """

    def __init__(self, events: "queue.Queue"):
        super().__init__()
        self._events = events

    def on_any_event(self, event: FileSystemEvent):
        src_path = os.fsdecode(event.src_path)

        if event.event_type == EVENT_TYPE_MOVED:
            dest_path = os.fsdecode(getattr(event, 'dest_path', '') or '')
            self._events.put(_Change(EventKind.DELETED, src_path, event.is_directory))
            if dest_path:
                self._events.put(_Change(EventKind.CREATED, dest_path, event.is_directory))
        elif event.event_type in _WATCHDOG_KINDS:
            self._events.put(_Change(_WATCHDOG_KINDS[event.event_type], src_path,
                                     event.is_directory))


class ObserverFacility(WatchFacility):
    """
    Watch facility using a watchdog observer

    The observer gets one schedule per watched tree, so a tree of any size
    costs a single emitter. Events are handed out per registered directory;
    events from directories that were never registered (pruned by the path
    filter) are dropped.

    Args:
        use_polling: Use watchdog's PollingObserver instead of OS events
        poll_interval: Polling interval in seconds
        recursive: Schedule whole trees; if False only registered directories
            themselves are observed
    """

    def __init__(self, use_polling: bool = False, poll_interval: float = 1.0,
                 recursive: bool = True):
        self.use_polling = use_polling
        self.poll_interval = poll_interval
        self.recursive = recursive

        if use_polling:
            self.observer = PollingObserver(timeout=poll_interval)
            logger.debug(f"Using polling observer (interval: {poll_interval}s)")
        else:
            self.observer = Observer()
            logger.debug("Using OS event observer")

        self._queue: "queue.Queue" = queue.Queue()
        self._pending: Deque[Batch] = deque()
        self._funnel = _TreeFunnel(self._queue)
        self._watches: Dict[str, DirectoryWatch] = {}
        self._schedules: Dict[str, Any] = {}
        self._closed = False

        # Started up front so schedule() adds watches synchronously
        self.observer.start()

    def register_directory(self, path: Path,
                           event_kinds: Iterable[EventKind] = ALL_EVENT_KINDS) -> DirectoryWatch:
        if self._closed:
            raise RuntimeError("Facility is closed")

        if not path.is_dir():
            if path.exists():
                raise NotADirectoryError(f"Not a directory: {path}")
            raise FileNotFoundError(f"Directory does not exist: {path}")

        key = str(path)
        if self._scheduled_root(key) is None:
            self._schedule_tree(key)

        watch = DirectoryWatch(path, frozenset(event_kinds))
        previous = self._watches.get(key)
        if previous is not None:
            logger.debug(f"Replacing watch for {path}")
        self._watches[key] = watch

        logger.debug(f"Watching directory {path}")
        return watch

    def _scheduled_root(self, key: str):
        for root in self._schedules:
            if key == root:
                return root
            if self.recursive and key.startswith(root.rstrip(os.sep) + os.sep):
                return root
        return None

    def _schedule_tree(self, key: str):
        self._schedules[key] = self.observer.schedule(self._funnel, key, recursive=self.recursive)
        logger.debug(f"Scheduled watch for {key} (recursive: {self.recursive})")
        if not self.recursive:
            return

        # Trees below the new one would report every event twice
        prefix = key.rstrip(os.sep) + os.sep
        for root in [r for r in self._schedules if r.startswith(prefix)]:
            self._unschedule(root)

    def wait_for_events(self) -> Batch:
        while not self._pending:
            item = self._queue.get()
            if item is _INTERRUPT:
                raise WatchInterrupted()
            self._route(item)

        return self._pending.popleft()

    def _route(self, change: _Change):
        parent, name = os.path.split(change.path)

        # Synthesized for the directory containing every change
        if change.kind is EventKind.MODIFIED and change.is_directory:
            return

        watch = self._watches.get(parent)
        if watch is not None and name and change.kind in watch.event_kinds:
            self._pending.append((watch, [RawEvent(change.kind, name)]))

        if change.kind is EventKind.DELETED:
            removed = self._watches.get(change.path)
            if removed is not None and not removed.invalidated:
                # Watched directory itself is gone, let the loop retire it
                removed.invalidated = True
                self._pending.append((removed, []))

    def rearm(self, handle: Any) -> bool:
        if not isinstance(handle, DirectoryWatch):
            return False

        key = str(handle.directory)
        if self._watches.get(key) is not handle:
            return False

        try:
            valid = not handle.invalidated and handle.directory.is_dir()
        except OSError:
            valid = False
        if valid:
            return True

        del self._watches[key]
        if key in self._schedules:
            self._unschedule(key)
            self._orphan_watches()
        return False

    def _orphan_watches(self):
        """Invalidate watches left without a schedule so the loop retires them"""
        for key, watch in list(self._watches.items()):
            if self._scheduled_root(key) is None and not watch.invalidated:
                watch.invalidated = True
                self._pending.append((watch, []))

    def interrupt(self):
        self._queue.put(_INTERRUPT)

    def close(self):
        if self._closed:
            return
        self._closed = True

        try:
            self.observer.unschedule_all()
            self.observer.stop()
            self.observer.join(timeout=10)
        finally:
            self._schedules.clear()
            self._watches.clear()
            self._pending.clear()
            logger.debug("Watch facility closed")

    def _unschedule(self, root: str):
        watch = self._schedules.pop(root, None)
        if watch is None:
            return
        try:
            self.observer.unschedule(watch)
        except KeyError:
            logger.debug(f"Watch already unscheduled: {root}")

    @property
    def watch_count(self) -> int:
        return len(self._watches)

    def get_status(self) -> Dict[str, Any]:
        return {
            'use_polling': self.use_polling,
            'poll_interval': self.poll_interval if self.use_polling else None,
            'watches': self.watch_count,
            'scheduled_trees': len(self._schedules),
            'observer_alive': self.observer.is_alive(),
            'closed': self._closed,
        }


__all__ = [
    'Batch',
    'DirectoryWatch',
    'ObserverFacility',
    'WatchFacility',
]
