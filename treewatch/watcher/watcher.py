# treewatch/watcher/watcher.py

"""
Recursive directory tree watcher
"""
import logging
import os
import threading
from concurrent.futures import Executor, Future
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Union

from ..utils.logger import PerformanceLogger
from .errors import WatchInterrupted, WatchSetupError
from .events import ALL_EVENT_KINDS, EventKind, RawEvent, parse_event_kinds
from .facility import ObserverFacility, WatchFacility
from .handlers import CallbackObserver, EventObserver, dispatch_event
from .patterns import AcceptAllFilter, PathFilter
from .registry import WatchRegistry

logger = logging.getLogger(__name__)

STOP_CANCELLED = "cancelled"
STOP_NO_WATCHES = "all_watches_invalidated"


class LoopState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


def _is_watchable_directory(path: Path) -> bool:
    # Symlinked directories are reported but never descended into
    return path.is_dir() and not path.is_symlink()


class DispatchLoop:
    """
    Single consumer of a TreeWatcher's facility events.

    Calling the loop (or ``run()``) blocks until ``stop()`` is called or no
    watched directory is left. It owns the watcher's registry while it runs
    and releases the facility on every exit path. Schedule it on a thread or
    executor of your choice; it can run only once.
    """

    def __init__(self, watcher: "TreeWatcher"):
        self._watcher = watcher
        self._stop_event = threading.Event()
        self.state: Optional[LoopState] = None
        self.stop_reason: Optional[str] = None

    def __call__(self):
        self.run()

    @property
    def is_running(self) -> bool:
        return self.state is LoopState.RUNNING

    def stop(self):
        """Request a cooperative stop; safe to call from any thread"""
        self._stop_event.set()
        facility = self._watcher.facility
        if facility is not None:
            facility.interrupt()

    def run(self):
        if self.state is not None:
            raise RuntimeError("Dispatch loop can only run once")

        watcher = self._watcher
        facility = watcher.facility
        registry = watcher.registry

        self.state = LoopState.RUNNING
        watcher.stats['loop_started'] = datetime.now()
        logger.info(f"Dispatch loop started for {watcher.root}")

        try:
            while not self._stop_event.is_set():
                # Wait for any event; stop if interrupted
                try:
                    handle, raw_events = facility.wait_for_events()
                except WatchInterrupted:
                    break

                if self._stop_event.is_set():
                    break

                for raw_event in raw_events:
                    self._handle_event(handle, raw_event)

                # Retire the handle if its directory is no longer accessible
                if not facility.rearm(handle):
                    watcher.retire(handle)

                if registry.is_empty():
                    self.stop_reason = STOP_NO_WATCHES
                    logger.info("All watched directories are inaccessible, stopping")
                    break

            if self.stop_reason is None:
                self.stop_reason = STOP_CANCELLED
        finally:
            self.state = LoopState.STOPPED
            watcher.stats['loop_stopped'] = datetime.now()
            watcher.close()
            logger.info(f"Dispatch loop stopped for {watcher.root} ({self.stop_reason})")

    def _handle_event(self, handle: Hashable, raw_event: RawEvent):
        watcher = self._watcher
        watcher.stats['events_received'] += 1

        if raw_event.kind is EventKind.OVERFLOW:
            watcher.stats['overflows'] += 1
            logger.warning(f"Event overflow for {watcher.registry.get(handle)}, events were lost")
            return

        directory = watcher.registry.get(handle)
        if directory is None:
            logger.debug(f"Dropping {raw_event} from a retired watch")
            return

        path = directory / raw_event.name
        logger.debug(f"Received event {raw_event.kind.value} for {path}")

        self._deliver(path, raw_event.kind)

        try:
            self._update_watches(path, raw_event.kind)
        except Exception as e:
            watcher.stats['errors'] += 1
            logger.error(f"Error updating watches after {raw_event.kind.value} of {path}: {e}")

    def _update_watches(self, path: Path, kind: EventKind):
        watcher = self._watcher

        if kind is EventKind.DELETED:
            watcher.retire_tree(path)
        elif kind is EventKind.CREATED and watcher.recursive and _is_watchable_directory(path):
            # Unlike the initial root, new directories must pass the filter too
            if watcher.path_filter.accept_directory(path):
                logger.debug(f"Create new watcher for directory {path}")
                watcher.register_tree(path)
            else:
                logger.debug(f"Not watching new directory {path} (rejected by filter)")

    def _deliver(self, path: Path, kind: EventKind):
        watcher = self._watcher
        path_filter = watcher.path_filter

        try:
            # Accepted directories bypass the file filter
            accepted = path_filter.accept_file(path) or (
                path.is_dir() and path_filter.accept_directory(path)
            )
            if not accepted:
                watcher.stats['events_ignored'] += 1
                logger.debug(f"Ignoring event for {path}")
                return

            dispatch_event(watcher.observer, path, kind)
            watcher.stats['events_delivered'] += 1
            watcher.stats['last_event'] = datetime.now()

        except Exception as e:
            watcher.stats['errors'] += 1
            logger.error(f"Error delivering {kind.value} event for {path}: {e}")


class TreeWatcher:
    """
    Watches a directory tree and reports changes to an observer

    The watch set is extended automatically when subdirectories appear and
    shrinks when watched directories disappear. Typical use::

        watcher = TreeWatcher(root, recursive=True)
        loop = watcher.setup(observer, path_filter)
        future = pool.submit(loop)
        ...
        watcher.stop()
    """

    def __init__(self, root: Union[str, Path],
                 recursive: bool = True,
                 event_kinds: Iterable[Union[str, EventKind]] = ALL_EVENT_KINDS,
                 facility_factory: Optional[Callable[[], WatchFacility]] = None,
                 use_polling: bool = False,
                 poll_interval: float = 1.0):
        """
        Initialize tree watcher

        Args:
            root: Directory to watch
            recursive: Watch the whole tree below root, not only root itself
            event_kinds: Kinds of events to watch for
            facility_factory: Creates the notification facility on setup
            use_polling: Use polling instead of OS events (default facility only)
            poll_interval: Polling interval in seconds (default facility only)
        """
        self.root = Path(root).expanduser().resolve()
        self.recursive = recursive
        self.event_kinds = parse_event_kinds(event_kinds)
        if not self.event_kinds:
            raise ValueError("At least one event kind must be watched")

        self.use_polling = use_polling
        self.poll_interval = poll_interval
        self.facility_factory = facility_factory or self._default_facility

        self.registry = WatchRegistry()
        self.facility: Optional[WatchFacility] = None
        self.observer: Optional[EventObserver] = None
        self.path_filter: PathFilter = AcceptAllFilter()
        self.loop: Optional[DispatchLoop] = None

        self.stats = {
            'setup_time': None,
            'loop_started': None,
            'loop_stopped': None,
            'events_received': 0,
            'events_delivered': 0,
            'events_ignored': 0,
            'overflows': 0,
            'errors': 0,
            'watches_added': 0,
            'watches_removed': 0,
            'last_event': None,
        }

        logger.debug(f"TreeWatcher initialized for {self.root} (recursive: {recursive})")

    def _default_facility(self) -> WatchFacility:
        return ObserverFacility(use_polling=self.use_polling, poll_interval=self.poll_interval,
                                recursive=self.recursive)

    def setup(self, observer: Union[EventObserver, Callable[[Path, EventKind], None]],
              path_filter: Optional[PathFilter] = None) -> DispatchLoop:
        """
        Walk the tree and prepare the dispatch loop

        Args:
            observer: Receives events; a plain ``callback(path, kind)`` is accepted too
            path_filter: Decides which directories are watched and which events
                are reported; everything is accepted if None

        Returns:
            The dispatch loop, ready to be scheduled

        Raises:
            WatchSetupError: If the tree cannot be watched. Nothing stays
                registered in that case.
        """
        if self.facility is not None:
            raise RuntimeError(f"TreeWatcher for {self.root} is already set up")

        if observer is None:
            raise ValueError("An observer is required")
        if not hasattr(observer, 'on_created') and callable(observer):
            observer = CallbackObserver(observer)
        self.observer = observer
        self.path_filter = path_filter or AcceptAllFilter()

        try:
            self.facility = self.facility_factory()
            with PerformanceLogger("initial_tree_walk", logger, extra={'root': str(self.root)}):
                self._walk(self.root, strict=True)
        except OSError as e:
            self._abandon_setup()
            raise WatchSetupError(f"Could not watch {self.root}: {e}") from e
        except BaseException:
            self._abandon_setup()
            raise

        self.stats['setup_time'] = datetime.now()
        logger.debug(f"Generated watchers for {self.registry.paths()}")
        logger.info(f"Watching {len(self.registry)} directories under {self.root}")

        self.loop = DispatchLoop(self)
        return self.loop

    def _abandon_setup(self):
        """Release the facility and forget a partial walk so setup can be retried"""
        self.close()
        self.facility = None
        self.registry = WatchRegistry()

    def start(self, executor: Executor,
              observer: Union[EventObserver, Callable[[Path, EventKind], None]],
              path_filter: Optional[PathFilter] = None) -> Future:
        """
        Set up and submit the dispatch loop to an executor

        Cancelling the returned future does not interrupt a running loop,
        use ``stop()`` for that.

        Raises:
            WatchSetupError: If the tree cannot be watched
        """
        loop = self.setup(observer, path_filter)
        return executor.submit(loop)

    def stop(self):
        """Ask the dispatch loop to stop; it releases the facility on exit"""
        if self.loop is not None:
            self.loop.stop()

    def close(self):
        """Release the notification facility"""
        if self.facility is not None:
            self.facility.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        self.close()

    def register_tree(self, directory: Path):
        """
        Watch a directory and, if recursive, its accepted subdirectories

        Directories that are already watched are left as they are. Failures
        are logged and leave the affected subtree unwatched.
        """
        self._walk(directory, strict=False)

    def _walk(self, start: Path, strict: bool):
        """Pre-order walk registering start and the accepted directories below it"""
        stack: List[Path] = [start]

        while stack:
            directory = stack.pop()

            if directory in self.registry:
                logger.debug(f"Already watching {directory}")
            else:
                try:
                    handle = self.facility.register_directory(directory, self.event_kinds)
                except OSError as e:
                    if strict:
                        raise
                    logger.warning(f"Couldn't create watcher for directory {directory}: {e}")
                    continue

                self.registry.put(handle, directory)
                self.stats['watches_added'] += 1

            if not self.recursive:
                continue

            try:
                children = self._accepted_subdirectories(directory)
            except OSError as e:
                if strict:
                    raise
                logger.warning(f"Couldn't list directory {directory}: {e}")
                continue

            # Reversed so children are visited in name order
            stack.extend(reversed(children))

    def _accepted_subdirectories(self, directory: Path) -> List[Path]:
        with os.scandir(directory) as entries:
            names = sorted(entry.name for entry in entries if entry.is_dir(follow_symlinks=False))

        return [
            directory / name for name in names
            if self.path_filter.accept_directory(directory / name)
        ]

    def retire(self, handle: Hashable):
        """Forget a handle whose directory can no longer be watched"""
        path = self.registry.remove(handle)
        if path is not None:
            self.stats['watches_removed'] += 1
            logger.info(f"Stopped watching {path} (no longer accessible)")

    def retire_tree(self, path: Path):
        """Retire watches on path and below it that are no longer valid"""
        # Unwatched paths have no watched descendants, the walk is pre-order
        if path not in self.registry:
            return

        for directory in self.registry.paths():
            if directory != path and path not in directory.parents:
                continue
            handle = self.registry.handle_for(directory)
            if handle is not None and not self.facility.rearm(handle):
                self.retire(handle)

    @property
    def watched_directories(self) -> List[Path]:
        return self.registry.paths()

    @property
    def is_running(self) -> bool:
        return self.loop is not None and self.loop.is_running

    def get_status(self) -> Dict[str, Any]:
        """Get watcher status"""
        loop = self.loop
        return {
            'root': str(self.root),
            'recursive': self.recursive,
            'event_kinds': sorted(kind.value for kind in self.event_kinds),
            'is_running': self.is_running,
            'state': loop.state.value if loop and loop.state else None,
            'stop_reason': loop.stop_reason if loop else None,
            'watched_directories': len(self.registry),
            'stats': dict(self.stats),
        }
