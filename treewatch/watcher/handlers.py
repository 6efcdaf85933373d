# treewatch/watcher/handlers.py

"""
Event observers receiving resolved filesystem events
"""
import sys
from pathlib import Path
from typing import Callable, Optional, Protocol, TextIO

from .events import EventKind


class EventObserver(Protocol):
    """
    Capability notified by the dispatch loop.

    Methods are called synchronously on the loop thread; a slow observer
    stalls delivery of every later event.
    """

    def on_created(self, path: Path) -> None:
        ...

    def on_deleted(self, path: Path) -> None:
        ...

    def on_modified(self, path: Path) -> None:
        ...


def dispatch_event(observer: EventObserver, path: Path, kind: EventKind) -> bool:
    """
    Route an event to the observer method matching its kind

    Args:
        observer: Observer to notify
        path: Absolute path of the event
        kind: Event kind

    Returns:
        True if a method was invoked, False for kinds without a method
    """
    if kind is EventKind.CREATED:
        observer.on_created(path)
    elif kind is EventKind.DELETED:
        observer.on_deleted(path)
    elif kind is EventKind.MODIFIED:
        observer.on_modified(path)
    else:
        return False
    return True


class CallbackObserver:
    """Adapt a ``callback(path, kind)`` function to the observer interface"""

    def __init__(self, callback: Callable[[Path, EventKind], None]):
        self.callback = callback

    def on_created(self, path: Path):
        self.callback(path, EventKind.CREATED)

    def on_deleted(self, path: Path):
        self.callback(path, EventKind.DELETED)

    def on_modified(self, path: Path):
        self.callback(path, EventKind.MODIFIED)


class PrintingObserver:
    """
    Print one line per event, e.g. ``file created /tmp/a.txt``

    Args:
        stream: Output stream, stdout if None
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream
        self.stats = {
            'created': 0,
            'deleted': 0,
            'modified': 0,
        }

    def _emit(self, kind: EventKind, path: Path):
        self.stats[kind.value] += 1
        stream = self.stream or sys.stdout
        print(f"file {kind.value} {path}", file=stream, flush=True)

    def on_created(self, path: Path):
        self._emit(EventKind.CREATED, path)

    def on_deleted(self, path: Path):
        self._emit(EventKind.DELETED, path)

    def on_modified(self, path: Path):
        self._emit(EventKind.MODIFIED, path)
