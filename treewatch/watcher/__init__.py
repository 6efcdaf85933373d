# treewatch/watcher/__init__.py

"""
treewatch watcher module - recursive directory tree monitoring
"""
from .events import EventKind, RawEvent, ResolvedEvent, ALL_EVENT_KINDS, parse_event_kinds
from .errors import WatchError, WatchSetupError, WatchInterrupted
from .registry import WatchRegistry
from .patterns import PathFilter, AcceptAllFilter, PredicateFilter, PatternFilter
from .handlers import EventObserver, CallbackObserver, PrintingObserver, dispatch_event
from .facility import WatchFacility, ObserverFacility
from .watcher import TreeWatcher, DispatchLoop, LoopState

__all__ = [
    'EventKind',
    'RawEvent',
    'ResolvedEvent',
    'ALL_EVENT_KINDS',
    'parse_event_kinds',
    'WatchError',
    'WatchSetupError',
    'WatchInterrupted',
    'WatchRegistry',
    'PathFilter',
    'AcceptAllFilter',
    'PredicateFilter',
    'PatternFilter',
    'EventObserver',
    'CallbackObserver',
    'PrintingObserver',
    'dispatch_event',
    'WatchFacility',
    'ObserverFacility',
    'TreeWatcher',
    'DispatchLoop',
    'LoopState',
]
