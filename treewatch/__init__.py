# treewatch/__init__.py

"""
treewatch - recursive filesystem change notification
"""
from .watcher import (
    TreeWatcher, DispatchLoop, EventKind,
    PathFilter, AcceptAllFilter, PredicateFilter, PatternFilter,
    EventObserver, CallbackObserver, PrintingObserver,
    WatchSetupError,
)

__version__ = "1.0.0"

__all__ = [
    'TreeWatcher',
    'DispatchLoop',
    'EventKind',
    'PathFilter',
    'AcceptAllFilter',
    'PredicateFilter',
    'PatternFilter',
    'EventObserver',
    'CallbackObserver',
    'PrintingObserver',
    'WatchSetupError',
    '__version__',
]
