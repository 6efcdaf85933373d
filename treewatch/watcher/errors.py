# treewatch/watcher/errors.py

"""
Exceptions raised by the tree watcher
"""


class WatchError(Exception):
    """Base class for watcher errors"""


class WatchSetupError(WatchError, OSError):
    """The initial tree walk could not register the root directory tree"""


class WatchInterrupted(WatchError):
    """Raised by a facility when a blocking wait is cancelled"""
