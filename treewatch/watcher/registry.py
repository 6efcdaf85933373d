# treewatch/watcher/registry.py

"""
Mapping between watch handles and the directories they observe
"""
import logging
from pathlib import Path
from typing import Any, Dict, Hashable, List, Optional

logger = logging.getLogger(__name__)


class WatchRegistry:
    """
    Bidirectional handle <-> directory mapping owned by one TreeWatcher.

    Handles are opaque: they are only hashed and compared. Each directory
    appears at most once; putting a directory under a new handle replaces
    the previous entry. Not thread-safe, all access happens on the
    dispatch loop thread.
    """

    def __init__(self):
        self._paths: Dict[Hashable, Path] = {}
        self._handles: Dict[Path, Hashable] = {}

    def put(self, handle: Hashable, path: Path):
        """Register handle for path, replacing any previous entry for either"""
        previous = self._handles.get(path)
        if previous is not None and previous != handle:
            del self._paths[previous]
            logger.debug(f"Replacing watch handle for {path}")

        old_path = self._paths.get(handle)
        if old_path is not None and old_path != path:
            del self._handles[old_path]

        self._paths[handle] = path
        self._handles[path] = handle

    def get(self, handle: Hashable) -> Optional[Path]:
        return self._paths.get(handle)

    def handle_for(self, path: Path) -> Optional[Any]:
        return self._handles.get(path)

    def remove(self, handle: Hashable) -> Optional[Path]:
        """
        Remove handle from registry

        Returns:
            The directory the handle watched, or None if it was not registered
        """
        path = self._paths.pop(handle, None)
        if path is not None and self._handles.get(path) == handle:
            del self._handles[path]
        return path

    def is_empty(self) -> bool:
        return not self._paths

    def paths(self) -> List[Path]:
        return list(self._paths.values())

    def handles(self) -> List[Any]:
        return list(self._paths)

    def __len__(self):
        return len(self._paths)

    def __contains__(self, path: object) -> bool:
        return path in self._handles
