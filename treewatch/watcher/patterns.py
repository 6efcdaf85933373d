# treewatch/watcher/patterns.py

"""
Path filters deciding which directories are watched and which events are reported
"""
import fnmatch
import logging
import os
import stat
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class PathFilter(Protocol):
    """
    Capability consulted by the tree watcher.

    Both methods must be side-effect free and fast: they run for every
    directory walked and for every event received.
    """

    def accept_file(self, path: Path) -> bool:
        ...

    def accept_directory(self, path: Path) -> bool:
        ...


class AcceptAllFilter:
    """Watch every directory and report every path"""

    def accept_file(self, path: Path) -> bool:
        return True

    def accept_directory(self, path: Path) -> bool:
        return True


class PredicateFilter:
    """
    Filter built from two plain predicates

    Args:
        file_predicate: Called for event paths
        directory_predicate: Called for directories considered for watching
    """

    def __init__(self, file_predicate: Callable[[Path], bool],
                 directory_predicate: Callable[[Path], bool]):
        self.file_predicate = file_predicate
        self.directory_predicate = directory_predicate

    def accept_file(self, path: Path) -> bool:
        return bool(self.file_predicate(path))

    def accept_directory(self, path: Path) -> bool:
        return bool(self.directory_predicate(path))


def is_hidden(path: Path) -> bool:
    """
    Check whether a path is hidden

    Dot-names are hidden everywhere; on Windows the hidden file attribute
    is honoured as well. A path that cannot be inspected counts as not hidden.
    """
    if path.name.startswith('.'):
        return True

    if sys.platform == "win32":
        try:
            attributes = os.stat(path, follow_symlinks=False).st_file_attributes
        except (OSError, AttributeError):
            return False
        return bool(attributes & stat.FILE_ATTRIBUTE_HIDDEN)

    return False


class PatternFilter:
    """
    Filter paths by name patterns

    File events are rejected when the file name matches one of
    ``ignore_patterns``; directories are not watched when their name matches
    one of ``ignore_directories``. Hidden paths are rejected unless
    ``include_hidden`` is set. Patterns use fnmatch syntax and are matched
    case-insensitively against the last path component.
    """

    def __init__(self, ignore_patterns: Optional[List[str]] = None,
                 ignore_directories: Optional[List[str]] = None,
                 include_hidden: bool = False):
        """
        Initialize pattern filter

        Args:
            ignore_patterns: File name patterns to ignore
            ignore_directories: Directory name patterns that are not watched
            include_hidden: Report and watch hidden paths too
        """
        self.ignore_patterns = list(ignore_patterns) if ignore_patterns is not None \
            else self._get_default_ignore_patterns()
        self.ignore_directories = list(ignore_directories) if ignore_directories is not None \
            else self._get_default_ignore_directories()
        self.include_hidden = include_hidden

        # Decisions for directory names, they are checked on every event
        self.cache: Dict[str, bool] = {}
        self.cache_max_size = 10000

        logger.debug(
            f"PatternFilter initialized with {len(self.ignore_patterns)} file patterns "
            f"and {len(self.ignore_directories)} directory patterns"
        )

    def _get_default_ignore_patterns(self) -> List[str]:
        """Get default ignore patterns"""
        return [
            # Editor and temporary files
            '*.tmp', '*.temp', '*.swp', '*.swo', '*~', '.#*',
            # System files
            'Thumbs.db', 'desktop.ini', '.DS_Store',
        ]

    def _get_default_ignore_directories(self) -> List[str]:
        """Get default ignore directories"""
        return [
            '.git', '.hg', '.svn',
            '__pycache__', 'node_modules',
            '.Trash', '.Trash-*', 'lost+found',
        ]

    @staticmethod
    def _matches(name: str, patterns: List[str]) -> bool:
        lowered = name.lower()
        return any(fnmatch.fnmatch(lowered, pattern.lower()) for pattern in patterns)

    def accept_file(self, path: Path) -> bool:
        if not self.include_hidden and is_hidden(path):
            return False
        return not self._matches(path.name, self.ignore_patterns)

    def accept_directory(self, path: Path) -> bool:
        if not self.include_hidden and is_hidden(path):
            return False

        name = path.name
        if name in self.cache:
            return self.cache[name]

        accepted = not self._matches(name, self.ignore_directories)
        if not accepted:
            logger.debug(f"Not watching {path} (matched directory pattern)")
        self._update_cache(name, accepted)
        return accepted

    def _update_cache(self, name: str, accepted: bool):
        # Limit cache size
        if len(self.cache) >= self.cache_max_size:
            remove_count = self.cache_max_size // 10
            for key in list(self.cache.keys())[:remove_count]:
                del self.cache[key]

        self.cache[name] = accepted

    def add_pattern(self, pattern: str, is_directory: bool = False):
        """
        Add a new pattern to filter

        Args:
            pattern: Pattern string
            is_directory: Whether pattern applies only to directories
        """
        if is_directory:
            self.ignore_directories.append(pattern)
        else:
            self.ignore_patterns.append(pattern)

        # Clear cache since rules changed
        self.cache.clear()
        logger.info(f"Added pattern: {pattern} (directory: {is_directory})")

    def remove_pattern(self, pattern: str):
        """Remove a pattern from both pattern lists"""
        if pattern in self.ignore_patterns:
            self.ignore_patterns.remove(pattern)
        if pattern in self.ignore_directories:
            self.ignore_directories.remove(pattern)

        self.cache.clear()
        logger.info(f"Removed pattern: {pattern}")
