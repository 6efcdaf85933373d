"""Shared fixtures for treewatch tests."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from tests.helpers import RecordingObserver, ScriptedFacility
from treewatch.watcher.watcher import TreeWatcher


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """An empty directory to watch; resolved like TreeWatcher resolves its root."""
    directory = tmp_path / "root"
    directory.mkdir()
    return directory.resolve()


@pytest.fixture
def tree(root: Path) -> Path:
    """
    root/
        a/
            b/
            x.txt
        c/
        file.txt
    """
    (root / "a" / "b").mkdir(parents=True)
    (root / "c").mkdir()
    (root / "a" / "x.txt").write_text("x")
    (root / "file.txt").write_text("root file")
    return root


@pytest.fixture
def facility() -> ScriptedFacility:
    return ScriptedFacility()


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def make_watcher(facility: ScriptedFacility):
    """Build TreeWatchers that use the scripted facility."""

    def factory(root_path: Path, **kwargs) -> TreeWatcher:
        return TreeWatcher(root_path, facility_factory=lambda: facility, **kwargs)

    return factory


@pytest.fixture
def restore_logging():
    """Undo setup_logging() changes to the root and watchdog loggers."""
    root_logger = logging.getLogger()
    level = root_logger.level
    watchdog_level = logging.getLogger("watchdog").level

    yield

    # pytest swaps its own capture handlers per phase; only drop ours
    for handler in root_logger.handlers[:]:
        if type(handler) in (logging.StreamHandler, RotatingFileHandler):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
    logging.getLogger("watchdog").setLevel(watchdog_level)
