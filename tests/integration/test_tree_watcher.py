"""End-to-end tests running TreeWatcher on real watchdog observers."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from tests.helpers import RecordingObserver, wait_until
from treewatch.watcher.events import EventKind
from treewatch.watcher.patterns import AcceptAllFilter, PatternFilter
from treewatch.watcher.watcher import STOP_CANCELLED, STOP_NO_WATCHES, TreeWatcher


@pytest.fixture(params=[False, True], ids=["native", "polling"])
def use_polling(request):
    return request.param


@pytest.fixture
def pool():
    with ThreadPoolExecutor(max_workers=1) as executor:
        yield executor


@pytest.fixture
def start(root, pool, use_polling):
    """Start a watcher on root; it is stopped again after the test."""
    started = []

    def factory(path_filter=None, **kwargs):
        watcher = TreeWatcher(root, use_polling=use_polling, poll_interval=0.1, **kwargs)
        observer = RecordingObserver()
        future = watcher.start(pool, observer, path_filter or AcceptAllFilter())
        started.append((watcher, future))
        return watcher, observer, future

    yield factory

    for watcher, future in started:
        watcher.stop()
        future.result(timeout=10)


def test_file_creation_is_reported(root, start):
    watcher, observer, _ = start()

    (root / "hello.txt").write_text("hi")

    assert wait_until(lambda: root / "hello.txt" in observer.paths(EventKind.CREATED))


def test_file_deletion_is_reported(root, start):
    (root / "old.txt").write_text("x")
    watcher, observer, _ = start()

    (root / "old.txt").unlink()

    assert wait_until(lambda: root / "old.txt" in observer.paths(EventKind.DELETED))


def test_rename_is_reported_as_delete_and_create(root, start):
    (root / "before.txt").write_text("x")
    watcher, observer, _ = start()

    (root / "before.txt").rename(root / "after.txt")

    assert wait_until(lambda: root / "after.txt" in observer.paths(EventKind.CREATED))
    assert root / "before.txt" in observer.paths(EventKind.DELETED)


def test_new_subdirectories_are_watched(root, start):
    watcher, observer, _ = start()

    (root / "a").mkdir()
    assert wait_until(lambda: root / "a" in watcher.registry)

    (root / "a" / "b").mkdir()
    assert wait_until(lambda: root / "a" / "b" in watcher.registry)

    (root / "a" / "b" / "deep.txt").write_text("deep")
    assert wait_until(lambda: root / "a" / "b" / "deep.txt" in observer.paths(EventKind.CREATED))
    assert root / "a" in observer.paths(EventKind.CREATED)


def test_existing_tree_is_watched(tree, start):
    watcher, observer, _ = start()

    (tree / "a" / "b" / "new.txt").write_text("x")

    assert wait_until(lambda: tree / "a" / "b" / "new.txt" in observer.paths(EventKind.CREATED))


def test_rejected_files_are_not_reported(root, start):
    watcher, observer, _ = start(PatternFilter(ignore_patterns=["*.c"], ignore_directories=[]))

    (root / "main.c").write_text("int main;")
    (root / "main.h").write_text("int main;")

    assert wait_until(lambda: root / "main.h" in observer.paths(EventKind.CREATED))
    assert root / "main.c" not in observer.paths()


def test_rejected_directories_are_not_watched(root, start):
    watcher, observer, _ = start(PatternFilter(ignore_patterns=[], ignore_directories=["target"]))

    (root / "target").mkdir()
    (root / "src").mkdir()

    assert wait_until(lambda: root / "src" in watcher.registry)
    assert root / "target" not in watcher.registry


def test_removing_root_ends_the_loop(root, start):
    watcher, observer, future = start()

    root.rmdir()

    future.result(timeout=10)
    assert watcher.loop.stop_reason == STOP_NO_WATCHES
    assert not watcher.facility.observer.is_alive()


def test_removed_subdirectory_is_retired(tree, start):
    watcher, observer, _ = start()

    (tree / "c").rmdir()

    assert wait_until(lambda: tree / "c" not in watcher.registry)
    assert wait_until(lambda: tree / "c" in observer.paths(EventKind.DELETED))
    assert watcher.is_running


def test_stop_ends_blocked_loop(root, start):
    watcher, observer, future = start()
    assert wait_until(lambda: watcher.is_running)

    watcher.stop()

    future.result(timeout=10)
    assert watcher.loop.stop_reason == STOP_CANCELLED
    assert not watcher.facility.observer.is_alive()
    assert observer.events == []


def test_large_tree_is_watched(root, start):
    # More directories than the usual per-user limit on inotify instances
    for index in range(200):
        (root / f"dir{index:03d}").mkdir()

    watcher, observer, _ = start()

    assert len(watcher.registry) == 201
    assert watcher.facility.get_status()['scheduled_trees'] == 1

    (root / "dir199" / "last.txt").write_text("x")
    assert wait_until(lambda: root / "dir199" / "last.txt" in observer.paths(EventKind.CREATED))


def test_pruned_directories_stay_silent(root, start):
    (root / "target").mkdir()
    watcher, observer, _ = start(PatternFilter(ignore_patterns=[], ignore_directories=["target"]))

    (root / "target" / "build.o").write_text("x")
    (root / "marker.txt").write_text("x")

    assert wait_until(lambda: root / "marker.txt" in observer.paths(EventKind.CREATED))
    assert not any(root / "target" in path.parents for path in observer.paths())
