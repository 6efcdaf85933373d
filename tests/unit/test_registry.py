"""Tests for :mod:`treewatch.watcher.registry`."""

from pathlib import Path

from treewatch.watcher.registry import WatchRegistry


def test_new_registry_is_empty():
    registry = WatchRegistry()

    assert registry.is_empty()
    assert len(registry) == 0
    assert registry.get("missing") is None


def test_put_and_get_both_directions():
    registry = WatchRegistry()
    registry.put(1, Path("/data"))
    registry.put(2, Path("/data/sub"))

    assert registry.get(1) == Path("/data")
    assert registry.handle_for(Path("/data/sub")) == 2
    assert Path("/data") in registry
    assert Path("/other") not in registry
    assert sorted(registry.paths()) == [Path("/data"), Path("/data/sub")]
    assert len(registry) == 2


def test_remove_returns_path_and_empties_registry():
    registry = WatchRegistry()
    registry.put(1, Path("/data"))

    assert registry.remove(1) == Path("/data")
    assert registry.is_empty()
    assert registry.handle_for(Path("/data")) is None


def test_remove_unknown_handle_is_noop():
    registry = WatchRegistry()
    registry.put(1, Path("/data"))

    assert registry.remove(99) is None
    assert len(registry) == 1


def test_put_same_path_with_new_handle_replaces_entry():
    registry = WatchRegistry()
    registry.put(1, Path("/data"))
    registry.put(2, Path("/data"))

    assert len(registry) == 1
    assert registry.get(1) is None
    assert registry.get(2) == Path("/data")
    assert registry.handle_for(Path("/data")) == 2


def test_put_same_handle_with_new_path_moves_entry():
    registry = WatchRegistry()
    registry.put(1, Path("/old"))
    registry.put(1, Path("/new"))

    assert registry.paths() == [Path("/new")]
    assert Path("/old") not in registry


def test_put_is_idempotent():
    registry = WatchRegistry()
    registry.put(1, Path("/data"))
    registry.put(1, Path("/data"))

    assert len(registry) == 1
    assert registry.handles() == [1]
