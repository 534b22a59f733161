from __future__ import annotations

from pathlib import Path

import pytest

from wandersync.exceptions import StorageUnavailableError
from wandersync.storage import JsonFileStore, MemoryStore


def test_file_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "state" / "wandersync.json"
    store = JsonFileStore(path)

    store.set_item("a", "1")
    store.set_item("b", "two")
    store.remove_item("a")

    reopened = JsonFileStore(path)
    assert reopened.get_item("a") is None
    assert reopened.get_item("b") == "two"
    assert [p.name for p in path.parent.iterdir()] == ["wandersync.json"]


def test_file_store_missing_file_reads_empty(tmp_path: Path) -> None:
    assert JsonFileStore(tmp_path / "absent.json").get_item("anything") is None


def test_file_store_corrupt_file_is_unavailable(tmp_path: Path) -> None:
    path = tmp_path / "wandersync.json"
    path.write_text("[1, 2", encoding="utf-8")

    with pytest.raises(StorageUnavailableError):
        JsonFileStore(path).get_item("a")


def test_file_store_unwritable_location_is_unavailable(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(StorageUnavailableError):
        JsonFileStore(blocker / "wandersync.json").set_item("a", "1")


def test_memory_store_basic_operations() -> None:
    store = MemoryStore({"x": "1"})
    store.set_item("y", "2")
    store.remove_item("x")
    store.remove_item("missing")

    assert store.get_item("x") is None
    assert store.keys() == ["y"]


def test_file_store_undecodable_file_is_unavailable(tmp_path: Path) -> None:
    path = tmp_path / "wandersync.json"
    path.write_bytes(b'{"a": "\xff\xfe"}')

    with pytest.raises(StorageUnavailableError):
        JsonFileStore(path).get_item("a")
