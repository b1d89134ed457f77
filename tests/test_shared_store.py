"""Tests for the shared key-value store."""

import threading

import pytest

from clusteradm.exceptions import StoreKeyError, StoreTypeError
from clusteradm.task.store import SharedStore


class TestSharedStore:

    def test_set_and_typed_get(self):
        store = SharedStore()
        store.set("fs.mount_point", "/mnt/a")

        assert store.get("fs.mount_point") == "/mnt/a"
        assert store.get("fs.mount_point", str) == "/mnt/a"

    def test_missing_key(self):
        store = SharedStore()

        with pytest.raises(StoreKeyError) as exc_info:
            store.get("nope")

        assert exc_info.value.key == "nope"
        assert isinstance(exc_info.value, KeyError)
        assert str(exc_info.value) == "Key 'nope' not found in shared store"

    def test_default(self):
        assert SharedStore().get("nope", str, default="") == ""

    def test_wrong_type(self):
        store = SharedStore({"count": 3})

        with pytest.raises(StoreTypeError) as exc_info:
            store.get("count", str)

        assert exc_info.value.expected is str
        assert exc_info.value.actual is int

    def test_overwrite_and_delete(self):
        store = SharedStore()
        store.set("k", 1)
        store.set("k", 2)
        assert store.get("k") == 2

        store.delete("k")
        store.delete("k")
        assert "k" not in store
        assert len(store) == 0

    def test_snapshot_is_a_copy(self):
        store = SharedStore({"a": 1})
        snapshot = store.snapshot()
        snapshot["b"] = 2

        assert store.keys() == ["a"]
        assert store.contains("a")

    def test_concurrent_writers(self):
        store = SharedStore()

        def writer(n):
            for i in range(200):
                store.set(f"host-{n}.{i}", i)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 8 * 200
