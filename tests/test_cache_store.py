import json
from pathlib import Path

from roster_enrich.workflows.cache_store import ExpiringCache, LocalStore
from roster_enrich.workflows.enrich_config import CACHE_TTL_MS


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


def test_round_trip_within_ttl_is_fresh():
    clock = FakeClock()
    cache = ExpiringCache(LocalStore(None), clock=clock)
    value = {"101": {"id": "101", "number": "9", "role": "F", "grade_level": "10"}}

    assert cache.set("league:456", value) is True
    entry = cache.get("league:456")

    assert entry is not None
    assert entry.data == value
    assert entry.timestamp == clock.now_ms
    assert cache.is_fresh(entry)


def test_entry_becomes_stale_at_ttl_but_is_still_returned():
    clock = FakeClock()
    cache = ExpiringCache(LocalStore(None), clock=clock)
    cache.set("league:456", {"a": 1})

    clock.now_ms += CACHE_TTL_MS
    entry = cache.get("league:456")

    assert entry is not None
    assert entry.data == {"a": 1}
    assert not cache.is_fresh(entry)


def test_missing_key_returns_none():
    cache = ExpiringCache(LocalStore(None))
    assert cache.get("league:nope") is None


def test_corrupt_entry_is_evicted():
    store = LocalStore(None)
    store.set_item("league:456", "{not json")
    store.set_item("league:457", json.dumps({"data": {}}))
    cache = ExpiringCache(store)

    assert cache.get("league:456") is None
    assert cache.get("league:457") is None
    assert store.get_item("league:456") is None
    assert store.get_item("league:457") is None


def test_quota_rejection_is_soft():
    store = LocalStore(None, max_bytes=64)
    cache = ExpiringCache(store)

    assert cache.set("league:456", {"blob": "x" * 200}) is False
    assert cache.get("league:456") is None
    assert store.keys() == []


def test_rewrite_gets_strictly_newer_timestamp():
    clock = FakeClock()
    cache = ExpiringCache(LocalStore(None), clock=clock)
    cache.set("k", 1)
    first = cache.get("k")
    cache.set("k", 2)
    second = cache.get("k")

    assert first is not None and second is not None
    assert second.timestamp > first.timestamp
    assert second.data == 2


def test_store_persists_to_disk(tmp_path: Path):
    path = tmp_path / "cache" / "store.json"
    cache = ExpiringCache(LocalStore(path))
    cache.set("league:456", ["x"])

    reopened = ExpiringCache(LocalStore(path))
    entry = reopened.get("league:456")

    assert path.exists()
    assert entry is not None
    assert entry.data == ["x"]


def test_unreadable_store_file_loads_empty(tmp_path: Path):
    path = tmp_path / "store.json"
    path.write_text("garbage", encoding="utf-8")

    store = LocalStore(path)

    assert store.keys() == []
    store.set_item("k", "v")
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}


def test_clear_and_remove(tmp_path: Path):
    store = LocalStore(tmp_path / "store.json")
    store.set_item("a", "1")
    store.set_item("b", "2")

    assert store.remove_item("a") is True
    assert store.remove_item("a") is False
    assert store.clear() == 1
    assert store.keys() == []


def test_store_file_is_written_compactly(tmp_path: Path):
    path = tmp_path / "store.json"
    store = LocalStore(path)
    store.set_item("entity:11:456", json.dumps({"data": [{"id": "101"}], "timestamp": 1}))

    written = path.read_text(encoding="utf-8")

    assert "\n" not in written
    assert '", "' not in written
    assert json.loads(written) == {"entity:11:456": '{"data": [{"id": "101"}], "timestamp": 1}'}
