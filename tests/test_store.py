# tests/test_store.py
import json

import pytest
from freezegun import freeze_time

from conftest import make_posting
from jobsniper.store import SeenStore

T0 = 1717243200  # 2024-06-01 12:00:00 UTC
T1 = T0 + 3600


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def test_missing_file_is_cold_start(seen_store):
    assert seen_store.load() == {}


def test_corrupt_file_is_treated_as_empty(store_path):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("{not json", encoding="utf-8")
    assert SeenStore(store_path).load() == {}


def test_unknown_shape_is_treated_as_empty(store_path):
    _write(store_path, {"jobs": []})
    assert SeenStore(store_path).load() == {}


def test_empty_file_loads_as_empty(store_path):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("", encoding="utf-8")
    assert SeenStore(store_path).load() == {}


def test_timestamped_shape_is_loaded(store_path):
    _write(store_path, [
        {"posting": {"id": "a-1", "title": "Dev"}, "first_seen": 100},
        {"job": {"id": "a-2", "title": "Dev"}, "first_seen": 200},
    ])
    assert SeenStore(store_path).load() == {"a-1": 100, "a-2": 200}


@freeze_time("2024-06-01 12:00:00")
def test_legacy_bare_list_maps_ids_to_now(store_path):
    _write(store_path, [{"id": "a-1", "title": "Dev"}, {"id": "a-2", "title": "Dev"}])
    assert SeenStore(store_path).load() == {"a-1": T0, "a-2": T0}


def test_merge_adds_new_ids_and_keeps_old_records(seen_store, store_path):
    with freeze_time("2024-06-01 12:00:00"):
        seen = seen_store.merge([make_posting(id="a-1"), make_posting(id="a-2")], {})
    assert seen == {"a-1": T0, "a-2": T0}

    # a-1 disappears from the next fetch and a-2 reappears
    with freeze_time("2024-06-01 13:00:00"):
        seen = seen_store.merge([make_posting(id="a-2"), make_posting(id="a-3")], seen_store.load())

    assert seen == {"a-1": T0, "a-2": T0, "a-3": T1}
    assert SeenStore(store_path).load() == seen


def test_merge_preserves_payloads_from_disk(seen_store, store_path):
    with freeze_time("2024-06-01 12:00:00"):
        seen_store.merge([make_posting(id="a-1", title="Backend Dev @ Acme")], {})

    fresh = SeenStore(store_path)
    fresh.merge([make_posting(id="a-2")], fresh.load())

    records = json.loads(store_path.read_text(encoding="utf-8"))
    by_id = {r["posting"]["id"]: r for r in records}
    assert by_id["a-1"]["posting"]["title"] == "Backend Dev @ Acme"
    assert by_id["a-1"]["first_seen"] == T0


def test_merge_upgrades_legacy_file_to_timestamped(store_path):
    _write(store_path, [{"id": "a-1", "title": "Dev", "link": "https://x.io/1"}])
    store = SeenStore(store_path)
    with freeze_time("2024-06-01 12:00:00"):
        store.merge([], store.load())

    records = json.loads(store_path.read_text(encoding="utf-8"))
    assert records == [
        {"posting": {"id": "a-1", "title": "Dev", "link": "https://x.io/1"}, "first_seen": T0}
    ]


def test_new_since_collapses_duplicate_ids_last_wins():
    first = make_posting(id="a-1", title="Old")
    dup = make_posting(id="a-1", title="New")
    old = make_posting(id="a-0")

    fresh = SeenStore.new_since([first, old, dup], {"a-0": 1})

    assert [(p.id, p.title) for p in fresh] == [("a-1", "New")]


def test_write_leaves_no_temp_files(seen_store, store_path):
    seen_store.merge([make_posting(id="a-1")], {})
    seen_store.merge([make_posting(id="a-2")], seen_store.load())
    assert [p.name for p in store_path.parent.iterdir()] == ["jobs.json"]


def test_failed_write_keeps_previous_version(seen_store, store_path, monkeypatch):
    seen_store.merge([make_posting(id="a-1")], {})
    before = store_path.read_text(encoding="utf-8")

    def boom(*_a, **_kw):
        raise OSError("disk full")

    monkeypatch.setattr("jobsniper.store.os.replace", boom)
    with pytest.raises(OSError, match="disk full"):
        seen_store.merge([make_posting(id="a-2")], seen_store.load())

    assert store_path.read_text(encoding="utf-8") == before
    assert [p.name for p in store_path.parent.iterdir()] == ["jobs.json"]
