import json
import threading

import pytest

from instaclone.stores.document_store import JsonCollection
from instaclone.utils.exceptions import StorageError


def test_insert_assigns_id_and_persists(data_dir):
    things = JsonCollection("things")
    doc = things.insert_one({"name": "a"})
    assert doc["id"]
    raw = json.loads((data_dir / "things.json").read_text(encoding="utf-8"))
    assert raw["documents"] == [doc]


def test_find_sort_and_limit():
    things = JsonCollection("things")
    for n in (3, 1, 2):
        things.insert_one({"n": n})
    found = things.find(lambda d: d["n"] > 1, sort_key=lambda d: d["n"], reverse=True)
    assert [d["n"] for d in found] == [3, 2]
    assert len(things.find(limit=1)) == 1
    assert things.count() == 3


def test_update_one_and_upsert():
    things = JsonCollection("things")
    assert things.update_one(lambda d: d.get("k") == "x", {"v": 1}) is None
    created = things.update_one(lambda d: d.get("k") == "x", {"v": 1}, upsert=True, defaults={"k": "x"})
    assert created["k"] == "x" and created["v"] == 1
    updated = things.update_one(lambda d: d.get("k") == "x", {"v": 2}, upsert=True, defaults={"k": "x"})
    assert updated["id"] == created["id"]
    assert updated["v"] == 2
    assert things.count() == 1


def test_delete_one_and_many():
    things = JsonCollection("things")
    for n in range(4):
        things.insert_one({"n": n})
    assert things.delete_one(lambda d: d["n"] == 0)
    assert not things.delete_one(lambda d: d["n"] == 0)
    assert things.delete_many(lambda d: d["n"] >= 2) == 2
    assert [d["n"] for d in things.find()] == [1]


def test_distinct_skips_missing_values():
    things = JsonCollection("things")
    for school in ("B", "A", "B", None):
        things.insert_one({"school": school})
    assert things.distinct("school") == ["B", "A"]


def test_missing_file_is_empty():
    assert JsonCollection("empty").find() == []


def test_corrupt_file_raises_storage_error(data_dir):
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        JsonCollection("broken").find()


def test_concurrent_inserts_are_not_lost():
    things = JsonCollection("things")

    def worker(i):
        for j in range(10):
            things.insert_one({"worker": i, "j": j})

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert things.count() == 50
