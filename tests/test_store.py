from formpilot.store import JsonFileStore, MemoryStore


def test_memory_store_round_trip_and_isolation():
    store = MemoryStore({"a": 1})
    job = {"title": "Analyst"}
    store.set("job", job)
    job["title"] = "changed"

    assert store.get("a") == 1
    assert store.get("job") == {"title": "Analyst"}
    assert store.get("missing", "default") == "default"

    store.delete("job")
    store.delete("never-there")
    assert store.get("job") is None


def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "data" / "store.json"
    first = JsonFileStore(path)
    assert first.get("k") is None

    first.set("k", {"cv": True})
    first.set("other", [1, 2])
    second = JsonFileStore(path)

    assert second.get("k") == {"cv": True}
    assert second.get("other") == [1, 2]

    second.delete("k")
    assert first.get("k") is None
    assert first.get("other") == [1, 2]


def test_json_file_store_ignores_a_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileStore(path)

    assert store.get("k", "fallback") == "fallback"
    store.set("k", "v")
    assert store.get("k") == "v"
