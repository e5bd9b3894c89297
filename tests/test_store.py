import json

import pytest

from lead_engine.store import InMemoryStore, JsonFileStore, NamedValueStore, create_store


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return JsonFileStore(str(tmp_path / "store"))


def test_missing_key_returns_default(any_store):
    assert any_store.get("leads") is None
    assert any_store.get("leads", []) == []


def test_set_get_delete(any_store):
    any_store.set("duplicate-groups", [{"id": "group-1", "lead_ids": ["a", "b"]}])

    assert any_store.get("duplicate-groups") == [{"id": "group-1", "lead_ids": ["a", "b"]}]
    assert any_store.keys() == ["duplicate-groups"]

    any_store.delete("duplicate-groups")
    assert any_store.get("duplicate-groups") is None
    any_store.delete("duplicate-groups")


def test_values_are_copied(any_store):
    value = {"leads": [1, 2]}
    any_store.set("leads", value)
    value["leads"].append(3)

    loaded = any_store.get("leads")
    loaded["leads"].append(4)

    assert any_store.get("leads") == {"leads": [1, 2]}


def test_json_store_persists_across_instances(tmp_path):
    directory = str(tmp_path / "store")
    JsonFileStore(directory).set("duplicate-detection-settings", {"overall_threshold": 80})

    reopened = JsonFileStore(directory)
    assert reopened.get("duplicate-detection-settings") == {"overall_threshold": 80}

    with open(tmp_path / "store" / "duplicate-detection-settings.json", encoding="utf-8") as f:
        assert json.load(f) == {"overall_threshold": 80}


def test_json_store_leaves_no_temp_files(tmp_path):
    store = JsonFileStore(str(tmp_path))
    store.set("leads", [])
    store.set("leads", [{"id": "a"}])

    assert sorted(p.name for p in tmp_path.iterdir()) == ["leads.json"]


@pytest.mark.parametrize("key", ["../escape", "a/b", "", "with space"])
def test_json_store_rejects_unsafe_keys(tmp_path, key):
    store = JsonFileStore(str(tmp_path))
    with pytest.raises(ValueError):
        store.set(key, 1)


def test_create_store(tmp_path):
    assert isinstance(create_store(None), InMemoryStore)
    assert isinstance(create_store(""), InMemoryStore)
    assert isinstance(create_store(str(tmp_path)), JsonFileStore)


def test_store_interface_is_abstract():
    with pytest.raises(TypeError):
        NamedValueStore()
