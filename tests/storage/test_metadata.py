"""Tests for metadata stores."""

import json

import pytest

from assetbridge.storage.metadata import InMemoryMetadataStore, JsonFileMetadataStore


class TestInMemoryMetadataStore:
    def test_put_get_delete(self):
        store = InMemoryMetadataStore()
        store.put("img/a.png", {"id": "abc", "deletehash": "dh"})

        assert store.get("img/a.png") == {"id": "abc", "deletehash": "dh"}
        assert len(store) == 1

        store.delete("img/a.png")
        assert store.get("img/a.png") is None
        assert len(store) == 0

    def test_delete_missing_is_ignored(self):
        InMemoryMetadataStore().delete("nothing")

    def test_records_are_copied(self):
        store = InMemoryMetadataStore()
        record = {"id": "abc"}
        store.put("img/a.png", record)
        record["id"] = "changed"

        fetched = store.get("img/a.png")
        fetched["id"] = "mutated"

        assert store.get("img/a.png") == {"id": "abc"}


class TestJsonFileMetadataStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "imgur.json"
        JsonFileMetadataStore(path).put("img/a.png", {"id": "abc", "deletehash": "dh"})

        assert JsonFileMetadataStore(path).get("img/a.png") == {"id": "abc", "deletehash": "dh"}
        assert json.loads(path.read_text()) == {"img/a.png": {"deletehash": "dh", "id": "abc"}}

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileMetadataStore(tmp_path / "none.json").get("img/a.png") is None

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "imgur.json"
        JsonFileMetadataStore(path).put("a", {"id": "1"})
        assert path.exists()

    def test_delete_keeps_other_keys(self, tmp_path):
        store = JsonFileMetadataStore(tmp_path / "imgur.json")
        store.put("a", {"id": "1"})
        store.put("b", {"id": "2"})

        store.delete("a")
        store.delete("missing")

        assert store.get("a") is None
        assert store.get("b") == {"id": "2"}

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileMetadataStore(tmp_path / "imgur.json")
        store.put("a", {"id": "1"})
        store.put("a", {"id": "2"})

        assert [p.name for p in tmp_path.iterdir()] == ["imgur.json"]

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "imgur.json"
        path.write_text("{not json")

        with pytest.raises(ValueError, match="Corrupt metadata file"):
            JsonFileMetadataStore(path).get("a")

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "imgur.json"
        path.write_text("[1, 2]")

        with pytest.raises(ValueError, match="does not hold a JSON object"):
            JsonFileMetadataStore(path).get("a")
