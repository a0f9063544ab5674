"""Tests for the JSON document store."""

import json
from unittest.mock import patch

import pytest

from uwf_journal.core.errors import ErrorCodes, StorageError
from uwf_journal.persistence.store import JsonStore


class TestJsonStore:
    """Tests for JsonStore."""

    def test_read_missing_returns_default(self, store):
        assert store.read("trades") is None
        assert store.read("trades", []) == []

    def test_write_then_read(self, store):
        store.write("settings", {"riskPerTrade": 2, "note": "€ ok"})
        assert store.read("settings") == {"riskPerTrade": 2, "note": "€ ok"}
        assert store.exists("settings")

    def test_write_replaces_whole_document(self, store):
        store.write("trades", [1, 2, 3])
        store.write("trades", [4])
        assert store.read("trades") == [4]

    def test_no_temp_files_left(self, store):
        store.write("meta", {"nextTradeNumber": 3})
        leftovers = [p.name for p in store.data_dir.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_write_many_order(self, store):
        store.write_many({"a": 1, "b": 2}, order=("b", "a"))
        assert store.read("a") == 1
        assert store.read("b") == 2

    def test_write_many_rolls_back_on_failure(self, store):
        store.write("trades", [1])
        write = store.write

        def fail_on_settings(key, document):
            if key == "settings":
                raise StorageError(ErrorCodes.STORAGE_WRITE_ERROR)
            write(key, document)

        with patch.object(store, "write", side_effect=fail_on_settings):
            with pytest.raises(StorageError):
                store.write_many(
                    {"trades": [1, 2], "meta": {"nextTradeNumber": 3}, "settings": {}},
                    order=("trades", "meta", "settings"),
                )
        assert store.read("trades") == [1]
        assert not store.exists("meta")
        assert not store.exists("settings")

    def test_corrupt_document_quarantined(self, store):
        store.path_for("trades").write_text("{not json", encoding="utf-8")
        assert store.read("trades", []) == []
        assert not store.exists("trades")
        quarantined = [p for p in store.data_dir.iterdir() if ".corrupt-" in p.name]
        assert len(quarantined) == 1
        assert quarantined[0].read_text(encoding="utf-8") == "{not json"

    def test_unserializable_document(self, store):
        with pytest.raises(StorageError):
            store.write("trades", {"bad": object()})
        assert not store.exists("trades")

    def test_delete(self, store):
        store.write("watchlist", [])
        assert store.delete("watchlist")
        assert not store.delete("watchlist")

    @pytest.mark.parametrize("key", ["", "../etc", ".hidden"])
    def test_invalid_keys(self, store, key):
        with pytest.raises(ValueError):
            store.path_for(key)

    def test_creates_data_dir(self, tmp_path):
        store = JsonStore(tmp_path / "nested" / "dir")
        assert store.data_dir.is_dir()

    def test_documents_are_pretty_json(self, store):
        store.write("meta", {"nextTradeNumber": 1})
        text = store.path_for("meta").read_text(encoding="utf-8")
        assert json.loads(text) == {"nextTradeNumber": 1}
        assert "\n" in text
