import json

import pytest

from dom_xray.explorer.serializer import export_payload, to_json
from dom_xray.storage.local_store import LocalStorage


def test_local_storage_round_trip(tmp_path):
    storage = LocalStorage(tmp_path)

    storage.save_bytes("example.com/main/run1/dom.json", b"[]")

    assert storage.exists("example.com/main/run1/dom.json")
    assert storage.get_bytes("example.com/main/run1/dom.json") == b"[]"
    assert (tmp_path / "example.com" / "main" / "run1" / "dom.json").exists()


def test_local_storage_missing_key(tmp_path):
    storage = LocalStorage(tmp_path)

    assert not storage.exists("nope.json")
    with pytest.raises(KeyError):
        storage.get_bytes("nope.json")


def test_local_storage_rejects_escaping_keys(tmp_path):
    storage = LocalStorage(tmp_path / "root")

    with pytest.raises(ValueError):
        storage.save_bytes("../outside.json", b"{}")


def test_export_payload_writes_indented_json(tmp_path):
    storage = LocalStorage(tmp_path)
    payload = [{"kind": "button", "label": None, "visibleText": "Café", "required": False, "attributes": {}}]

    key = export_payload(payload, "dom.json", storage, prefix="shop/main/20240101T000000Z")

    assert key == "shop/main/20240101T000000Z/dom.json"
    raw = storage.get_bytes(key).decode("utf-8")
    assert json.loads(raw) == payload
    assert raw == to_json(payload)
    assert "Café" in raw
    assert "\n  " in raw
