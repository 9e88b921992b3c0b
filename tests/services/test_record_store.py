from datetime import datetime, timezone

import pytest

from storage.record_store import InvalidRecordId, is_valid_id, utc_now


def test_insert_assigns_id_and_timestamps(store):
    row = store.insert("clients", {"name": "Ana"})

    assert row["id"]
    assert row["created_at"].endswith("Z")
    assert store.get("clients", row["id"]) == row


def test_update_keeps_identity(store):
    row = store.insert("clients", {"id": "c1", "name": "Ana"})

    updated = store.update("clients", "c1", {"name": "Ana Maria", "id": "other", "created_at": "x"})

    assert updated["id"] == "c1"
    assert updated["created_at"] == row["created_at"]
    assert store.get("clients", "c1")["name"] == "Ana Maria"
    assert store.update("clients", "missing", {"name": "x"}) is None


def test_delete(store):
    store.insert("clients", {"id": "c1"})

    assert store.delete("clients", "c1") is True
    assert store.delete("clients", "c1") is False
    assert store.get("clients", "c1") is None


def test_select_filters_and_orders(store):
    store.insert("properties", {"broker_id": "b1", "purchase_price": 3})
    store.insert("properties", {"broker_id": "b1", "purchase_price": 1})
    store.insert("properties", {"broker_id": "b1", "purchase_price": None})
    store.insert("properties", {"broker_id": "b2", "purchase_price": 2})

    rows = store.select("properties", where={"broker_id": "b1"}, order_by="purchase_price")

    assert [r["purchase_price"] for r in rows] == [1, 3, None]
    assert len(store.select("properties", predicate=lambda r: (r["purchase_price"] or 0) > 1)) == 2
    assert len(store.select("properties", limit=1)) == 1
    assert store.find_one("properties", broker_id="b2")["purchase_price"] == 2


def test_rejects_unknown_tables_and_path_like_ids(store):
    with pytest.raises(KeyError):
        store.insert("nope", {})
    with pytest.raises(InvalidRecordId):
        store.insert("clients", {"id": "../escape"})
    with pytest.raises(InvalidRecordId):
        store.insert("profiles", {"id": "acme\\jane"})
    assert store.get("clients", ".hidden") is None
    assert store.delete("clients", "a/b") is False


@pytest.mark.parametrize("record_id, valid", [
    ("broker-1", True),
    ("acme/jane", False),
    ("acme\\jane", False),
    (".env", False),
    ("", False),
    (None, False),
    (42, False),
])
def test_is_valid_id(record_id, valid):
    assert is_valid_id(record_id) is valid


def test_utc_now_is_timezone_aware_utc():
    stamp = utc_now()

    assert stamp.endswith("Z")
    assert "+00:00" not in stamp
    assert datetime.fromisoformat(stamp.replace("Z", "+00:00")).tzinfo == timezone.utc
