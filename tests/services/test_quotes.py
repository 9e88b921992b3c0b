import pytest

from crm import quotes
from crm.errors import NotFoundError, ValidationError


def _create(store, broker_id, **data):
    payload = {"client_name": "Ana", "project_name": "Creek Vista", "inputs": {"base_price": 1_000_000}}
    payload.update(data)
    return quotes.create_quote(store, broker_id, payload)


def test_create_quote_migrates_inputs(store, broker_id):
    quote = _create(store, broker_id)

    assert quote["status"] == "draft"
    assert quote["view_count"] == 0
    assert quote["title"] == "Creek Vista - Ana"
    assert quote["inputs"]["base_price"] == 1_000_000
    assert quote["inputs"]["schema_version"] == 2


def test_quotes_are_scoped_to_their_broker(store, broker_id):
    quote = _create(store, broker_id)

    with pytest.raises(NotFoundError):
        quotes.get_quote(store, "someone-else", quote["id"])
    assert quotes.list_quotes(store, "someone-else") == []


def test_archive_moves_quote_between_lists(store, broker_id):
    quote = _create(store, broker_id)
    _create(store, broker_id, client_name="Ben")

    quotes.set_archived(store, broker_id, quote["id"], True)

    active = quotes.list_quotes(store, broker_id)
    archived = quotes.list_quotes(store, broker_id, archived=True)
    assert [q["client_name"] for q in active] == ["Ben"]
    assert [q["id"] for q in archived] == [quote["id"]]
    assert archived[0]["archived_at"]

    restored = quotes.set_archived(store, broker_id, quote["id"], False)
    assert restored["archived_at"] is None


def test_list_by_client(store, broker_id):
    _create(store, broker_id, client_id="c1")
    _create(store, broker_id, client_id="c2")

    assert len(quotes.list_quotes(store, broker_id, client_id="c1")) == 1


def test_share_is_idempotent_and_presents_drafts(store, broker_id):
    quote = _create(store, broker_id)

    shared = quotes.share_quote(store, broker_id, quote["id"])
    again = quotes.share_quote(store, broker_id, quote["id"])

    assert len(shared["share_token"]) == 12
    assert again["share_token"] == shared["share_token"]
    assert shared["status"] == "presented"
    assert quotes.get_shared_quote(store, shared["share_token"])["id"] == quote["id"]
    assert quotes.share_url("abc").endswith("/view/abc")


def test_share_keeps_later_pipeline_status(store, broker_id):
    quote = _create(store, broker_id)
    quotes.set_status(store, broker_id, quote["id"], "negotiating")

    shared = quotes.share_quote(store, broker_id, quote["id"])

    assert shared["status"] == "negotiating"


def test_unknown_share_token(store):
    with pytest.raises(NotFoundError):
        quotes.get_shared_quote(store, "missing")
    with pytest.raises(NotFoundError):
        quotes.get_shared_quote(store, "")


def test_invalid_status(store, broker_id):
    quote = _create(store, broker_id)

    with pytest.raises(ValidationError):
        quotes.set_status(store, broker_id, quote["id"], "lost")


def test_duplicate(store, broker_id):
    quote = _create(store, broker_id, client_id="c1")

    copy = quotes.duplicate_quote(store, broker_id, quote["id"])

    assert copy["id"] != quote["id"]
    assert copy["title"] == "Creek Vista - Ana (Copy)"
    assert copy["client_id"] == "c1"
    assert copy["share_token"] is None
    assert copy["inputs"] == quote["inputs"]


def test_versions_save_list_restore(store, broker_id):
    quote = _create(store, broker_id)
    first = quotes.save_version(store, broker_id, quote["id"])
    quotes.update_quote(store, broker_id, quote["id"], {"inputs": {"base_price": 1_500_000}})
    second = quotes.save_version(store, broker_id, quote["id"])

    versions = quotes.list_versions(store, broker_id, quote["id"])
    assert [v["version_number"] for v in versions] == [2, 1]
    assert second["inputs"]["base_price"] == 1_500_000

    restored = quotes.restore_version(store, broker_id, first["id"])
    assert restored["inputs"]["base_price"] == 1_000_000


def test_restore_unknown_version(store, broker_id):
    with pytest.raises(NotFoundError):
        quotes.restore_version(store, broker_id, "missing")


def test_delete_removes_versions(store, broker_id):
    quote = _create(store, broker_id)
    quotes.save_version(store, broker_id, quote["id"])

    quotes.delete_quote(store, broker_id, quote["id"])

    assert store.select("quote_versions") == []
    with pytest.raises(NotFoundError):
        quotes.get_quote(store, broker_id, quote["id"])


def test_new_quote_without_inputs_uses_profile_defaults(store, broker_id):
    store.insert("profiles", {"id": broker_id, "default_construction_appreciation": 15})

    quote = quotes.create_quote(store, broker_id, {"project_name": "Creek Vista"})
    explicit = _create(store, broker_id)

    assert quote["inputs"]["construction_appreciation"] == 15.0
    assert explicit["inputs"]["construction_appreciation"] != 15.0
