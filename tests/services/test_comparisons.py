import pytest

from crm import comparisons, quotes
from crm.errors import NotFoundError, ValidationError


@pytest.fixture
def quote_ids(store, broker_id):
    return [quotes.create_quote(store, broker_id, {"project_name": name, "client_email": "ana@example.com"})["id"]
            for name in ("Creek", "Marina", "Hills")]


def _comparison(store, broker_id, quote_ids, /, **data):
    payload = {"title": "Waterfront options", "quote_ids": quote_ids[:2]}
    payload.update(data)
    return comparisons.create_comparison(store, broker_id, payload)


def test_create_comparison(store, broker_id, quote_ids):
    row = _comparison(store, broker_id, quote_ids, investment_focus="yield")

    assert row["quote_ids"] == quote_ids[:2]
    assert row["show_recommendations"] is True
    assert row["is_public"] is False
    assert row["share_token"] is None
    assert comparisons.get_comparison(store, broker_id, row["id"]) == row


def test_comparison_needs_two_distinct_quotes(store, broker_id, quote_ids):
    with pytest.raises(ValidationError):
        _comparison(store, broker_id, quote_ids, quote_ids=[quote_ids[0]])
    with pytest.raises(ValidationError):
        _comparison(store, broker_id, quote_ids, quote_ids=[quote_ids[0], quote_ids[0]])
    with pytest.raises(ValidationError):
        _comparison(store, broker_id, quote_ids, quote_ids=quote_ids[0])


def test_comparison_rejects_other_brokers_quotes(store, broker_id, quote_ids):
    theirs = quotes.create_quote(store, "broker-2", {"project_name": "Elsewhere"})

    with pytest.raises(ValidationError) as excinfo:
        _comparison(store, broker_id, quote_ids, quote_ids=[quote_ids[0], theirs["id"]])

    assert excinfo.value.issues == [f"Unknown quote: {theirs['id']}"]


def test_title_is_required(store, broker_id, quote_ids):
    with pytest.raises(ValidationError):
        _comparison(store, broker_id, quote_ids, title=" ")
    with pytest.raises(ValidationError):
        _comparison(store, broker_id, quote_ids, title=7)


def test_update_and_list(store, broker_id, quote_ids):
    older = _comparison(store, broker_id, quote_ids)
    newer = _comparison(store, broker_id, quote_ids, title="Second")

    updated = comparisons.update_comparison(store, broker_id, older["id"], {
        "title": "Renamed", "quote_ids": quote_ids, "show_recommendations": False,
    })

    assert updated["title"] == "Renamed"
    assert updated["quote_ids"] == quote_ids
    assert updated["show_recommendations"] is False
    assert [c["id"] for c in comparisons.list_comparisons(store, broker_id)] == [older["id"], newer["id"]]
    assert comparisons.list_comparisons(store, "broker-2") == []


def test_comparisons_are_scoped_to_their_broker(store, broker_id, quote_ids):
    row = _comparison(store, broker_id, quote_ids)

    with pytest.raises(NotFoundError):
        comparisons.get_comparison(store, "broker-2", row["id"])
    with pytest.raises(NotFoundError):
        comparisons.delete_comparison(store, "broker-2", row["id"])

    comparisons.delete_comparison(store, broker_id, row["id"])
    with pytest.raises(NotFoundError):
        comparisons.get_comparison(store, broker_id, row["id"])


def test_shared_comparison(store, broker_id, quote_ids):
    store.insert("profiles", {"id": broker_id, "full_name": "Sam Broker", "commission_rate": 2})
    row = _comparison(store, broker_id, quote_ids)

    token = comparisons.share_comparison(store, broker_id, row["id"])["share_token"]
    assert comparisons.share_comparison(store, broker_id, row["id"])["share_token"] == token

    shared = comparisons.get_shared_comparison(store, token)

    assert len(token) == 16
    assert shared["comparison"]["title"] == "Waterfront options"
    assert "broker_id" not in shared["comparison"]
    assert list(shared["quotes"]) == quote_ids[:2]
    assert all("client_email" not in q and "broker_id" not in q for q in shared["quotes"].values())
    assert shared["advisor"]["full_name"] == "Sam Broker"
    assert "commission_rate" not in shared["advisor"]

    comparisons.unshare_comparison(store, broker_id, row["id"])
    with pytest.raises(NotFoundError):
        comparisons.get_shared_comparison(store, token)
