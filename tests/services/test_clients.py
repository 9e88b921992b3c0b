import pytest

from crm import clients, quotes
from crm.errors import NotFoundError, ValidationError


def test_create_client_validates(store, broker_id):
    with pytest.raises(ValidationError) as excinfo:
        clients.create_client(store, broker_id, {"name": " ", "email": "bad"})

    assert excinfo.value.issues == ["Client name is required", "Please enter a valid email address"]


def test_client_crud(store, broker_id):
    client = clients.create_client(store, broker_id, {"name": "  Ana  ", "email": "ana@example.com"})
    assert client["name"] == "Ana"
    assert client["portal_enabled"] is False

    updated = clients.update_client(store, broker_id, client["id"], {"country": "UAE"})
    assert updated["country"] == "UAE"
    assert updated["name"] == "Ana"

    clients.create_client(store, broker_id, {"name": "Ben"})
    assert [c["name"] for c in clients.list_clients(store, broker_id)] == ["Ana", "Ben"]

    with pytest.raises(NotFoundError):
        clients.get_client(store, "other-broker", client["id"])


def test_delete_client_unlinks_quotes(store, broker_id):
    client = clients.create_client(store, broker_id, {"name": "Ana"})
    quote = quotes.create_quote(store, broker_id, {"client_id": client["id"]})

    clients.delete_client(store, broker_id, client["id"])

    assert store.get("quotes", quote["id"])["client_id"] is None
    assert store.get("clients", client["id"]) is None


def test_portal_enable_disable(store, broker_id):
    client = clients.create_client(store, broker_id, {"name": "Ana"})

    enabled = clients.enable_portal(store, broker_id, client["id"])
    token = enabled["portal_token"]
    assert len(token) == 16
    assert clients.get_client_by_portal_token(store, token)["id"] == client["id"]

    clients.disable_portal(store, broker_id, client["id"])
    with pytest.raises(NotFoundError):
        clients.get_client_by_portal_token(store, token)

    # re-enabling keeps the same link
    assert clients.enable_portal(store, broker_id, client["id"])["portal_token"] == token


def test_portal_view(store, broker_id):
    store.insert("profiles", {"id": broker_id, "full_name": "Sam Broker", "commission_rate": 2})
    client = clients.create_client(store, broker_id, {"name": "Ana", "email": "ana@example.com"})
    store.insert("properties", {
        "broker_id": broker_id, "client_id": client["id"], "project_name": "Marina Gate",
        "purchase_price": 1_000_000, "purchase_date": "2023-01-10",
    })
    visible = quotes.create_quote(store, broker_id, {"client_id": client["id"], "project_name": "Creek"})
    hidden = quotes.create_quote(store, broker_id, {"client_id": client["id"]})
    quotes.set_archived(store, broker_id, hidden["id"], True)
    store.insert("presentations", {"broker_id": broker_id, "client_id": client["id"],
                                   "title": "Shortlist", "is_public": True, "items": []})
    store.insert("presentations", {"broker_id": broker_id, "client_id": client["id"],
                                   "title": "Draft", "is_public": False, "items": []})
    token = clients.enable_portal(store, broker_id, client["id"])["portal_token"]

    view = clients.portal_view(store, token)

    assert view["client"] == {"id": client["id"], "name": "Ana", "country": None}
    assert "email" not in view["client"]
    assert view["advisor"]["full_name"] == "Sam Broker"
    assert "commission_rate" not in view["advisor"]
    assert view["metrics"]["total_properties"] == 1
    assert view["projections"]["projections"]
    assert [q["id"] for q in view["quotes"]] == [visible["id"]]
    assert [p["title"] for p in view["presentations"]] == ["Shortlist"]
