"""Clients and their token-gated read-only portal."""

import logging
from typing import Any, Dict, List

from analysis.portfolio import portfolio_metrics, portfolio_projections
from config import config
from crm.errors import NotFoundError, ValidationError
from crm.profiles import advisor_card
from crm.quotes import new_token
from crm.validation import validate_client
from storage.record_store import RecordStore

logger = logging.getLogger(__name__)

CLIENT_FIELDS = ("name", "email", "phone", "country", "notes")


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for key in CLIENT_FIELDS:
        if key in data:
            value = data[key]
            values[key] = value.strip() or None if isinstance(value, str) else value
    return values


def create_client(store: RecordStore, broker_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    issues = validate_client(data)
    if issues:
        raise ValidationError(issues)
    row = store.insert("clients", {
        "broker_id": broker_id,
        "portal_token": None,
        "portal_enabled": False,
        **_clean(data),
    })
    logger.info("Created client %s", row["id"])
    return row


def get_client(store: RecordStore, broker_id: str, client_id: str) -> Dict[str, Any]:
    row = store.get("clients", client_id)
    if row is None or row.get("broker_id") != broker_id:
        raise NotFoundError(f"Client not found: {client_id}")
    return row


def update_client(store: RecordStore, broker_id: str, client_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    issues = validate_client(data, partial=True)
    if issues:
        raise ValidationError(issues)
    get_client(store, broker_id, client_id)
    return store.update("clients", client_id, _clean(data))


def delete_client(store: RecordStore, broker_id: str, client_id: str) -> None:
    """Delete a client. Their quotes stay but lose the link."""
    get_client(store, broker_id, client_id)
    for quote in store.select("quotes", where={"client_id": client_id}):
        store.update("quotes", quote["id"], {"client_id": None})
    store.delete("clients", client_id)
    logger.info("Deleted client %s", client_id)


def list_clients(store: RecordStore, broker_id: str) -> List[Dict[str, Any]]:
    return store.select("clients", where={"broker_id": broker_id}, order_by="name")


def enable_portal(store: RecordStore, broker_id: str, client_id: str) -> Dict[str, Any]:
    client = get_client(store, broker_id, client_id)
    token = client.get("portal_token") or new_token(config.PORTAL_TOKEN_LENGTH)
    logger.info("Enabled portal for client %s", client_id)
    return store.update("clients", client_id, {"portal_token": token, "portal_enabled": True})


def disable_portal(store: RecordStore, broker_id: str, client_id: str) -> Dict[str, Any]:
    get_client(store, broker_id, client_id)
    return store.update("clients", client_id, {"portal_enabled": False})


def get_client_by_portal_token(store: RecordStore, token: str) -> Dict[str, Any]:
    client = store.find_one("clients", portal_token=token, portal_enabled=True) if token else None
    if client is None:
        raise NotFoundError("This portal may have been disabled or the link is invalid")
    return client


def portal_view(store: RecordStore, token: str) -> Dict[str, Any]:
    """Everything a client sees on their portal page."""
    client = get_client_by_portal_token(store, token)

    properties = store.select("properties", where={"client_id": client["id"]},
                              order_by="purchase_date", descending=True)
    metrics = portfolio_metrics(properties)
    quotes = [
        {k: q.get(k) for k in ("id", "project_name", "developer", "unit", "unit_type",
                               "share_token", "inputs", "updated_at")}
        for q in store.select("quotes", where={"client_id": client["id"]},
                              predicate=lambda r: not r.get("is_archived"),
                              order_by="updated_at", descending=True)
    ]
    presentations = [
        {k: p.get(k) for k in ("id", "title", "description", "share_token", "items", "updated_at")}
        for p in store.select("presentations", where={"client_id": client["id"], "is_public": True},
                              order_by="updated_at", descending=True)
    ]
    return {
        "client": {k: client.get(k) for k in ("id", "name", "country")},
        "advisor": advisor_card(store, client["broker_id"]),
        "properties": properties,
        "metrics": metrics,
        "projections": portfolio_projections(properties, metrics),
        "quotes": quotes,
        "presentations": presentations,
    }
