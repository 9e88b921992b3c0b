"""Quote persistence: CRUD, archiving, sharing, and version history."""

import logging
import uuid
from typing import Any, Dict, List, Optional

from analysis.inputs import migrate_inputs
from config import config
from crm.errors import NotFoundError, ValidationError
from crm.profiles import default_inputs
from storage.record_store import RecordStore, utc_now

logger = logging.getLogger(__name__)

QUOTE_STATUSES = ("working_draft", "draft", "presented", "negotiating", "sold")

CLIENT_FIELDS = (
    "client_id", "client_name", "client_email", "client_country",
    "project_name", "developer", "unit", "unit_type", "unit_size_sqf", "unit_size_m2",
)

# Never shown on public (token) views
PRIVATE_FIELDS = ("broker_id", "client_email")

# Columns copied between a quote and its saved versions
VERSIONED_FIELDS = ("inputs", "title") + CLIENT_FIELDS[1:]


def new_token(length: int) -> str:
    return uuid.uuid4().hex[:length]


def default_title(data: Dict[str, Any]) -> str:
    if data.get("client_name"):
        return f"{data.get('project_name') or data.get('developer') or 'Quote'} - {data['client_name']}"
    return "Untitled Quote"


def _quote_values(data: Dict[str, Any]) -> Dict[str, Any]:
    values = {k: data.get(k) for k in CLIENT_FIELDS if k in data}
    if "inputs" in data:
        values["inputs"] = migrate_inputs(data.get("inputs")).to_dict()
    if "title" in data:
        values["title"] = data.get("title")
    if "status" in data:
        if data["status"] not in QUOTE_STATUSES:
            raise ValidationError([f"Unknown status: {data['status']}"])
        values["status"] = data["status"]
    return values


def create_quote(store: RecordStore, broker_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    values = _quote_values(data)
    if "inputs" not in values:
        values["inputs"] = default_inputs(store.get("profiles", broker_id) or {}).to_dict()
    values["title"] = values.get("title") or default_title(data)
    row = store.insert("quotes", {
        "broker_id": broker_id,
        "status": "draft",
        "share_token": None,
        "is_archived": False,
        "archived_at": None,
        "view_count": 0,
        "first_viewed_at": None,
        "last_viewed_at": None,
        **values,
    })
    logger.info("Created quote %s for broker %s", row["id"], broker_id)
    return row


def get_quote(store: RecordStore, broker_id: str, quote_id: str) -> Dict[str, Any]:
    row = store.get("quotes", quote_id)
    if row is None or row.get("broker_id") != broker_id:
        raise NotFoundError(f"Quote not found: {quote_id}")
    return row


def update_quote(store: RecordStore, broker_id: str, quote_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    get_quote(store, broker_id, quote_id)
    return store.update("quotes", quote_id, _quote_values(data))


def list_quotes(
    store: RecordStore,
    broker_id: str,
    client_id: Optional[str] = None,
    archived: bool = False,
) -> List[Dict[str, Any]]:
    where = {"broker_id": broker_id}
    if client_id:
        where["client_id"] = client_id
    return store.select(
        "quotes",
        where=where,
        predicate=lambda r: bool(r.get("is_archived")) == archived,
        order_by="archived_at" if archived else "updated_at",
        descending=True,
    )


def delete_quote(store: RecordStore, broker_id: str, quote_id: str) -> None:
    get_quote(store, broker_id, quote_id)
    for version in store.select("quote_versions", where={"quote_id": quote_id}):
        store.delete("quote_versions", version["id"])
    store.delete("quotes", quote_id)
    logger.info("Deleted quote %s", quote_id)


def set_archived(store: RecordStore, broker_id: str, quote_id: str, archived: bool) -> Dict[str, Any]:
    get_quote(store, broker_id, quote_id)
    return store.update("quotes", quote_id, {
        "is_archived": archived,
        "archived_at": utc_now() if archived else None,
    })


def set_status(store: RecordStore, broker_id: str, quote_id: str, status: str) -> Dict[str, Any]:
    if status not in QUOTE_STATUSES:
        raise ValidationError([f"Unknown status: {status}"])
    get_quote(store, broker_id, quote_id)
    return store.update("quotes", quote_id, {"status": status})


def duplicate_quote(store: RecordStore, broker_id: str, quote_id: str) -> Dict[str, Any]:
    original = get_quote(store, broker_id, quote_id)
    data = {k: original.get(k) for k in VERSIONED_FIELDS + ("client_id",)}
    data["title"] = f"{original.get('title') or 'Quote'} (Copy)"
    return create_quote(store, broker_id, data)


def share_quote(store: RecordStore, broker_id: str, quote_id: str) -> Dict[str, Any]:
    """Give the quote a public share token. Sharing an already shared quote keeps its token."""
    row = get_quote(store, broker_id, quote_id)
    if row.get("share_token"):
        return row
    changes = {"share_token": new_token(config.QUOTE_TOKEN_LENGTH)}
    if row.get("status") in (None, "draft", "working_draft"):
        changes["status"] = "presented"
    logger.info("Shared quote %s", quote_id)
    return store.update("quotes", quote_id, changes)


def share_url(token: str, kind: str = "view") -> str:
    return f"{config.PUBLIC_BASE_URL.rstrip('/')}/{kind}/{token}"


def public_quote(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in PRIVATE_FIELDS}


def get_shared_quote(store: RecordStore, token: str) -> Dict[str, Any]:
    row = store.find_one("quotes", share_token=token) if token else None
    if row is None:
        raise NotFoundError("Quote not found")
    return row


# ------------------------------------------------------------------
# Versions
# ------------------------------------------------------------------

def save_version(store: RecordStore, broker_id: str, quote_id: str) -> Dict[str, Any]:
    """Snapshot the quote as its next version."""
    quote = get_quote(store, broker_id, quote_id)
    existing = store.select("quote_versions", where={"quote_id": quote_id})
    number = max((v.get("version_number") or 0 for v in existing), default=0) + 1
    values = {k: quote.get(k) for k in VERSIONED_FIELDS}
    row = store.insert("quote_versions", {"quote_id": quote_id, "version_number": number, **values})
    logger.info("Saved version %d of quote %s", number, quote_id)
    return row


def list_versions(store: RecordStore, broker_id: str, quote_id: str) -> List[Dict[str, Any]]:
    get_quote(store, broker_id, quote_id)
    return store.select("quote_versions", where={"quote_id": quote_id},
                        order_by="version_number", descending=True)


def restore_version(store: RecordStore, broker_id: str, version_id: str) -> Dict[str, Any]:
    version = store.get("quote_versions", version_id)
    if version is None:
        raise NotFoundError(f"Version not found: {version_id}")
    get_quote(store, broker_id, version["quote_id"])
    values = {k: version.get(k) for k in VERSIONED_FIELDS}
    values["inputs"] = migrate_inputs(values.get("inputs")).to_dict()
    logger.info("Restored quote %s to version %s", version["quote_id"], version.get("version_number"))
    return store.update("quotes", version["quote_id"], values)
