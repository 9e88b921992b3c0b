"""Presentations: ordered bundles of quotes and comparisons shared through a public link."""

import logging
from typing import Any, Dict, List, Optional

from config import config
from crm.comparisons import public_comparison, resolve_quotes
from crm.errors import NotFoundError, ValidationError
from crm.profiles import advisor_card
from crm.quotes import new_token
from crm.validation import text
from storage.record_store import RecordStore

logger = logging.getLogger(__name__)

ITEM_TYPES = ("quote", "comparison", "inline_comparison")
VIEW_MODES = ("story", "vertical", "compact")


def normalize_items(items: Any) -> List[Dict[str, Any]]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError(["items must be a list"])
    issues = []
    normalized = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            issues.append(f"Item {i + 1} is not an object")
            continue
        kind = item.get("type")
        if kind not in ITEM_TYPES:
            issues.append(f"Item {i + 1} has unknown type: {kind}")
            continue
        entry = {"type": kind, "id": str(item.get("id") or "")}
        if kind == "inline_comparison":
            quote_ids = item.get("quote_ids") or []
            if len(quote_ids) < 2:
                issues.append(f"Item {i + 1} needs at least two quotes to compare")
            entry["quote_ids"] = [str(q) for q in quote_ids]
        elif not entry["id"]:
            issues.append(f"Item {i + 1} is missing its id")
        if item.get("view_mode") in VIEW_MODES:
            entry["view_mode"] = item["view_mode"]
        if item.get("title"):
            entry["title"] = item["title"]
        normalized.append(entry)
    if issues:
        raise ValidationError(issues)
    return normalized


def _title(value: Any) -> str:
    title = text(value)
    if not title:
        raise ValidationError(["Title is required"])
    return title


def create_presentation(store: RecordStore, broker_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    title = _title(data.get("title"))
    row = store.insert("presentations", {
        "broker_id": broker_id,
        "client_id": data.get("client_id"),
        "title": title,
        "description": data.get("description"),
        "items": normalize_items(data.get("items")),
        "share_token": None,
        "is_public": False,
        "view_count": 0,
        "first_viewed_at": None,
        "last_viewed_at": None,
    })
    logger.info("Created presentation %s", row["id"])
    return row


def get_presentation(store: RecordStore, broker_id: str, presentation_id: str) -> Dict[str, Any]:
    row = store.get("presentations", presentation_id)
    if row is None or row.get("broker_id") != broker_id:
        raise NotFoundError(f"Presentation not found: {presentation_id}")
    return row


def update_presentation(store: RecordStore, broker_id: str, presentation_id: str,
                        data: Dict[str, Any]) -> Dict[str, Any]:
    get_presentation(store, broker_id, presentation_id)
    changes: Dict[str, Any] = {}
    if "title" in data:
        changes["title"] = _title(data["title"])
    for key in ("description", "client_id"):
        if key in data:
            changes[key] = data[key]
    if "items" in data:
        changes["items"] = normalize_items(data["items"])
    if "is_public" in data:
        changes["is_public"] = bool(data["is_public"])
    return store.update("presentations", presentation_id, changes)


def delete_presentation(store: RecordStore, broker_id: str, presentation_id: str) -> None:
    get_presentation(store, broker_id, presentation_id)
    store.delete("presentations", presentation_id)


def list_presentations(store: RecordStore, broker_id: str, client_id: Optional[str] = None) -> List[Dict[str, Any]]:
    where = {"broker_id": broker_id}
    if client_id:
        where["client_id"] = client_id
    return store.select("presentations", where=where, order_by="updated_at", descending=True)


def duplicate_presentation(store: RecordStore, broker_id: str, presentation_id: str) -> Dict[str, Any]:
    original = get_presentation(store, broker_id, presentation_id)
    return create_presentation(store, broker_id, {
        "title": f"{original['title']} (Copy)",
        "description": original.get("description"),
        "client_id": original.get("client_id"),
        "items": original.get("items") or [],
    })


def add_item(store: RecordStore, broker_id: str, presentation_id: str, item: Dict[str, Any]) -> Dict[str, Any]:
    row = get_presentation(store, broker_id, presentation_id)
    items = list(row.get("items") or []) + normalize_items([item])
    return store.update("presentations", presentation_id, {"items": items})


def remove_item(store: RecordStore, broker_id: str, presentation_id: str, index: int) -> Dict[str, Any]:
    row = get_presentation(store, broker_id, presentation_id)
    items = list(row.get("items") or [])
    if not 0 <= index < len(items):
        raise NotFoundError(f"No item at position {index}")
    del items[index]
    return store.update("presentations", presentation_id, {"items": items})


def reorder_items(store: RecordStore, broker_id: str, presentation_id: str, order: List[int]) -> Dict[str, Any]:
    """Reorder items; ``order`` lists current positions in their new order."""
    row = get_presentation(store, broker_id, presentation_id)
    items = list(row.get("items") or [])
    if sorted(order) != list(range(len(items))):
        raise ValidationError(["order must be a permutation of the item positions"])
    return store.update("presentations", presentation_id, {"items": [items[i] for i in order]})


def share_presentation(store: RecordStore, broker_id: str, presentation_id: str) -> Dict[str, Any]:
    row = get_presentation(store, broker_id, presentation_id)
    token = row.get("share_token") or new_token(config.PORTAL_TOKEN_LENGTH)
    logger.info("Shared presentation %s", presentation_id)
    return store.update("presentations", presentation_id, {"share_token": token, "is_public": True})


def unshare_presentation(store: RecordStore, broker_id: str, presentation_id: str) -> Dict[str, Any]:
    get_presentation(store, broker_id, presentation_id)
    return store.update("presentations", presentation_id, {"is_public": False})


def get_shared_presentation(store: RecordStore, token: str) -> Dict[str, Any]:
    """Public presentation with the quotes and saved comparisons its items reference."""
    row = store.find_one("presentations", share_token=token, is_public=True) if token else None
    if row is None:
        raise NotFoundError("Presentation not found")
    owner = row["broker_id"]

    quote_ids = []
    comparisons = {}
    for item in row.get("items") or []:
        if item.get("type") == "quote":
            quote_ids.append(item["id"])
        elif item.get("type") == "inline_comparison":
            quote_ids.extend(item.get("quote_ids") or [])
        elif item.get("type") == "comparison":
            saved = store.get("saved_comparisons", item["id"])
            # Only the owner's comparisons are resolved
            if saved and saved.get("broker_id") == owner:
                comparisons[saved["id"]] = public_comparison(saved)
                quote_ids.extend(saved.get("quote_ids") or [])

    return {
        "presentation": {k: v for k, v in row.items() if k != "broker_id"},
        "quotes": resolve_quotes(store, owner, quote_ids),
        "comparisons": comparisons,
        "advisor": advisor_card(store, owner),
    }
