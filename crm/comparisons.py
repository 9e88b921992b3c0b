"""Saved side-by-side comparisons of a broker's quotes."""

import logging
from typing import Any, Dict, List

from config import config
from crm.errors import NotFoundError, ValidationError
from crm.profiles import advisor_card
from crm.quotes import new_token, public_quote
from crm.validation import text
from storage.record_store import RecordStore

logger = logging.getLogger(__name__)

MIN_QUOTES = 2


def _quote_ids(store: RecordStore, broker_id: str, value: Any) -> List[str]:
    if not isinstance(value, list):
        raise ValidationError(["quote_ids must be a list"])
    quote_ids = list(dict.fromkeys(str(q) for q in value if q))
    if len(quote_ids) < MIN_QUOTES:
        raise ValidationError([f"A comparison needs at least {MIN_QUOTES} quotes"])
    missing = [q for q in quote_ids if (store.get("quotes", q) or {}).get("broker_id") != broker_id]
    if missing:
        raise ValidationError([f"Unknown quote: {q}" for q in missing])
    return quote_ids


def _title(value: Any) -> str:
    title = text(value)
    if not title:
        raise ValidationError(["Title is required"])
    return title


def create_comparison(store: RecordStore, broker_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    row = store.insert("saved_comparisons", {
        "broker_id": broker_id,
        "title": _title(data.get("title")),
        "description": data.get("description"),
        "quote_ids": _quote_ids(store, broker_id, data.get("quote_ids")),
        "investment_focus": data.get("investment_focus"),
        "show_recommendations": bool(data.get("show_recommendations", True)),
        "share_token": None,
        "is_public": False,
    })
    logger.info("Saved comparison %s of %d quotes", row["id"], len(row["quote_ids"]))
    return row


def get_comparison(store: RecordStore, broker_id: str, comparison_id: str) -> Dict[str, Any]:
    row = store.get("saved_comparisons", comparison_id)
    if row is None or row.get("broker_id") != broker_id:
        raise NotFoundError(f"Comparison not found: {comparison_id}")
    return row


def update_comparison(store: RecordStore, broker_id: str, comparison_id: str,
                      data: Dict[str, Any]) -> Dict[str, Any]:
    get_comparison(store, broker_id, comparison_id)
    changes: Dict[str, Any] = {}
    if "title" in data:
        changes["title"] = _title(data["title"])
    if "quote_ids" in data:
        changes["quote_ids"] = _quote_ids(store, broker_id, data["quote_ids"])
    for key in ("description", "investment_focus"):
        if key in data:
            changes[key] = data[key]
    if "show_recommendations" in data:
        changes["show_recommendations"] = bool(data["show_recommendations"])
    return store.update("saved_comparisons", comparison_id, changes)


def delete_comparison(store: RecordStore, broker_id: str, comparison_id: str) -> None:
    get_comparison(store, broker_id, comparison_id)
    store.delete("saved_comparisons", comparison_id)


def list_comparisons(store: RecordStore, broker_id: str) -> List[Dict[str, Any]]:
    return store.select("saved_comparisons", where={"broker_id": broker_id},
                        order_by="updated_at", descending=True)


def share_comparison(store: RecordStore, broker_id: str, comparison_id: str) -> Dict[str, Any]:
    row = get_comparison(store, broker_id, comparison_id)
    token = row.get("share_token") or new_token(config.PORTAL_TOKEN_LENGTH)
    return store.update("saved_comparisons", comparison_id, {"share_token": token, "is_public": True})


def unshare_comparison(store: RecordStore, broker_id: str, comparison_id: str) -> Dict[str, Any]:
    get_comparison(store, broker_id, comparison_id)
    return store.update("saved_comparisons", comparison_id, {"is_public": False})


def public_comparison(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k != "broker_id"}


def resolve_quotes(store: RecordStore, broker_id: str, quote_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    """Public copies of the owner's quotes, keyed by id. Other brokers' ids are dropped."""
    quotes = {}
    for quote_id in dict.fromkeys(quote_ids):
        quote = store.get("quotes", quote_id)
        if quote and quote.get("broker_id") == broker_id:
            quotes[quote_id] = public_quote(quote)
    return quotes


def get_shared_comparison(store: RecordStore, token: str) -> Dict[str, Any]:
    row = store.find_one("saved_comparisons", share_token=token, is_public=True) if token else None
    if row is None:
        raise NotFoundError("Comparison not found")
    return {
        "comparison": public_comparison(row),
        "quotes": resolve_quotes(store, row["broker_id"], row.get("quote_ids") or []),
        "advisor": advisor_card(store, row["broker_id"]),
    }
