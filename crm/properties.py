"""Acquired properties (the client portfolio) and quote-to-property conversion."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from analysis.mortgage import monthly_payment
from crm.errors import NotFoundError, ValidationError
from crm.quotes import get_quote
from crm.validation import validate_property
from storage.record_store import RecordStore

logger = logging.getLogger(__name__)

PROPERTY_FIELDS = (
    "client_id", "source_quote_id", "project_name", "developer", "unit", "unit_type",
    "unit_size_sqf", "purchase_price", "purchase_date", "acquisition_fees", "current_value",
    "last_valuation_date", "is_rented", "monthly_rent", "rental_start_date", "has_mortgage",
    "mortgage_amount", "mortgage_balance", "mortgage_interest_rate", "mortgage_term_years",
    "monthly_mortgage_payment", "notes",
)

DEFAULT_FINANCING = 0.6


def _values(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: data[k] for k in PROPERTY_FIELDS if k in data}


def create_property(store: RecordStore, broker_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    issues = validate_property(data)
    if issues:
        raise ValidationError(issues)
    values = {"is_rented": False, "has_mortgage": False, **_values(data)}
    row = store.insert("properties", {"broker_id": broker_id, **values})
    logger.info("Created property %s (%s)", row["id"], row.get("project_name"))
    return row


def get_property(store: RecordStore, broker_id: str, property_id: str) -> Dict[str, Any]:
    row = store.get("properties", property_id)
    if row is None or row.get("broker_id") != broker_id:
        raise NotFoundError(f"Property not found: {property_id}")
    return row


def update_property(store: RecordStore, broker_id: str, property_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    issues = validate_property(data, partial=True)
    if issues:
        raise ValidationError(issues)
    get_property(store, broker_id, property_id)
    return store.update("properties", property_id, _values(data))


def delete_property(store: RecordStore, broker_id: str, property_id: str) -> None:
    get_property(store, broker_id, property_id)
    store.delete("properties", property_id)


def list_properties(store: RecordStore, broker_id: str, client_id: Optional[str] = None) -> List[Dict[str, Any]]:
    where = {"broker_id": broker_id}
    if client_id:
        where["client_id"] = client_id
    return store.select("properties", where=where, order_by="purchase_date", descending=True)


def convert_quote_to_property(
    store: RecordStore,
    broker_id: str,
    quote_id: str,
    purchase_date: Optional[str] = None,
    has_mortgage: bool = False,
    mortgage_amount: Optional[float] = None,
    mortgage_interest_rate: float = 4.5,
    mortgage_term_years: int = 25,
) -> Dict[str, Any]:
    """Record a closed quote as an acquired property of its client."""
    quote = get_quote(store, broker_id, quote_id)
    if not quote.get("client_id"):
        raise ValidationError(["Quote is not linked to a client"])

    inputs = quote.get("inputs") or {}
    price = float(inputs.get("base_price") or 0)
    data = {
        "client_id": quote["client_id"],
        "source_quote_id": quote["id"],
        "project_name": quote.get("project_name") or "Unknown Project",
        "developer": quote.get("developer"),
        "unit": quote.get("unit"),
        "unit_type": quote.get("unit_type"),
        "unit_size_sqf": inputs.get("unit_size_sqf") or None,
        "purchase_price": price,
        "purchase_date": purchase_date or date.today().isoformat(),
        "has_mortgage": has_mortgage,
    }
    if has_mortgage:
        amount = mortgage_amount or price * DEFAULT_FINANCING
        data.update({
            "mortgage_amount": amount,
            "mortgage_balance": amount,
            "mortgage_interest_rate": mortgage_interest_rate,
            "mortgage_term_years": mortgage_term_years,
            "monthly_mortgage_payment": monthly_payment(amount, mortgage_interest_rate, mortgage_term_years),
        })
    row = create_property(store, broker_id, data)
    store.update("quotes", quote_id, {"status": "sold"})
    logger.info("Converted quote %s to property %s", quote_id, row["id"])
    return row
