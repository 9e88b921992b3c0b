"""Broker profiles, including the default assumptions applied to new quotes."""

import logging
from typing import Any, Dict

from analysis.inputs import CashflowInputs, ShortTermRental
from analysis.mortgage import MortgageInputs
from crm.errors import ValidationError
from crm.validation import validate_profile
from storage.record_store import RecordStore

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "email", "full_name", "avatar_url", "business_email", "whatsapp_number",
    "whatsapp_country_code", "commission_rate", "market_dubai_yield",
    "market_mortgage_rate", "market_top_area",
    "default_construction_appreciation", "default_growth_appreciation",
    "default_mature_appreciation", "default_growth_period_years",
    "default_adr", "default_occupancy_percent", "default_str_expense_percent",
    "default_str_management_percent", "default_adr_growth_rate",
    "default_mortgage_financing_percent", "default_mortgage_interest_rate",
    "default_mortgage_term_years", "default_mortgage_processing_fee",
    "default_mortgage_valuation_fee", "default_mortgage_registration_percent",
    "default_mortgage_life_insurance_percent", "default_mortgage_property_insurance",
)

# Profile fields shown to clients on public pages
ADVISOR_FIELDS = ("full_name", "avatar_url", "business_email", "whatsapp_number", "whatsapp_country_code")

_INPUT_DEFAULTS = {
    "default_construction_appreciation": "construction_appreciation",
    "default_growth_appreciation": "growth_appreciation",
    "default_mature_appreciation": "mature_appreciation",
    "default_growth_period_years": "growth_period_years",
    "default_adr_growth_rate": "adr_growth_rate",
}

_STR_DEFAULTS = {
    "default_adr": "average_daily_rate",
    "default_occupancy_percent": "occupancy_percent",
    "default_str_expense_percent": "operating_expense_percent",
    "default_str_management_percent": "management_fee_percent",
}

_MORTGAGE_DEFAULTS = {
    "default_mortgage_financing_percent": "financing_percent",
    "default_mortgage_interest_rate": "interest_rate",
    "default_mortgage_term_years": "loan_term_years",
    "default_mortgage_processing_fee": "processing_fee_percent",
    "default_mortgage_valuation_fee": "valuation_fee",
    "default_mortgage_registration_percent": "mortgage_registration_percent",
    "default_mortgage_life_insurance_percent": "life_insurance_percent",
    "default_mortgage_property_insurance": "property_insurance",
}


def get_or_create_profile(store: RecordStore, broker_id: str) -> Dict[str, Any]:
    profile = store.get("profiles", broker_id)
    if profile is None:
        profile = store.insert("profiles", {"id": broker_id, **{k: None for k in PROFILE_FIELDS}})
        logger.info("Created profile for broker %s", broker_id)
    return profile


def advisor_card(store: RecordStore, broker_id: str) -> Dict[str, Any]:
    profile = store.get("profiles", broker_id) or {}
    return {k: profile.get(k) for k in ADVISOR_FIELDS}


def update_profile(store: RecordStore, broker_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    issues = validate_profile(data)
    if issues:
        raise ValidationError(issues)
    get_or_create_profile(store, broker_id)
    return store.update("profiles", broker_id, {k: data[k] for k in PROFILE_FIELDS if k in data})


def default_inputs(profile: Dict[str, Any]) -> CashflowInputs:
    """Fresh quote inputs seeded with the broker's saved defaults."""
    inputs = CashflowInputs()
    for src, dst in _INPUT_DEFAULTS.items():
        if profile.get(src) is not None:
            setattr(inputs, dst, float(profile[src]))
    rental = ShortTermRental()
    for src, dst in _STR_DEFAULTS.items():
        if profile.get(src) is not None:
            setattr(rental, dst, float(profile[src]))
    inputs.short_term_rental = rental
    return inputs


def default_mortgage(profile: Dict[str, Any]) -> MortgageInputs:
    mortgage = MortgageInputs()
    for src, dst in _MORTGAGE_DEFAULTS.items():
        if profile.get(src) is not None:
            setattr(mortgage, dst, type(getattr(mortgage, dst))(profile[src]))
    return mortgage
