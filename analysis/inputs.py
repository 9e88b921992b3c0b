"""Quote input model, defaults, and schema migration for saved quotes."""

import logging
from dataclasses import asdict, dataclass, field, fields
from datetime import date
from typing import Any, Dict, List, Optional

from config import config

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2

MILESTONE_TYPES = ("time", "construction", "post-handover")


@dataclass
class PaymentMilestone:
    """One installment of a payment plan.

    ``trigger_value`` is months from booking for ``time`` milestones, the
    construction completion percentage for ``construction`` milestones, and
    months after handover for ``post-handover`` milestones.
    """
    id: str = ""
    type: str = "time"
    trigger_value: float = 0.0
    payment_percent: float = 0.0
    label: str = ""
    is_handover: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0, default_type: str = "time") -> "PaymentMilestone":
        kind = data.get("type") or default_type
        if kind not in MILESTONE_TYPES:
            kind = default_type
        return cls(
            id=str(data.get("id") or f"payment-{index}"),
            type=kind,
            trigger_value=float(data.get("trigger_value") or 0),
            payment_percent=float(data.get("payment_percent") or 0),
            label=data.get("label") or "",
            is_handover=bool(data.get("is_handover", False)),
        )


@dataclass
class ShortTermRental:
    average_daily_rate: float = 800.0
    occupancy_percent: float = 70.0
    operating_expense_percent: float = 25.0
    management_fee_percent: float = 15.0


@dataclass
class CashflowInputs:
    """All configurator inputs for an off-plan purchase scenario."""
    base_price: float = 800_000.0
    rental_yield_percent: float = 8.5
    appreciation_rate: float = 10.0
    booking_month: int = 1
    booking_year: int = 2025
    handover_month: int = 10
    handover_year: int = 2027
    downpayment_percent: float = 20.0
    pre_handover_percent: float = 20.0
    additional_payments: List[PaymentMilestone] = field(default_factory=list)
    # Post-handover payment plan
    has_post_handover_plan: bool = False
    on_handover_percent: float = 0.0
    post_handover_percent: float = 0.0
    post_handover_payments: List[PaymentMilestone] = field(default_factory=list)
    # Entry / exit costs
    eoi_fee: float = 50_000.0
    oqood_fee: float = 5_000.0
    minimum_exit_threshold: float = config.MINIMUM_EXIT_THRESHOLD
    exit_agent_commission_enabled: bool = False
    exit_noc_fee: float = 5_000.0
    # Rental
    show_airbnb_comparison: bool = False
    short_term_rental: ShortTermRental = field(default_factory=ShortTermRental)
    rent_growth_rate: float = 4.0
    service_charge_per_sqft: float = 18.0
    adr_growth_rate: float = 3.0
    unit_size_sqf: float = 0.0
    # Phased appreciation
    zone_maturity_level: float = 60.0
    use_zone_defaults: bool = True
    construction_appreciation: float = 12.0
    growth_appreciation: float = 8.0
    mature_appreciation: float = 4.0
    growth_period_years: float = 5.0
    exit_months: List[int] = field(default_factory=list)
    schema_version: int = CURRENT_SCHEMA_VERSION

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CashflowInputs":
        """Build inputs from a (possibly legacy) dictionary."""
        return migrate_inputs(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _default_values() -> Dict[str, Any]:
    return CashflowInputs().to_dict()


_V2_DEFAULTS = {
    "construction_appreciation": 12.0,
    "growth_appreciation": 8.0,
    "mature_appreciation": 4.0,
    "growth_period_years": 5.0,
    "rent_growth_rate": 4.0,
    "service_charge_per_sqft": 18.0,
    "adr_growth_rate": 3.0,
    "zone_maturity_level": 60.0,
    "use_zone_defaults": True,
    "show_airbnb_comparison": False,
    "minimum_exit_threshold": config.MINIMUM_EXIT_THRESHOLD,
    "exit_agent_commission_enabled": False,
    "exit_noc_fee": 5_000.0,
}


def migrate_inputs(saved: Optional[Dict[str, Any]]) -> CashflowInputs:
    """Merge saved inputs over current defaults so old quotes keep working.

    Missing fields are filled in, version-specific fields are backfilled,
    malformed collections are reset, and the current schema version is
    stamped on the result.
    """
    if not saved:
        return CashflowInputs()

    version = saved.get("schema_version") or 1
    merged = _default_values()
    known = {f.name for f in fields(CashflowInputs)}
    for key, value in saved.items():
        if key in known and value is not None:
            merged[key] = value

    if version < 2:
        for key, value in _V2_DEFAULTS.items():
            if saved.get(key) is None:
                merged[key] = value
        if saved.get("rental_mode") == "short-term" and not saved.get("show_airbnb_comparison"):
            merged["show_airbnb_comparison"] = True
        logger.info("Migrated quote inputs from v%s to v%d", version, CURRENT_SCHEMA_VERSION)

    # Legacy quotes stored the handover as a quarter
    if "handover_month" not in saved and saved.get("handover_quarter"):
        quarter = int(saved["handover_quarter"])
        merged["handover_month"] = (min(max(quarter, 1), 4) - 1) * 3 + 1

    short_term = ShortTermRental()
    saved_str = saved.get("short_term_rental")
    if isinstance(saved_str, dict):
        short_term = ShortTermRental(**{
            k: float(v) for k, v in saved_str.items()
            if k in ShortTermRental.__dataclass_fields__ and v is not None
        })
    merged["short_term_rental"] = short_term

    additional = merged.get("additional_payments")
    if not isinstance(additional, list):
        additional = []
    merged["additional_payments"] = [
        p if isinstance(p, PaymentMilestone) else PaymentMilestone.from_dict(p, i)
        for i, p in enumerate(additional)
    ]

    post = merged.get("post_handover_payments")
    if not isinstance(post, list):
        post = []
    post_milestones = []
    for i, p in enumerate(post):
        if isinstance(p, PaymentMilestone):
            m = p
        else:
            m = PaymentMilestone.from_dict({**p, "id": p.get("id") or f"post-payment-{i}"}, i)
        m.type = "post-handover"
        post_milestones.append(m)
    merged["post_handover_payments"] = post_milestones

    exits = merged.get("exit_months")
    merged["exit_months"] = sorted(int(m) for m in exits) if isinstance(exits, list) else []

    merged["schema_version"] = CURRENT_SCHEMA_VERSION
    return CashflowInputs(**merged)


def total_months(inputs: CashflowInputs) -> int:
    """Construction period in whole calendar months, booking to handover (>= 1)."""
    booking = date(int(inputs.booking_year), int(inputs.booking_month), 1)
    handover = date(int(inputs.handover_year), int(inputs.handover_month), 1)
    months = (handover.year - booking.year) * 12 + (handover.month - booking.month)
    return max(1, months)


def dld_fee(inputs: CashflowInputs) -> float:
    return inputs.base_price * config.DLD_FEE_PERCENT / 100


def entry_costs(inputs: CashflowInputs) -> float:
    """DLD transfer fee plus Oqood registration."""
    return dld_fee(inputs) + (inputs.oqood_fee or 0)
