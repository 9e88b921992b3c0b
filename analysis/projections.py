"""Cashflow and ROI projections for off-plan quotes."""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from analysis.construction_progress import (
    ExitScenario,
    calculate_exit_scenario,
    month_when_threshold_met,
    round_half_up,
)
from analysis.inputs import CashflowInputs, entry_costs, total_months
from config import config

logger = logging.getLogger(__name__)


@dataclass
class OIExitScenario:
    exit_percent: int
    exit_months: int
    exit_price: float
    equity_deployed: float
    profit: float
    roe: float
    rental_yield: float
    years_to_pay: float


@dataclass
class YearlyProjection:
    year: int
    calendar_year: int
    property_value: float
    annual_rent: Optional[float]
    is_construction: bool
    is_handover: bool
    is_si_exit: bool = False


@dataclass
class OIProjections:
    scenarios: List[OIExitScenario]
    yearly_projections: List[YearlyProjection]
    total_months: int
    base_price: float


def _appreciated(base_price: float, rate_percent: float, years) -> np.ndarray:
    return base_price * np.power(1 + rate_percent / 100, years)


def calculate_oi_projections(inputs: CashflowInputs) -> OIProjections:
    """Opportunity-investor exits across the construction period plus a 10-year view.

    Equity deployed at each exit is proportional to how far through the
    pre-handover share of the plan the investor is.
    """
    base_price = inputs.base_price
    months = total_months(inputs)

    scenarios = []
    for exit_percent in config.OI_EXIT_PERCENTAGES:
        exit_months = round_half_up(exit_percent / 100 * months)
        exit_price = float(_appreciated(base_price, inputs.appreciation_rate, exit_months / 12))
        equity = base_price * (inputs.pre_handover_percent / 100) * (exit_percent / 100)
        profit = exit_price - base_price
        rent_at_exit = exit_price * inputs.rental_yield_percent / 100
        scenarios.append(OIExitScenario(
            exit_percent=exit_percent,
            exit_months=exit_months,
            exit_price=exit_price,
            equity_deployed=equity,
            profit=profit,
            roe=profit / equity * 100 if equity > 0 else 0.0,
            rental_yield=rent_at_exit / base_price * 100 if base_price else 0.0,
            years_to_pay=base_price / rent_at_exit if rent_at_exit else math.inf,
        ))

    handover_index = math.ceil(months / 12)
    years = np.arange(1, config.PROJECTION_YEARS + 1)
    values = _appreciated(base_price, inputs.appreciation_rate, years)
    yearly = []
    for year, value in zip(years.tolist(), values.tolist()):
        is_construction = year < handover_index
        yearly.append(YearlyProjection(
            year=year,
            calendar_year=inputs.booking_year + year - 1,
            property_value=value,
            annual_rent=None if is_construction else value * inputs.rental_yield_percent / 100,
            is_construction=is_construction,
            is_handover=year == handover_index,
        ))

    return OIProjections(scenarios=scenarios, yearly_projections=yearly,
                         total_months=months, base_price=base_price)


def default_exit_months(months: int) -> List[int]:
    """Suggested exit points for a construction period of ``months``."""
    if months >= 24:
        return [round_half_up(months * 0.40), round_half_up(months * 0.70)]
    if months >= 12:
        return [round_half_up(months * 0.60)]
    return []


def calculate_exit_scenarios(
    inputs: CashflowInputs,
    exit_months: Optional[List[int]] = None,
) -> List[ExitScenario]:
    """Phased-appreciation exit scenarios for the chosen (or suggested) months."""
    months = total_months(inputs)
    if exit_months is None:
        exit_months = inputs.exit_months or default_exit_months(months)
    costs = entry_costs(inputs)
    results = [
        calculate_exit_scenario(int(m), inputs.base_price, months, inputs, costs)
        for m in sorted(set(int(m) for m in exit_months)) if m > 0
    ]
    logger.info("Calculated %d exit scenario(s) over a %d-month build", len(results), months)
    return results


# ------------------------------------------------------------------
# Investor roles: OI -> SI -> HO
# ------------------------------------------------------------------

@dataclass
class InvestorMetrics:
    entry_price: float
    exit_price: float
    property_value: float
    equity_invested: float
    projected_profit: float
    roe: float
    rental_yield: float
    years_to_pay: float


@dataclass
class InvestorROI:
    oi: InvestorMetrics
    si: InvestorMetrics
    ho: InvestorMetrics
    yearly_projections: List[YearlyProjection] = field(default_factory=list)
    oi_holding_months: int = 0
    si_holding_months: int = 0
    total_months: int = 0


def calculate_investor_roi(
    inputs: CashflowInputs,
    resale_threshold_percent: float = 40.0,
    oi_holding_months: int = 12,
) -> InvestorROI:
    """Returns for the three buyers of one unit.

    The Opportunity Investor buys off-plan and resells after
    ``oi_holding_months`` having paid ``resale_threshold_percent``. The
    Security Investor buys from them in cash and holds to handover. The
    Home Owner buys at handover as an end user.
    """
    base_price = inputs.base_price
    rate = inputs.appreciation_rate
    yield_pct = inputs.rental_yield_percent
    months = total_months(inputs)
    si_holding_months = max(1, months - oi_holding_months)

    oi_equity = base_price * resale_threshold_percent / 100
    oi_exit = float(_appreciated(base_price, rate, oi_holding_months / 12))
    oi_profit = oi_exit - base_price
    rent_at_oi_exit = oi_exit * yield_pct / 100
    oi = InvestorMetrics(
        entry_price=base_price,
        exit_price=oi_exit,
        property_value=oi_exit,
        equity_invested=oi_equity,
        projected_profit=oi_profit,
        roe=oi_profit / oi_equity * 100 if oi_equity > 0 else 0.0,
        rental_yield=rent_at_oi_exit / base_price * 100 if base_price else 0.0,
        years_to_pay=base_price / rent_at_oi_exit if rent_at_oi_exit else math.inf,
    )

    si_entry = oi_exit
    si_exit = float(_appreciated(si_entry, rate, si_holding_months / 12))
    si_profit = si_exit - si_entry
    si_rent = si_entry * yield_pct / 100
    si = InvestorMetrics(
        entry_price=si_entry,
        exit_price=si_exit,
        property_value=si_exit,
        equity_invested=si_entry,
        projected_profit=si_profit,
        roe=si_profit / si_entry * 100 if si_entry else 0.0,
        rental_yield=yield_pct,
        years_to_pay=si_entry / si_rent if si_rent else math.inf,
    )

    ho_entry = si_exit
    ho_rent = ho_entry * yield_pct / 100
    ho = InvestorMetrics(
        entry_price=ho_entry,
        exit_price=ho_entry,
        property_value=ho_entry,
        equity_invested=ho_entry,
        projected_profit=0.0,
        roe=0.0,
        rental_yield=yield_pct,
        years_to_pay=ho_entry / ho_rent if ho_rent else math.inf,
    )

    oi_exit_index = math.ceil(oi_holding_months / 12)
    si_exit_index = math.ceil(months / 12)
    yearly = []
    for year in range(1, config.PROJECTION_YEARS + 1):
        value = float(_appreciated(base_price, rate, year))
        is_construction = year < oi_exit_index
        yearly.append(YearlyProjection(
            year=year,
            calendar_year=inputs.booking_year + year - 1,
            property_value=value,
            annual_rent=None if is_construction else value * yield_pct / 100,
            is_construction=is_construction,
            is_handover=year == oi_exit_index,
            is_si_exit=year == si_exit_index,
        ))

    return InvestorROI(
        oi=oi, si=si, ho=ho,
        yearly_projections=yearly,
        oi_holding_months=oi_holding_months,
        si_holding_months=si_holding_months,
        total_months=months,
    )


def summarize_quote(inputs: CashflowInputs) -> Dict[str, object]:
    """Headline numbers shown on quote cards and share previews."""
    months = total_months(inputs)
    exits = calculate_exit_scenarios(inputs)
    best = max(exits, key=lambda s: s.roe) if exits else None
    return {
        "base_price": inputs.base_price,
        "total_months": months,
        "entry_costs": entry_costs(inputs),
        "downpayment": inputs.base_price * inputs.downpayment_percent / 100,
        "first_year_rent": inputs.base_price * inputs.rental_yield_percent / 100,
        "best_exit_month": best.months_from_booking if best else None,
        "best_exit_roe": best.roe if best else None,
        "threshold_month": month_when_threshold_met(inputs, months, inputs.base_price),
    }
