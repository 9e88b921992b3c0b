"""Construction progress S-curve, equity-at-exit and phased exit pricing.

Construction progress is not linear in calendar time: foundations and
podium work are slow, the superstructure goes up fast, and finishing
slows down again. Payments tied to construction milestones are placed on
the timeline through this curve.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from analysis.inputs import CashflowInputs, PaymentMilestone
from config import config

logger = logging.getLogger(__name__)

# (timeline %, construction %) for a standard 30-40 floor tower
S_CURVE: List[Tuple[float, float]] = [
    (0, 0),
    (25, 18),    # foundations done
    (42, 35),    # superstructure starts
    (50, 40),    # podium finishing
    (58, 50),    # half height
    (67, 65),    # near topping out
    (75, 75),    # finishes start
    (89, 90),    # MEP / interiors
    (100, 100),
]

_TIMELINE = np.array([p[0] for p in S_CURVE], dtype=float)
_CONSTRUCTION = np.array([p[1] for p in S_CURVE], dtype=float)

PAYMENTS_COMPLETE_TOLERANCE = 0.5


# ------------------------------------------------------------------
# S-curve conversions
# ------------------------------------------------------------------

def timeline_to_construction(timeline_percent: float) -> float:
    """Convert elapsed share of the construction period to construction progress."""
    if timeline_percent <= 0:
        return 0.0
    if timeline_percent >= 100:
        return 100.0
    return float(np.interp(timeline_percent, _TIMELINE, _CONSTRUCTION))


def construction_to_timeline(construction_percent: float) -> float:
    """Inverse of :func:`timeline_to_construction`."""
    if construction_percent <= 0:
        return 0.0
    if construction_percent >= 100:
        return 100.0
    return float(np.interp(construction_percent, _CONSTRUCTION, _TIMELINE))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def construction_to_month(construction_percent: float, total_months: int) -> int:
    timeline_percent = construction_to_timeline(construction_percent)
    return round_half_up(timeline_percent / 100 * total_months)


def month_to_construction(month: float, total_months: int) -> float:
    if total_months <= 0:
        return 100.0
    return timeline_to_construction(month / total_months * 100)


def is_handover_exit(exit_months: int, total_months: int) -> bool:
    """True when the exit falls within one month of handover."""
    return abs(exit_months - total_months) <= 1


# ------------------------------------------------------------------
# Equity at exit
# ------------------------------------------------------------------

@dataclass
class AdvancedPayment:
    milestone: PaymentMilestone
    month_triggered: int
    amount_advanced: float


@dataclass
class EquityAtExit:
    plan_equity: float
    threshold_equity: float
    final_equity: float
    advance_required: float
    is_threshold_met: bool
    plan_equity_percent: float
    advanced_payments: List[AdvancedPayment] = field(default_factory=list)


def _milestone_month(m: PaymentMilestone, total_months: int) -> int:
    if m.type == "construction":
        return construction_to_month(m.trigger_value, total_months)
    return int(m.trigger_value)


def _payments_already_complete(inputs: CashflowInputs) -> bool:
    allocated = inputs.downpayment_percent + sum(p.payment_percent for p in inputs.additional_payments)
    return abs(allocated - 100) < PAYMENTS_COMPLETE_TOLERANCE


def _threshold_percent(inputs: CashflowInputs) -> float:
    return inputs.minimum_exit_threshold or config.MINIMUM_EXIT_THRESHOLD


def calculate_equity_at_exit(
    exit_months: int,
    inputs: CashflowInputs,
    total_months: int,
    base_price: float,
) -> EquityAtExit:
    """Equity deployed at an exit month, honouring the minimum resale threshold.

    Developers only issue a resale NOC once a minimum share of the price has
    been paid. When the plan has not reached it by the exit month, the next
    payments (in trigger order) are advanced until it is.
    """
    is_post_handover = exit_months > total_months
    months_after_handover = exit_months - total_months if is_post_handover else 0
    exit_construction = 100.0 if is_post_handover else month_to_construction(exit_months, total_months)

    plan_equity = base_price * inputs.downpayment_percent / 100

    for m in inputs.additional_payments:
        if m.payment_percent <= 0:
            continue
        if m.type == "time":
            triggered = m.trigger_value <= exit_months
        elif m.type == "construction":
            triggered = exit_construction >= m.trigger_value
        else:
            triggered = False
        if triggered:
            plan_equity += base_price * m.payment_percent / 100

    if inputs.has_post_handover_plan:
        if exit_months >= total_months and not _payments_already_complete(inputs):
            plan_equity += base_price * (inputs.on_handover_percent or 0) / 100
        if is_post_handover:
            for m in inputs.post_handover_payments:
                if m.payment_percent > 0 and m.trigger_value <= months_after_handover:
                    plan_equity += base_price * m.payment_percent / 100
    elif exit_months >= total_months:
        plan_equity += base_price * (100 - inputs.pre_handover_percent) / 100

    threshold_percent = _threshold_percent(inputs)
    threshold_equity = base_price * threshold_percent / 100
    plan_equity_percent = plan_equity / base_price * 100 if base_price else 0.0
    is_threshold_met = plan_equity_percent >= threshold_percent
    advance_required = 0.0 if is_threshold_met else threshold_equity - plan_equity

    advanced: List[AdvancedPayment] = []
    if not is_threshold_met:
        remaining = []
        for m in inputs.additional_payments:
            if m.payment_percent <= 0:
                continue
            if m.type == "time" and m.trigger_value > exit_months:
                pending = True
            elif m.type == "construction" and exit_construction < m.trigger_value:
                pending = True
            else:
                pending = False
            if pending:
                remaining.append((_milestone_month(m, total_months), m, base_price * m.payment_percent / 100))
        remaining.sort(key=lambda item: item[0])

        accumulated = plan_equity
        for month, m, amount in remaining:
            if accumulated >= threshold_equity:
                break
            advanced.append(AdvancedPayment(m, month, min(amount, threshold_equity - accumulated)))
            accumulated += amount

        if accumulated < threshold_equity and exit_months < total_months and not inputs.has_post_handover_plan:
            handover_percent = 100 - inputs.pre_handover_percent
            handover_amount = base_price * handover_percent / 100
            needed = threshold_equity - accumulated
            if needed > 0:
                handover = PaymentMilestone(
                    id="handover", type="time", trigger_value=total_months,
                    payment_percent=handover_percent, label="Handover",
                )
                advanced.append(AdvancedPayment(handover, total_months, min(handover_amount, needed)))

    return EquityAtExit(
        plan_equity=plan_equity,
        threshold_equity=threshold_equity,
        final_equity=max(plan_equity, threshold_equity),
        advance_required=advance_required,
        is_threshold_met=is_threshold_met,
        plan_equity_percent=plan_equity_percent,
        advanced_payments=advanced,
    )


def month_when_threshold_met(inputs: CashflowInputs, total_months: int, base_price: float) -> int:
    """First month at which the payment plan alone reaches the resale threshold."""
    threshold_equity = base_price * _threshold_percent(inputs) / 100
    accumulated = base_price * inputs.downpayment_percent / 100
    if accumulated >= threshold_equity:
        return 0

    events: List[Tuple[int, float]] = []
    for m in inputs.additional_payments:
        if m.payment_percent > 0:
            events.append((_milestone_month(m, total_months), base_price * m.payment_percent / 100))

    if inputs.has_post_handover_plan:
        if not _payments_already_complete(inputs):
            events.append((total_months, base_price * (inputs.on_handover_percent or 0) / 100))
        for m in inputs.post_handover_payments:
            if m.payment_percent > 0:
                events.append((total_months + int(m.trigger_value), base_price * m.payment_percent / 100))
    else:
        events.append((total_months, base_price * (100 - inputs.pre_handover_percent) / 100))

    for month, amount in sorted(events, key=lambda e: e[0]):
        accumulated += amount
        if accumulated >= threshold_equity:
            return month
    return total_months


# ------------------------------------------------------------------
# Exit pricing
# ------------------------------------------------------------------

def _monthly_rate(annual_percent: float) -> float:
    return (1 + annual_percent / 100) ** (1 / 12) - 1


def calculate_exit_price(
    months: float,
    base_price: float,
    total_months: int,
    inputs: Optional[CashflowInputs] = None,
) -> float:
    """Property value after ``months`` using phased monthly compounding.

    Construction rate applies until handover, the growth rate for the first
    ``growth_period_years`` afterwards, and the mature rate after that.
    """
    inputs = inputs or CashflowInputs()
    value = base_price

    construction_months = min(months, total_months)
    if construction_months > 0:
        value *= (1 + _monthly_rate(inputs.construction_appreciation)) ** construction_months
    if months <= total_months:
        return value

    post_handover = months - total_months
    growth_window = inputs.growth_period_years * 12
    growth_months = min(post_handover, growth_window)
    if growth_months > 0:
        value *= (1 + _monthly_rate(inputs.growth_appreciation)) ** growth_months

    mature_months = max(0, post_handover - growth_window)
    if mature_months > 0:
        value *= (1 + _monthly_rate(inputs.mature_appreciation)) ** mature_months
    return value


@dataclass
class ExitScenario:
    months_from_booking: int
    exit_price: float
    base_price: float
    appreciation: float
    appreciation_percent: float
    equity_deployed: float
    equity_percent: float
    plan_equity_percent: float
    entry_costs: float
    agent_commission: float
    noc_fee: float
    exit_costs: float
    total_capital: float
    profit: float
    net_profit: float
    roe: float
    true_roe: float
    net_roe: float
    annualized_roe: float
    net_annualized_roe: float
    advance_required: float
    is_threshold_met: bool
    is_handover: bool
    advanced_payments: List[AdvancedPayment] = field(default_factory=list)


def calculate_exit_scenario(
    months_from_booking: int,
    base_price: float,
    total_months: int,
    inputs: CashflowInputs,
    entry_costs: float = 0.0,
) -> ExitScenario:
    """Complete exit scenario: price, equity, costs, profit, and ROE variants."""
    exit_price = calculate_exit_price(months_from_booking, base_price, total_months, inputs)
    appreciation = exit_price - base_price
    equity = calculate_equity_at_exit(months_from_booking, inputs, total_months, base_price)
    deployed = equity.final_equity

    agent_commission = (
        exit_price * config.EXIT_AGENT_COMMISSION_PERCENT / 100
        if inputs.exit_agent_commission_enabled else 0.0
    )
    noc_fee = inputs.exit_noc_fee or 0.0
    exit_costs = agent_commission + noc_fee

    total_capital = deployed + entry_costs
    net_profit = appreciation - exit_costs
    roe = appreciation / deployed * 100 if deployed > 0 else 0.0
    true_roe = appreciation / total_capital * 100 if total_capital > 0 else 0.0
    net_roe = net_profit / total_capital * 100 if total_capital > 0 else 0.0
    years = months_from_booking / 12
    annualized = true_roe / years if months_from_booking > 0 else 0.0
    net_annualized = net_roe / years if months_from_booking > 0 else 0.0
    logger.debug(
        "Exit at month %d: price=%.0f equity=%.0f roe=%.1f%%",
        months_from_booking, exit_price, deployed, roe,
    )

    return ExitScenario(
        months_from_booking=months_from_booking,
        exit_price=exit_price,
        base_price=base_price,
        appreciation=appreciation,
        appreciation_percent=appreciation / base_price * 100 if base_price else 0.0,
        equity_deployed=deployed,
        equity_percent=deployed / base_price * 100 if base_price else 0.0,
        plan_equity_percent=equity.plan_equity_percent,
        entry_costs=entry_costs,
        agent_commission=agent_commission,
        noc_fee=noc_fee,
        exit_costs=exit_costs,
        total_capital=total_capital,
        profit=appreciation,
        net_profit=net_profit,
        roe=roe,
        true_roe=true_roe,
        net_roe=net_roe,
        annualized_roe=annualized,
        net_annualized_roe=net_annualized,
        advance_required=equity.advance_required,
        is_threshold_met=equity.is_threshold_met,
        is_handover=is_handover_exit(months_from_booking, total_months),
        advanced_payments=equity.advanced_payments,
    )
