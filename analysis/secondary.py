"""Secondary (ready) property simulator for off-plan vs. resale comparisons."""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from analysis.mortgage import monthly_payment

logger = logging.getLogger(__name__)

SERVICE_CHARGE_INFLATION = 1.02
FIXED_LOAN_MAX_LTV = 0.80


@dataclass
class SecondaryInputs:
    purchase_price: float = 1_200_000.0
    unit_size_sqf: float = 650.0
    closing_costs_percent: float = 6.0  # DLD 4% + agent 2%
    rental_yield_percent: float = 7.0
    rent_growth_rate: float = 3.0
    show_airbnb_comparison: bool = True
    average_daily_rate: float = 600.0
    occupancy_percent: float = 70.0
    operating_expense_percent: float = 25.0
    management_fee_percent: float = 15.0
    adr_growth_rate: float = 3.0
    appreciation_rate: float = 3.0
    use_mortgage: bool = True
    mortgage_mode: str = "percent"  # percent | fixed
    mortgage_financing_percent: float = 60.0
    mortgage_fixed_amount: float = 0.0
    mortgage_interest_rate: float = 4.5
    mortgage_loan_term_years: int = 25
    service_charge_per_sqft: float = 22.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SecondaryInputs":
        data = data or {}
        known = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})


@dataclass
class SecondaryYear:
    year: int
    calendar_year: int
    property_value: float
    annual_rent_lt: float
    service_charges: float
    net_rent_lt: float
    cumulative_rent_lt: float
    gross_rent_st: float
    expenses_st: float
    net_rent_st: float
    cumulative_rent_st: float
    annual_mortgage_payment: float
    cashflow_lt: float
    cashflow_st: float
    mortgage_balance: float
    principal_paid: float
    equity_buildup: float
    total_wealth_lt: float
    total_wealth_st: float


@dataclass
class SecondaryAnalysis:
    closing_costs: float
    loan_amount: float
    effective_financing_percent: float
    equity_required: float
    total_capital_day1: float
    gross_annual_rent_lt: float
    service_charges: float
    net_annual_rent_lt: float
    monthly_rent_lt: float
    gross_annual_rent_st: float
    operating_expenses: float
    management_fees: float
    net_annual_rent_st: float
    monthly_rent_st: float
    monthly_mortgage_payment: float
    total_annual_mortgage_payment: float
    dscr_long_term: float
    dscr_airbnb: float
    monthly_cashflow_lt: float
    monthly_cashflow_st: float
    covers_long_term: bool
    covers_airbnb: bool
    gross_yield_lt: float
    net_yield_lt: float
    gross_yield_st: float
    net_yield_st: float
    cash_on_cash_lt: float
    cash_on_cash_st: float
    yearly_projections: List[SecondaryYear] = field(default_factory=list)
    wealth_year5_lt: float = 0.0
    wealth_year5_st: float = 0.0
    wealth_year10_lt: float = 0.0
    wealth_year10_st: float = 0.0
    cumulative_rent_lt_10y: float = 0.0
    cumulative_rent_st_10y: float = 0.0


def _loan_amount(inputs: SecondaryInputs) -> float:
    if not inputs.use_mortgage:
        return 0.0
    if inputs.mortgage_mode == "fixed":
        return min(inputs.mortgage_fixed_amount, inputs.purchase_price * FIXED_LOAN_MAX_LTV)
    return inputs.purchase_price * inputs.mortgage_financing_percent / 100


def _pct(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


def calculate_secondary(
    inputs: SecondaryInputs,
    years: int = 10,
    current_year: Optional[int] = None,
) -> SecondaryAnalysis:
    """Capital, rental income, debt coverage and a wealth projection for a ready unit."""
    price = inputs.purchase_price
    current_year = current_year or date.today().year

    closing_costs = price * inputs.closing_costs_percent / 100
    loan = _loan_amount(inputs)
    equity_required = price - loan
    capital_day1 = equity_required + closing_costs

    gross_lt = price * inputs.rental_yield_percent / 100
    service_charges = inputs.unit_size_sqf * inputs.service_charge_per_sqft
    net_lt = gross_lt - service_charges
    monthly_lt = net_lt / 12

    days_occupied = 365 * inputs.occupancy_percent / 100
    gross_st = inputs.average_daily_rate * days_occupied
    opex = gross_st * inputs.operating_expense_percent / 100
    mgmt = gross_st * inputs.management_fee_percent / 100
    net_st = gross_st - opex - mgmt - service_charges
    monthly_st = net_st / 12

    payment = (
        monthly_payment(loan, inputs.mortgage_interest_rate, inputs.mortgage_loan_term_years)
        if inputs.use_mortgage else 0.0
    )
    annual_payment = payment * 12
    dscr_lt = monthly_lt / payment if payment > 0 else math.inf
    dscr_st = monthly_st / payment if payment > 0 else math.inf
    cashflow_lt = monthly_lt - payment
    cashflow_st = monthly_st - payment

    projections = []
    cumulative_lt = cumulative_st = 0.0
    balance = loan
    principal_total = 0.0
    monthly_rate = inputs.mortgage_interest_rate / 100 / 12
    for year in range(1, years + 1):
        elapsed = year - 1
        value = price * (1 + inputs.appreciation_rate / 100) ** elapsed
        rent_lt = gross_lt * (1 + inputs.rent_growth_rate / 100) ** elapsed
        year_service = service_charges * SERVICE_CHARGE_INFLATION ** elapsed
        year_net_lt = rent_lt - year_service

        adr = inputs.average_daily_rate * (1 + inputs.adr_growth_rate / 100) ** elapsed
        year_gross_st = adr * days_occupied
        year_opex = year_gross_st * inputs.operating_expense_percent / 100
        year_mgmt = year_gross_st * inputs.management_fee_percent / 100
        year_net_st = year_gross_st - year_opex - year_mgmt - year_service

        if inputs.use_mortgage and balance > 0:
            for _ in range(12):
                if balance <= 0:
                    break
                interest = balance * monthly_rate
                principal = min(payment - interest, balance)
                balance -= principal
                principal_total += principal

        year_payment = annual_payment if inputs.use_mortgage else 0.0
        cumulative_lt += year_net_lt
        cumulative_st += year_net_st
        equity_buildup = value - max(0.0, balance)
        projections.append(SecondaryYear(
            year=year,
            calendar_year=current_year + year,
            property_value=value,
            annual_rent_lt=rent_lt,
            service_charges=year_service,
            net_rent_lt=year_net_lt,
            cumulative_rent_lt=cumulative_lt,
            gross_rent_st=year_gross_st,
            expenses_st=year_opex + year_mgmt + year_service,
            net_rent_st=year_net_st,
            cumulative_rent_st=cumulative_st,
            annual_mortgage_payment=year_payment,
            cashflow_lt=year_net_lt - year_payment,
            cashflow_st=year_net_st - year_payment,
            mortgage_balance=max(0.0, balance),
            principal_paid=principal_total,
            equity_buildup=equity_buildup,
            total_wealth_lt=equity_buildup + cumulative_lt - capital_day1,
            total_wealth_st=equity_buildup + cumulative_st - capital_day1,
        ))

    def at(index: int, attr: str) -> float:
        return getattr(projections[index], attr) if len(projections) > index else 0.0

    logger.info("Secondary: price=%.0f loan=%.0f dscr_lt=%.2f", price, loan, dscr_lt)
    return SecondaryAnalysis(
        closing_costs=closing_costs,
        loan_amount=loan,
        effective_financing_percent=_pct(loan, price),
        equity_required=equity_required,
        total_capital_day1=capital_day1,
        gross_annual_rent_lt=gross_lt,
        service_charges=service_charges,
        net_annual_rent_lt=net_lt,
        monthly_rent_lt=monthly_lt,
        gross_annual_rent_st=gross_st,
        operating_expenses=opex,
        management_fees=mgmt,
        net_annual_rent_st=net_st,
        monthly_rent_st=monthly_st,
        monthly_mortgage_payment=payment,
        total_annual_mortgage_payment=annual_payment,
        dscr_long_term=dscr_lt,
        dscr_airbnb=dscr_st,
        monthly_cashflow_lt=cashflow_lt,
        monthly_cashflow_st=cashflow_st,
        covers_long_term=dscr_lt >= 1,
        covers_airbnb=dscr_st >= 1,
        gross_yield_lt=_pct(gross_lt, price),
        net_yield_lt=_pct(net_lt, price),
        gross_yield_st=_pct(gross_st, price),
        net_yield_st=_pct(net_st, price),
        cash_on_cash_lt=_pct(cashflow_lt * 12, capital_day1),
        cash_on_cash_st=_pct(cashflow_st * 12, capital_day1),
        yearly_projections=projections,
        wealth_year5_lt=at(4, "total_wealth_lt"),
        wealth_year5_st=at(4, "total_wealth_st"),
        wealth_year10_lt=at(9, "total_wealth_lt"),
        wealth_year10_st=at(9, "total_wealth_st"),
        cumulative_rent_lt_10y=at(9, "cumulative_rent_lt"),
        cumulative_rent_st_10y=at(9, "cumulative_rent_st"),
    )
