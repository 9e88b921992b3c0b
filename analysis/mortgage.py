"""Mortgage financing analysis: gap funding, amortization, and rate stress tests."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TIGHT_CASHFLOW_BAND = 0.10  # within 10% of total monthly debt counts as "tight"


@dataclass
class MortgageInputs:
    enabled: bool = False
    financing_percent: float = 60.0
    loan_term_years: int = 25
    interest_rate: float = 4.5
    processing_fee_percent: float = 1.0
    valuation_fee: float = 3_000.0
    mortgage_registration_percent: float = 0.25
    life_insurance_percent: float = 0.4  # annual, of loan amount
    property_insurance: float = 1_500.0  # annual

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MortgageInputs":
        data = data or {}
        known = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})


@dataclass
class AmortizationPoint:
    year: int
    balance: float
    principal_paid: float
    interest_paid: float


@dataclass
class StressScenario:
    rate: float
    monthly_payment: float
    net_cashflow: float
    status: str  # positive | tight | negative


@dataclass
class MortgageAnalysis:
    equity_required_percent: float
    pre_handover_payments: float
    gap_percent: float
    gap_amount: float
    has_gap: bool
    loan_amount: float
    monthly_payment: float
    total_interest: float
    total_loan_payments: float
    processing_fee: float
    valuation_fee: float
    mortgage_registration: float
    total_upfront_fees: float
    annual_life_insurance: float
    annual_property_insurance: float
    total_annual_insurance: float
    total_insurance_over_term: float
    total_cost_with_mortgage: float
    total_interest_and_fees: float
    principal_paid_year5: float
    principal_paid_year10: float
    amortization_schedule: List[AmortizationPoint] = field(default_factory=list)
    stress_scenarios: List[StressScenario] = field(default_factory=list)


def monthly_payment(principal: float, annual_rate: float, term_years: float) -> float:
    """Level monthly annuity payment."""
    monthly_rate = annual_rate / 100 / 12
    n = term_years * 12
    if monthly_rate > 0 and n > 0:
        factor = (1 + monthly_rate) ** n
        return principal * (monthly_rate * factor) / (factor - 1)
    if n > 0:
        return principal / n
    return 0.0


def amortize(loan_amount: float, annual_rate: float, payment: float, years: int) -> List[AmortizationPoint]:
    """Year-end balances with cumulative principal and interest paid."""
    schedule = []
    balance = loan_amount
    principal_total = 0.0
    interest_total = 0.0
    monthly_rate = annual_rate / 100 / 12
    for year in range(1, years + 1):
        for _ in range(12):
            if balance <= 0:
                break
            interest = balance * monthly_rate
            principal = min(payment - interest, balance)
            balance -= principal
            principal_total += principal
            interest_total += interest
        schedule.append(AmortizationPoint(
            year=year,
            balance=max(0.0, balance),
            principal_paid=principal_total,
            interest_paid=interest_total,
        ))
    return schedule


def _stress_status(cashflow: float, total_debt: float) -> str:
    if cashflow >= 0:
        return "positive"
    if cashflow >= -total_debt * TIGHT_CASHFLOW_BAND:
        return "tight"
    return "negative"


def calculate_mortgage(
    mortgage: MortgageInputs,
    base_price: float,
    pre_handover_percent: float,
    monthly_rent: float = 0.0,
    monthly_service_charges: float = 0.0,
) -> MortgageAnalysis:
    """Full cost of financing the handover balance of an off-plan unit."""
    equity_required = 100 - mortgage.financing_percent
    gap_percent = max(0.0, equity_required - pre_handover_percent)
    loan_amount = base_price * mortgage.financing_percent / 100

    payment = monthly_payment(loan_amount, mortgage.interest_rate, mortgage.loan_term_years)
    total_payments = payment * mortgage.loan_term_years * 12
    total_interest = total_payments - loan_amount

    processing_fee = loan_amount * mortgage.processing_fee_percent / 100
    registration = loan_amount * mortgage.mortgage_registration_percent / 100
    upfront = processing_fee + mortgage.valuation_fee + registration

    life = loan_amount * mortgage.life_insurance_percent / 100
    annual_insurance = life + mortgage.property_insurance
    insurance_over_term = annual_insurance * mortgage.loan_term_years

    equity_paid = base_price * equity_required / 100
    schedule = amortize(loan_amount, mortgage.interest_rate, payment, int(mortgage.loan_term_years))

    net_rent = monthly_rent - monthly_service_charges
    monthly_insurance = annual_insurance / 12
    stress = []
    for rate in (mortgage.interest_rate, mortgage.interest_rate + 1, mortgage.interest_rate + 2):
        stressed_payment = monthly_payment(loan_amount, rate, mortgage.loan_term_years)
        total_debt = stressed_payment + monthly_insurance
        cashflow = net_rent - total_debt
        stress.append(StressScenario(rate, stressed_payment, cashflow, _stress_status(cashflow, total_debt)))

    logger.info(
        "Mortgage: loan=%.0f payment=%.2f/mo over %s years at %.2f%%",
        loan_amount, payment, mortgage.loan_term_years, mortgage.interest_rate,
    )
    return MortgageAnalysis(
        equity_required_percent=equity_required,
        pre_handover_payments=pre_handover_percent,
        gap_percent=gap_percent,
        gap_amount=base_price * gap_percent / 100,
        has_gap=gap_percent > 0,
        loan_amount=loan_amount,
        monthly_payment=payment,
        total_interest=total_interest,
        total_loan_payments=total_payments,
        processing_fee=processing_fee,
        valuation_fee=mortgage.valuation_fee,
        mortgage_registration=registration,
        total_upfront_fees=upfront,
        annual_life_insurance=life,
        annual_property_insurance=mortgage.property_insurance,
        total_annual_insurance=annual_insurance,
        total_insurance_over_term=insurance_over_term,
        total_cost_with_mortgage=equity_paid + total_payments + upfront + insurance_over_term,
        total_interest_and_fees=total_interest + upfront + insurance_over_term,
        principal_paid_year5=schedule[4].principal_paid if len(schedule) > 4 else 0.0,
        principal_paid_year10=schedule[9].principal_paid if len(schedule) > 9 else 0.0,
        amortization_schedule=schedule,
        stress_scenarios=stress,
    )
