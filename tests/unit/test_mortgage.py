import pytest

from analysis.mortgage import (
    MortgageInputs,
    _stress_status,
    amortize,
    calculate_mortgage,
    monthly_payment,
)


def test_monthly_payment_without_interest_is_straight_line():
    assert monthly_payment(1_200_000, 0, 25) == pytest.approx(4_000)


def test_monthly_payment_with_zero_term():
    assert monthly_payment(1_000_000, 4.5, 0) == 0.0


def test_full_term_amortization_repays_the_loan():
    payment = monthly_payment(480_000, 4.5, 25)

    schedule = amortize(480_000, 4.5, payment, 25)

    assert len(schedule) == 25
    assert schedule[-1].balance == pytest.approx(0, abs=1)
    assert schedule[-1].principal_paid == pytest.approx(480_000, abs=1)
    assert schedule[-1].interest_paid == pytest.approx(payment * 300 - 480_000, abs=1)
    balances = [p.balance for p in schedule]
    assert balances == sorted(balances, reverse=True)


def test_gap_between_equity_and_pre_handover_payments():
    mortgage = MortgageInputs(enabled=True, financing_percent=60)

    with_gap = calculate_mortgage(mortgage, 1_000_000, pre_handover_percent=30)
    no_gap = calculate_mortgage(mortgage, 1_000_000, pre_handover_percent=50)

    assert with_gap.equity_required_percent == 40
    assert with_gap.gap_percent == 10
    assert with_gap.gap_amount == pytest.approx(100_000)
    assert with_gap.has_gap
    assert no_gap.gap_percent == 0
    assert not no_gap.has_gap


def test_fees_and_insurance():
    mortgage = MortgageInputs(enabled=True, financing_percent=60, processing_fee_percent=1,
                              valuation_fee=3_000, mortgage_registration_percent=0.25,
                              life_insurance_percent=0.4, property_insurance=1_500, loan_term_years=25)

    analysis = calculate_mortgage(mortgage, 1_000_000, pre_handover_percent=40)

    assert analysis.loan_amount == pytest.approx(600_000)
    assert analysis.processing_fee == pytest.approx(6_000)
    assert analysis.mortgage_registration == pytest.approx(1_500)
    assert analysis.total_upfront_fees == pytest.approx(10_500)
    assert analysis.total_annual_insurance == pytest.approx(2_400 + 1_500)
    assert analysis.total_insurance_over_term == pytest.approx(3_900 * 25)
    assert analysis.principal_paid_year5 == analysis.amortization_schedule[4].principal_paid
    assert analysis.total_interest == pytest.approx(analysis.total_loan_payments - 600_000)


def test_stress_scenarios_step_up_the_rate():
    mortgage = MortgageInputs(enabled=True, interest_rate=4.5)

    analysis = calculate_mortgage(mortgage, 1_000_000, 40, monthly_rent=20_000)

    rates = [s.rate for s in analysis.stress_scenarios]
    assert rates == [4.5, 5.5, 6.5]
    payments = [s.monthly_payment for s in analysis.stress_scenarios]
    assert payments == sorted(payments)
    assert all(s.status == "positive" for s in analysis.stress_scenarios)

    no_rent = calculate_mortgage(mortgage, 1_000_000, 40)
    assert all(s.status == "negative" for s in no_rent.stress_scenarios)


def test_stress_status_bands():
    assert _stress_status(0, 1_000) == "positive"
    assert _stress_status(-50, 1_000) == "tight"
    assert _stress_status(-200, 1_000) == "negative"


def test_from_dict_ignores_unknown_and_null_fields():
    mortgage = MortgageInputs.from_dict({"interest_rate": 5.0, "bogus": 1, "loan_term_years": None})

    assert mortgage.interest_rate == 5.0
    assert mortgage.loan_term_years == 25
