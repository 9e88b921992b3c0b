import pytest

from analysis.inputs import migrate_inputs
from analysis.payment_plan import (
    add_months,
    apply_extracted_plan,
    build_payment_schedule,
    clean_label,
    sqf_to_m2,
    validate_extracted_plan,
)


def _extracted_plan():
    return {
        "developer": "Emaar",
        "project_name": "Creek Vista",
        "unit_number": "1204",
        "unit_type": "2BR",
        "size_sqft": 1000,
        "purchase_price": 2_000_000,
        "downpayment_percent": 10,
        "handover_month_from_booking": 30,
        "has_post_handover": True,
        "on_handover_percent": 10,
        "overall_confidence": 92,
        "milestones": [
            {"type": "time", "trigger_value": 6, "payment_percent": 20, "label": "1st Payment February 2026"},
            {"type": "construction", "trigger_value": 50, "payment_percent": 20, "label": "On 50% completion"},
            {"type": "post-handover", "trigger_value": 12, "payment_percent": 20, "label": "Post handover 2"},
            {"type": "post-handover", "trigger_value": 6, "payment_percent": 20, "label": "Post handover 1"},
        ],
    }


def test_validate_accepts_plan_summing_to_one_hundred():
    plan = _extracted_plan()

    total = validate_extracted_plan(plan)

    assert total == pytest.approx(100)
    assert "warnings" not in plan
    assert plan["overall_confidence"] == 92


def test_validate_flags_bad_sum_and_caps_confidence():
    plan = {
        "downpayment_percent": 20,
        "milestones": [{"type": "time", "trigger_value": 3, "payment_percent": 10}],
        "overall_confidence": 95,
    }

    total = validate_extracted_plan(plan)

    assert total == pytest.approx(30)
    assert plan["warnings"] == [
        "Extracted percentages sum to 30.0%, not 100%. Manual adjustment may be needed."
    ]
    assert plan["overall_confidence"] == 70


def test_validate_ignores_on_handover_without_post_handover_plan():
    plan = {"downpayment_percent": 60, "on_handover_percent": 40, "milestones": [
        {"type": "time", "trigger_value": 12, "payment_percent": 40, "is_handover": True},
    ]}

    assert validate_extracted_plan(plan) == pytest.approx(100)


def test_clean_label():
    assert clean_label("1st Payment February 2026") == "1st Installment"
    assert clean_label("Handover 2027") == "Handover"
    assert clean_label(None) is None


def test_sqf_to_m2():
    assert sqf_to_m2(1000) == 92.9


def test_add_months_wraps_years():
    assert add_months(11, 2025, 3) == (2, 2026)
    assert add_months(1, 2025, 0) == (1, 2025)
    assert add_months(12, 2025, 12) == (12, 2026)


def test_apply_extracted_plan():
    result = apply_extracted_plan(_extracted_plan(), booking_month=3, booking_year=2025)

    info = result["client_info"]
    assert info == {
        "developer": "Emaar",
        "project_name": "Creek Vista",
        "unit": "1204",
        "unit_type": "2BR",
        "unit_size_sqf": 1000,
        "unit_size_m2": 92.9,
    }

    inputs = result["inputs"]
    assert (inputs["handover_month"], inputs["handover_year"]) == (9, 2027)
    assert inputs["base_price"] == 2_000_000
    assert inputs["pre_handover_percent"] == pytest.approx(50)
    assert inputs["post_handover_percent"] == pytest.approx(40)
    assert inputs["has_post_handover_plan"] is True
    assert [m.id for m in inputs["additional_payments"]] == ["ai-0", "ai-1"]
    assert inputs["additional_payments"][0].label == "1st Installment"
    assert inputs["additional_payments"][1].type == "construction"
    assert [m.trigger_value for m in inputs["post_handover_payments"]] == [6, 12]


def test_apply_uses_explicit_handover_date():
    plan = {"downpayment_percent": 100, "handover_month": 4, "handover_year": 2029, "milestones": []}

    inputs = apply_extracted_plan(plan, 1, 2026)["inputs"]

    assert (inputs["handover_month"], inputs["handover_year"]) == (4, 2029)
    assert inputs["post_handover_payments"] == []


def test_default_schedule_has_downpayment_and_handover():
    schedule = build_payment_schedule(migrate_inputs(None))

    rows = schedule["installments"]
    assert [r["type"] for r in rows] == ["booking", "handover"]
    assert rows[0]["amount"] == pytest.approx(160_000)
    assert rows[1]["month"] == 33
    assert rows[1]["payment_percent"] == pytest.approx(80)
    assert schedule["total_percent"] == pytest.approx(100)
    assert schedule["due_today"] == pytest.approx(160_000 + 32_000 + 5_000)
    assert schedule["downpayment_balance"] == pytest.approx(110_000)


def test_schedule_places_construction_milestones_on_the_s_curve():
    inputs = migrate_inputs({
        "downpayment_percent": 20,
        "pre_handover_percent": 40,
        "additional_payments": [{"type": "construction", "trigger_value": 50, "payment_percent": 20}],
    })

    rows = build_payment_schedule(inputs)["installments"]

    construction = next(r for r in rows if r["type"] == "construction")
    assert construction["month"] == 19  # 58% of a 33-month build


def test_explicit_handover_milestone_replaces_generated_handover_row():
    inputs = migrate_inputs({
        "downpayment_percent": 40,
        "pre_handover_percent": 40,
        "additional_payments": [
            {"type": "time", "trigger_value": 33, "payment_percent": 60, "label": "Completion", "is_handover": True},
        ],
    })

    rows = build_payment_schedule(inputs)["installments"]

    assert [r["label"] for r in rows] == ["Downpayment", "Completion"]
    assert rows[1]["type"] == "handover"


def test_post_handover_rows_follow_handover():
    inputs = migrate_inputs({
        "downpayment_percent": 20,
        "pre_handover_percent": 40,
        "additional_payments": [{"type": "time", "trigger_value": 12, "payment_percent": 20}],
        "has_post_handover_plan": True,
        "on_handover_percent": 20,
        "post_handover_payments": [{"trigger_value": 12, "payment_percent": 40}],
    })

    schedule = build_payment_schedule(inputs)

    months = [r["month"] for r in schedule["installments"]]
    assert months == [0, 12, 33, 45]
    assert schedule["total_percent"] == pytest.approx(100)
