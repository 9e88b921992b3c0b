"""Payment plan handling: extracted-plan validation, mapping, and the installment schedule."""

import logging
import re
from typing import Any, Dict, List, Optional

from analysis.construction_progress import construction_to_month
from analysis.inputs import CashflowInputs, PaymentMilestone, dld_fee, total_months
from config import config

logger = logging.getLogger(__name__)

_MONTH_YEAR_SUFFIX = re.compile(
    r"\s+(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?|"
    r"Aug(?:ust)?|Sep(?:tember)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\s+\d{4}\s*$",
    re.IGNORECASE,
)
_YEAR_SUFFIX = re.compile(r"\s+\d{4}\s*$")


def _milestones(plan: Dict[str, Any]) -> List[Dict[str, Any]]:
    milestones = plan.get("milestones")
    return milestones if isinstance(milestones, list) else []


def validate_extracted_plan(plan: Dict[str, Any]) -> float:
    """Check that an extracted plan's percentages add up to 100.

    Mutates ``plan`` in place: a sum more than ``PLAN_SUM_TOLERANCE`` points
    away from 100 appends a warning and caps ``overall_confidence``.
    Returns the computed total.
    """
    total = float(plan.get("downpayment_percent") or 0)
    total += sum(float(m.get("payment_percent") or 0) for m in _milestones(plan))
    if plan.get("has_post_handover"):
        total += float(plan.get("on_handover_percent") or 0)

    if abs(total - 100) > config.PLAN_SUM_TOLERANCE:
        plan.setdefault("warnings", []).append(
            f"Extracted percentages sum to {total:.1f}%, not 100%. Manual adjustment may be needed."
        )
        confidence = plan.get("overall_confidence")
        plan["overall_confidence"] = (
            config.LOW_CONFIDENCE_CAP if confidence is None
            else min(float(confidence), config.LOW_CONFIDENCE_CAP)
        )
        logger.warning("Extracted plan sums to %.1f%%", total)
    return total


def clean_label(label: Optional[str]) -> Optional[str]:
    """"1st Payment February 2026" -> "1st Installment"."""
    if not label:
        return label
    cleaned = re.sub("payment", "Installment", label, flags=re.IGNORECASE)
    cleaned = _MONTH_YEAR_SUFFIX.sub("", cleaned)
    cleaned = _YEAR_SUFFIX.sub("", cleaned)
    return cleaned.strip() or label


def sqf_to_m2(sqf: float) -> float:
    return round(sqf * config.SQF_TO_M2, 1)


def add_months(month: int, year: int, offset: int):
    """(month, year) shifted by ``offset`` months."""
    index = (year * 12 + month - 1) + int(offset)
    return index % 12 + 1, index // 12


def apply_extracted_plan(
    plan: Dict[str, Any],
    booking_month: int,
    booking_year: int,
    current_inputs: Optional[CashflowInputs] = None,
) -> Dict[str, Any]:
    """Map an extracted plan onto quote inputs.

    Returns ``{"inputs": {...}, "client_info": {...}}`` where ``inputs`` holds
    only the fields the plan determines, ready to merge over the current
    inputs.
    """
    current = current_inputs or CashflowInputs()
    client_info: Dict[str, Any] = {}
    for src, dst in (("developer", "developer"), ("project_name", "project_name"),
                     ("unit_number", "unit"), ("unit_type", "unit_type")):
        if plan.get(src):
            client_info[dst] = plan[src]
    size = plan.get("size_sqft")
    if size:
        client_info["unit_size_sqf"] = size
        client_info["unit_size_m2"] = sqf_to_m2(float(size))

    handover_month, handover_year = current.handover_month, current.handover_year
    if plan.get("handover_month_from_booking"):
        handover_month, handover_year = add_months(
            booking_month, booking_year, plan["handover_month_from_booking"])
    elif plan.get("handover_month") and plan.get("handover_year"):
        handover_month, handover_year = int(plan["handover_month"]), int(plan["handover_year"])

    milestones = _milestones(plan)
    downpayment = float(plan.get("downpayment_percent") or 0)
    pre_handover = downpayment + sum(
        float(m.get("payment_percent") or 0) for m in milestones
        if m.get("type") in ("time", "construction") and not m.get("is_handover")
    )

    additional = []
    for idx, m in enumerate(x for x in milestones if x.get("type") != "post-handover"):
        additional.append(PaymentMilestone(
            id=f"ai-{idx}",
            type="construction" if m.get("type") == "construction" else "time",
            trigger_value=float(m.get("trigger_value") or 0),
            payment_percent=float(m.get("payment_percent") or 0),
            label=clean_label(m.get("label")) or "",
            is_handover=bool(m.get("is_handover")),
        ))

    post = []
    if plan.get("has_post_handover"):
        post_rows = [m for m in milestones if m.get("type") == "post-handover"]
        for idx, m in enumerate(post_rows):
            post.append(PaymentMilestone(
                id=f"ai-post-{idx}",
                type="post-handover",
                trigger_value=float(m.get("trigger_value") or 0),
                payment_percent=float(m.get("payment_percent") or 0),
                label=clean_label(m.get("label")) or "",
            ))
        post.sort(key=lambda p: p.trigger_value)

    post_percent = plan.get("post_handover_percent") or sum(p.payment_percent for p in post)

    inputs: Dict[str, Any] = {
        "booking_month": booking_month,
        "booking_year": booking_year,
        "downpayment_percent": downpayment,
        "pre_handover_percent": pre_handover,
        "additional_payments": additional,
        "handover_month": handover_month,
        "handover_year": handover_year,
        "has_post_handover_plan": bool(plan.get("has_post_handover")),
        "on_handover_percent": float(plan.get("on_handover_percent") or 0),
        "post_handover_percent": float(post_percent),
        "post_handover_payments": post,
    }
    if plan.get("purchase_price"):
        inputs["base_price"] = float(plan["purchase_price"])
    if size:
        inputs["unit_size_sqf"] = float(size)

    logger.info(
        "Applied extracted plan: %d pre-handover and %d post-handover installment(s)",
        len(additional), len(post),
    )
    return {"inputs": inputs, "client_info": client_info}


def build_payment_schedule(inputs: CashflowInputs) -> Dict[str, Any]:
    """Every installment placed on the timeline, with entry costs and the amount due today."""
    months = total_months(inputs)
    price = inputs.base_price
    rows = []

    downpayment = price * inputs.downpayment_percent / 100
    rows.append({
        "label": "Downpayment",
        "type": "booking",
        "month": 0,
        "payment_percent": inputs.downpayment_percent,
        "amount": downpayment,
    })

    for m in inputs.additional_payments:
        if m.payment_percent <= 0:
            continue
        if m.is_handover:
            month = months
        elif m.type == "construction":
            month = construction_to_month(m.trigger_value, months)
        else:
            month = int(m.trigger_value)
        rows.append({
            "label": m.label or (f"{m.trigger_value:g}% construction" if m.type == "construction"
                                 else f"Month {int(m.trigger_value)}"),
            "type": "handover" if m.is_handover else m.type,
            "month": month,
            "payment_percent": m.payment_percent,
            "amount": price * m.payment_percent / 100,
        })

    has_explicit_handover = any(m.is_handover for m in inputs.additional_payments)
    if inputs.has_post_handover_plan:
        handover_percent = inputs.on_handover_percent or 0
    else:
        handover_percent = 0 if has_explicit_handover else 100 - inputs.pre_handover_percent
    if handover_percent > 0:
        rows.append({
            "label": "Handover",
            "type": "handover",
            "month": months,
            "payment_percent": handover_percent,
            "amount": price * handover_percent / 100,
        })

    if inputs.has_post_handover_plan:
        for m in inputs.post_handover_payments:
            if m.payment_percent <= 0:
                continue
            rows.append({
                "label": m.label or f"{int(m.trigger_value)} months after handover",
                "type": "post-handover",
                "month": months + int(m.trigger_value),
                "payment_percent": m.payment_percent,
                "amount": price * m.payment_percent / 100,
            })

    rows.sort(key=lambda r: r["month"])
    dld = dld_fee(inputs)
    eoi = min(inputs.eoi_fee or 0, downpayment)
    return {
        "total_months": months,
        "installments": rows,
        "total_percent": sum(r["payment_percent"] for r in rows),
        "eoi_fee": eoi,
        "downpayment_balance": downpayment - eoi,
        "dld_fee": dld,
        "oqood_fee": inputs.oqood_fee or 0,
        "due_today": downpayment + dld + (inputs.oqood_fee or 0),
    }
