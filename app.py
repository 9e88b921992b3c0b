"""Flask API for the off-plan investment CRM."""

import dataclasses
import io
import logging
import math
from typing import Any

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from analysis.construction_progress import month_when_threshold_met
from analysis.inputs import migrate_inputs, total_months
from analysis.mortgage import MortgageInputs, calculate_mortgage
from analysis.payment_plan import apply_extracted_plan, build_payment_schedule, validate_extracted_plan
from analysis.portfolio import portfolio_metrics, portfolio_projections
from analysis.projections import (
    calculate_exit_scenarios,
    calculate_investor_roi,
    calculate_oi_projections,
    summarize_quote,
)
from analysis.secondary import SecondaryInputs, calculate_secondary
from config import config
from crm import analytics, clients, comparisons, presentations, presets, profiles, properties, quotes
from crm.errors import NotFoundError, ValidationError
from crm.validation import text
from data_fetchers.geolocation_fetcher import get_client_ip
from notifications import send_first_view_notification, send_quote_to_client, send_status_notification
from storage.record_store import RecordStore, is_valid_id

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SECRET_KEY"] = config.SECRET_KEY
app.config["STORE"] = RecordStore()
app.json.sort_keys = False  # preserve dict key order
CORS(app)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _store() -> RecordStore:
    return app.config["STORE"]


def _broker_id() -> str:
    broker_id = (request.headers.get("X-Broker-Id") or "").strip()
    if not broker_id:
        raise PermissionError("X-Broker-Id header is required")
    if not is_valid_id(broker_id):
        raise ValidationError(["X-Broker-Id must not contain path separators or start with a dot"])
    return broker_id


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _clean(value: Any) -> Any:
    """Dataclasses to dicts, and non-finite floats to null, for JSON output."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, dict):
        return {k: _clean(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_clean(v) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _json(value: Any, status: int = 200):
    return jsonify(_clean(value)), status


def _flag(name: str) -> bool:
    return request.args.get(name, "").lower() in ("1", "true", "yes")


# ------------------------------------------------------------------
# Error handling
# ------------------------------------------------------------------

@app.errorhandler(PermissionError)
def _unauthorized(exc):
    return jsonify({"error": "Unauthorized", "detail": str(exc)}), 401


@app.errorhandler(NotFoundError)
def _not_found(exc):
    logger.info("Not found: %s", exc)
    return jsonify({"error": str(exc)}), 404


@app.errorhandler(ValidationError)
def _invalid(exc):
    return jsonify({"error": str(exc), "issues": exc.issues}), 400


@app.errorhandler(Exception)
def _unexpected(exc):
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, (ValueError, TypeError)):
        logger.error("Bad request: %s", exc)
        return jsonify({"error": str(exc)}), 400
    logger.exception("Unexpected error")
    return jsonify({"error": "Internal server error", "detail": str(exc)}), 500


# ------------------------------------------------------------------
# Health / defaults
# ------------------------------------------------------------------

@app.route("/api/health", methods=["GET"])
def health():
    """Health-check endpoint."""
    issues = config.validate()
    return jsonify({"status": "ok" if not issues else "degraded", "issues": issues})


@app.route("/api/defaults", methods=["GET"])
def defaults():
    """Starting inputs for a new quote, seeded from the broker's profile when known."""
    has_broker = bool((request.headers.get("X-Broker-Id") or "").strip())
    profile = profiles.get_or_create_profile(_store(), _broker_id()) if has_broker else {}
    return _json({
        "inputs": profiles.default_inputs(profile).to_dict(),
        "mortgage": profiles.default_mortgage(profile),
        "secondary": SecondaryInputs(),
    })


# ------------------------------------------------------------------
# Calculators
# ------------------------------------------------------------------

@app.route("/api/calculate/cashflow", methods=["POST"])
def calculate_cashflow():
    """Full cashflow view for a set of inputs.

    Expects JSON body::

        {"inputs": {...}}   // saved or legacy inputs; migrated before use
    """
    data = _body()
    inputs = migrate_inputs(data.get("inputs", data))
    return _json({
        "inputs": inputs.to_dict(),
        "summary": summarize_quote(inputs),
        "schedule": build_payment_schedule(inputs),
        "projections": calculate_oi_projections(inputs),
    })


@app.route("/api/calculate/exits", methods=["POST"])
def calculate_exits():
    """Exit scenarios; ``exit_months`` overrides the quote's own exit points."""
    data = _body()
    inputs = migrate_inputs(data.get("inputs", data))
    exit_months = data.get("exit_months")
    if exit_months is not None and not isinstance(exit_months, list):
        raise ValidationError(["exit_months must be a list of whole months"])
    scenarios = calculate_exit_scenarios(inputs, [int(m) for m in exit_months] if exit_months else None)
    months = total_months(inputs)
    return _json({
        "scenarios": scenarios,
        "total_months": months,
        "threshold_month": month_when_threshold_met(inputs, months, inputs.base_price),
    })


@app.route("/api/calculate/investor-roi", methods=["POST"])
def calculate_investor_roi_route():
    data = _body()
    inputs = migrate_inputs(data.get("inputs", data))
    result = calculate_investor_roi(
        inputs,
        resale_threshold_percent=float(data.get("resale_threshold_percent", 40)),
        oi_holding_months=int(data.get("oi_holding_months", 12)),
    )
    return _json(result)


@app.route("/api/calculate/mortgage", methods=["POST"])
def calculate_mortgage_route():
    """Mortgage analysis for a quote.

    Expects JSON body::

        {
            "inputs": {...},      // quote inputs (price, pre-handover share, rent)
            "mortgage": {...}     // MortgageInputs fields
        }
    """
    data = _body()
    inputs = migrate_inputs(data.get("inputs"))
    mortgage = MortgageInputs.from_dict(data.get("mortgage"))
    monthly_rent = data.get("monthly_rent")
    if monthly_rent is None:
        monthly_rent = inputs.base_price * inputs.rental_yield_percent / 100 / 12
    service_charges = data.get("monthly_service_charges")
    if service_charges is None:
        service_charges = inputs.unit_size_sqf * inputs.service_charge_per_sqft / 12
    analysis = calculate_mortgage(
        mortgage, inputs.base_price, inputs.pre_handover_percent,
        monthly_rent=float(monthly_rent), monthly_service_charges=float(service_charges),
    )
    return _json(analysis)


@app.route("/api/calculate/secondary", methods=["POST"])
def calculate_secondary_route():
    data = _body()
    inputs = SecondaryInputs.from_dict(data.get("inputs", data))
    return _json(calculate_secondary(inputs, years=int(data.get("years", 10))))


@app.route("/api/calculate/portfolio", methods=["POST"])
def calculate_portfolio():
    """Portfolio metrics and growth projection for a list of properties."""
    data = _body()
    rows = data.get("properties") or []
    metrics = portfolio_metrics(rows)
    projections = portfolio_projections(
        rows, metrics,
        appreciation_rate=float(data.get("appreciation_rate", config.PORTFOLIO_APPRECIATION_RATE)),
        rent_growth_rate=float(data.get("rent_growth_rate", config.PORTFOLIO_RENT_GROWTH_RATE)),
    )
    return _json({"metrics": metrics, "projections": projections})


@app.route("/api/portfolio", methods=["GET"])
def broker_portfolio():
    """Portfolio of the broker's recorded properties (optionally one client's)."""
    rows = properties.list_properties(_store(), _broker_id(), client_id=request.args.get("client_id"))
    metrics = portfolio_metrics(rows)
    return _json({"metrics": metrics, "projections": portfolio_projections(rows, metrics)})


# ------------------------------------------------------------------
# Payment plans
# ------------------------------------------------------------------

@app.route("/api/payment-plan/validate", methods=["POST"])
def payment_plan_validate():
    plan = _body()
    total = validate_extracted_plan(plan)
    return jsonify({"total_percent": total, "plan": plan})


@app.route("/api/payment-plan/apply", methods=["POST"])
def payment_plan_apply():
    """Map an extracted plan onto quote inputs.

    Expects JSON body::

        {
            "plan": {...},
            "booking_month": 3,
            "booking_year": 2026,
            "current_inputs": {...}   // optional
        }
    """
    data = _body()
    plan = data.get("plan")
    if not isinstance(plan, dict):
        raise ValidationError(["plan is required"])
    validate_extracted_plan(plan)
    result = apply_extracted_plan(
        plan,
        int(data.get("booking_month", 1)),
        int(data.get("booking_year", 2025)),
        current_inputs=migrate_inputs(data["current_inputs"]) if data.get("current_inputs") else None,
    )
    result["warnings"] = plan.get("warnings", [])
    result["overall_confidence"] = plan.get("overall_confidence")
    return _json(result)


@app.route("/api/payment-plan/schedule", methods=["POST"])
def payment_plan_schedule():
    data = _body()
    return _json(build_payment_schedule(migrate_inputs(data.get("inputs", data))))


# ------------------------------------------------------------------
# Quotes
# ------------------------------------------------------------------

@app.route("/api/quotes", methods=["GET"])
def list_quotes():
    rows = quotes.list_quotes(_store(), _broker_id(), client_id=request.args.get("client_id"),
                              archived=_flag("archived"))
    return jsonify({"count": len(rows), "quotes": rows})


@app.route("/api/quotes", methods=["POST"])
def create_quote():
    return jsonify(quotes.create_quote(_store(), _broker_id(), _body())), 201


@app.route("/api/quotes/<quote_id>", methods=["GET"])
def get_quote(quote_id: str):
    return jsonify(quotes.get_quote(_store(), _broker_id(), quote_id))


@app.route("/api/quotes/<quote_id>", methods=["PUT", "PATCH"])
def update_quote(quote_id: str):
    return jsonify(quotes.update_quote(_store(), _broker_id(), quote_id, _body()))


@app.route("/api/quotes/<quote_id>", methods=["DELETE"])
def delete_quote(quote_id: str):
    quotes.delete_quote(_store(), _broker_id(), quote_id)
    return jsonify({"ok": True})


@app.route("/api/quotes/<quote_id>/archive", methods=["POST"])
def archive_quote(quote_id: str):
    return jsonify(quotes.set_archived(_store(), _broker_id(), quote_id, True))


@app.route("/api/quotes/<quote_id>/unarchive", methods=["POST"])
def unarchive_quote(quote_id: str):
    return jsonify(quotes.set_archived(_store(), _broker_id(), quote_id, False))


@app.route("/api/quotes/<quote_id>/status", methods=["POST"])
def update_quote_status(quote_id: str):
    """Move a quote through the sales pipeline; a sale e-mails the broker."""
    broker_id = _broker_id()
    status = text(_body().get("status")).lower()
    row = quotes.set_status(_store(), broker_id, quote_id, status)
    emailed, email_status = send_status_notification(
        profiles.get_or_create_profile(_store(), broker_id), row, status,
    )
    return jsonify({"quote": row, "emailNotification": emailed, "emailStatus": email_status})


@app.route("/api/quotes/<quote_id>/duplicate", methods=["POST"])
def duplicate_quote(quote_id: str):
    return jsonify(quotes.duplicate_quote(_store(), _broker_id(), quote_id)), 201


@app.route("/api/quotes/<quote_id>/share", methods=["POST"])
def share_quote(quote_id: str):
    row = quotes.share_quote(_store(), _broker_id(), quote_id)
    return jsonify({"quote": row, "share_url": quotes.share_url(row["share_token"])})


@app.route("/api/quotes/<quote_id>/email", methods=["POST"])
def email_quote(quote_id: str):
    """Share the quote and e-mail the link to its client."""
    broker_id = _broker_id()
    row = quotes.share_quote(_store(), broker_id, quote_id)
    profile = profiles.get_or_create_profile(_store(), broker_id)
    url = quotes.share_url(row["share_token"])
    emailed, status = send_quote_to_client(
        row, url,
        advisor_name=profile.get("full_name") or "Your advisor",
        advisor_email=profile.get("business_email") or profile.get("email"),
    )
    return jsonify({"ok": emailed, "status": status, "share_url": url})


@app.route("/api/quotes/<quote_id>/versions", methods=["GET"])
def list_quote_versions(quote_id: str):
    rows = quotes.list_versions(_store(), _broker_id(), quote_id)
    return jsonify({"count": len(rows), "versions": rows})


@app.route("/api/quotes/<quote_id>/versions", methods=["POST"])
def save_quote_version(quote_id: str):
    return jsonify(quotes.save_version(_store(), _broker_id(), quote_id)), 201


@app.route("/api/quote-versions/<version_id>/restore", methods=["POST"])
def restore_quote_version(version_id: str):
    return jsonify(quotes.restore_version(_store(), _broker_id(), version_id))


@app.route("/api/quotes/<quote_id>/convert", methods=["POST"])
def convert_quote(quote_id: str):
    """Record a sold quote as a property in the client's portfolio."""
    data = _body()
    row = properties.convert_quote_to_property(
        _store(), _broker_id(), quote_id,
        purchase_date=data.get("purchase_date"),
        has_mortgage=bool(data.get("has_mortgage", False)),
        mortgage_amount=data.get("mortgage_amount"),
        mortgage_interest_rate=float(data.get("mortgage_interest_rate", 4.5)),
        mortgage_term_years=int(data.get("mortgage_term_years", 25)),
    )
    return jsonify(row), 201


# ------------------------------------------------------------------
# Exports
# ------------------------------------------------------------------

def _export_name(quote: dict, suffix: str) -> str:
    name = quote.get("project_name") or quote.get("title") or "Quote"
    return f"{name.replace(' ', '_')}_{suffix}"


@app.route("/api/quotes/<quote_id>/export.xlsx", methods=["GET"])
def export_quote_xlsx(quote_id: str):
    """Download the quote as an Excel workbook."""
    from cashflow_workbook import generate_workbook

    broker_id = _broker_id()
    row = quotes.get_quote(_store(), broker_id, quote_id)
    mortgage = profiles.default_mortgage(profiles.get_or_create_profile(_store(), broker_id))
    if _flag("mortgage"):
        mortgage.enabled = True
    buf = io.BytesIO()
    generate_workbook(migrate_inputs(row.get("inputs")), output=buf,
                      project_name=row.get("project_name") or row.get("title") or "Off-Plan Investment",
                      mortgage=mortgage)
    buf.seek(0)
    return send_file(buf, as_attachment=True, download_name=_export_name(row, "Cashflow.xlsx"),
                     mimetype=XLSX_MIMETYPE)


@app.route("/api/quotes/<quote_id>/export.pdf", methods=["GET"])
def export_quote_pdf(quote_id: str):
    from cashflow_report import build_pdf

    broker_id = _broker_id()
    row = quotes.get_quote(_store(), broker_id, quote_id)
    profile = profiles.get_or_create_profile(_store(), broker_id)
    pdf = build_pdf(
        migrate_inputs(row.get("inputs")),
        project_name=row.get("project_name") or row.get("title") or "Off-Plan Investment",
        client_name=row.get("client_name"),
        advisor_name=profile.get("full_name"),
        include_chart=not _flag("no_chart"),
    )
    return send_file(io.BytesIO(pdf), as_attachment=True, download_name=_export_name(row, "Report.pdf"),
                     mimetype="application/pdf")


@app.route("/api/quotes/<quote_id>/export.png", methods=["GET"])
def export_quote_chart(quote_id: str):
    from cashflow_report import build_growth_chart_png

    row = quotes.get_quote(_store(), _broker_id(), quote_id)
    png = build_growth_chart_png(migrate_inputs(row.get("inputs")), row.get("project_name") or "")
    return send_file(io.BytesIO(png), download_name=_export_name(row, "Growth.png"), mimetype="image/png")


# ------------------------------------------------------------------
# Clients
# ------------------------------------------------------------------

@app.route("/api/clients", methods=["GET"])
def list_clients():
    rows = clients.list_clients(_store(), _broker_id())
    return jsonify({"count": len(rows), "clients": rows})


@app.route("/api/clients", methods=["POST"])
def create_client():
    return jsonify(clients.create_client(_store(), _broker_id(), _body())), 201


@app.route("/api/clients/<client_id>", methods=["GET"])
def get_client(client_id: str):
    return jsonify(clients.get_client(_store(), _broker_id(), client_id))


@app.route("/api/clients/<client_id>", methods=["PUT", "PATCH"])
def update_client(client_id: str):
    return jsonify(clients.update_client(_store(), _broker_id(), client_id, _body()))


@app.route("/api/clients/<client_id>", methods=["DELETE"])
def delete_client(client_id: str):
    clients.delete_client(_store(), _broker_id(), client_id)
    return jsonify({"ok": True})


@app.route("/api/clients/<client_id>/portal", methods=["POST"])
def enable_client_portal(client_id: str):
    row = clients.enable_portal(_store(), _broker_id(), client_id)
    return jsonify({"client": row, "portal_url": quotes.share_url(row["portal_token"], kind="portal")})


@app.route("/api/clients/<client_id>/portal", methods=["DELETE"])
def disable_client_portal(client_id: str):
    return jsonify(clients.disable_portal(_store(), _broker_id(), client_id))


# ------------------------------------------------------------------
# Properties
# ------------------------------------------------------------------

@app.route("/api/properties", methods=["GET"])
def list_properties():
    rows = properties.list_properties(_store(), _broker_id(), client_id=request.args.get("client_id"))
    return jsonify({"count": len(rows), "properties": rows})


@app.route("/api/properties", methods=["POST"])
def create_property():
    return jsonify(properties.create_property(_store(), _broker_id(), _body())), 201


@app.route("/api/properties/<property_id>", methods=["GET"])
def get_property(property_id: str):
    return jsonify(properties.get_property(_store(), _broker_id(), property_id))


@app.route("/api/properties/<property_id>", methods=["PUT", "PATCH"])
def update_property(property_id: str):
    return jsonify(properties.update_property(_store(), _broker_id(), property_id, _body()))


@app.route("/api/properties/<property_id>", methods=["DELETE"])
def delete_property(property_id: str):
    properties.delete_property(_store(), _broker_id(), property_id)
    return jsonify({"ok": True})


# ------------------------------------------------------------------
# Presentations
# ------------------------------------------------------------------

@app.route("/api/presentations", methods=["GET"])
def list_presentations():
    rows = presentations.list_presentations(_store(), _broker_id(), client_id=request.args.get("client_id"))
    return jsonify({"count": len(rows), "presentations": rows})


@app.route("/api/presentations", methods=["POST"])
def create_presentation():
    return jsonify(presentations.create_presentation(_store(), _broker_id(), _body())), 201


@app.route("/api/presentations/<presentation_id>", methods=["GET"])
def get_presentation(presentation_id: str):
    return jsonify(presentations.get_presentation(_store(), _broker_id(), presentation_id))


@app.route("/api/presentations/<presentation_id>", methods=["PUT", "PATCH"])
def update_presentation(presentation_id: str):
    return jsonify(presentations.update_presentation(_store(), _broker_id(), presentation_id, _body()))


@app.route("/api/presentations/<presentation_id>", methods=["DELETE"])
def delete_presentation(presentation_id: str):
    presentations.delete_presentation(_store(), _broker_id(), presentation_id)
    return jsonify({"ok": True})


@app.route("/api/presentations/<presentation_id>/duplicate", methods=["POST"])
def duplicate_presentation(presentation_id: str):
    return jsonify(presentations.duplicate_presentation(_store(), _broker_id(), presentation_id)), 201


@app.route("/api/presentations/<presentation_id>/items", methods=["POST"])
def add_presentation_item(presentation_id: str):
    return jsonify(presentations.add_item(_store(), _broker_id(), presentation_id, _body()))


@app.route("/api/presentations/<presentation_id>/items/<int:index>", methods=["DELETE"])
def remove_presentation_item(presentation_id: str, index: int):
    return jsonify(presentations.remove_item(_store(), _broker_id(), presentation_id, index))


@app.route("/api/presentations/<presentation_id>/items/order", methods=["PUT"])
def reorder_presentation_items(presentation_id: str):
    order = _body().get("order")
    if not isinstance(order, list):
        raise ValidationError(["order must be a list of item positions"])
    return jsonify(presentations.reorder_items(_store(), _broker_id(), presentation_id,
                                               [int(i) for i in order]))


@app.route("/api/presentations/<presentation_id>/share", methods=["POST"])
def share_presentation(presentation_id: str):
    row = presentations.share_presentation(_store(), _broker_id(), presentation_id)
    return jsonify({"presentation": row,
                    "share_url": quotes.share_url(row["share_token"], kind="present")})


@app.route("/api/presentations/<presentation_id>/share", methods=["DELETE"])
def unshare_presentation(presentation_id: str):
    return jsonify(presentations.unshare_presentation(_store(), _broker_id(), presentation_id))


# ------------------------------------------------------------------
# Saved comparisons
# ------------------------------------------------------------------

@app.route("/api/comparisons", methods=["GET"])
def list_comparisons():
    rows = comparisons.list_comparisons(_store(), _broker_id())
    return jsonify({"count": len(rows), "comparisons": rows})


@app.route("/api/comparisons", methods=["POST"])
def create_comparison():
    return jsonify(comparisons.create_comparison(_store(), _broker_id(), _body())), 201


@app.route("/api/comparisons/<comparison_id>", methods=["GET"])
def get_comparison(comparison_id: str):
    return jsonify(comparisons.get_comparison(_store(), _broker_id(), comparison_id))


@app.route("/api/comparisons/<comparison_id>", methods=["PUT", "PATCH"])
def update_comparison(comparison_id: str):
    return jsonify(comparisons.update_comparison(_store(), _broker_id(), comparison_id, _body()))


@app.route("/api/comparisons/<comparison_id>", methods=["DELETE"])
def delete_comparison(comparison_id: str):
    comparisons.delete_comparison(_store(), _broker_id(), comparison_id)
    return jsonify({"ok": True})


@app.route("/api/comparisons/<comparison_id>/share", methods=["POST"])
def share_comparison(comparison_id: str):
    row = comparisons.share_comparison(_store(), _broker_id(), comparison_id)
    return jsonify({"comparison": row,
                    "share_url": quotes.share_url(row["share_token"], kind="compare")})


@app.route("/api/comparisons/<comparison_id>/share", methods=["DELETE"])
def unshare_comparison(comparison_id: str):
    return jsonify(comparisons.unshare_comparison(_store(), _broker_id(), comparison_id))


# ------------------------------------------------------------------
# Profile / presets
# ------------------------------------------------------------------

@app.route("/api/profile", methods=["GET"])
def get_profile():
    return jsonify(profiles.get_or_create_profile(_store(), _broker_id()))


@app.route("/api/profile", methods=["PUT", "PATCH"])
def update_profile():
    return jsonify(profiles.update_profile(_store(), _broker_id(), _body()))


@app.route("/api/presets/<kind>", methods=["GET"])
def list_presets(kind: str):
    rows = presets.list_presets(_store(), _broker_id(), kind)
    return jsonify({"count": len(rows), "presets": rows})


@app.route("/api/presets/<kind>", methods=["POST"])
def create_preset(kind: str):
    return jsonify(presets.create_preset(_store(), _broker_id(), kind, _body())), 201


@app.route("/api/presets/<kind>/<preset_id>", methods=["PUT"])
def update_preset(kind: str, preset_id: str):
    return jsonify(presets.update_preset(_store(), _broker_id(), kind, preset_id, _body()))


@app.route("/api/presets/<kind>/<preset_id>", methods=["DELETE"])
def delete_preset(kind: str, preset_id: str):
    presets.delete_preset(_store(), _broker_id(), kind, preset_id)
    return jsonify({"ok": True})


# ------------------------------------------------------------------
# Public (token) views
# ------------------------------------------------------------------

@app.route("/api/shared/quotes/<token>", methods=["GET"])
def shared_quote(token: str):
    """Read-only quote for anyone holding the share link."""
    row = quotes.get_shared_quote(_store(), token)
    inputs = migrate_inputs(row.get("inputs"))
    return _json({
        "quote": quotes.public_quote(row),
        "summary": summarize_quote(inputs),
        "schedule": build_payment_schedule(inputs),
        "advisor": profiles.advisor_card(_store(), row["broker_id"]),
    })


@app.route("/api/portal/<token>", methods=["GET"])
def client_portal(token: str):
    return _json(clients.portal_view(_store(), token))


@app.route("/api/shared/presentations/<token>", methods=["GET"])
def shared_presentation(token: str):
    return _json(presentations.get_shared_presentation(_store(), token))


@app.route("/api/shared/comparisons/<token>", methods=["GET"])
def shared_comparison(token: str):
    return _json(comparisons.get_shared_comparison(_store(), token))


# ------------------------------------------------------------------
# View tracking / analytics
# ------------------------------------------------------------------

@app.route("/api/track/quote-view", methods=["POST"])
def track_quote_view():
    """Record a view of a shared quote; the first view e-mails the broker.

    Expects JSON body::

        {"shareToken": "abc123def456"}
    """
    data = _body()
    result = analytics.track_quote_view(
        _store(),
        data.get("shareToken") or data.get("share_token"),
        client_ip=get_client_ip(request.headers, request.remote_addr),
        user_agent=request.headers.get("User-Agent"),
    )
    notification = result.pop("notification", None)
    if notification:
        profile = _store().get("profiles", notification["broker_id"])
        quote = _store().get("quotes", notification["quote_id"]) or {}
        emailed, status = send_first_view_notification(
            profile, quote, notification["location"], notification["viewed_at"],
        )
        logger.info("First-view notification for quote %s: %s", notification["quote_id"], status)
        result["notificationSent"] = emailed
    return jsonify({"success": True, "sessionId": result["session_id"], **result})


@app.route("/api/track/quote-view-duration", methods=["POST"])
def track_quote_view_duration():
    data = _body()
    updated = analytics.update_view_duration(
        _store(),
        data.get("sessionId") or data.get("session_id"),
        data.get("durationSeconds", data.get("duration_seconds")),
    )
    return jsonify({"success": updated})


@app.route("/api/track/presentation-view", methods=["POST"])
def track_presentation_view():
    """Record a presentation view; edge proxies may pass the viewer's location in headers."""
    data = _body()
    geo = {
        "country": request.headers.get("X-Geo-Country") or request.headers.get("CF-IPCountry"),
        "city": request.headers.get("X-Geo-City"),
        "region": request.headers.get("X-Geo-Region"),
        "timezone": request.headers.get("X-Geo-Timezone"),
    }
    result = analytics.track_presentation_view(
        _store(),
        data.get("presentationId") or data.get("presentation_id"),
        data.get("sessionId") or data.get("session_id"),
        client_ip=get_client_ip(request.headers, request.remote_addr),
        user_agent=request.headers.get("User-Agent"),
        geo=geo,
    )
    return jsonify({"success": True, **result})


@app.route("/api/analytics/quotes", methods=["GET"])
def quote_analytics():
    return _json(analytics.quote_analytics(_store(), _broker_id(), quote_id=request.args.get("quote_id")))


if __name__ == "__main__":
    app.run(debug=config.FLASK_DEBUG, host=config.FLASK_HOST, port=config.FLASK_PORT)
