"""Client-facing PDF report and growth chart for an off-plan quote."""

import logging
from datetime import datetime, timezone
from io import BytesIO
from typing import Optional
from xml.sax.saxutils import escape

import matplotlib
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from analysis.inputs import CashflowInputs, entry_costs
from analysis.payment_plan import build_payment_schedule
from analysis.projections import calculate_exit_scenarios, calculate_oi_projections
from config import config

matplotlib.use("Agg")

logger = logging.getLogger(__name__)

HEADER_BG = colors.HexColor("#1A1F2E")
HEADER_FG = colors.HexColor("#CCFF00")


def _money(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{config.DEFAULT_CURRENCY} {value:,.0f}"


def _table(rows, col_widths) -> Table:
    t = Table(rows, colWidths=col_widths, repeatRows=1)
    t.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
        ("TEXTCOLOR", (0, 0), (-1, 0), HEADER_FG),
        ("FONT", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
    ]))
    return t


def build_growth_chart_png(inputs: CashflowInputs, project_name: str = "") -> bytes:
    """Property value and annual rent over the projection horizon."""
    import matplotlib.pyplot as plt
    from matplotlib.ticker import FuncFormatter

    projections = calculate_oi_projections(inputs)
    years = [p.calendar_year for p in projections.yearly_projections]
    values = [p.property_value for p in projections.yearly_projections]
    rents = [p.annual_rent or 0.0 for p in projections.yearly_projections]

    fig, ax = plt.subplots(figsize=(8, 4), dpi=120)
    try:
        ax.plot(years, values, marker="o", color="#1A1F2E", label="Property value")
        ax.bar(years, rents, color="#9CC200", alpha=0.6, label="Annual rent")
        handover = next((p.calendar_year for p in projections.yearly_projections if p.is_handover), None)
        if handover is not None:
            ax.axvline(handover, color="grey", linestyle="--", linewidth=1)
            ax.annotate("Handover", (handover, max(values)), textcoords="offset points",
                        xytext=(4, -12), fontsize=8, color="grey")
        ax.yaxis.set_major_formatter(FuncFormatter(lambda v, _: f"{v / 1e6:,.1f}M"))
        ax.set_title(f"{project_name or 'Investment'} - value and rent growth")
        ax.set_xlabel("Year")
        ax.set_ylabel(config.DEFAULT_CURRENCY)
        ax.legend(loc="upper left")
        ax.grid(alpha=0.3)
        fig.tight_layout()

        buf = BytesIO()
        fig.savefig(buf, format="png")
    finally:
        plt.close(fig)
    return buf.getvalue()


def build_pdf(
    inputs: CashflowInputs,
    project_name: str = "Off-Plan Investment",
    client_name: Optional[str] = None,
    advisor_name: Optional[str] = None,
    include_chart: bool = True,
) -> bytes:
    """Render the quote as an A4 PDF and return the bytes."""
    schedule = build_payment_schedule(inputs)
    projections = calculate_oi_projections(inputs)
    exits = calculate_exit_scenarios(inputs)

    buf = BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=A4, leftMargin=2 * cm, rightMargin=2 * cm,
                            topMargin=2 * cm, bottomMargin=2 * cm, title=project_name)
    styles = getSampleStyleSheet()
    story = []
    story.append(Paragraph(f"<b>{escape(project_name)}</b>", styles["Title"]))
    if client_name:
        story.append(Paragraph(f"Prepared for: {escape(client_name)}", styles["Normal"]))
    if advisor_name:
        story.append(Paragraph(f"Advisor: {escape(advisor_name)}", styles["Normal"]))
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M")
    story.append(Paragraph(f"Generated: {generated} UTC", styles["Normal"]))
    story.append(Spacer(1, 12))

    story.append(Paragraph("<b>Key Metrics</b>", styles["Heading2"]))
    metrics = [
        ["Metric", "Value"],
        ["Purchase price", _money(inputs.base_price)],
        ["Construction period", f"{schedule['total_months']} months"],
        ["Pre-handover / handover", f"{inputs.pre_handover_percent:g}% / {100 - inputs.pre_handover_percent:g}%"],
        ["DLD fee", _money(schedule["dld_fee"])],
        ["Entry costs", _money(entry_costs(inputs))],
        ["Due today", _money(schedule["due_today"])],
        ["Rental yield", f"{inputs.rental_yield_percent:g}%"],
    ]
    story.append(_table(metrics, [8 * cm, 6 * cm]))
    story.append(Spacer(1, 10))

    story.append(Paragraph("<b>Payment Schedule</b>", styles["Heading2"]))
    rows = [["Installment", "Month", "%", "Amount"]]
    for r in schedule["installments"]:
        rows.append([r["label"], str(r["month"]), f"{r['payment_percent']:g}%", _money(r["amount"])])
    rows.append(["Total", "", f"{schedule['total_percent']:g}%",
                 _money(sum(r["amount"] for r in schedule["installments"]))])
    story.append(_table(rows, [7 * cm, 2 * cm, 2 * cm, 4 * cm]))
    story.append(Spacer(1, 10))

    if exits:
        story.append(Paragraph("<b>Exit Scenarios</b>", styles["Heading2"]))
        rows = [["Month", "Exit price", "Equity", "Net profit", "ROE", "Annualized"]]
        for s in exits:
            rows.append([
                str(s.months_from_booking), _money(s.exit_price), _money(s.equity_deployed),
                _money(s.net_profit), f"{s.roe:.1f}%", f"{s.net_annualized_roe:.1f}%",
            ])
        story.append(_table(rows, [1.6 * cm, 3.4 * cm, 3.2 * cm, 3.2 * cm, 1.8 * cm, 2.2 * cm]))
        story.append(Spacer(1, 10))

    story.append(Paragraph("<b>Yearly Projection</b>", styles["Heading2"]))
    rows = [["Year", "Property value", "Annual rent", "Phase"]]
    for p in projections.yearly_projections:
        phase = "Construction" if p.is_construction else ("Handover" if p.is_handover else "Rental")
        rows.append([str(p.calendar_year), _money(p.property_value), _money(p.annual_rent), phase])
    story.append(_table(rows, [2 * cm, 5 * cm, 4 * cm, 4 * cm]))

    if include_chart:
        story.append(Spacer(1, 12))
        story.append(Image(BytesIO(build_growth_chart_png(inputs, project_name)), width=16 * cm, height=8 * cm))

    doc.build(story)
    logger.info("PDF report built for %s", project_name)
    return buf.getvalue()
