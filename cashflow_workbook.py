"""Generate a cashflow / ROI Excel workbook for an off-plan quote.

Usage:
    python cashflow_workbook.py --inputs quote.json [--output path/to/output.xlsx]
"""

import argparse
import json
import logging
import os
from pathlib import Path
from typing import IO, List, Optional, Union

import pandas as pd

from analysis.inputs import CashflowInputs, entry_costs
from analysis.mortgage import MortgageInputs, calculate_mortgage
from analysis.payment_plan import build_payment_schedule
from analysis.projections import calculate_exit_scenarios, calculate_oi_projections
from config import config

logger = logging.getLogger(__name__)

Output = Union[str, Path, IO[bytes]]


def _frames(inputs: CashflowInputs, mortgage: Optional[MortgageInputs]):
    schedule = build_payment_schedule(inputs)
    projections = calculate_oi_projections(inputs)
    exits = calculate_exit_scenarios(inputs)

    summary = pd.DataFrame([
        {"Metric": "Purchase Price", "Value": inputs.base_price},
        {"Metric": "Construction Period (months)", "Value": schedule["total_months"]},
        {"Metric": "Downpayment", "Value": inputs.base_price * inputs.downpayment_percent / 100},
        {"Metric": "DLD Fee", "Value": schedule["dld_fee"]},
        {"Metric": "Oqood Fee", "Value": schedule["oqood_fee"]},
        {"Metric": "Entry Costs", "Value": entry_costs(inputs)},
        {"Metric": "Due Today", "Value": schedule["due_today"]},
        {"Metric": "Year 1 Rent (est.)", "Value": inputs.base_price * inputs.rental_yield_percent / 100},
    ])

    payments = pd.DataFrame([
        {
            "Installment": r["label"],
            "Type": r["type"],
            "Month": r["month"],
            "Percent": r["payment_percent"] / 100,
            "Amount": r["amount"],
        }
        for r in schedule["installments"]
    ])

    exit_df = pd.DataFrame([
        {
            "Exit Month": s.months_from_booking,
            "Exit Price": s.exit_price,
            "Equity Deployed": s.equity_deployed,
            "Entry Costs": s.entry_costs,
            "Exit Costs": s.exit_costs,
            "Net Profit": s.net_profit,
            "ROE": s.roe / 100,
            "Net ROE": s.net_roe / 100,
            "Annualized ROE": s.net_annualized_roe / 100,
        }
        for s in exits
    ])

    yearly = pd.DataFrame([
        {
            "Year": p.calendar_year,
            "Property Value": p.property_value,
            "Annual Rent": p.annual_rent or 0.0,
            "Phase": "Construction" if p.is_construction else ("Handover" if p.is_handover else "Rental"),
        }
        for p in projections.yearly_projections
    ])

    mortgage_df = None
    if mortgage is not None and mortgage.enabled:
        analysis = calculate_mortgage(
            mortgage, inputs.base_price, inputs.pre_handover_percent,
            monthly_rent=inputs.base_price * inputs.rental_yield_percent / 100 / 12,
            monthly_service_charges=inputs.unit_size_sqf * inputs.service_charge_per_sqft / 12,
        )
        mortgage_df = pd.DataFrame([
            {"Year": a.year, "Balance": a.balance, "Principal Paid": a.principal_paid,
             "Interest Paid": a.interest_paid}
            for a in analysis.amortization_schedule
        ])
    return summary, payments, exit_df, yearly, mortgage_df


def generate_workbook(
    inputs: CashflowInputs,
    output: Output = "cashflow.xlsx",
    project_name: str = "Off-Plan Investment",
    mortgage: Optional[MortgageInputs] = None,
) -> Output:
    """Write Summary, Payment Schedule, Exit Scenarios, Yearly Projection
    (and Mortgage, when enabled) sheets to ``output``.

    ``output`` may be a path or a binary file object.
    """
    if isinstance(output, (str, Path)):
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)

    summary, payments, exit_df, yearly, mortgage_df = _frames(inputs, mortgage)
    currency = f'"{config.DEFAULT_CURRENCY}" #,##0'

    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        workbook = writer.book

        header_fmt = workbook.add_format({
            "bold": True, "bg_color": "#1A1F2E", "font_color": "#CCFF00",
            "border": 1, "font_size": 11, "text_wrap": True,
        })
        currency_fmt = workbook.add_format({"num_format": currency, "border": 1})
        pct_fmt = workbook.add_format({"num_format": "0.0%", "border": 1})
        int_fmt = workbook.add_format({"num_format": "0", "border": 1})
        text_fmt = workbook.add_format({"border": 1, "text_wrap": True})
        total_fmt = workbook.add_format({
            "bold": True, "num_format": currency, "border": 1, "bg_color": "#E8F5C8",
        })
        title_fmt = workbook.add_format({"bold": True, "font_size": 14, "font_color": "#1A1F2E"})

        def write_sheet(name: str, df: pd.DataFrame, formats: List, widths: List[int]) -> None:
            df.to_excel(writer, sheet_name=name, startrow=2, index=False)
            ws = writer.sheets[name]
            ws.write(0, 0, f"{project_name} - {name}", title_fmt)
            for col_idx, col_name in enumerate(df.columns):
                ws.write(2, col_idx, col_name, header_fmt)
            for row_idx, row in enumerate(df.itertuples(index=False)):
                for col_idx, value in enumerate(row):
                    ws.write(row_idx + 3, col_idx, value, formats[col_idx])
            for col_idx, width in enumerate(widths):
                ws.set_column(col_idx, col_idx, width)

        write_sheet("Summary", summary, [text_fmt, currency_fmt], [32, 18])
        ws = writer.sheets["Summary"]
        # Construction period is a count of months, not money
        ws.write(4, 1, summary.iloc[1]["Value"], int_fmt)

        write_sheet("Payment Schedule", payments,
                    [text_fmt, text_fmt, int_fmt, pct_fmt, currency_fmt], [30, 14, 8, 10, 18])
        total_row = len(payments) + 3
        ws = writer.sheets["Payment Schedule"]
        ws.write(total_row, 3, payments["Percent"].sum() if len(payments) else 0, pct_fmt)
        ws.write(total_row, 4, payments["Amount"].sum() if len(payments) else 0, total_fmt)

        if len(exit_df):
            write_sheet("Exit Scenarios", exit_df,
                        [int_fmt] + [currency_fmt] * 5 + [pct_fmt] * 3, [10] + [16] * 8)
        write_sheet("Yearly Projection", yearly,
                    [int_fmt, currency_fmt, currency_fmt, text_fmt], [8, 18, 16, 14])
        if mortgage_df is not None:
            write_sheet("Mortgage", mortgage_df,
                        [int_fmt, currency_fmt, currency_fmt, currency_fmt], [8, 18, 18, 18])

    logger.info("Workbook written for %s", project_name)
    return output


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main() -> None:
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Generate a cashflow workbook for an off-plan quote")
    parser.add_argument("--inputs", "-i", help="JSON file with quote inputs (defaults if omitted)")
    parser.add_argument("--output", "-o", default=os.path.join(config.EXPORT_DIR, "cashflow.xlsx"),
                        help="Output file path")
    parser.add_argument("--project", "-p", default="Off-Plan Investment", help="Project name")
    args = parser.parse_args()

    saved = json.loads(Path(args.inputs).read_text(encoding="utf-8")) if args.inputs else None
    if saved and "inputs" in saved:
        saved = saved["inputs"]
    path = generate_workbook(CashflowInputs.from_dict(saved), output=args.output, project_name=args.project)
    print(f"Workbook generated: {path}")


if __name__ == "__main__":
    main()
