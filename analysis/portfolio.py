"""Portfolio roll-up and wealth projection for a client's acquired properties."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from config import config

logger = logging.getLogger(__name__)

_NUMERIC_COLUMNS = (
    "purchase_price", "current_value", "monthly_rent",
    "mortgage_balance", "monthly_mortgage_payment",
)


def _frame(properties: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(properties)
    for col in _NUMERIC_COLUMNS:
        if col not in df:
            df[col] = 0.0
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)
    if "is_rented" not in df:
        df["is_rented"] = False
    df["is_rented"] = df["is_rented"].fillna(False).astype(bool)
    # Unvalued properties are carried at purchase price
    df["current_value"] = df["current_value"].where(df["current_value"] > 0, df["purchase_price"])
    return df


def portfolio_metrics(properties: List[Dict[str, Any]]) -> Dict[str, float]:
    """Totals across a list of property rows."""
    if not properties:
        return {
            "total_properties": 0,
            "total_purchase_value": 0.0,
            "total_current_value": 0.0,
            "total_appreciation": 0.0,
            "appreciation_percent": 0.0,
            "total_monthly_rent": 0.0,
            "total_mortgage_balance": 0.0,
            "monthly_mortgage_payments": 0.0,
            "net_monthly_cashflow": 0.0,
            "total_equity": 0.0,
        }

    df = _frame(properties)
    purchase = float(df["purchase_price"].sum())
    current = float(df["current_value"].sum())
    rent = float(df.loc[df["is_rented"], "monthly_rent"].sum())
    balance = float(df["mortgage_balance"].sum())
    payments = float(df["monthly_mortgage_payment"].sum())
    appreciation = current - purchase
    return {
        "total_properties": int(len(df)),
        "total_purchase_value": purchase,
        "total_current_value": current,
        "total_appreciation": appreciation,
        "appreciation_percent": appreciation / purchase * 100 if purchase > 0 else 0.0,
        "total_monthly_rent": rent,
        "total_mortgage_balance": balance,
        "monthly_mortgage_payments": payments,
        "net_monthly_cashflow": rent - payments,
        "total_equity": current - balance,
    }


def years_to_double(
    purchase_value: float,
    appreciation_rate: float,
    annual_rent: float,
    rent_growth_rate: float,
) -> float:
    """Years until value plus cumulative rent reaches twice the purchase value.

    Stepped yearly, with linear interpolation inside the crossing year.
    """
    if purchase_value <= 0:
        return 0.0

    target = 2 * purchase_value
    value = purchase_value
    cumulative_rent = 0.0
    rent = annual_rent
    year = 0
    while year < config.MAX_YEARS_TO_DOUBLE:
        wealth = value + cumulative_rent
        if wealth >= target:
            if year == 0:
                return 0.0
            prev_wealth = value / (1 + appreciation_rate / 100) + cumulative_rent - rent
            fraction = (target - prev_wealth) / (wealth - prev_wealth)
            return max(0.0, year - 1 + fraction)
        year += 1
        value *= 1 + appreciation_rate / 100
        cumulative_rent += rent
        rent *= 1 + rent_growth_rate / 100
    return float(config.MAX_YEARS_TO_DOUBLE)


def _purchase_year(row: Dict[str, Any], fallback: int) -> int:
    raw = row.get("purchase_date")
    if not raw:
        return fallback
    try:
        return int(str(raw)[:4])
    except ValueError:
        return fallback


def portfolio_projections(
    properties: List[Dict[str, Any]],
    metrics: Optional[Dict[str, float]] = None,
    appreciation_rate: float = config.PORTFOLIO_APPRECIATION_RATE,
    rent_growth_rate: float = config.PORTFOLIO_RENT_GROWTH_RATE,
    current_year: Optional[int] = None,
) -> Dict[str, Any]:
    """Year-by-year portfolio value and rent from the first purchase to ten years out.

    Past years interpolate along the realised CAGR between purchase and
    current value; future years compound ``appreciation_rate``.
    """
    empty = {
        "projections": [],
        "years_to_double": 0.0,
        "target_wealth": 0.0,
        "current_progress": 0.0,
        "appreciation_rate": appreciation_rate,
        "rent_growth_rate": rent_growth_rate,
        "projected_value_at_double": 0.0,
        "projected_rent_at_double": 0.0,
    }
    if not properties:
        return empty

    metrics = metrics or portfolio_metrics(properties)
    current_year = current_year or date.today().year
    start_year = min(_purchase_year(p, current_year) for p in properties)

    purchase = metrics["total_purchase_value"]
    current = metrics["total_current_value"]
    annual_rent = metrics["total_monthly_rent"] * 12
    doubling = years_to_double(purchase, appreciation_rate, annual_rent, rent_growth_rate)

    points = []
    cumulative_rent = 0.0
    rent_to_date = 0.0
    rent = annual_rent
    years_owned = current_year - start_year
    for year in range(start_year, current_year + config.PROJECTION_YEARS + 1):
        if year == start_year:
            value = purchase
        elif year <= current_year:
            if years_owned > 0 and purchase > 0:
                cagr = (current / purchase) ** (1 / years_owned) - 1
                value = purchase * (1 + cagr) ** (year - start_year)
            else:
                value = current
        else:
            value = current * (1 + appreciation_rate / 100) ** (year - current_year)

        if year > start_year:
            cumulative_rent += rent
            rent *= 1 + rent_growth_rate / 100

        if year == current_year:
            rent_to_date = cumulative_rent

        points.append({
            "year": year,
            "portfolio_value": value,
            "cumulative_rent": cumulative_rent,
            "total_wealth": value + cumulative_rent,
            "is_projected": year > current_year,
            "is_today": year == current_year,
        })

    current_wealth = current + rent_to_date
    progress = min(100.0, (current_wealth - purchase) / purchase * 100) if purchase > 0 else 0.0
    index = min(int(-(-doubling // 1)) + years_owned, len(points) - 1)
    at_double = points[index] if index >= 0 else points[-1]

    logger.debug("Portfolio projection: %d points, doubles in %.1f years", len(points), doubling)
    return {
        "projections": points,
        "years_to_double": doubling,
        "target_wealth": purchase * 2,
        "current_progress": progress,
        "appreciation_rate": appreciation_rate,
        "rent_growth_rate": rent_growth_rate,
        "projected_value_at_double": at_double["portfolio_value"],
        "projected_rent_at_double": at_double["cumulative_rent"],
    }
