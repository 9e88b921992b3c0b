"""View tracking for shared quotes and presentations, and the broker analytics roll-up."""

import logging
import uuid
from typing import Any, Dict, List, Optional

import pandas as pd

from crm.errors import NotFoundError, ValidationError
from data_fetchers.geolocation_fetcher import format_location, lookup_ip
from storage.record_store import RecordStore, utc_now

logger = logging.getLogger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
TOP_QUOTES = 10
TOP_CITIES = 5


def track_quote_view(
    store: RecordStore,
    share_token: str,
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Dict[str, Any]:
    """Record one view of a shared quote.

    Returns the new session id and view count. On the first ever view the
    result also carries ``notification``: what to tell the broker.
    """
    if not share_token:
        raise ValidationError(["Missing share_token"])
    quote = store.find_one("quotes", share_token=share_token)
    if quote is None:
        raise NotFoundError("Quote not found")

    geo = lookup_ip(client_ip) or {}
    now = utc_now()
    session_id = str(uuid.uuid4())
    store.insert("quote_views", {
        "quote_id": quote["id"],
        "session_id": session_id,
        "started_at": now,
        "ended_at": None,
        "duration_seconds": None,
        "city": geo.get("city"),
        "region": geo.get("region"),
        "country": geo.get("country"),
        "country_code": geo.get("country_code"),
        "timezone": geo.get("timezone"),
        "ip_address": client_ip,
        "user_agent": user_agent,
    })

    is_first_view = not quote.get("first_viewed_at")
    view_count = (quote.get("view_count") or 0) + 1
    changes = {"view_count": view_count, "last_viewed_at": now}
    if is_first_view:
        changes["first_viewed_at"] = now
    store.update("quotes", quote["id"], changes)
    logger.info("View %d recorded for quote %s", view_count, quote["id"])

    result: Dict[str, Any] = {
        "session_id": session_id,
        "view_count": view_count,
        "is_first_view": is_first_view,
    }
    if is_first_view:
        result["notification"] = {
            "broker_id": quote["broker_id"],
            "quote_id": quote["id"],
            "client_name": quote.get("client_name"),
            "project_name": quote.get("project_name"),
            "location": format_location(geo),
            "viewed_at": now,
        }
    return result


def update_view_duration(store: RecordStore, session_id: str, duration_seconds: Any) -> bool:
    """Close a view session. Returns False when the session is unknown."""
    if not session_id:
        raise ValidationError(["Missing session_id"])
    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, (int, float)) \
            or duration_seconds < 0:
        raise ValidationError(["Invalid duration_seconds"])

    view = store.find_one("quote_views", session_id=session_id)
    if view is None:
        logger.info("No view session found for %s", session_id)
        return False
    store.update("quote_views", view["id"], {
        "ended_at": utc_now(),
        "duration_seconds": int(round(duration_seconds)),
    })
    return True


def track_presentation_view(
    store: RecordStore,
    presentation_id: str,
    session_id: str,
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    geo: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Record a presentation view. ``geo`` comes from edge headers when present."""
    if not presentation_id or not session_id:
        raise ValidationError(["Missing presentation_id or session_id"])
    presentation = store.get("presentations", presentation_id)
    if presentation is None:
        raise NotFoundError("Presentation not found")

    geo = geo or {}
    now = utc_now()
    store.insert("presentation_views", {
        "presentation_id": presentation_id,
        "session_id": session_id,
        "started_at": now,
        "user_agent": user_agent,
        "ip_address": client_ip,
        "country": geo.get("country"),
        "city": geo.get("city"),
        "region": geo.get("region"),
        "timezone": geo.get("timezone"),
    })
    changes = {"view_count": (presentation.get("view_count") or 0) + 1, "last_viewed_at": now}
    if not presentation.get("first_viewed_at"):
        changes["first_viewed_at"] = now
    store.update("presentations", presentation_id, changes)
    return {"session_id": session_id, "view_count": changes["view_count"]}


def _views_frame(views: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(views)
    for col in ("quote_id", "session_id", "started_at", "duration_seconds", "country", "country_code", "city"):
        if col not in df:
            df[col] = None
    df["started_at"] = pd.to_datetime(df["started_at"], utc=True, errors="coerce")
    df["duration_seconds"] = pd.to_numeric(df["duration_seconds"], errors="coerce")
    return df


def quote_analytics(store: RecordStore, broker_id: str, quote_id: Optional[str] = None) -> Dict[str, Any]:
    """Views, engagement, locations, and funnel across a broker's quotes (or one quote)."""
    quotes = store.select("quotes", where={"broker_id": broker_id})
    if quote_id:
        quotes = [q for q in quotes if q["id"] == quote_id]
        if not quotes:
            raise NotFoundError(f"Quote not found: {quote_id}")
    ids = {q["id"] for q in quotes}
    views = store.select("quote_views", predicate=lambda v: v.get("quote_id") in ids)

    funnel = {
        "total": len(quotes),
        "viewed": sum(1 for q in quotes if (q.get("view_count") or 0) > 0),
        "presented": sum(1 for q in quotes if q.get("status") in ("presented", "negotiating", "sold")),
        "negotiating": sum(1 for q in quotes if q.get("status") in ("negotiating", "sold")),
        "sold": sum(1 for q in quotes if q.get("status") == "sold"),
    }
    if not views:
        return {
            "total_views": 0,
            "unique_viewers": 0,
            "avg_engagement_time": 0.0,
            "total_engagement_time": 0.0,
            "views_by_day": [],
            "views_by_hour": [{"hour": h, "views": 0} for h in range(24)],
            "views_by_day_of_week": [{"day": i, "day_name": n, "views": 0} for i, n in enumerate(DAY_NAMES)],
            "location_breakdown": [],
            "conversion_funnel": funnel,
            "top_performing_quotes": [],
        }

    df = _views_frame(views)
    durations = df["duration_seconds"].dropna()
    durations = durations[durations > 0]

    dated = df.dropna(subset=["started_at"])
    by_day = (
        dated.assign(date=dated["started_at"].dt.strftime("%Y-%m-%d"))
        .groupby("date")
        .agg(views=("session_id", "size"), unique_sessions=("session_id", "nunique"))
        .reset_index()
    )
    hours = dated["started_at"].dt.hour.value_counts().reindex(range(24), fill_value=0)
    weekdays = dated["started_at"].dt.dayofweek.value_counts().reindex(range(7), fill_value=0)

    locations = []
    located = df.dropna(subset=["country"])
    for country, group in located.groupby("country"):
        cities = group["city"].dropna().value_counts().head(TOP_CITIES)
        locations.append({
            "country": country,
            "country_code": group["country_code"].dropna().iloc[0] if group["country_code"].notna().any() else "",
            "count": int(len(group)),
            "cities": [{"city": c, "count": int(n)} for c, n in cities.items()],
        })
    locations.sort(key=lambda x: x["count"], reverse=True)

    top = []
    by_name = {q["id"]: q for q in quotes}
    for qid, group in df.groupby("quote_id"):
        quote_durations = group["duration_seconds"].dropna()
        quote_durations = quote_durations[quote_durations > 0]
        last = group["started_at"].max()
        top.append({
            "id": qid,
            "client_name": by_name.get(qid, {}).get("client_name") or "Unknown",
            "project_name": by_name.get(qid, {}).get("project_name") or "No Project",
            "views": int(len(group)),
            "avg_duration": float(quote_durations.mean()) if len(quote_durations) else 0.0,
            "last_viewed": last.isoformat() if pd.notna(last) else None,
        })
    top.sort(key=lambda x: x["views"], reverse=True)

    return {
        "total_views": int(len(df)),
        "unique_viewers": int(df["session_id"].nunique()),
        "avg_engagement_time": float(durations.mean()) if len(durations) else 0.0,
        "total_engagement_time": float(durations.sum()),
        "views_by_day": [
            {"date": r.date, "views": int(r.views), "unique_sessions": int(r.unique_sessions)}
            for r in by_day.itertuples()
        ],
        "views_by_hour": [{"hour": int(h), "views": int(n)} for h, n in hours.items()],
        "views_by_day_of_week": [
            {"day": int(d), "day_name": DAY_NAMES[int(d)], "views": int(n)} for d, n in weekdays.items()
        ],
        "location_breakdown": locations,
        "conversion_funnel": funnel,
        "top_performing_quotes": top[:TOP_QUOTES],
    }
