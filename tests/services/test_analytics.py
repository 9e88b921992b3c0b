import pytest

from crm import analytics, quotes
from crm.errors import NotFoundError, ValidationError


@pytest.fixture
def shared_quote(store, broker_id):
    quote = quotes.create_quote(store, broker_id, {"client_name": "Ana", "project_name": "Creek Vista"})
    return quotes.share_quote(store, broker_id, quote["id"])


@pytest.fixture
def dubai(monkeypatch):
    geo = {"city": "Dubai", "region": "Dubai", "country": "United Arab Emirates",
           "country_code": "AE", "timezone": "Asia/Dubai"}
    monkeypatch.setattr("crm.analytics.lookup_ip", lambda ip: geo)
    return geo


def test_first_view_carries_notification(store, shared_quote, dubai):
    result = analytics.track_quote_view(store, shared_quote["share_token"], "94.200.1.1", "pytest")

    assert result["view_count"] == 1
    assert result["is_first_view"] is True
    assert result["notification"]["location"] == "Dubai, United Arab Emirates"
    assert result["notification"]["client_name"] == "Ana"

    view = store.find_one("quote_views", session_id=result["session_id"])
    assert view["country_code"] == "AE"
    assert view["duration_seconds"] is None


def test_repeat_views_do_not_notify(store, shared_quote, no_geolocation):
    analytics.track_quote_view(store, shared_quote["share_token"])
    result = analytics.track_quote_view(store, shared_quote["share_token"])

    assert result["view_count"] == 2
    assert result["is_first_view"] is False
    assert "notification" not in result
    assert store.get("quotes", shared_quote["id"])["view_count"] == 2


def test_track_rejects_bad_tokens(store, no_geolocation):
    with pytest.raises(ValidationError):
        analytics.track_quote_view(store, "")
    with pytest.raises(NotFoundError):
        analytics.track_quote_view(store, "nope")


def test_update_view_duration(store, shared_quote, no_geolocation):
    session_id = analytics.track_quote_view(store, shared_quote["share_token"])["session_id"]

    assert analytics.update_view_duration(store, session_id, 42.6) is True
    view = store.find_one("quote_views", session_id=session_id)
    assert view["duration_seconds"] == 43
    assert view["ended_at"]

    assert analytics.update_view_duration(store, "unknown", 10) is False


@pytest.mark.parametrize("duration", [-1, "12", True, None])
def test_update_view_duration_rejects_bad_durations(store, duration):
    with pytest.raises(ValidationError):
        analytics.update_view_duration(store, "s1", duration)


def test_presentation_view(store, broker_id):
    row = store.insert("presentations", {"broker_id": broker_id, "title": "Shortlist", "view_count": 0})

    result = analytics.track_presentation_view(store, row["id"], "s1", geo={"country": "AE"})

    assert result == {"session_id": "s1", "view_count": 1}
    assert store.get("presentations", row["id"])["first_viewed_at"]
    assert store.find_one("presentation_views", session_id="s1")["country"] == "AE"
    with pytest.raises(NotFoundError):
        analytics.track_presentation_view(store, "missing", "s2")


def test_analytics_without_views(store, broker_id, shared_quote):
    report = analytics.quote_analytics(store, broker_id)

    assert report["total_views"] == 0
    assert len(report["views_by_hour"]) == 24
    assert [d["day_name"] for d in report["views_by_day_of_week"]][0] == "Monday"
    assert report["conversion_funnel"] == {"total": 1, "viewed": 0, "presented": 1, "negotiating": 0, "sold": 0}


def test_analytics_rollup(store, broker_id, shared_quote):
    for started, duration, city in [
        ("2025-06-02T09:15:00Z", 60, "Dubai"),   # Monday
        ("2025-06-02T09:45:00Z", None, "Dubai"),
        ("2025-06-04T20:00:00Z", 30, "Abu Dhabi"),  # Wednesday
    ]:
        store.insert("quote_views", {
            "quote_id": shared_quote["id"], "session_id": f"s-{started}", "started_at": started,
            "duration_seconds": duration, "city": city, "country": "United Arab Emirates", "country_code": "AE",
        })
    store.insert("quote_views", {"quote_id": "someone-elses", "session_id": "x", "started_at": "2025-06-02T09:00:00Z"})

    report = analytics.quote_analytics(store, broker_id)

    assert report["total_views"] == 3
    assert report["unique_viewers"] == 3
    assert report["avg_engagement_time"] == pytest.approx(45.0)
    assert report["total_engagement_time"] == pytest.approx(90.0)
    assert report["views_by_hour"][9]["views"] == 2
    assert report["views_by_day_of_week"][0]["views"] == 2
    assert report["views_by_day_of_week"][2]["views"] == 1
    assert [d["date"] for d in report["views_by_day"]] == ["2025-06-02", "2025-06-04"]
    assert report["location_breakdown"][0]["cities"][0] == {"city": "Dubai", "count": 2}
    assert report["top_performing_quotes"][0]["views"] == 3


def test_analytics_for_unknown_quote(store, broker_id):
    with pytest.raises(NotFoundError):
        analytics.quote_analytics(store, broker_id, quote_id="missing")
