import pytest
import requests

from data_fetchers import geolocation_fetcher as geo


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def test_client_ip_prefers_forwarded_for():
    headers = {"X-Forwarded-For": "94.200.1.1, 10.0.0.2", "X-Real-IP": "1.1.1.1"}

    assert geo.get_client_ip(headers, "127.0.0.1") == "94.200.1.1"
    assert geo.get_client_ip({"CF-Connecting-IP": " 8.8.8.8 "}) == "8.8.8.8"
    assert geo.get_client_ip({}, "127.0.0.1") == "127.0.0.1"


@pytest.mark.parametrize("ip, private", [
    ("10.1.2.3", True),
    ("192.168.0.1", True),
    ("127.0.0.1", True),
    ("::1", True),
    ("not-an-ip", True),
    ("8.8.8.8", False),
])
def test_is_private_ip(ip, private):
    assert geo.is_private_ip(ip) is private


def test_lookup_skips_private_addresses(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr("data_fetchers.geolocation_fetcher.requests.get", fail)

    assert geo.lookup_ip("192.168.1.10") is None
    assert geo.lookup_ip(None) is None


def test_lookup_maps_fields(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        return FakeResponse({
            "status": "success", "city": "Dubai", "regionName": "Dubai",
            "country": "United Arab Emirates", "countryCode": "AE", "timezone": "Asia/Dubai",
        })

    monkeypatch.setattr("data_fetchers.geolocation_fetcher.requests.get", fake_get)

    result = geo.lookup_ip("94.200.1.1")

    assert result == {"city": "Dubai", "region": "Dubai", "country": "United Arab Emirates",
                      "country_code": "AE", "timezone": "Asia/Dubai"}
    assert calls[0][0].endswith("/94.200.1.1")
    assert calls[0][1] == {"fields": geo.GEO_FIELDS}


@pytest.mark.parametrize("response", [
    FakeResponse({"status": "fail", "message": "reserved range"}),
    FakeResponse({}, status_code=503),
])
def test_lookup_failures_return_none(monkeypatch, response):
    monkeypatch.setattr("data_fetchers.geolocation_fetcher.requests.get", lambda *a, **k: response)

    assert geo.lookup_ip("94.200.1.1") is None


def test_lookup_network_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr("data_fetchers.geolocation_fetcher.requests.get", boom)

    assert geo.lookup_ip("94.200.1.1") is None


def test_format_location():
    assert geo.format_location({"city": "Dubai", "region": "Dubai", "country": "UAE"}) == "Dubai, UAE"
    assert geo.format_location({"city": "Al Ain", "region": "Abu Dhabi", "country": "UAE"}) == "Al Ain, Abu Dhabi, UAE"
    assert geo.format_location(None) == "Unknown location"
    assert geo.format_location({"timezone": "Asia/Dubai"}) == "Unknown location"
