"""Resolve a viewer's approximate location from their IP address.

Endpoint used:
- ip-api.com/json/<ip>: free IP geolocation, no API key, HTTP only

Lookups are best-effort: view tracking continues without a location when
the service is unreachable or the address is private.
"""

import ipaddress
import logging
from typing import Mapping, Optional

import requests

from config import config

logger = logging.getLogger(__name__)

GEO_FIELDS = "status,country,countryCode,region,regionName,city,timezone"


def get_client_ip(headers: Mapping[str, str], remote_addr: Optional[str] = None) -> Optional[str]:
    """First hop of X-Forwarded-For, else X-Real-IP, else CF-Connecting-IP."""
    forwarded = headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    for header in ("X-Real-IP", "CF-Connecting-IP"):
        if headers.get(header):
            return headers[header].strip()
    return remote_addr


def is_private_ip(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return True
    return addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_unspecified


def lookup_ip(ip: Optional[str]) -> Optional[dict]:
    """Return ``{city, region, country, country_code, timezone}`` or None."""
    if not ip:
        return None
    if is_private_ip(ip):
        logger.info("Skipping geolocation for private IP: %s", ip)
        return None

    url = f"{config.GEOLOCATION_BASE_URL.rstrip('/')}/{ip}"
    try:
        resp = requests.get(url, params={"fields": GEO_FIELDS}, timeout=config.GEOLOCATION_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Geolocation lookup failed for %s: %s", ip, exc)
        return None

    if data.get("status") != "success":
        logger.info("Geolocation lookup unsuccessful for %s: %s", ip, data)
        return None

    return {
        "city": data.get("city"),
        "region": data.get("regionName"),
        "country": data.get("country"),
        "country_code": data.get("countryCode"),
        "timezone": data.get("timezone"),
    }


def format_location(geo: Optional[dict]) -> str:
    """"Dubai, Dubai, United Arab Emirates" -> "Dubai, United Arab Emirates"."""
    if not geo:
        return "Unknown location"
    parts = []
    if geo.get("city"):
        parts.append(geo["city"])
    if geo.get("region") and geo.get("region") != geo.get("city"):
        parts.append(geo["region"])
    if geo.get("country"):
        parts.append(geo["country"])
    return ", ".join(parts) or "Unknown location"
