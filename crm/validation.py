"""Form validation. Each validator returns a list of human-readable issues."""

import re
from typing import Any, Dict, List

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

NAME_MIN, NAME_MAX = 2, 100
PHONE_MAX = 20


def is_valid_email(value: str) -> bool:
    return bool(value) and EMAIL_RE.match(value) is not None


def text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _check_name(name: Any, issues: List[str], label: str = "Name") -> None:
    name = text(name)
    if len(name) < NAME_MIN:
        issues.append(f"{label} must be at least {NAME_MIN} characters")
    elif len(name) > NAME_MAX:
        issues.append(f"{label} must be less than {NAME_MAX} characters")


def validate_client(data: Dict[str, Any], partial: bool = False) -> List[str]:
    """Client form: name required on create; email optional but well-formed."""
    issues: List[str] = []
    if not partial or "name" in data:
        if not text(data.get("name")):
            issues.append("Client name is required")
        elif len(text(data["name"])) > NAME_MAX:
            issues.append(f"Name must be less than {NAME_MAX} characters")
    email = text(data.get("email"))
    if email and not is_valid_email(email):
        issues.append("Please enter a valid email address")
    phone = text(data.get("phone"))
    if len(phone) > PHONE_MAX:
        issues.append("Phone number too long")
    return issues


def validate_profile(data: Dict[str, Any]) -> List[str]:
    issues: List[str] = []
    if data.get("full_name") is not None:
        _check_name(data["full_name"], issues)
    business_email = data.get("business_email") or ""
    if business_email and not is_valid_email(business_email):
        issues.append("Please enter a valid email address")
    if len(data.get("whatsapp_number") or "") > PHONE_MAX:
        issues.append("Phone number too long")
    rate = data.get("commission_rate")
    if rate is not None:
        try:
            if not 0 <= float(rate) <= 100:
                issues.append("Commission rate must be between 0 and 100")
        except (TypeError, ValueError):
            issues.append("Commission rate must be a number")
    return issues


def validate_property(data: Dict[str, Any], partial: bool = False) -> List[str]:
    issues: List[str] = []
    if not partial or "project_name" in data:
        if not text(data.get("project_name")):
            issues.append("Project name is required")
    if not partial or "purchase_price" in data:
        try:
            if float(data.get("purchase_price") or 0) <= 0:
                issues.append("Purchase price must be greater than zero")
        except (TypeError, ValueError):
            issues.append("Purchase price must be a number")
    if not partial or "purchase_date" in data:
        if not re.match(r"^\d{4}-\d{2}-\d{2}", str(data.get("purchase_date") or "")):
            issues.append("Purchase date must be YYYY-MM-DD")
    return issues
