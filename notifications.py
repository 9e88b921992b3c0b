"""E-mail notifications to brokers and clients over SMTP."""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from config import config

logger = logging.getLogger(__name__)


def _format_aed(amount: float) -> str:
    return f"{config.DEFAULT_CURRENCY} {amount:,.0f}"


def _send_email(message: EmailMessage) -> tuple[bool, str]:
    smtp = config.smtp_dict()
    if not smtp["host"] or not smtp["user"] or not smtp["password"]:
        return False, "SMTP not configured"
    try:
        with smtplib.SMTP(smtp["host"], smtp["port"], timeout=20) as server:
            server.starttls()
            server.login(smtp["user"], smtp["password"])
            server.send_message(message)
        return True, "Email sent"
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("Failed sending email")
        return False, f"Email failed: {exc}"


def broker_email(profile: Optional[dict]) -> Optional[str]:
    profile = profile or {}
    return profile.get("business_email") or profile.get("email")


def send_first_view_notification(profile: Optional[dict], quote: dict, location: str,
                                 viewed_at: str) -> tuple[bool, str]:
    """Tell the broker their client just opened a shared quote for the first time."""
    to_email = broker_email(profile)
    if not to_email:
        return False, "No broker email"

    client = quote.get("client_name") or "Your client"
    msg = EmailMessage()
    msg["Subject"] = f"{client} just viewed their quote"
    msg["From"] = config.SMTP_FROM
    msg["To"] = to_email
    msg.set_content(
        f"Hi {(profile or {}).get('full_name') or 'there'},\n\n"
        f"{client} just opened the investment analysis you shared for "
        f"{quote.get('project_name') or 'the property'}.\n\n"
        f"Viewed at: {viewed_at}\n"
        f"Location: {location}\n\n"
        "Now is a great time to follow up."
    )
    return _send_email(msg)


def send_quote_to_client(quote: dict, quote_url: str, advisor_name: str,
                         advisor_email: Optional[str] = None) -> tuple[bool, str]:
    to_email = quote.get("client_email")
    if not to_email:
        return False, "No client email"

    project = quote.get("project_name") or "Your Investment"
    msg = EmailMessage()
    msg["Subject"] = f"Investment Analysis - {project}"
    msg["From"] = config.SMTP_FROM
    msg["To"] = to_email
    if advisor_email:
        msg["Reply-To"] = advisor_email
    body = (
        f"Dear {quote.get('client_name') or 'Investor'},\n\n"
        f"{advisor_name} has prepared an investment analysis for "
        f"{project}{' (' + quote['unit_type'] + ')' if quote.get('unit_type') else ''}.\n\n"
        f"View it here: {quote_url}\n"
    )
    if advisor_email:
        body += f"\nQuestions? Contact {advisor_name}: {advisor_email}\n"
    msg.set_content(body)
    return _send_email(msg)


def send_status_notification(profile: Optional[dict], quote: dict, status: str) -> tuple[bool, str]:
    """Congratulate the broker when a quote is marked sold."""
    if status != "sold":
        return False, f"No notification for status {status}"
    to_email = broker_email(profile)
    if not to_email:
        return False, "No broker email"

    price = float((quote.get("inputs") or {}).get("base_price") or 0)
    rate = float((profile or {}).get("commission_rate") or 0)
    msg = EmailMessage()
    msg["Subject"] = f"Deal Closed: {quote.get('project_name') or 'N/A'}"
    msg["From"] = config.SMTP_FROM
    msg["To"] = to_email
    msg.set_content(
        f"Congratulations, {(profile or {}).get('full_name') or 'Advisor'}!\n\n"
        f"Project: {quote.get('project_name') or 'N/A'}\n"
        f"Client: {quote.get('client_name') or 'N/A'}\n"
        f"Deal value: {_format_aed(price)}\n"
        f"Commission earned: {_format_aed(price * rate / 100)}\n"
    )
    return _send_email(msg)
