"""
Configuration module for the Off-Plan Investment CRM service.

Centralizes all configuration parameters including default investment
assumptions, fee structure, storage locations, and mail credentials.
"""

import os
from typing import Dict, Any
from dotenv import load_dotenv

load_dotenv()

_BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Config:
    """Application configuration with sensible defaults for Dubai off-plan analysis."""

    # --- Currency / Fees ---
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "AED")
    DLD_FEE_PERCENT: float = 4.0  # Dubai Land Department transfer fee
    EXIT_AGENT_COMMISSION_PERCENT: float = 2.0
    SQF_TO_M2: float = 0.092903

    # --- Exit assumptions ---
    MINIMUM_EXIT_THRESHOLD: float = 30.0  # percent paid before resale NOC
    OI_EXIT_PERCENTAGES = (50, 60, 70, 80, 90, 100)
    PROJECTION_YEARS: int = 10

    # --- Portfolio assumptions ---
    PORTFOLIO_APPRECIATION_RATE: float = 6.0  # percent per year
    PORTFOLIO_RENT_GROWTH_RATE: float = 4.0
    MAX_YEARS_TO_DOUBLE: int = 50

    # --- Payment plan extraction ---
    PLAN_SUM_TOLERANCE: float = 1.0  # percentage points
    LOW_CONFIDENCE_CAP: int = 70

    # --- Share links ---
    QUOTE_TOKEN_LENGTH: int = 12
    PORTAL_TOKEN_LENGTH: int = 16
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000")

    # --- Geolocation ---
    GEOLOCATION_BASE_URL: str = os.getenv("GEOLOCATION_BASE_URL", "http://ip-api.com/json")
    GEOLOCATION_TIMEOUT: float = float(os.getenv("GEOLOCATION_TIMEOUT", "5"))

    # --- SMTP ---
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str = os.getenv("SMTP_USER", "")
    SMTP_PASS: str = os.getenv("SMTP_PASS", "")
    SMTP_FROM: str = os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "") or "noreply@offplan-crm.local")

    # --- Flask ---
    FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")
    FLASK_PORT: int = int(os.getenv("FLASK_PORT", "5000"))
    FLASK_DEBUG: bool = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    # --- Storage / Output ---
    DATA_DIR: str = os.getenv("DATA_DIR", os.path.join(_BASE_DIR, "data"))
    EXPORT_DIR: str = os.getenv("EXPORT_DIR", os.path.join(_BASE_DIR, "exports"))

    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key-change-in-prod")

    @classmethod
    def validate(cls):
        """Return list of configuration issues."""
        issues = []
        if not cls.SMTP_HOST or not cls.SMTP_USER or not cls.SMTP_PASS:
            issues.append("SMTP not configured - e-mail notifications unavailable")
        if cls.SECRET_KEY == "dev-secret-key-change-in-prod":
            issues.append("SECRET_KEY uses the development default")
        return issues

    @classmethod
    def smtp_dict(cls) -> Dict[str, Any]:
        """Return SMTP settings as a dictionary."""
        return {
            "host": cls.SMTP_HOST,
            "port": cls.SMTP_PORT,
            "user": cls.SMTP_USER,
            "password": cls.SMTP_PASS,
            "sender": cls.SMTP_FROM,
        }


# Module-level convenience alias
config = Config
