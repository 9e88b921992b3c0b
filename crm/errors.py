"""Domain errors raised by the CRM services and mapped to HTTP statuses in app.py."""

from typing import List, Optional


class NotFoundError(ValueError):
    """A record does not exist or is not visible to the caller."""


class ValidationError(ValueError):
    """Submitted data failed validation."""

    def __init__(self, issues: List[str], message: Optional[str] = None):
        self.issues = list(issues)
        super().__init__(message or "; ".join(self.issues) or "Invalid data")
