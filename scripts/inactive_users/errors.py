"""Exception hierarchy for the blocking job."""

from __future__ import annotations

from typing import Optional

from scripts.inactive_users.models import RateBudget


class BlockingError(Exception):
    """Base class for every error raised by the job."""


class ConfigurationError(BlockingError, ValueError):
    """A required setting is missing or malformed."""


class AuthenticationError(BlockingError):
    """The Management API token could not be obtained."""


class ManagementApiError(BlockingError):
    """The Management API returned an error response."""

    def __init__(self, status_code: Optional[int], message: str) -> None:
        super().__init__(f"Management API error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message


class RateLimitError(ManagementApiError):
    """HTTP 429. Carries the rate budget reported with the rejection."""

    def __init__(self, budget: Optional[RateBudget], message: str = "Too Many Requests") -> None:
        super().__init__(429, message)
        self.budget = budget


class ScanError(BlockingError):
    """A page could not be used to refine the search."""
