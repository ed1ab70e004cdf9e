"""Directory snapshots and search criteria used by the scanner."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an API timestamp into an aware UTC datetime. Empty values give None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class RateBudget:
    """Rate-limit state reported by the Management API on a single response."""

    limit: int
    remaining: int
    reset: datetime

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional["RateBudget"]:
        """Build a budget from X-RateLimit-* headers. Returns None when absent."""
        try:
            limit = int(headers["X-RateLimit-Limit"])
            remaining = int(headers["X-RateLimit-Remaining"])
            reset_epoch = int(headers["X-RateLimit-Reset"])
        except (KeyError, TypeError, ValueError):
            return None
        return cls(
            limit=limit,
            remaining=remaining,
            reset=datetime.fromtimestamp(reset_epoch, tz=timezone.utc),
        )


@dataclass(frozen=True)
class User:
    """Read-only snapshot of a directory user, valid for one page."""

    user_id: str
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    blocked: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        return cls(
            user_id=str(data["user_id"]),
            last_login=parse_timestamp(data.get("last_login")),
            created_at=parse_timestamp(data.get("created_at")),
            blocked=bool(data.get("blocked", False)),
        )


class SearchCriteria(enum.Enum):
    """The two scan passes. The value is the field the pass sorts and pages on."""

    BY_LAST_LOGIN = "last_login"
    BY_CREATION_NEVER_LOGGED_IN = "created_at"

    @property
    def sort_field(self) -> str:
        return self.value

    @property
    def sort(self) -> str:
        return f"{self.value}:1"

    @property
    def label(self) -> str:
        if self is SearchCriteria.BY_LAST_LOGIN:
            return "last login"
        return "never logged in"

    def cursor_value(self, user: User) -> Optional[datetime]:
        """Value of the ordering field, used to refine the next query."""
        return getattr(user, self.value)


@dataclass
class SearchPage:
    """One page of search results and the budget reported with it."""

    users: list[User] = field(default_factory=list)
    budget: Optional[RateBudget] = None
    total: Optional[int] = None

    def __len__(self) -> int:
        return len(self.users)
