"""Builds the Lucene expressions passed to the user search ``q`` parameter."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from scripts.inactive_users.errors import ConfigurationError
from scripts.inactive_users.models import SearchCriteria

WILDCARD = "*"

Days = Union[int, float]


def parse_threshold_days(value: Any) -> Days:
    """Validate a BlockThreshold value. Raises ConfigurationError if unusable."""
    try:
        days = float(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"BlockThreshold must be a number of days, got {value!r}") from exc
    if days != days or days < 0 or days == float("inf"):
        raise ConfigurationError(f"BlockThreshold must be a non-negative number, got {value!r}")
    days = int(days) if days.is_integer() else days
    _subtract_days(datetime.now(timezone.utc), days)
    return days


def _subtract_days(current: datetime, days: Days) -> datetime:
    try:
        return current - timedelta(days=days)
    except (OverflowError, ValueError) as exc:
        raise ConfigurationError(
            f"BlockThreshold of {days} days reaches outside the supported date range"
        ) from exc


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def block_cutoff_date(block_threshold_days: Any, now: Optional[datetime] = None) -> str:
    """Day (YYYY-MM-DD) before which activity counts as stale."""
    days = parse_threshold_days(block_threshold_days)
    current = _utc(now) if now is not None else datetime.now(timezone.utc)
    return _subtract_days(current, days).strftime("%Y-%m-%d")


def format_cursor(dt: datetime) -> str:
    """Format an ordering-field value as ISO-8601, UTC, millisecond precision."""
    value = _utc(dt)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _connection_clause(connection: Optional[str]) -> str:
    if not connection:
        return ""
    escaped = connection.replace("\\", "\\\\").replace('"', '\\"')
    return f' AND identities.connection:"{escaped}"'


def build_user_search_query(
    criteria: SearchCriteria,
    block_threshold_days: Any,
    cursor: str = WILDCARD,
    connection: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Return the search expression for one page of a scan pass.

    The range is ``[cursor, cutoff)``: ``[`` keeps the boundary user (which
    the scanner then skips) and ``}`` excludes the cutoff day itself.
    """
    cutoff = block_cutoff_date(block_threshold_days, now)
    cursor = cursor or WILDCARD

    if criteria is SearchCriteria.BY_CREATION_NEVER_LOGGED_IN:
        query = (
            f"-_exists_:last_login AND created_at:[{cursor} TO {cutoff}}}"
            " AND -blocked:true"
        )
    elif criteria is SearchCriteria.BY_LAST_LOGIN:
        query = f"last_login:[{cursor} TO {cutoff}}} AND -blocked:true"
    else:
        raise ValueError(f"Unsupported search criteria: {criteria!r}")

    return query + _connection_clause(connection)


def build_blocked_users_query(connection: Optional[str] = None) -> str:
    """Search expression for users that are currently blocked."""
    return "blocked:true" + _connection_clause(connection)
