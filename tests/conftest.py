"""Shared fixtures: an in-memory Management API and a limiter that records sleeps."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import pytest

from scripts.inactive_users.config import Auth0Config, BlockingConfig, JobConfig
from scripts.inactive_users.executor import ActionExecutor
from scripts.inactive_users.models import RateBudget, SearchPage, User
from scripts.inactive_users.rate_limit import RateLimiter
from scripts.inactive_users.scanner import PagedScanner

NOW = datetime(2024, 3, 31, 12, 0, 0, tzinfo=timezone.utc)


def ts(day: int, month: int = 1, ms: int = 0) -> datetime:
    return datetime(2024, month, day, 8, 30, 0, ms * 1000, tzinfo=timezone.utc)


def make_user(
    user_id: str,
    last_login: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
    blocked: bool = False,
) -> User:
    return User(user_id=user_id, last_login=last_login, created_at=created_at, blocked=blocked)


def budget(remaining: int = 100, limit: int = 100, reset_in: float = 5.0) -> RateBudget:
    return RateBudget(limit=limit, remaining=remaining, reset=NOW + timedelta(seconds=reset_in))


Outcome = Union[SearchPage, Exception]


class FakeManagementClient:
    """Returns scripted search pages and update outcomes, recording every call."""

    def __init__(
        self,
        pages: Optional[list[Outcome]] = None,
        update_outcomes: Optional[list[Any]] = None,
    ) -> None:
        self.pages = list(pages or [])
        self.update_outcomes = list(update_outcomes or [])
        self.searches: list[dict[str, Any]] = []
        self.updates: list[tuple[str, dict]] = []
        self.closed = False

    def search_users(self, query, fields, sort, page=0, per_page=50, include_totals=True):
        self.searches.append({
            "query": query,
            "fields": fields,
            "sort": sort,
            "page": page,
            "per_page": per_page,
            "include_totals": include_totals,
        })
        if not self.pages:
            return SearchPage()
        item = self.pages.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def update_user(self, user_id, payload):
        self.updates.append((user_id, payload))
        if not self.update_outcomes:
            return None
        item = self.update_outcomes.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def updated_ids(self) -> list[str]:
        return [user_id for user_id, _ in self.updates]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def limiter(sleeps: list[float]) -> RateLimiter:
    return RateLimiter(floor=5, sleep=sleeps.append, clock=lambda: NOW)


@pytest.fixture
def settings() -> BlockingConfig:
    return BlockingConfig(block_threshold_days=30, user_page_size=2, rate_limit_throttle=5)


@pytest.fixture
def job_config(settings: BlockingConfig) -> JobConfig:
    return JobConfig(
        auth0=Auth0Config(client_id="cid", client_secret="secret", domain="tenant.auth0.com"),
        blocking=settings,
    )


@pytest.fixture
def client() -> FakeManagementClient:
    return FakeManagementClient()


@pytest.fixture
def executor(client: FakeManagementClient, limiter: RateLimiter) -> ActionExecutor:
    return ActionExecutor(client, limiter)


@pytest.fixture
def scanner(
    client: FakeManagementClient,
    executor: ActionExecutor,
    limiter: RateLimiter,
    settings: BlockingConfig,
) -> PagedScanner:
    return PagedScanner(client, executor, limiter, settings)
