"""Unit tests for the block/unblock executor and its retry-once policy."""

from __future__ import annotations

import pytest

from scripts.inactive_users.errors import ManagementApiError, RateLimitError
from scripts.inactive_users.executor import ActionExecutor
from tests.conftest import FakeManagementClient, budget, make_user, ts


class TestApply:
    def test_blocks_user(self, client: FakeManagementClient, executor: ActionExecutor) -> None:
        client.update_outcomes = [budget(remaining=90)]
        executor.apply(make_user("auth0|a", last_login=ts(1)))
        assert client.updates == [("auth0|a", {"blocked": True})]

    def test_unblocks_user(self, client: FakeManagementClient, executor: ActionExecutor) -> None:
        executor.apply(make_user("auth0|a", blocked=True), blocked=False)
        assert client.updates == [("auth0|a", {"blocked": False})]

    def test_no_wait_when_quota_healthy(
        self, client: FakeManagementClient, executor: ActionExecutor, sleeps: list[float]
    ) -> None:
        client.update_outcomes = [budget(remaining=90)]
        executor.apply(make_user("auth0|a"))
        assert sleeps == []

    def test_throttles_after_success_below_floor(
        self, client: FakeManagementClient, executor: ActionExecutor, sleeps: list[float]
    ) -> None:
        client.update_outcomes = [budget(remaining=2, reset_in=7)]
        executor.apply(make_user("auth0|a"))
        assert sleeps == [pytest.approx(7.0)]

    def test_rate_limited_then_retried_once(
        self, client: FakeManagementClient, executor: ActionExecutor, sleeps: list[float]
    ) -> None:
        client.update_outcomes = [RateLimitError(budget(remaining=0, reset_in=5)), budget(remaining=50)]
        executor.apply(make_user("auth0|a"))
        assert client.updated_ids == ["auth0|a", "auth0|a"]
        assert sleeps == [pytest.approx(5.0)]

    def test_retry_success_still_throttled(
        self, client: FakeManagementClient, executor: ActionExecutor, sleeps: list[float]
    ) -> None:
        client.update_outcomes = [RateLimitError(budget(remaining=0, reset_in=5)), budget(remaining=1, reset_in=9)]
        executor.apply(make_user("auth0|a"))
        assert sleeps == [pytest.approx(5.0), pytest.approx(9.0)]

    def test_second_rejection_is_raised(
        self, client: FakeManagementClient, executor: ActionExecutor, sleeps: list[float]
    ) -> None:
        client.update_outcomes = [
            RateLimitError(budget(remaining=0, reset_in=5)),
            RateLimitError(budget(remaining=0, reset_in=5)),
            budget(),
        ]
        with pytest.raises(RateLimitError):
            executor.apply(make_user("auth0|a"))
        assert len(client.updates) == 2
        assert sleeps == [pytest.approx(5.0)]

    def test_other_api_errors_not_retried(
        self, client: FakeManagementClient, executor: ActionExecutor, sleeps: list[float]
    ) -> None:
        client.update_outcomes = [ManagementApiError(500, "boom")]
        with pytest.raises(ManagementApiError):
            executor.apply(make_user("auth0|a"))
        assert len(client.updates) == 1
        assert sleeps == []
