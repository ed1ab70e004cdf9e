"""Applies the block/unblock update to a single user."""

from __future__ import annotations

import logging
from typing import Optional

from scripts.inactive_users.client import ManagementClient
from scripts.inactive_users.errors import RateLimitError
from scripts.inactive_users.models import RateBudget, User
from scripts.inactive_users.rate_limit import RateLimiter

logger = logging.getLogger("inactive_users.executor")


class ActionExecutor:
    def __init__(self, client: ManagementClient, limiter: RateLimiter) -> None:
        self.client = client
        self.limiter = limiter

    def apply(self, user: User, blocked: bool = True) -> Optional[RateBudget]:
        """Set ``blocked`` on the user, retrying once after a rate-limit rejection.

        A second rejection is raised to the caller. Any other API error is
        raised without a retry.
        """
        logger.info(
            "%s: %s. Last Login: %s. Created At: %s",
            "Blocking" if blocked else "Unblocking",
            user.user_id,
            user.last_login.isoformat() if user.last_login else None,
            user.created_at.isoformat() if user.created_at else None,
            extra={"user_id": user.user_id},
        )
        payload = {"blocked": blocked}
        try:
            budget = self.client.update_user(user.user_id, payload)
        except RateLimitError as exc:
            logger.warning(
                "Update of %s rate limited, retrying once after reset",
                user.user_id,
                extra={"user_id": user.user_id},
            )
            self.limiter.pause_for_reset(exc.budget)
            try:
                budget = self.client.update_user(user.user_id, payload)
            except RateLimitError:
                logger.error(
                    "Update of %s rate limited again, giving up",
                    user.user_id,
                    extra={"user_id": user.user_id},
                )
                raise

        self.limiter.apply_throttle(budget)
        return budget
