"""Management API rate-limit handling.

Both the proactive throttle (quota running low) and the reactive pause (a
429 has already happened) wait until the reset time the API reported. There
is no jitter and no exponential back-off.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from scripts.inactive_users.models import RateBudget

logger = logging.getLogger("inactive_users.rate_limit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def should_throttle(remaining: int, floor: int) -> bool:
    """True when the remaining quota is below the floor or exhausted."""
    return remaining <= 0 or remaining < floor


def wait_until_reset(
    reset: datetime,
    sleep: Callable[[float], None] = time.sleep,
    now: Optional[datetime] = None,
) -> float:
    """Sleep until ``reset`` has passed. Returns the number of seconds slept."""
    current = now or _utcnow()
    delay = (reset - current).total_seconds()
    if delay <= 0:
        return 0.0
    sleep(delay)
    return delay


class RateLimiter:
    """Decides when to pause between Management API calls."""

    def __init__(
        self,
        floor: int,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.floor = floor
        self._sleep = sleep
        self._clock = clock

    def apply_throttle(self, budget: Optional[RateBudget]) -> float:
        """Pause before the next call if the quota fell below the floor."""
        if budget is None or not should_throttle(budget.remaining, self.floor):
            return 0.0
        return self.pause_for_reset(budget)

    def pause_for_reset(self, budget: Optional[RateBudget]) -> float:
        """Pause until the budget's reset time. A missing budget is a zero wait."""
        if budget is None:
            logger.warning("Rate limit hit without rate-limit headers, retrying immediately")
            return 0.0

        now = self._clock()
        logger.info(
            "Rate limit (%d) hit at %s, %d remaining. Pausing until %s",
            budget.limit,
            now.isoformat(),
            budget.remaining,
            budget.reset.isoformat(),
            extra={"remaining": budget.remaining, "limit": budget.limit},
        )
        delay = wait_until_reset(budget.reset, sleep=self._sleep, now=now)
        logger.info(
            "Resuming Management API calls after %.1fs",
            delay,
            extra={"delay_s": round(delay, 3)},
        )
        return delay
