"""Runs the two blocking passes, or the single-page undo."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from scripts.inactive_users.client import ManagementClient
from scripts.inactive_users.config import JobConfig
from scripts.inactive_users.executor import ActionExecutor
from scripts.inactive_users.models import SearchCriteria
from scripts.inactive_users.query import block_cutoff_date
from scripts.inactive_users.rate_limit import RateLimiter
from scripts.inactive_users.scanner import PagedScanner
from scripts.inactive_users.token import get_access_token

logger = logging.getLogger("inactive_users.job")

PASSES = (SearchCriteria.BY_LAST_LOGIN, SearchCriteria.BY_CREATION_NEVER_LOGGED_IN)


@dataclass
class JobContext:
    """Everything a run needs, built once at startup and passed down explicitly."""

    config: JobConfig
    client: ManagementClient
    limiter: RateLimiter

    @classmethod
    def create(cls, config: JobConfig) -> "JobContext":
        auth0 = config.auth0
        token = get_access_token(
            auth0.client_id,
            auth0.client_secret,
            auth0.domain,
            audience=auth0.audience,
            timeout=auth0.request_timeout,
        )
        client = ManagementClient(auth0.domain, token, timeout=auth0.request_timeout)
        limiter = RateLimiter(config.blocking.rate_limit_throttle)
        return cls(config=config, client=client, limiter=limiter)

    def close(self) -> None:
        self.client.close()


@dataclass
class BlockRunResult:
    counts: dict[SearchCriteria, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> dict[str, int]:
        result = {criteria.name.lower(): count for criteria, count in self.counts.items()}
        result["total"] = self.total
        return result


class BlockJob:
    def __init__(self, context: JobContext, scanner: Optional[PagedScanner] = None) -> None:
        self.context = context
        settings = context.config.blocking
        if scanner is None:
            executor = ActionExecutor(context.client, context.limiter)
            scanner = PagedScanner(context.client, executor, context.limiter, settings)
        self.scanner = scanner

    def run(self) -> BlockRunResult:
        settings = self.context.config.blocking
        logger.info(
            "Blocking users whose last login was %s days ago. Last login occurred before: %s",
            settings.block_threshold_days,
            block_cutoff_date(settings.block_threshold_days),
        )

        result = BlockRunResult()
        for criteria in PASSES:
            result.counts[criteria] = self.scanner.scan(criteria, blocked=True)
            logger.info(
                "Blocked %d %s users.",
                result.counts[criteria],
                criteria.label,
                extra={"criteria": criteria.name, "processed": result.counts[criteria]},
            )

        logger.info("Blocked %d users.", result.total, extra={"processed": result.total})
        return result

    def undo(self) -> int:
        """Unblock one page of blocked users. Meant for reversing test runs only."""
        page = self.scanner.fetch_blocked()
        unblocked = 0
        for user in page.users:
            if not user.blocked:
                continue
            self.scanner.executor.apply(user, blocked=False)
            unblocked += 1

        logger.info("Unblocked %d users.", unblocked, extra={"processed": unblocked})
        return unblocked
