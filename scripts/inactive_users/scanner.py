"""Cursor-refined scan over the user search endpoint.

The user search index is eventually consistent and blocking a user changes
whether it matches ``-blocked:true``, so offset paging is unsafe while the
scan is mutating the result set. Instead every request asks for page 0 and
the lower bound of the range moves forward to the ordering-field value of
the last user handled. Because the lower bound is inclusive, the boundary
user comes back at the top of the next page and is skipped, along with any
other handled user sharing its timestamp.

Known limitation: if more users share one timestamp than fit on a page, the
refined page holds only handled users and the rest of that timestamp is
missed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from scripts.inactive_users.client import ManagementClient
from scripts.inactive_users.config import BlockingConfig
from scripts.inactive_users.errors import RateLimitError, ScanError
from scripts.inactive_users.executor import ActionExecutor
from scripts.inactive_users.models import SearchCriteria, SearchPage
from scripts.inactive_users.query import (
    WILDCARD,
    build_blocked_users_query,
    build_user_search_query,
    format_cursor,
)
from scripts.inactive_users.rate_limit import RateLimiter

logger = logging.getLogger("inactive_users.scanner")

SEARCH_FIELDS = "user_id,last_login,created_at,blocked"


def _before(value: Optional[datetime], boundary: Optional[datetime]) -> bool:
    return value is not None and boundary is not None and value < boundary


class PagedScanner:
    def __init__(
        self,
        client: ManagementClient,
        executor: ActionExecutor,
        limiter: RateLimiter,
        settings: BlockingConfig,
    ) -> None:
        self.client = client
        self.executor = executor
        self.limiter = limiter
        self.settings = settings

    def build_query(self, criteria: SearchCriteria, cursor: str = WILDCARD) -> str:
        return build_user_search_query(
            criteria,
            self.settings.block_threshold_days,
            cursor=cursor,
            connection=self.settings.connection_name,
        )

    def fetch_page(self, query: str, sort: str) -> SearchPage:
        """Run one search, retrying once after a rate-limit rejection."""
        logger.info("Fetching users. query: %s", query, extra={"query": query})
        try:
            page = self._search(query, sort)
        except RateLimitError as exc:
            logger.warning("User search rate limited, retrying once after reset", extra={"query": query})
            self.limiter.pause_for_reset(exc.budget)
            try:
                page = self._search(query, sort)
            except RateLimitError:
                logger.error("User search rate limited again, giving up", extra={"query": query})
                raise

        self.limiter.apply_throttle(page.budget)
        return page

    def _search(self, query: str, sort: str) -> SearchPage:
        return self.client.search_users(
            query,
            fields=SEARCH_FIELDS,
            sort=sort,
            page=0,
            per_page=self.settings.user_page_size,
            include_totals=True,
        )

    def scan(self, criteria: SearchCriteria, blocked: bool = True) -> int:
        """Apply ``blocked`` to every matching user. Returns how many were updated."""
        log_extra = {"criteria": criteria.name}
        page = self.fetch_page(self.build_query(criteria), criteria.sort)
        if page.total is not None:
            logger.info(
                "Found %d %s users", page.total, criteria.label,
                extra={**log_extra, "total": page.total},
            )
        if not page.users:
            logger.info("No users matched the initial query", extra=log_extra)
            return 0

        processed = 0
        # Ids already handled whose ordering value equals the cursor; anything
        # earlier than the cursor was handled on a previous page.
        boundary_ids: set[str] = set()
        boundary_value = None
        refined = False

        while True:
            fresh = [
                user for user in page.users
                if user.user_id not in boundary_ids
                and not _before(criteria.cursor_value(user), boundary_value)
            ]
            if refined:
                logger.info("Refined search found %d new users.", len(fresh), extra=log_extra)
            if not fresh:
                break

            for user in fresh:
                self.executor.apply(user, blocked=blocked)
                processed += 1

            last_user = page.users[-1]
            cursor_value = criteria.cursor_value(last_user)
            if cursor_value is None:
                raise ScanError(
                    f"User {last_user.user_id} has no {criteria.sort_field}; cannot refine search"
                )
            if cursor_value != boundary_value:
                boundary_ids = set()
                boundary_value = cursor_value
            boundary_ids.update(
                user.user_id for user in fresh if criteria.cursor_value(user) == cursor_value
            )
            boundary_ids.add(last_user.user_id)
            cursor = format_cursor(cursor_value)

            logger.info("Refine search to look for users after %s", cursor, extra=log_extra)
            page = self.fetch_page(self.build_query(criteria, cursor), criteria.sort)
            refined = True

        logger.info(
            "Scan for %s users complete, %d processed",
            criteria.label,
            processed,
            extra={**log_extra, "processed": processed},
        )
        return processed

    def fetch_blocked(self, connection: Optional[str] = None) -> SearchPage:
        """Single page of currently blocked users, oldest login first."""
        query = build_blocked_users_query(connection or self.settings.connection_name)
        return self.fetch_page(query, SearchCriteria.BY_LAST_LOGIN.sort)
