"""Thin Management API client: user search and user update."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from scripts.inactive_users.errors import ManagementApiError, RateLimitError
from scripts.inactive_users.models import RateBudget, SearchPage, User

logger = logging.getLogger("inactive_users.client")

# Largest per_page the user search endpoint accepts.
MAX_PAGE_SIZE = 100


class ManagementClient:
    """Owns the HTTP session for the lifetime of a job run."""

    def __init__(
        self,
        domain: str,
        token: str,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base = f"https://{domain.strip().rstrip('/')}/api/v2"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        })

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self._base}{path}"
        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise ManagementApiError(None, f"{method} {path} failed: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimitError(RateBudget.from_headers(resp.headers), _error_message(resp))
        if resp.status_code >= 400:
            raise ManagementApiError(resp.status_code, _error_message(resp))
        return resp

    def search_users(
        self,
        query: str,
        fields: str,
        sort: str,
        page: int = 0,
        per_page: int = 50,
        include_totals: bool = True,
    ) -> SearchPage:
        params = {
            "q": query,
            "search_engine": "v3",
            "fields": fields,
            "include_fields": "true",
            "sort": sort,
            "page": str(page),
            "per_page": str(min(per_page, MAX_PAGE_SIZE)),
            "include_totals": "true" if include_totals else "false",
        }
        resp = self._request("GET", "/users", params=params)
        data = resp.json()

        total: Optional[int] = None
        if isinstance(data, dict):
            raw_users = data.get("users", [])
            total = data.get("total")
        else:
            raw_users = data
        users = [User.from_dict(u) for u in raw_users]
        return SearchPage(users=users, budget=RateBudget.from_headers(resp.headers), total=total)

    def update_user(self, user_id: str, payload: dict[str, Any]) -> Optional[RateBudget]:
        resp = self._request("PATCH", f"/users/{quote(user_id, safe='')}", json=payload)
        return RateBudget.from_headers(resp.headers)


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:500] or resp.reason or ""
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)[:500]
    return str(body)[:500]
