"""Client-credentials token for the Management API."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from scripts.inactive_users.errors import AuthenticationError

logger = logging.getLogger("inactive_users.token")


def get_access_token(
    client_id: str,
    client_secret: str,
    domain: str,
    audience: Optional[str] = None,
    timeout: int = 30,
) -> str:
    """Exchange client credentials for a Management API bearer token."""
    domain = domain.strip().rstrip("/")
    payload = {
        "client_id": client_id,
        "client_secret": client_secret,
        "audience": audience or f"https://{domain}/api/v2/",
        "grant_type": "client_credentials",
    }
    try:
        resp = requests.post(f"https://{domain}/oauth/token", json=payload, timeout=timeout)
    except requests.RequestException as exc:
        raise AuthenticationError(f"Token request to {domain} failed: {exc}") from exc

    if resp.status_code >= 400:
        raise AuthenticationError(
            f"Token request to {domain} rejected ({resp.status_code}): {resp.text[:200]}"
        )
    try:
        token = resp.json().get("access_token")
    except ValueError as exc:
        raise AuthenticationError("Token response was not JSON") from exc
    if not token:
        raise AuthenticationError("Token response did not contain an access_token")

    logger.info("Obtained Management API token for %s", domain)
    return token
