"""Configuration from appsettings.json, .env files and environment variables.

Sources, later wins:
  - appsettings.json (working directory, APPSETTINGS_PATH, or --settings)
  - .env file (python-dotenv)
  - process environment variables

ClientSecret may be a cloud secret reference (aws-secret://, gcp-secret://).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from dotenv import load_dotenv

from scripts.inactive_users.client import MAX_PAGE_SIZE
from scripts.inactive_users.errors import ConfigurationError
from scripts.inactive_users.query import Days, parse_threshold_days
from scripts.inactive_users.secrets import resolve_secret

logger = logging.getLogger("inactive_users.config")

DEFAULT_SETTINGS_PATH = Path("appsettings.json")
ENV_SETTINGS_PATH = "APPSETTINGS_PATH"

# setting key -> environment variable
ENV_KEYS: dict[str, str] = {
    "ClientId": "CLIENT_ID",
    "ClientSecret": "CLIENT_SECRET",
    "A0Domain": "A0_DOMAIN",
    "A0Audience": "A0_AUDIENCE",
    "BlockThreshold": "BLOCK_THRESHOLD",
    "UserPageSize": "USER_PAGE_SIZE",
    "RateLimitThrottle": "RATE_LIMIT_THROTTLE",
    "ConnectionName": "CONNECTION_NAME",
    "RequestTimeout": "REQUEST_TIMEOUT",
}


@dataclass(frozen=True)
class Auth0Config:
    client_id: str
    client_secret: str
    domain: str
    audience: Optional[str] = None  # None = https://<domain>/api/v2/
    request_timeout: int = 30


@dataclass(frozen=True)
class BlockingConfig:
    block_threshold_days: Days
    user_page_size: int
    rate_limit_throttle: int
    connection_name: Optional[str] = None


@dataclass(frozen=True)
class JobConfig:
    auth0: Auth0Config
    blocking: BlockingConfig


def _load_settings_file(path: Path, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Settings file '{path}' does not exist")
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle) or {}
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Settings file '{path}' is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file '{path}' must contain a JSON object")
    return data


def _required(settings: Mapping[str, Any], key: str) -> str:
    value = settings.get(key)
    if value is None or str(value).strip() == "":
        raise ConfigurationError(f"Missing required setting '{key}' (env {ENV_KEYS[key]})")
    return str(value).strip()


def _optional(settings: Mapping[str, Any], key: str) -> Optional[str]:
    value = settings.get(key)
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def _to_int(settings: Mapping[str, Any], key: str, minimum: int, default: Optional[int] = None) -> int:
    raw = settings.get(key)
    if raw is None or str(raw).strip() == "":
        if default is None:
            raise ConfigurationError(f"Missing required setting '{key}' (env {ENV_KEYS[key]})")
        return default
    try:
        value = int(str(raw).strip())
    except ValueError as exc:
        raise ConfigurationError(f"Setting '{key}' must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"Setting '{key}' must be >= {minimum}, got {value}")
    return value


def config_from_settings(settings: Mapping[str, Any]) -> JobConfig:
    """Validate a flat key -> value mapping (appsettings.json layout)."""
    page_size = _to_int(settings, "UserPageSize", minimum=1)
    if page_size > MAX_PAGE_SIZE:
        logger.warning(
            "UserPageSize %d exceeds the API maximum, using %d", page_size, MAX_PAGE_SIZE
        )
        page_size = MAX_PAGE_SIZE

    threshold = parse_threshold_days(_required(settings, "BlockThreshold"))

    auth0 = Auth0Config(
        client_id=_required(settings, "ClientId"),
        client_secret=resolve_secret(_required(settings, "ClientSecret")),
        domain=_required(settings, "A0Domain"),
        audience=_optional(settings, "A0Audience"),
        request_timeout=_to_int(settings, "RequestTimeout", minimum=1, default=30),
    )
    blocking = BlockingConfig(
        block_threshold_days=threshold,
        user_page_size=page_size,
        rate_limit_throttle=_to_int(settings, "RateLimitThrottle", minimum=0),
        connection_name=_optional(settings, "ConnectionName"),
    )
    return JobConfig(auth0=auth0, blocking=blocking)


def load_config(settings_path: Optional[Union[str, Path]] = None) -> JobConfig:
    """Load configuration. Raises ConfigurationError on missing or bad values."""
    load_dotenv()

    explicit = settings_path or os.environ.get(ENV_SETTINGS_PATH)
    path = Path(explicit) if explicit else DEFAULT_SETTINGS_PATH
    settings = _load_settings_file(path, required=bool(explicit))

    for key, env_name in ENV_KEYS.items():
        value = os.environ.get(env_name)
        if value:
            settings[key] = value

    return config_from_settings(settings)
