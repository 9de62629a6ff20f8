"""Clawrelay configuration — centralized environment variable management.

All runtime configuration comes from environment variables (docker compose
``env_file``) or a ``.env`` file in development. This module is the single
place where those variables are declared, validated, and typed.

No module should call os.environ directly — import settings from here instead.

Usage:
    from relay.config import get_settings

    settings = get_settings()
    url = settings.openclaw_gateway_url

Environment variables:

  Required:
    TELEGRAM_BOT_TOKEN      — Telegram Bot API token (from @BotFather).
    TELEGRAM_ALLOWED_USERS  — Comma-separated numeric Telegram user IDs
                              (from @userinfobot). Entries that are not
                              integers are dropped; at least one must remain.
    OPENCLAW_GATEWAY_TOKEN  — Bearer token for the OpenClaw gateway.

  Optional:
    OPENCLAW_GATEWAY_URL    — Gateway base URL. Default: http://openclaw-gateway:18789
    LOG_LEVEL               — debug / info / warning / error. Default: info
    HEALTH_PORT             — Port of the liveness endpoint. Default: 3000
    AGENT_WORKSPACE         — Projects directory as seen by the agent.
                              Default: /home/node/projects
    GATEWAY_TIMEOUT_SECONDS — Timeout for every gateway request. Default: 120
    LOGFIRE_TOKEN           — Logfire project token. If unset, logfire runs
                              in local mode (no remote export).
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_GATEWAY_URL = "http://openclaw-gateway:18789"
DEFAULT_WORKSPACE = "/home/node/projects"

# LOG_LEVEL accepts "warn" as well, matching the docker-compose examples.
_LOG_LEVEL_ALIASES: dict[str, str] = {"warn": "warning"}
_KNOWN_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


class RelaySettings(BaseSettings):
    """Centralized configuration for the relay.

    Field names map to env vars by uppercasing: health_port → HEALTH_PORT.
    Instantiate via get_settings() to benefit from caching.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Unrelated variables in a shared .env (docker compose) are ignored.
        extra="ignore",
    )

    # ── Telegram ─────────────────────────────────────────────────────────────

    telegram_bot_token: SecretStr
    """Telegram Bot API token. SecretStr prevents accidental logging."""

    telegram_allowed_users: Annotated[frozenset[int], NoDecode]
    """Allow-list of Telegram user IDs, fixed for the process lifetime.

    NoDecode keeps pydantic-settings from JSON-decoding the raw value so the
    validator below can parse the comma-separated form.
    """

    # ── Gateway ──────────────────────────────────────────────────────────────

    openclaw_gateway_url: str = DEFAULT_GATEWAY_URL
    openclaw_gateway_token: SecretStr
    gateway_timeout_seconds: float = 120.0
    agent_workspace: str = DEFAULT_WORKSPACE
    """Directory the agent treats as the user's projects root. Sent as
    context with every chat request and used by /projects."""

    # ── Process ──────────────────────────────────────────────────────────────

    log_level: str = "info"
    health_port: int = 3000

    # ── Observability ────────────────────────────────────────────────────────

    logfire_token: SecretStr | None = None

    # ── Validators ───────────────────────────────────────────────────────────

    @field_validator("telegram_allowed_users", mode="before")
    @classmethod
    def parse_allowed_users(cls, v: object) -> frozenset[int]:
        if isinstance(v, str):
            ids: set[int] = set()
            for part in v.split(","):
                try:
                    ids.add(int(part.strip()))
                except ValueError:
                    continue
        elif isinstance(v, (list, tuple, set, frozenset)):
            ids = {int(item) for item in v}
        else:
            msg = f"TELEGRAM_ALLOWED_USERS must be a comma-separated list, got {type(v).__name__}"
            raise ValueError(msg)
        if not ids:
            msg = (
                "TELEGRAM_ALLOWED_USERS is required and must contain at least one "
                "numeric user ID. Get yours from @userinfobot in Telegram."
            )
            raise ValueError(msg)
        return frozenset(ids)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().lower()
        level = _LOG_LEVEL_ALIASES.get(level, level)
        if level not in _KNOWN_LOG_LEVELS:
            msg = f"Unknown LOG_LEVEL '{v}'. Use one of: {', '.join(sorted(_KNOWN_LOG_LEVELS))}"
            raise ValueError(msg)
        return level

    @field_validator("openclaw_gateway_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # ── Computed properties ──────────────────────────────────────────────────

    @property
    def logging_level(self) -> int:
        """The ``logging`` module constant for log_level (e.g. logging.INFO)."""
        return logging.getLevelNamesMapping()[self.log_level.upper()]


@lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    """Return the cached RelaySettings instance.

    Reads from environment on first call, then caches for the process lifetime.
    Raises pydantic.ValidationError when a required variable is missing — the
    entry point turns that into a non-zero exit.
    """
    return RelaySettings()  # pyright: ignore[reportCallIssue]  — BaseSettings reads from env


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Use in tests that vary environment variables between cases.
    """
    get_settings.cache_clear()
