"""Entry point for the relay Telegram bot.

Starts the bot using long polling. Intended to be run as a module:

    python -m relay.chat

or via the console script:

    clawrelay

All configuration is read from environment variables (docker compose
env_file, or a .env file in development). A missing required variable is
fatal: the process logs the validation error and exits with status 1.

The liveness server runs as a task inside the same event loop. It starts in
the Application's post_init hook and stops in post_shutdown, after which the
process waits SHUTDOWN_GRACE_SECONDS before exiting.
"""

from __future__ import annotations

import asyncio
import logging
import sys

import logfire
from pydantic import ValidationError
from telegram import Update
from telegram.ext import Application

from relay.chat.bot import build_application
from relay.chat.deps import RelayDeps
from relay.chat.sessions import SessionStore
from relay.config import RelaySettings, get_settings
from relay.gateway.client import GatewayClient
from relay.health import create_app, create_server

# ── Logging ───────────────────────────────────────────────────────────────────

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS: float = 1.0


def _load_settings() -> RelaySettings:
    try:
        return get_settings()
    except ValidationError as exc:
        logger.critical("Invalid configuration — check your environment / .env file:\n%s", exc)
        sys.exit(1)


# ── Entrypoint ────────────────────────────────────────────────────────────────


def main() -> None:
    """Start the relay bot with long polling.

    Reads configuration from RelaySettings (env vars / .env file), configures
    Logfire, then runs until interrupted (Ctrl-C or SIGTERM from docker).
    """
    settings = _load_settings()
    logging.getLogger().setLevel(settings.logging_level)

    # Configure Logfire — token is optional; if unset it runs in local/dev mode.
    logfire_token = settings.logfire_token
    logfire.configure(
        token=logfire_token.get_secret_value() if logfire_token else None,
        service_name="clawrelay",
    )

    gateway = GatewayClient(
        settings.openclaw_gateway_url,
        settings.openclaw_gateway_token.get_secret_value(),
        timeout_seconds=settings.gateway_timeout_seconds,
    )
    logfire.instrument_httpx(gateway.http_client)

    deps = RelayDeps(
        allowed_users=settings.telegram_allowed_users,
        gateway=gateway,
        sessions=SessionStore(),
        workspace=settings.agent_workspace,
    )
    health_server = create_server(create_app(deps), settings.health_port)
    background: set[asyncio.Task[None]] = set()

    async def start_health_server(_application: Application) -> None:
        background.add(asyncio.create_task(health_server.serve()))
        logger.info("Health check server on port %d", settings.health_port)

    async def shutdown(_application: Application) -> None:
        logger.info("Shutting down gracefully...")
        health_server.should_exit = True
        if background:
            await asyncio.gather(*background, return_exceptions=True)
        await gateway.aclose()
        await asyncio.sleep(SHUTDOWN_GRACE_SECONDS)

    logger.info("Clawbot Telegram interface starting...")
    logger.info("Allowed users: %s", ", ".join(str(uid) for uid in sorted(deps.allowed_users)))
    logger.info("Gateway URL: %s", settings.openclaw_gateway_url)

    application = build_application(
        settings.telegram_bot_token.get_secret_value(),
        deps,
        post_init=start_health_server,
        post_shutdown=shutdown,
    )

    # run_polling blocks until the process receives SIGINT / SIGTERM.
    application.run_polling(
        allowed_updates=Update.ALL_TYPES,
        drop_pending_updates=True,  # ignore messages queued while the bot was offline
    )


if __name__ == "__main__":
    main()
