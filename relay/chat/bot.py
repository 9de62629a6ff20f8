"""Telegram bot application factory for the relay.

This module provides build_application() — the single function responsible for
constructing a fully-wired python-telegram-bot Application instance.

Responsibilities:
  - Accept a bot token and the shared RelayDeps, return a ready-to-run Application
  - Register the message router and the error handler
  - Keep configuration concerns out of the handler layer

Usage (from __main__.py):
    from relay.chat.bot import build_application

    app = build_application(token, deps)
    app.run_polling(allowed_updates=Update.ALL_TYPES)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from telegram.ext import (
    Application,
    ApplicationBuilder,
    MessageHandler,
    filters,
)

from relay.chat.deps import DEPS_KEY
from relay.chat.handlers import handle_message, on_error

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from relay.chat.deps import RelayDeps

    LifecycleHook = Callable[[Application], Awaitable[None]]


def build_application(
    token: str,
    deps: RelayDeps,
    *,
    post_init: LifecycleHook | None = None,
    post_shutdown: LifecycleHook | None = None,
) -> Application:
    """Build and return a configured Telegram Application.

    A single MessageHandler receives every new message (edits excluded) and
    does its own routing, because the allow-list check has to run before
    command matching — including for unknown commands.

    concurrent_updates lets different users' messages run in parallel;
    handle_message serialises messages from the same user itself.

    Args:
        token: Telegram Bot API token (from RelaySettings.telegram_bot_token).
        deps: Shared dependencies, stored in bot_data for the handlers.
        post_init: Optional hook run after the Application initialises.
        post_shutdown: Optional hook run after the Application shuts down.

    Returns:
        A fully configured Application ready for run_polling().
    """
    builder = ApplicationBuilder().token(token).concurrent_updates(True)
    if post_init is not None:
        builder = builder.post_init(post_init)
    if post_shutdown is not None:
        builder = builder.post_shutdown(post_shutdown)
    application: Application = builder.build()

    application.bot_data[DEPS_KEY] = deps
    application.add_handler(MessageHandler(filters.UpdateType.MESSAGE, handle_message))
    application.add_error_handler(on_error)

    return application
