"""Typing-indicator keepalive for long agent calls.

Telegram's "typing…" status disappears after about five seconds, while an
agent call can take minutes. typing_keepalive() sends the indicator once on
entry and then every TYPING_INTERVAL_SECONDS until the block exits.

The background task is cancelled in the context manager's ``finally``, so it
stops on every exit path — normal return, GatewayError, or an unexpected
exception — before the caller sends anything else. A keepalive that died on
its own is logged, never re-raised into the caller.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from telegram.constants import ChatAction
from telegram.error import TelegramError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from telegram import Bot

logger = logging.getLogger(__name__)

TYPING_INTERVAL_SECONDS: float = 4.0


async def send_typing(bot: Bot, chat_id: int) -> None:
    """Send one typing indicator. Failures are logged and ignored."""
    try:
        await bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
    except TelegramError as exc:
        logger.debug("Typing indicator failed for chat %s: %s", chat_id, exc)


async def _keep_typing(bot: Bot, chat_id: int, interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        await send_typing(bot, chat_id)


@asynccontextmanager
async def typing_keepalive(
    bot: Bot,
    chat_id: int,
    interval_seconds: float = TYPING_INTERVAL_SECONDS,
) -> AsyncIterator[asyncio.Task[None]]:
    """Show "typing…" in ``chat_id`` for as long as the block runs.

    Usage::

        async with typing_keepalive(context.bot, chat_id):
            reply = await gateway.send_chat_message(...)

    Yields the background task (tests inspect it; callers normally ignore it).
    """
    await send_typing(bot, chat_id)
    task = asyncio.create_task(_keep_typing(bot, chat_id, interval_seconds))
    try:
        yield task
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.warning("Typing keepalive for chat %s stopped early", chat_id, exc_info=True)
