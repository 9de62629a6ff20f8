"""Telegram message handlers for the relay chat layer.

Responsibilities:
  - Gate every message on the allow-list before anything else happens
  - Route slash-commands to relay.chat.commands
  - Forward free text to the OpenClaw gateway and deliver the reply
  - Keep the per-user Session (gateway session id + short history) current
  - Turn gateway failures into one readable notice per failure kind —
    users never see raw tracebacks

Architecture decisions reflected here:
  - user_id IS the identity — sessions and locks are keyed on it.
  - Free-text messages are serialised per user with an asyncio.Lock, so a
    second message waits for the first reply instead of racing it on the
    session. Different users run concurrently.
  - The typing keepalive wraps exactly the gateway call; it is stopped before
    any reply or notice is sent.
  - The handler is the boundary between Telegram and the gateway — it owns
    error handling. Nothing propagates into PTB except a failure to send the
    final apology.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from telegram.error import NetworkError, TimedOut

from relay.chat.commands import dispatch_command
from relay.chat.delivery import chat_sender, deliver, send_with_fallback
from relay.chat.deps import get_deps
from relay.chat.keepalive import typing_keepalive
from relay.gateway.client import (
    GatewayAuthError,
    GatewayError,
    GatewayTimeoutError,
    GatewayUnreachableError,
)

if TYPE_CHECKING:
    from telegram import Update
    from telegram.ext import Application, ContextTypes

    from relay.chat.delivery import SendFn

logger = logging.getLogger(__name__)

ACCESS_DENIED_TEXT = "⛔ Access denied. You are not authorized to use this bot."
FILE_RECEIVED_TEXT = "📎 File received. File uploads are not supported yet."
EMPTY_REPLY_TEXT = "Received an empty response from the agent."
UNEXPECTED_ERROR_TEXT = "⚠️ Something went wrong processing your request. Please try again."

AUTH_ERROR_TEXT = (
    "🔐 *Authorization error*\n\n"
    "Check OPENCLAW\\_GATEWAY\\_TOKEN in your .env file."
)
UNREACHABLE_TEXT = (
    "🔌 *Gateway unavailable*\n\n"
    "Run:\n`docker compose up -d openclaw-gateway`"
)
TIMEOUT_TEXT = (
    "⏱ *Timeout*\n\n"
    "The operation took too long. Try splitting the task into smaller parts."
)

# Incoming text is logged truncated to this many characters.
_LOG_PREVIEW_LEN = 100


def _preview(text: str) -> str:
    if len(text) > _LOG_PREVIEW_LEN:
        return text[:_LOG_PREVIEW_LEN] + "..."
    return text


def agent_context(user_id: int, workspace: str) -> dict[str, Any]:
    """Metadata sent with every chat request so the agent knows the source."""
    return {"source": "telegram", "user_id": user_id, "workspace": workspace}


def gateway_error_notice(exc: GatewayError) -> tuple[str, bool]:
    """Return the user-facing notice for a gateway failure.

    Returns:
        (text, markdown) — markdown is False for the catch-all notice, whose
        text embeds an arbitrary error message.
    """
    if isinstance(exc, GatewayAuthError):
        return AUTH_ERROR_TEXT, True
    if isinstance(exc, GatewayUnreachableError):
        return UNREACHABLE_TEXT, True
    if isinstance(exc, GatewayTimeoutError):
        return TIMEOUT_TEXT, True
    return f"❌ Error: {exc}", False


# ── Per-user locking ──────────────────────────────────────────────────────────


def _get_user_lock(application: Application, user_id: int) -> asyncio.Lock:
    """Return the asyncio.Lock for the given user_id, creating it if needed.

    Locks are stored in application.bot_data["user_locks"] so they live for
    the lifetime of the Application. The event loop is single-threaded, so the
    dict read/write between await points needs no extra synchronisation.
    """
    locks: dict[int, asyncio.Lock] = application.bot_data.setdefault("user_locks", {})
    if user_id not in locks:
        locks[user_id] = asyncio.Lock()
    return locks[user_id]


# ── Handlers ──────────────────────────────────────────────────────────────────


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Entry point for every inbound message.

    Flow:
      1. Allow-list check — unknown senders get one denial notice, nothing else.
      2. No text — acknowledge documents, ignore everything else.
      3. "/..." — Command Dispatcher.
      4. Anything else — Agent Message Flow.
    """
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat
    if message is None or user is None or chat is None:
        return

    deps = get_deps(context.application)

    # 1. Auth gate, ahead of any other processing.
    if not deps.is_authorized(user.id):
        logger.warning(
            "Unauthorized access attempt from user %s (@%s)",
            user.id,
            user.username or "unknown",
        )
        await context.bot.send_message(chat_id=chat.id, text=ACCESS_DENIED_TEXT)
        return

    # 2. Non-text messages.
    text = message.text
    if not text:
        if message.document is not None:
            await context.bot.send_message(chat_id=chat.id, text=FILE_RECEIVED_TEXT)
        return

    logger.info("[%s] %s", user.id, _preview(text))

    # 3. Commands.
    if text.startswith("/"):
        await dispatch_command(update, context, text)
        return

    # 4. Free text → agent.
    await handle_agent_message(update, context, text)


async def handle_agent_message(
    update: Update, context: ContextTypes.DEFAULT_TYPE, text: str
) -> None:
    """Forward ``text`` to the gateway and deliver the reply.

    Never raises for gateway or delivery problems: gateway failures become a
    notice, anything unexpected is logged with a traceback and answered with
    a generic apology.
    """
    if update.effective_user is None or update.effective_chat is None:
        raise ValueError("handle_agent_message called on an update with no user or chat")

    user_id = update.effective_user.id
    chat_id = update.effective_chat.id
    send = chat_sender(context.bot, chat_id)

    lock = _get_user_lock(context.application, user_id)
    async with lock:
        try:
            await _run_agent_flow(context, user_id, chat_id, text, send)
        except Exception:
            logger.exception("Agent message failed for user %s", user_id)
            await context.bot.send_message(chat_id=chat_id, text=UNEXPECTED_ERROR_TEXT)


async def _run_agent_flow(
    context: ContextTypes.DEFAULT_TYPE,
    user_id: int,
    chat_id: int,
    text: str,
    send: SendFn,
) -> None:
    deps = get_deps(context.application)

    try:
        async with typing_keepalive(context.bot, chat_id):
            session = deps.sessions.get_or_create(user_id)
            reply = await deps.gateway.send_chat_message(
                session.remote_session_id,
                text,
                agent_context(user_id, deps.workspace),
            )
    except GatewayError as exc:
        logger.error("Gateway error for user %s: %s", user_id, exc)
        notice, markdown = gateway_error_notice(exc)
        if markdown:
            await send_with_fallback(send, notice)
        else:
            await send(notice, None)
        return

    session.record_exchange(text, reply.response, reply.session_id)

    report = await deliver(reply.text if reply.text.strip() else EMPTY_REPLY_TEXT, send)
    if not report.ok:
        logger.warning(
            "Delivered %d/%d chunks to user %s (failed: %s)",
            report.delivered,
            report.total,
            user_id,
            report.failed,
        )


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """PTB error handler — log whatever escaped a handler, never re-raise."""
    err = context.error
    if isinstance(err, (TimedOut, NetworkError)):
        logger.warning("Telegram network issue: %s", err)
        return
    logger.error("Unhandled error while processing update %r", update, exc_info=err)
