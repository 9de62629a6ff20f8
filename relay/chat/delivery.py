"""Chunked delivery of long texts to Telegram.

Telegram rejects messages longer than 4096 characters, and agent replies
(file listings, diffs, test output) regularly exceed that. This module splits
a reply into bounded chunks at readable boundaries and sends them in order.

Splitting strategy, for each window of ``max_length`` characters:
  1. the last paragraph break ("\\n\\n"),
  2. else the last line break,
  3. else the last sentence end (". ", keeping the period),
  4. else a hard cut at ``max_length``.
A boundary only counts if it lies in the second half of the window —
otherwise the chunk would be needlessly short.

Sending strategy: Markdown first; if Telegram refuses the markup, the same
chunk is resent as plain text; if that fails too, the chunk is logged and
skipped and delivery carries on.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from telegram.constants import ParseMode
from telegram.error import TelegramError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from telegram import Bot

    # send(content, parse_mode); parse_mode None means plain text.
    SendFn = Callable[[str, str | None], Awaitable[object]]

logger = logging.getLogger(__name__)

# Telegram's hard limit is 4096; the margin leaves room for the chunk header.
MAX_MESSAGE_LENGTH: int = 4000

# Pause between chunks so Telegram keeps them in order and does not throttle.
CHUNK_PACING_SECONDS: float = 0.5

_BOUNDARIES: tuple[str, ...] = ("\n\n", "\n")
_SENTENCE_END = ". "


@dataclass
class DeliveryReport:
    """Outcome of a deliver() call."""

    total: int
    failed: list[int] = field(default_factory=list)
    """1-based indices of chunks that could not be sent at all."""

    @property
    def delivered(self) -> int:
        return self.total - len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed


def _find_split(text: str, max_length: int) -> int:
    """Return the index at which to cut ``text`` (which is longer than max_length)."""
    min_split = max_length / 2

    for boundary in _BOUNDARIES:
        # Last occurrence starting at or before max_length.
        index = text.rfind(boundary, 0, max_length + len(boundary))
        if index != -1 and index >= min_split:
            return index

    # The period must fit inside the chunk, so the search stops one short.
    index = text.rfind(_SENTENCE_END, 0, max_length + 1)
    if index != -1:
        index += 1
        if index >= min_split:
            return index

    return max_length


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split ``text`` into chunks of at most ``max_length`` characters.

    Text that already fits is returned unchanged as a single chunk (even if
    empty, so callers always have something to send). Whitespace at chunk
    boundaries is dropped; everything else is kept, in order.

    Args:
        text: The full message.
        max_length: Upper bound on every chunk's length.

    Returns:
        A non-empty list of chunks.
    """
    if max_length <= 0:
        msg = f"max_length must be positive, got {max_length}"
        raise ValueError(msg)

    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        split_at = _find_split(remaining, max_length)
        chunks.append(remaining[:split_at])
        remaining = remaining[split_at:].strip()

    return chunks


def chat_sender(bot: Bot, chat_id: int) -> SendFn:
    """Bind bot.send_message to one chat as a SendFn."""

    async def send(content: str, parse_mode: str | None) -> object:
        return await bot.send_message(chat_id=chat_id, text=content, parse_mode=parse_mode)

    return send


def chunk_header(index: int, total: int) -> str:
    """Positional header prepended to each chunk of a multi-part message."""
    return f"📄 ({index}/{total})\n\n"


async def send_with_fallback(send: SendFn, content: str) -> bool:
    """Send ``content`` as Markdown, falling back to plain text.

    Returns True if either attempt succeeded. A Markdown rejection is expected
    (agents emit unbalanced ``*`` and ``_`` all the time) and only logged at
    debug level.
    """
    try:
        await send(content, ParseMode.MARKDOWN)
        return True
    except TelegramError as exc:
        logger.debug("Markdown send rejected, retrying as plain text: %s", exc)

    try:
        await send(content, None)
        return True
    except TelegramError as exc:
        logger.error("Failed to send message: %s", exc)
        return False


async def deliver(
    text: str,
    send: SendFn,
    *,
    max_length: int = MAX_MESSAGE_LENGTH,
    pacing_seconds: float = CHUNK_PACING_SECONDS,
) -> DeliveryReport:
    """Deliver ``text`` through ``send``, chunking it if needed.

    A failure on one chunk never stops the chunks after it.

    Args:
        text: The message to deliver.
        send: Awaitable ``send(content, parse_mode)``; parse_mode is
              ParseMode.MARKDOWN or None for plain text.
        max_length: Maximum chunk length, header excluded.
        pacing_seconds: Pause between consecutive chunks (not after the last).

    Returns:
        A DeliveryReport listing any chunks that could not be sent.
    """
    chunks = split_message(text, max_length)
    total = len(chunks)
    report = DeliveryReport(total=total)

    if total == 1:
        if not await send_with_fallback(send, chunks[0]):
            report.failed.append(1)
        return report

    logger.info("Long response split into %d messages (%d chars)", total, len(text))
    for index, chunk in enumerate(chunks, start=1):
        if not await send_with_fallback(send, chunk_header(index, total) + chunk):
            report.failed.append(index)
        if index < total:
            await asyncio.sleep(pacing_seconds)

    return report
