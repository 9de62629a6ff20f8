"""Relay Telegram chat integration layer.

Public API:
  build_application  — construct a fully-wired PTB Application
  handle_message     — the inbound message router (for testing / custom wiring)
  deliver            — chunked, paced delivery of long replies
  split_message      — the chunking algorithm on its own
  SessionStore       — per-user in-memory sessions

Typical usage:
    from relay.chat import build_application
    app = build_application(token, deps)
    app.run_polling()
"""

from relay.chat.bot import build_application
from relay.chat.delivery import deliver, split_message
from relay.chat.handlers import handle_message
from relay.chat.sessions import SessionStore

__all__ = [
    "SessionStore",
    "build_application",
    "deliver",
    "handle_message",
    "split_message",
]
