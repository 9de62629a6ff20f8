"""Process-wide dependencies shared by the Telegram handlers.

RelayDeps is built once in relay.chat.__main__ and stored in
``application.bot_data["deps"]`` — PTB's canonical place for per-bot shared
state. Handlers read it through get_deps(); nothing here is a module global,
so tests build their own RelayDeps with a mocked gateway.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from relay.chat.sessions import SessionStore
from relay.config import DEFAULT_WORKSPACE

if TYPE_CHECKING:
    from telegram.ext import Application

    from relay.gateway.client import GatewayClient

DEPS_KEY = "deps"


@dataclass
class RelayDeps:
    """Everything a handler needs besides the Update itself.

    The allow-list is frozen at startup; the session store is mutated by the
    agent flow and /reset; the gateway client is shared by all users.
    """

    allowed_users: frozenset[int]
    gateway: GatewayClient
    sessions: SessionStore = field(default_factory=SessionStore)
    workspace: str = DEFAULT_WORKSPACE
    started_at: float = field(default_factory=time.monotonic)

    def is_authorized(self, user_id: int) -> bool:
        return user_id in self.allowed_users

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started_at


def get_deps(application: Application) -> RelayDeps:
    """Return the RelayDeps registered by build_application()."""
    deps = application.bot_data.get(DEPS_KEY)
    if deps is None:
        raise RuntimeError("RelayDeps missing from bot_data — use build_application()")
    return deps
