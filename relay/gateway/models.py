"""Pydantic models for the OpenClaw gateway API.

These models define the Python side of the relay-to-gateway boundary. The
gateway is loose about its payloads (most fields optional, skills returned
either wrapped or as a bare list), so every field here has a default and
unknown fields are ignored. Identifier-like fields accept JSON numbers too
(a numeric ``session_id`` or ``version`` is kept as its string form).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatReply(BaseModel):
    """Body of ``POST /api/chat``.

    ``session_id`` is the gateway's conversation handle. The relay stores it
    on the user's Session and sends it back on the next request.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    session_id: str | None = None
    response: str | None = None

    @property
    def text(self) -> str:
        return self.response or ""


class MemoryUsage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    heap_used: float | None = Field(default=None, alias="heapUsed")


class GatewayHealth(BaseModel):
    """Body of ``GET /health`` on the gateway."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    version: str | None = None
    uptime: float | None = None
    """Gateway process uptime in seconds."""
    memory: MemoryUsage | None = None

    @property
    def uptime_minutes(self) -> int | None:
        if self.uptime is None:
            return None
        return int(self.uptime // 60)

    @property
    def heap_used_mb(self) -> int | None:
        if self.memory is None or self.memory.heap_used is None:
            return None
        return int(self.memory.heap_used // (1024 * 1024))


def skill_names(payload: Any) -> list[str]:
    """Extract skill names from a ``GET /api/skills`` body.

    Accepts ``{"skills": [...]}`` or a bare list. Items are either plain
    strings or objects carrying a ``name``. Anything else yields [].
    """
    skills = payload.get("skills", payload) if isinstance(payload, dict) else payload
    if not isinstance(skills, list):
        return []

    names: list[str] = []
    for item in skills:
        if isinstance(item, dict):
            name = item.get("name")
            names.append(str(name) if name else str(item))
        else:
            names.append(str(item))
    return names
