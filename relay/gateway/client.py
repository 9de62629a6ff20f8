"""Async HTTP client for the OpenClaw agent gateway.

Every call the relay makes to the agent service goes through GatewayClient.
It provides:

- One shared httpx.AsyncClient with the bearer token and a bounded timeout
- Typed responses via the pydantic models in relay.gateway.models
- A closed failure taxonomy: every failure surfaces as a GatewayError subclass,
  never as a raw httpx exception

The client is stateless with respect to conversations: callers pass the
gateway session_id in and get the (possibly new) one back.

Observability: every request is wrapped in a logfire.span().
"""

from __future__ import annotations

from typing import Any

import httpx
import logfire
from pydantic import ValidationError

from relay.gateway.models import ChatReply, GatewayHealth, skill_names

# Agent runs can take a long time (builds, test suites, browsing).
DEFAULT_TIMEOUT_SECONDS: float = 120.0

# Status codes treated as "the gateway rejected our token".
_AUTH_REJECTED_STATUSES = frozenset({401, 403})

PROJECTS_PROMPT = "List all directories in {workspace}. Show only folder names, one per line."


# ── Errors ────────────────────────────────────────────────────────────────────


class GatewayError(Exception):
    """Base class for all gateway failures."""


class GatewayAuthError(GatewayError):
    """The gateway rejected the bearer token."""


class GatewayUnreachableError(GatewayError):
    """The gateway could not be reached (DNS failure, connection refused)."""


class GatewayTimeoutError(GatewayError):
    """The request exceeded the client timeout."""


class GatewayUpstreamError(GatewayError):
    """Any other failure: unexpected status, transport error, malformed body."""


# ── Client ────────────────────────────────────────────────────────────────────


class GatewayClient:
    """Thin wrapper around the gateway's HTTP API.

    Usage::

        async with GatewayClient(url, token) as gateway:
            reply = await gateway.send_chat_message(None, "hello", {"source": "telegram"})

    Args:
        base_url: Gateway root URL (e.g. http://openclaw-gateway:18789).
        token: Bearer token sent on every request.
        timeout_seconds: Per-request timeout. Exceeding it raises GatewayTimeoutError.
        transport: Optional httpx transport — tests pass an httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def http_client(self) -> httpx.AsyncClient:
        """The underlying httpx client (for instrumentation)."""
        return self._client

    async def __aenter__(self) -> GatewayClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── API ──────────────────────────────────────────────────────────────────

    async def send_chat_message(
        self,
        session_id: str | None,
        message: str,
        context: dict[str, Any],
    ) -> ChatReply:
        """Send a user message to the agent and return its reply.

        Args:
            session_id: Gateway session handle from a previous reply, or None
                        to start a new conversation.
            message: The user's text, forwarded verbatim.
            context: Metadata about the message source and workspace.

        Raises:
            GatewayError: One of the four subclasses — see module docstring.
        """
        with logfire.span("gateway.chat", has_session=session_id is not None):
            payload = await self._request(
                "POST",
                "/api/chat",
                json={"session_id": session_id, "message": message, "context": context},
            )
            return self._parse(ChatReply, payload)

    async def health(self) -> GatewayHealth:
        with logfire.span("gateway.health"):
            payload = await self._request("GET", "/health")
            return self._parse(GatewayHealth, payload)

    async def list_skills(self) -> list[str]:
        with logfire.span("gateway.skills"):
            payload = await self._request("GET", "/api/skills")
            return skill_names(payload)

    async def list_projects(self, workspace: str) -> str:
        """Ask the agent for the folder names under ``workspace``.

        A one-off ``quick`` request — no session id, so it never touches the
        caller's conversation.
        """
        with logfire.span("gateway.projects", workspace=workspace):
            payload = await self._request(
                "POST",
                "/api/chat",
                json={
                    "message": PROJECTS_PROMPT.format(workspace=workspace),
                    "context": {"source": "telegram", "quick": True},
                },
            )
            return self._parse(ChatReply, payload).text

    # ── Internals ────────────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Issue a request and return the decoded JSON body.

        Translates every httpx failure into the GatewayError taxonomy.
        Timeouts are matched first: ConnectTimeout is a timeout, not an
        unreachable host.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            msg = f"Gateway request {method} {path} timed out"
            raise GatewayTimeoutError(msg) from exc
        except httpx.ConnectError as exc:
            msg = f"Cannot connect to gateway at {self._base_url}: {exc}"
            raise GatewayUnreachableError(msg) from exc
        except httpx.HTTPError as exc:
            raise GatewayUpstreamError(str(exc) or type(exc).__name__) from exc

        if response.status_code in _AUTH_REJECTED_STATUSES:
            msg = f"Gateway rejected the token (HTTP {response.status_code})"
            raise GatewayAuthError(msg)
        if response.is_error:
            msg = f"Request failed with status code {response.status_code}"
            raise GatewayUpstreamError(msg)

        try:
            return response.json()
        except ValueError as exc:
            msg = f"Gateway returned a non-JSON body for {method} {path}"
            raise GatewayUpstreamError(msg) from exc

    @staticmethod
    def _parse(model: type[Any], payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            msg = f"Unexpected gateway response: {exc.error_count()} validation error(s)"
            raise GatewayUpstreamError(msg) from exc
