"""Liveness endpoint for the relay process.

A tiny FastAPI app served by uvicorn inside the bot's own event loop, so
docker compose (or any orchestrator) can probe the container:

  GET /health → {"status": "ok", "uptime", "sessions", "allowedUsers"}
  GET /       → plain-text banner
  anything else → 404, including other methods on the two paths above
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import HTTPException, Request

    from relay.chat.deps import RelayDeps

BANNER = "Clawbot Telegram Bot is running!"


def create_app(deps: RelayDeps) -> FastAPI:
    """Build the liveness app over the shared RelayDeps."""
    app = FastAPI(title="clawrelay", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "uptime": deps.uptime_seconds,
            "sessions": len(deps.sessions),
            "allowedUsers": len(deps.allowed_users),
        }

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return BANNER

    # Wrong method on a known path is reported like an unknown path.
    @app.exception_handler(405)
    async def method_not_allowed(_request: Request, _exc: HTTPException) -> JSONResponse:
        return JSONResponse({"detail": "Not Found"}, status_code=404)

    return app


class HealthServer(uvicorn.Server):
    """uvicorn.Server that leaves signal handling to the Telegram Application.

    run_polling() owns SIGINT/SIGTERM and stops this server from its
    post_shutdown hook.
    """

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def create_server(app: FastAPI, port: int, host: str = "0.0.0.0") -> HealthServer:  # noqa: S104
    config = uvicorn.Config(app, host=host, port=port, log_level="warning", access_log=False)
    return HealthServer(config)
