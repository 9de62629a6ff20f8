"""gateway — HTTP client for the OpenClaw agent service.

This package owns the relay-to-gateway boundary:
- GatewayClient issuing chat, health and skills requests
- Pydantic models for the gateway's JSON payloads
- The GatewayError failure taxonomy consumed by the chat layer
"""

from relay.gateway.client import (
    GatewayAuthError,
    GatewayClient,
    GatewayError,
    GatewayTimeoutError,
    GatewayUnreachableError,
    GatewayUpstreamError,
)
from relay.gateway.models import ChatReply, GatewayHealth

__all__ = [
    "ChatReply",
    "GatewayAuthError",
    "GatewayClient",
    "GatewayError",
    "GatewayHealth",
    "GatewayTimeoutError",
    "GatewayUnreachableError",
    "GatewayUpstreamError",
]
