"""WebSocket transport - difusión de datos y alertas al dashboard."""

from .handler import BroadcastHub, websocket_endpoint

__all__ = ["BroadcastHub", "websocket_endpoint"]
