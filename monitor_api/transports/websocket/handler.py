"""WebSocket de difusión en tiempo real hacia el dashboard.

Protocolo (servidor → cliente):
- {type: "connected", visible: [...]}            al conectar
- {type: "dataUpdate", category, data: {...}}    tras cada ciclo de evaluación
- {type: "alert", kind, alert: {...}, at}        eventos del ciclo de vida

Cliente → servidor:
- {type: "ping"}             → {type: "pong"}
- {type: "dismiss", id}      → descarta una alerta
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from ...alerts.lifecycle import AlertLifecycleManager, LifecycleEvent
from ...evaluation.service import CycleResult

logger = logging.getLogger(__name__)


class BroadcastHub:
    """Conjunto de clientes conectados y difusión thread-safe."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._clients: Set[WebSocket] = set()
        self._loop = loop

    def attach_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def register(self, websocket: WebSocket) -> None:
        self._clients.add(websocket)
        logger.info("[WS] client connected total=%d", len(self._clients))

    def unregister(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)
        logger.info("[WS] client disconnected total=%d", len(self._clients))

    async def broadcast(self, message: Dict[str, Any]) -> None:
        stale = []
        for websocket in list(self._clients):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.debug("[WS] send failed, dropping client: %s", e)
                stale.append(websocket)
        for websocket in stale:
            self._clients.discard(websocket)

    def publish(self, message: Dict[str, Any]) -> None:
        """Programa un broadcast desde cualquier hilo."""
        loop = self._loop
        if loop is None or loop.is_closed() or not self._clients:
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(message), loop)

    # Adaptadores para los observadores del motor

    def on_lifecycle_event(self, event: LifecycleEvent) -> None:
        self.publish({"type": "alert", **event.to_dict()})

    def on_cycle_result(self, result: CycleResult) -> None:
        self.publish({"type": "dataUpdate", "category": result.category.value, "data": result.to_dict()})


async def websocket_endpoint(
    websocket: WebSocket,
    hub: BroadcastHub,
    lifecycle: AlertLifecycleManager,
) -> None:
    await websocket.accept()
    hub.register(websocket)
    try:
        await websocket.send_json({
            "type": "connected",
            "visible": [a.to_dict() for a in lifecycle.visible()],
        })

        while True:
            message = await websocket.receive_json()
            msg_type = message.get("type") if isinstance(message, dict) else None

            if msg_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif msg_type == "dismiss":
                alert_id = str(message.get("id", ""))
                dismissed = lifecycle.dismiss(alert_id)
                await websocket.send_json({"type": "dismissed", "id": alert_id, "dismissed": dismissed})
            else:
                await websocket.send_json({
                    "type": "error",
                    "error": f"Unknown message type: {msg_type}",
                })
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception("[WS] session error: %s", e)
    finally:
        hub.unregister(websocket)
