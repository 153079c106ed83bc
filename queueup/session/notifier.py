from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from fastapi import WebSocket

from queueup.config import logger

notify_logger = logger.getChild("session")


class ConnectionManager:
    """
    Manages WebSocket connections for real-time queue and session notifications.

    Views are edit-in-place: every ``publish`` under a key replaces what clients
    hold for that key, so the latest payload per (tenant, key) is also kept for
    clients that connect late.
    """

    def __init__(self):
        # Maps tenant_id -> actor_id -> active WebSocket connections
        self.active_connections: Dict[str, Dict[str, List[WebSocket]]] = {}
        self.views: Dict[Tuple[str, str], dict] = {}

    async def connect(self, websocket: WebSocket, tenant_id: str, actor_id: str):
        """
        Connect a WebSocket for an actor of a tenant and replay the current views.
        """
        await websocket.accept()
        actors = self.active_connections.setdefault(tenant_id, {})
        actors.setdefault(actor_id, []).append(websocket)
        notify_logger.info(
            f"Actor {actor_id} of tenant {tenant_id} connected to WebSocket. "
            f"Total connections: {len(actors[actor_id])}"
        )
        for (view_tenant, key), payload in list(self.views.items()):
            if view_tenant == tenant_id:
                await self._send(websocket, tenant_id, actor_id, self._envelope("view", key, payload))

    def disconnect(self, websocket: WebSocket, tenant_id: str, actor_id: str):
        actors = self.active_connections.get(tenant_id)
        if not actors or actor_id not in actors:
            return
        if websocket in actors[actor_id]:
            actors[actor_id].remove(websocket)
        if not actors[actor_id]:
            del actors[actor_id]
        if not actors:
            del self.active_connections[tenant_id]
        notify_logger.info(f"Actor {actor_id} of tenant {tenant_id} disconnected from WebSocket")

    @staticmethod
    def _envelope(kind: str, key: str, payload: dict, **extra: Any) -> dict:
        return {
            "type": kind,
            "key": key,
            "payload": payload,
            "sent_at": datetime.utcnow().isoformat(),
            **extra,
        }

    async def _send(self, connection: WebSocket, tenant_id: str, actor_id: str, message: dict) -> bool:
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            notify_logger.error(
                f"Error sending notification to {tenant_id}/{actor_id}: {str(e)}"
            )
            return False

    async def publish(self, tenant_id: str, key: str, payload: dict) -> int:
        """
        Broadcast a view to every connection of a tenant. Returns the number of deliveries.
        """
        self.views[(tenant_id, key)] = payload
        message = self._envelope("view", key, payload)
        delivered = 0
        for actor_id, connections in list(self.active_connections.get(tenant_id, {}).items()):
            for connection in list(connections):
                if await self._send(connection, tenant_id, actor_id, message):
                    delivered += 1
        notify_logger.debug(f"Published {key} to {delivered} connection(s) of tenant {tenant_id}")
        return delivered

    async def ephemeral(self, tenant_id: str, actor_id: str, payload: dict, ttl: float) -> int:
        """
        Send a short-lived acknowledgement to one actor. Clients drop it after ``expires_in`` seconds.
        """
        message = self._envelope("ack", "ack", payload, expires_in=ttl)
        connections = self.active_connections.get(tenant_id, {}).get(actor_id, [])
        if not connections:
            notify_logger.info(f"No active WebSocket connections for {tenant_id}/{actor_id}")
            return 0
        delivered = 0
        for connection in list(connections):
            if await self._send(connection, tenant_id, actor_id, message):
                delivered += 1
        return delivered

    def drop_view(self, tenant_id: str, key: str, payload: Optional[dict] = None) -> None:
        """Forget a view. With ``payload``, only if it is still the one held for the key."""
        if payload is not None and self.views.get((tenant_id, key)) is not payload:
            return
        self.views.pop((tenant_id, key), None)

    def view(self, tenant_id: str, key: str) -> dict:
        return self.views.get((tenant_id, key), {})
