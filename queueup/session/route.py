from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel

from queueup.auth.dependency import Actor, actor_from_token_data, get_current_actor
from queueup.auth.util import decode_token
from queueup.config import logger
from queueup.errors import AuthenticationException
from queueup.session.dependency import get_session_service
from queueup.session.service import SessionService

session_logger = logger.getChild("session")

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["session"])
ws_router = APIRouter(tags=["session"])


class PresenceReport(BaseModel):
    room: Optional[str] = None


@router.post("/presence", status_code=status.HTTP_204_NO_CONTENT)
async def report_presence(
    tenant_id: str,
    request_data: PresenceReport,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    """
    Report which voice room the actor is in; null means not in any room.
    """
    await service.report_presence(tenant_id, actor.actor_id, request_data.room)


@ws_router.websocket("/ws/tenants/{tenant_id}")
async def websocket_endpoint(websocket: WebSocket, tenant_id: str, token: str = ""):
    """
    WebSocket endpoint for real-time queue, draft and vote views.
    """
    token_data = decode_token(token) if token else None
    try:
        if not token_data:
            raise AuthenticationException(detail="Invalid or expired token")
        actor = actor_from_token_data(token_data)
    except AuthenticationException as e:
        session_logger.warning(f"Rejected WebSocket for tenant {tenant_id}: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if actor.tenant_id != tenant_id:
        session_logger.warning(f"Rejected WebSocket: {actor.actor_id} is not in tenant {tenant_id}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager = websocket.app.state.registry.notifier
    await manager.connect(websocket, tenant_id, actor.actor_id)
    try:
        while True:
            # Clients may send pings; nothing else is expected
            data = await websocket.receive_text()
            session_logger.debug(f"WebSocket message from {tenant_id}/{actor.actor_id}: {data}")
    except WebSocketDisconnect:
        manager.disconnect(websocket, tenant_id, actor.actor_id)
    except Exception as e:
        session_logger.error(f"WebSocket error for {tenant_id}/{actor.actor_id}: {str(e)}")
        manager.disconnect(websocket, tenant_id, actor.actor_id)
        raise
