from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from queueup.auth.dependency import Actor, get_admin_actor, get_current_actor
from queueup.config import logger
from queueup.db.main import get_session
from queueup.queue.schemas import (
    JoinRequest,
    QueueActionResult,
    QueueSnapshot,
    RoleChoiceRequest,
)
from queueup.session.dependency import get_session_service
from queueup.session.service import SessionService

queue_logger = logger.getChild("queue")

router = APIRouter(prefix="/tenants/{tenant_id}/queue", tags=["queue"])


@router.post("/start", response_model=QueueSnapshot)
async def start_queue(
    tenant_id: str,
    actor: Actor = Depends(get_admin_actor),
    db: AsyncSession = Depends(get_session),
    service: SessionService = Depends(get_session_service),
):
    """
    Open the tenant's next queue. Requires the bot channel and lobby voice room to be configured.
    """
    queue_logger.info(f"Queue start requested by {actor.actor_id} for tenant {tenant_id}")
    return await service.start_queue(db, tenant_id)


@router.get("", response_model=QueueSnapshot)
async def get_queue(
    tenant_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    return service.get_queue(tenant_id)


@router.post("/join", response_model=QueueActionResult)
async def join_queue(
    tenant_id: str,
    request_data: JoinRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
    service: SessionService = Depends(get_session_service),
):
    """
    Join the open queue.
    Without a role the response carries a role prompt; answer it through /queue/role before it expires.
    """
    return await service.request_join(
        db, tenant_id, actor.actor_id, actor.name, request_data.role
    )


@router.post("/role", response_model=QueueActionResult)
async def choose_role(
    tenant_id: str,
    request_data: RoleChoiceRequest,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    return await service.choose_role(tenant_id, actor.actor_id, request_data.role)


@router.post("/leave", response_model=QueueActionResult)
async def leave_queue(
    tenant_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    return await service.leave(tenant_id, actor.actor_id)
