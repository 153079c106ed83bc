from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from queueup.auth.dependency import Actor, get_admin_actor
from queueup.config import logger
from queueup.db.main import get_session
from queueup.errors import BadRequestException
from queueup.tenant.repository import load_config, save_config
from queueup.tenant.schemas import TenantConfigPatch, TenantConfigResponse

config_logger = logger.getChild("db")

router = APIRouter(prefix="/tenants/{tenant_id}/config", tags=["config"])


@router.get("", response_model=TenantConfigResponse)
async def get_config(
    tenant_id: str,
    actor: Actor = Depends(get_admin_actor),
    db: AsyncSession = Depends(get_session),
):
    return await load_config(db, tenant_id)


@router.patch("", response_model=TenantConfigResponse)
async def patch_config(
    tenant_id: str,
    patch: TenantConfigPatch,
    actor: Actor = Depends(get_admin_actor),
    db: AsyncSession = Depends(get_session),
):
    """
    Set the queue channel, lobby voice room, queue header or timers.
    New values apply from the next queue that opens.
    """
    values = patch.model_dump(exclude_unset=True, exclude_none=True)
    if not values:
        raise BadRequestException(detail="Nothing to update")
    config_logger.info(f"Config update for tenant {tenant_id} by {actor.actor_id}")
    return await save_config(db, tenant_id, values)
