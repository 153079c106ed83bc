from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from queueup.auth.dependency import Actor, get_admin_actor, get_current_actor
from queueup.config import logger
from queueup.db.main import get_session
from queueup.player.repository import ensure_player, get_player_or_404, set_player_stats
from queueup.player.schemas import (
    ObserveMembersRequest,
    ObserveMembersResponse,
    PlayerResponse,
    PlayerStatsPatch,
    PublicPlayerResponse,
)

player_logger = logger.getChild("db")

router = APIRouter(prefix="/tenants/{tenant_id}/players", tags=["players"])


@router.post("/observe", response_model=ObserveMembersResponse)
async def observe_members(
    tenant_id: str,
    request_data: ObserveMembersRequest,
    actor: Actor = Depends(get_admin_actor),
    db: AsyncSession = Depends(get_session),
):
    """
    Register every member the chat adapter can see. Members already known are left untouched.
    """
    created = 0
    for member in request_data.members:
        if await ensure_player(db, tenant_id, member.player_id, member.player_name):
            created += 1
    player_logger.info(
        f"Observed {len(request_data.members)} member(s) of tenant {tenant_id}, {created} new"
    )
    return ObserveMembersResponse(created=created, total=len(request_data.members))


@router.get("/{player_id}", response_model=Union[PlayerResponse, PublicPlayerResponse])
async def get_player(
    tenant_id: str,
    player_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
):
    player = await get_player_or_404(db, tenant_id, player_id)
    if actor.is_admin:
        return PlayerResponse.model_validate(player)
    return PublicPlayerResponse.model_validate(player)


@router.put("/{player_id}", response_model=PlayerResponse)
async def put_player_stats(
    tenant_id: str,
    player_id: str,
    patch: PlayerStatsPatch,
    actor: Actor = Depends(get_admin_actor),
    db: AsyncSession = Depends(get_session),
):
    """
    Admin override of a player's points, hidden rating and record.
    """
    player = await set_player_stats(db, tenant_id, player_id, patch)
    return PlayerResponse.model_validate(player)
