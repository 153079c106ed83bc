from fastapi import APIRouter, Depends

from queueup.auth.dependency import Actor, get_current_actor
from queueup.config import logger
from queueup.draft.schemas import (
    CaptainRoleVoteRequest,
    CaptainVoteRequest,
    CaptainVoteResult,
    PickRequest,
    PickResult,
    ResultVoteRequest,
    ResultVoteResult,
    SessionView,
)
from queueup.session.dependency import get_session_service
from queueup.session.service import SessionService

draft_logger = logger.getChild("draft")

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["draft"])


@router.post("/captains/vote", response_model=CaptainVoteResult)
async def vote_captain(
    tenant_id: str,
    request_data: CaptainVoteRequest,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    """
    Toggle a captain vote. Every queued player holds two votes.
    """
    return await service.vote_captain(tenant_id, actor.actor_id, request_data.candidate_id)


@router.post("/captains/vote-role", response_model=CaptainVoteResult)
async def vote_captain_role(
    tenant_id: str,
    request_data: CaptainRoleVoteRequest,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    """
    Spend both captain votes on the two players of one role.
    """
    return await service.vote_captain_role(tenant_id, actor.actor_id, request_data.role)


@router.post("/draft/pick", response_model=PickResult)
async def pick_player(
    tenant_id: str,
    request_data: PickRequest,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    draft_logger.debug(f"Pick request from {actor.actor_id}: {request_data.player_id}")
    return await service.pick(tenant_id, actor.actor_id, request_data.player_id)


@router.post("/result/vote", response_model=ResultVoteResult)
async def vote_result(
    tenant_id: str,
    request_data: ResultVoteRequest,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    """
    Vote for the winning side, change the vote, or clear it with side="clear".
    """
    return await service.vote_result(tenant_id, actor.actor_id, request_data.side)


@router.get("/session", response_model=SessionView)
async def get_session_view(
    tenant_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service),
):
    return service.session_view(tenant_id, actor.actor_id)
