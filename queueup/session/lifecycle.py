"""
Session lifecycle: full queue -> rooms -> presence barrier -> captain election
-> lane-mirror draft -> team rooms -> result vote -> ratings -> teardown.

Any fatal error or cancellation on the way aborts the session: players are
moved back to the lobby, every room the session created is deleted and, if
the match never got underway, the same session's queue reopens empty.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from queueup.config import logger
from queueup.draft.captain_vote import CaptainElection
from queueup.draft.lane_draft import DraftRunner, LaneMirrorDraft
from queueup.draft.models import Match, Side
from queueup.draft.result_vote import ResultVote, VoteOutcome
from queueup.errors import AppException, SessionAborted
from queueup.player.repository import load_players
from queueup.session.context import Phase, SessionContext, TenantContext
from queueup.session.registry import SessionRegistry
from queueup.session.rooms import RoomService
from queueup.session.timers import Debouncer
from queueup.tenant.repository import advance_queue_number, load_config

session_logger = logger.getChild("session")

VIEW_KEYS = {
    Phase.QUEUE: "queue",
    Phase.CAPTAIN_VOTE: "draft",
    Phase.DRAFT: "draft",
    Phase.RESULT_VOTE: "vote",
}


def view_key(ctx: SessionContext) -> str:
    return f"{VIEW_KEYS.get(ctx.phase, 'session')}:{ctx.number}"


async def publish_view(registry: SessionRegistry, ctx: SessionContext) -> None:
    await registry.notifier.publish(
        ctx.tenant_id, view_key(ctx), ctx.view().model_dump(mode="json")
    )


def launch(registry: SessionRegistry, ctx: SessionContext) -> asyncio.Task:
    """Start the lifecycle of a session whose queue just filled."""
    ctx.phase = Phase.ROOMS
    registry.notifier.drop_view(ctx.tenant_id, f"queue:{ctx.number}")
    ctx.task = asyncio.create_task(
        run_session(registry, ctx), name=f"session:{ctx.tenant_id}:{ctx.number}"
    )
    session_logger.info(f"Queue #{ctx.number} of tenant {ctx.tenant_id} is full, starting session")
    return ctx.task


async def run_session(registry: SessionRegistry, ctx: SessionContext) -> None:
    tenant = registry.tenant(ctx.tenant_id)
    rooms = registry.rooms_for(ctx.settings)
    try:
        await provision_rooms(registry, rooms, ctx)
        await presence_barrier(registry, tenant, ctx)
        captains = await elect_captains(registry, ctx)
        ctx.match = await run_draft(registry, ctx, captains)
        await split_into_team_rooms(registry, rooms, ctx)
        await advance_counter(registry, tenant, ctx)
        outcome = await collect_result(registry, ctx)
        if outcome.winner is not None:
            await apply_ratings(registry, rooms, ctx, outcome.winner)
        else:
            await _post(rooms, ctx, "The result vote timed out, no ratings were changed.")
        await teardown(registry, rooms, tenant, ctx)
    except asyncio.CancelledError:
        await abort_session(registry, rooms, tenant, ctx, "The session was cancelled")
        raise
    except AppException as e:
        session_logger.error(
            f"Session {ctx.tenant_id}#{ctx.number} failed in {ctx.phase.value}: {e.detail}"
        )
        blocking = e.blocking if isinstance(e, SessionAborted) else []
        await abort_session(registry, rooms, tenant, ctx, str(e.detail), blocking)
    except Exception as e:
        session_logger.error(
            f"Session {ctx.tenant_id}#{ctx.number} crashed in {ctx.phase.value}: {str(e)}",
            exc_info=True,
        )
        await abort_session(registry, rooms, tenant, ctx, "An unexpected error occurred")


async def _post(rooms: RoomService, ctx: SessionContext, text: str) -> None:
    if ctx.text_room:
        await rooms.post_message(ctx.text_room, text)


async def provision_rooms(registry: SessionRegistry, rooms: RoomService, ctx: SessionContext) -> None:
    ctx.phase = Phase.ROOMS
    await publish_view(registry, ctx)
    ctx.text_room = await rooms.create_text_room(ctx.tenant_id, f"Queue #{ctx.number}")
    ctx.voice_room = await rooms.create_voice_room(ctx.tenant_id, f"Queue VC #{ctx.number}")
    await _post(
        rooms,
        ctx,
        f"{ctx.queue_header} #{ctx.number} is full. Everyone join Queue VC #{ctx.number}.",
    )
    if ctx.lobby_room:
        moved = await rooms.move_actors(
            ctx.tenant_id, ctx.participants(), ctx.lobby_room, ctx.voice_room
        )
        session_logger.info(
            f"Moved {len(moved)} player(s) from the lobby into Queue VC #{ctx.number}"
        )


async def presence_barrier(
    registry: SessionRegistry, tenant: TenantContext, ctx: SessionContext
) -> None:
    ctx.phase = Phase.PRESENCE
    ids = ctx.participants()

    async def render():
        missing = tenant.presence.missing(ids, ctx.voice_room)
        await registry.notifier.publish(
            ctx.tenant_id,
            f"presence:{ctx.number}",
            {
                "session_number": ctx.number,
                "room": ctx.voice_room,
                "present": [pid for pid in ids if pid not in missing],
                "missing": missing,
            },
        )

    debouncer = Debouncer(ctx.settings.presence_debounce, render)
    debouncer.trigger()
    await tenant.presence.wait_for_all(
        ids, ctx.voice_room, ctx.settings.member_wait_timeout, debouncer
    )


async def elect_captains(registry: SessionRegistry, ctx: SessionContext):
    async with registry.session_factory() as db:
        records = await load_players(db, ctx.tenant_id, ctx.participants())
    ctx.election = CaptainElection(
        ctx.queue.buckets, {pid: record.games for pid, record in records.items()}
    )
    ctx.phase = Phase.CAPTAIN_VOTE
    await publish_view(registry, ctx)
    captains = await ctx.election.run(ctx.settings.captain_vote_timeout)
    await publish_view(registry, ctx)
    return captains


async def run_draft(registry: SessionRegistry, ctx: SessionContext, captains) -> Match:
    ctx.phase = Phase.DRAFT
    async with registry.session_factory() as db:
        records = await load_players(db, ctx.tenant_id, ctx.participants())
    draft = LaneMirrorDraft(
        ctx.queue.buckets,
        captains,
        {pid: record.points for pid, record in records.items()},
    )

    async def on_change(_draft, _event):
        await publish_view(registry, ctx)

    ctx.runner = DraftRunner(
        draft,
        ctx.settings.draft_turn_timeout,
        serialize=lambda task: registry.serializer.run(ctx.key, task),
        on_change=on_change,
    )
    await publish_view(registry, ctx)
    match = await ctx.runner.run()
    session_logger.info(f"Draft of session {ctx.tenant_id}#{ctx.number} complete: {match.to_dict()}")
    return match


async def split_into_team_rooms(
    registry: SessionRegistry, rooms: RoomService, ctx: SessionContext
) -> None:
    for side in (Side.BLUE, Side.RED):
        name = f"{side.value.capitalize()} VC #{ctx.number}"
        ctx.team_rooms[side.value] = await rooms.create_voice_room(ctx.tenant_id, name)
    for side in (Side.BLUE, Side.RED):
        await rooms.move_actors(
            ctx.tenant_id,
            ctx.match.team(side).member_ids(),
            ctx.voice_room,
            ctx.team_rooms[side.value],
        )
    await rooms.delete_room(ctx.voice_room)
    ctx.voice_room = None
    await _post(
        rooms,
        ctx,
        f"Blue: {', '.join(ctx.match.blue.member_ids())} | Red: {', '.join(ctx.match.red.member_ids())}",
    )


async def advance_counter(
    registry: SessionRegistry, tenant: TenantContext, ctx: SessionContext
) -> SessionContext:
    """The match is underway: move the counter on and open the next queue."""
    async with registry.session_factory() as db:
        number = await advance_queue_number(db, ctx.tenant_id)
        config = await load_config(db, ctx.tenant_id)
    ctx.counter_advanced = True
    nxt = tenant.open_session(
        number,
        registry.settings_for(config),
        lobby_room=config.lobby_voice_room,
        queue_header=config.queue_header,
    )
    session_logger.info(f"Tenant {ctx.tenant_id} advanced to queue #{number}")
    await publish_view(registry, nxt)
    return nxt


async def collect_result(registry: SessionRegistry, ctx: SessionContext) -> VoteOutcome:
    ctx.result_vote = ResultVote(ctx.match, ctx.settings.vote_threshold)
    ctx.phase = Phase.RESULT_VOTE
    await publish_view(registry, ctx)
    outcome = await ctx.result_vote.wait(ctx.settings.result_vote_timeout)
    await publish_view(registry, ctx)
    return outcome


async def apply_ratings(
    registry: SessionRegistry, rooms: RoomService, ctx: SessionContext, winner: Side
) -> None:
    async with registry.session_factory() as db:
        result = await registry.rating.apply(
            db, ctx.tenant_id, ctx.match, winner, ctx.settings.rating
        )
    await registry.notifier.publish(
        ctx.tenant_id,
        f"points:{ctx.number}",
        {
            "session_number": ctx.number,
            "winner": winner.value,
            "points": result.points.after,
            "deltas": result.points.deltas,
        },
    )
    await _post(
        rooms,
        ctx,
        f"{winner.value.capitalize()} side wins. Points have been updated.",
    )


async def _guarded(ctx: SessionContext, step: str, action: Callable[[], Awaitable[None]]) -> None:
    try:
        await action()
    except Exception as e:
        session_logger.warning(
            f"Session {ctx.tenant_id}#{ctx.number}: {step} failed: {str(e)}"
        )


async def teardown(
    registry: SessionRegistry,
    rooms: RoomService,
    tenant: TenantContext,
    ctx: SessionContext,
) -> None:
    ctx.phase = Phase.TEARDOWN
    await publish_view(registry, ctx)
    for side, room in list(ctx.team_rooms.items()):
        if ctx.lobby_room:
            await _guarded(
                ctx,
                f"moving {side} back to the lobby",
                lambda room=room: rooms.move_actors(
                    ctx.tenant_id, ctx.participants(), room, ctx.lobby_room
                ),
            )
        await _guarded(ctx, f"deleting {side} room", lambda room=room: rooms.delete_room(room))
    ctx.team_rooms.clear()

    await asyncio.sleep(ctx.settings.cleanup_delay)
    if ctx.text_room:
        await _guarded(ctx, "deleting text room", lambda: rooms.delete_room(ctx.text_room))
        ctx.text_room = None
    ctx.phase = Phase.DONE
    tenant.drop(ctx.number)
    for key in ("draft", "vote", "presence", "session", "points"):
        registry.notifier.drop_view(ctx.tenant_id, f"{key}:{ctx.number}")
    session_logger.info(f"Session {ctx.tenant_id}#{ctx.number} finished")


async def abort_session(
    registry: SessionRegistry,
    rooms: RoomService,
    tenant: TenantContext,
    ctx: SessionContext,
    reason: str,
    blocking: Optional[List[str]] = None,
) -> None:
    """
    Roll a failed session back. Every step runs even if an earlier one failed.
    """
    session_logger.info(f"Aborting session {ctx.tenant_id}#{ctx.number}: {reason}")
    ctx.phase = Phase.ABORTED
    ctx.abort_reason = reason
    if ctx.runner:
        ctx.runner.cancel()
    registry.prompts.cancel_session(ctx.tenant_id, ctx.number)

    notice = f"Session #{ctx.number} was cancelled: {reason}"
    await _guarded(ctx, "posting abort notice", lambda: _post(rooms, ctx, notice))

    if ctx.lobby_room:
        for room in ctx.voice_rooms:
            await _guarded(
                ctx,
                f"moving players out of {room}",
                lambda room=room: rooms.move_actors(
                    ctx.tenant_id, ctx.participants(), room, ctx.lobby_room
                ),
            )

    for room in ctx.owned_rooms:
        await _guarded(ctx, f"deleting room {room}", lambda room=room: rooms.delete_room(room))
    ctx.voice_room = None
    ctx.text_room = None
    ctx.team_rooms.clear()

    notice_view = {
        "session_number": ctx.number,
        "phase": Phase.ABORTED.value,
        "reason": reason,
        "blocking": list(blocking or []),
    }

    async def announce():
        await registry.notifier.publish(ctx.tenant_id, f"session:{ctx.number}", notice_view)

    await _guarded(ctx, "announcing abort", announce)

    tenant.drop(ctx.number)
    if not ctx.counter_advanced:

        async def reopen():
            fresh = tenant.open_session(
                ctx.number,
                ctx.settings,
                lobby_room=ctx.lobby_room,
                queue_header=ctx.queue_header,
            )
            await publish_view(registry, fresh)

        await _guarded(ctx, "reopening the queue", reopen)
    for key in ("draft", "vote", "presence", "points"):
        registry.notifier.drop_view(ctx.tenant_id, f"{key}:{ctx.number}")
    # The abort notice stays up for cleanup_delay unless a later session replaces it
    asyncio.get_running_loop().call_later(
        ctx.settings.cleanup_delay,
        registry.notifier.drop_view,
        ctx.tenant_id,
        f"session:{ctx.number}",
        notice_view,
    )
