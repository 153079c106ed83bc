from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from queueup.config import logger
from queueup.draft.models import Side
from queueup.draft.schemas import (
    CaptainVoteResult,
    PickResult,
    ResultVoteResult,
    SessionView,
)
from queueup.errors import (
    AppException,
    BadRequestException,
    NoActiveSession,
    QueueFull,
    RolePromptExpired,
)
from queueup.player.repository import ensure_player
from queueup.queue import admission
from queueup.queue.schemas import QueueActionResult, QueueSnapshot, RolePrompt
from queueup.session.context import Phase, SessionContext
from queueup.session.lifecycle import launch, publish_view
from queueup.session.registry import SessionRegistry
from queueup.tenant.repository import load_config
from queueup.tenant.schemas import SessionSettings

queue_logger = logger.getChild("queue")


class SessionService:
    """
    The actions players and admins take on a tenant's sessions.

    Every mutation of a session runs through the registry's serializer keyed
    on (tenant, session number). Recoverable errors are acknowledged to the
    actor and re-raised for the caller to report.
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def _acknowledged(
        self,
        tenant_id: str,
        actor_id: str,
        settings: SessionSettings,
        action: Callable[[], Awaitable[Any]],
        message: str,
    ) -> Any:
        notifier = self.registry.notifier
        try:
            result = await action()
        except AppException as e:
            if e.status_code < 500:
                await notifier.ephemeral(
                    tenant_id,
                    actor_id,
                    {"success": False, "message": str(e.detail)},
                    settings.ack_ttl_medium,
                )
            raise
        await notifier.ephemeral(
            tenant_id, actor_id, {"success": True, "message": message}, settings.ack_ttl_short
        )
        return result

    # Queue

    async def start_queue(self, db: AsyncSession, tenant_id: str) -> QueueSnapshot:
        config = await load_config(db, tenant_id)
        if not config.bot_channel or not config.lobby_voice_room:
            raise BadRequestException(
                detail="Set the bot channel and the lobby voice room before starting a queue"
            )
        tenant = self.registry.tenant(tenant_id)
        current = tenant.sessions.get(tenant.admitting_number) if tenant.admitting_number else None
        if current is not None and current.admitting:
            return current.queue.snapshot()
        if config.queue_number in tenant.sessions:
            raise BadRequestException(
                detail=f"Queue #{config.queue_number} is already in progress"
            )

        ctx = tenant.open_session(
            config.queue_number,
            self.registry.settings_for(config),
            lobby_room=config.lobby_voice_room,
            queue_header=config.queue_header,
        )
        queue_logger.info(f"Opened queue #{ctx.number} for tenant {tenant_id}")
        await publish_view(self.registry, ctx)
        return ctx.queue.snapshot()

    def get_queue(self, tenant_id: str) -> QueueSnapshot:
        return self.registry.tenant(tenant_id).admitting().queue.snapshot()

    async def _join(self, ctx: SessionContext, actor_id: str, role) -> QueueSnapshot:
        if not ctx.admitting:
            raise QueueFull()
        snapshot = admission.join(ctx.queue, actor_id, role)
        self.registry.prompts.cancel((ctx.tenant_id, ctx.number, actor_id))
        queue_logger.info(
            f"{actor_id} joined queue #{ctx.number} of {ctx.tenant_id} as {admission.role_of(ctx.queue, actor_id).value}"
        )
        await publish_view(self.registry, ctx)
        if snapshot.is_full:
            launch(self.registry, ctx)
        return snapshot

    async def request_join(
        self,
        db: AsyncSession,
        tenant_id: str,
        actor_id: str,
        actor_name: str,
        role: Optional[str] = None,
    ) -> QueueActionResult:
        """
        Join the open queue. Without a role a role prompt is opened instead and
        the player must choose before it expires.
        """
        await ensure_player(db, tenant_id, actor_id, actor_name)
        ctx = self.registry.tenant(tenant_id).admitting()
        serializer = self.registry.serializer

        if role is not None:
            snapshot = await self._acknowledged(
                tenant_id,
                actor_id,
                ctx.settings,
                lambda: serializer.run(ctx.key, lambda: self._join(ctx, actor_id, role)),
                "You joined the queue",
            )
            return QueueActionResult(success=True, message="Joined the queue", queue=snapshot)

        async def open_prompt() -> RolePrompt:
            if not ctx.admitting:
                raise QueueFull()
            admission.check_can_join(ctx.queue, actor_id)

            async def on_expire():
                await self.registry.notifier.ephemeral(
                    tenant_id,
                    actor_id,
                    {"success": False, "message": RolePromptExpired().detail},
                    ctx.settings.ack_ttl_medium,
                )

            expires_at = self.registry.prompts.open(
                (tenant_id, ctx.number, actor_id), ctx.settings.role_pick_timeout, on_expire
            )
            return RolePrompt(
                open_roles=[r.value for r in admission.open_roles(ctx.queue)],
                expires_at=expires_at,
            )

        prompt = await serializer.run(ctx.key, open_prompt)
        return QueueActionResult(
            success=True,
            message="Pick a role to join the queue",
            queue=ctx.queue.snapshot(),
            prompt=prompt,
        )

    async def choose_role(self, tenant_id: str, actor_id: str, role: str) -> QueueActionResult:
        ctx = self.registry.tenant(tenant_id).admitting()
        key = (tenant_id, ctx.number, actor_id)

        async def choose() -> QueueSnapshot:
            if not self.registry.prompts.is_open(key):
                raise RolePromptExpired()
            return await self._join(ctx, actor_id, role)

        snapshot = await self._acknowledged(
            tenant_id,
            actor_id,
            ctx.settings,
            lambda: self.registry.serializer.run(ctx.key, choose),
            "You joined the queue",
        )
        return QueueActionResult(success=True, message="Joined the queue", queue=snapshot)

    async def leave(self, tenant_id: str, actor_id: str) -> QueueActionResult:
        ctx = self.registry.tenant(tenant_id).admitting()

        async def do_leave() -> QueueSnapshot:
            if not ctx.admitting:
                raise QueueFull("The queue is full and the session has started")
            self.registry.prompts.cancel((tenant_id, ctx.number, actor_id))
            snapshot = admission.leave(ctx.queue, actor_id)
            queue_logger.info(f"{actor_id} left queue #{ctx.number} of {tenant_id}")
            await publish_view(self.registry, ctx)
            return snapshot

        snapshot = await self._acknowledged(
            tenant_id,
            actor_id,
            ctx.settings,
            lambda: self.registry.serializer.run(ctx.key, do_leave),
            "You left the queue",
        )
        return QueueActionResult(success=True, message="Left the queue", queue=snapshot)

    # Draft

    async def vote_captain(self, tenant_id: str, actor_id: str, candidate_id: str) -> CaptainVoteResult:
        ctx = self.registry.tenant(tenant_id).session_for(actor_id, Phase.CAPTAIN_VOTE)

        async def vote():
            selected = ctx.election.vote(actor_id, candidate_id)
            await publish_view(self.registry, ctx)
            return selected

        selected = await self._acknowledged(
            tenant_id,
            actor_id,
            ctx.settings,
            lambda: self.registry.serializer.run(ctx.key, vote),
            "Captain vote recorded",
        )
        return CaptainVoteResult(success=True, message="Captain vote recorded", selected=selected)

    async def vote_captain_role(self, tenant_id: str, actor_id: str, role: str) -> CaptainVoteResult:
        ctx = self.registry.tenant(tenant_id).session_for(actor_id, Phase.CAPTAIN_VOTE)

        async def vote():
            selected = ctx.election.vote_role(actor_id, role)
            await publish_view(self.registry, ctx)
            return selected

        selected = await self._acknowledged(
            tenant_id,
            actor_id,
            ctx.settings,
            lambda: self.registry.serializer.run(ctx.key, vote),
            "Captain votes recorded",
        )
        return CaptainVoteResult(success=True, message="Captain votes recorded", selected=selected)

    async def pick(self, tenant_id: str, actor_id: str, player_id: str) -> PickResult:
        ctx = self.registry.tenant(tenant_id).session_for(actor_id, Phase.DRAFT)

        async def do_pick():
            if ctx.runner is None:
                raise NoActiveSession("The draft is still being set up")
            return await ctx.runner.pick(actor_id, player_id)

        event = await self._acknowledged(
            tenant_id,
            actor_id,
            ctx.settings,
            lambda: self.registry.serializer.run(ctx.key, do_pick),
            f"You picked {player_id}",
        )
        return PickResult(
            success=True,
            message=f"Picked {event.picked} for {event.role.value}",
            role=event.role.value,
            picked=event.picked,
            mirrored=event.mirrored,
        )

    # Result

    async def vote_result(self, tenant_id: str, actor_id: str, side: str) -> ResultVoteResult:
        ctx = self.registry.tenant(tenant_id).session_for(actor_id, Phase.RESULT_VOTE)
        choice = None if side == "clear" else Side(side)

        async def vote():
            counts = ctx.result_vote.cast(actor_id, choice)
            await publish_view(self.registry, ctx)
            return counts

        counts = await self._acknowledged(
            tenant_id,
            actor_id,
            ctx.settings,
            lambda: self.registry.serializer.run(ctx.key, vote),
            "Your vote was cleared" if choice is None else f"You voted {choice.value}",
        )
        return ResultVoteResult(
            success=True,
            message="Vote recorded",
            blue=counts[Side.BLUE],
            red=counts[Side.RED],
        )

    # Views

    def session_view(self, tenant_id: str, actor_id: str) -> SessionView:
        tenant = self.registry.tenant(tenant_id)
        ctx = tenant.session_of(actor_id)
        if ctx is None and tenant.admitting_number in tenant.sessions:
            ctx = tenant.sessions[tenant.admitting_number]
        if ctx is None:
            ctx = tenant.latest()
        if ctx is None:
            raise NoActiveSession("There is no session for this tenant")
        return ctx.view()

    async def report_presence(self, tenant_id: str, actor_id: str, room: Optional[str]) -> None:
        await self.registry.report_presence(tenant_id, actor_id, room)
