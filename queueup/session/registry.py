import asyncio
from typing import Any, Callable, Dict, Optional

from queueup.config import Config, logger
from queueup.db.main import async_session_factory
from queueup.queue.prompts import RolePromptRegistry
from queueup.queue.serializer import KeyedSerializer
from queueup.rating.service import RatingService
from queueup.session.context import TenantContext
from queueup.session.notifier import ConnectionManager
from queueup.session.rooms import InMemoryRoomProvisioner, RoomProvisioner, RoomService
from queueup.tenant.models import TenantConfig
from queueup.tenant.schemas import SessionSettings

registry_logger = logger.getChild("session")


class SessionRegistry:
    """
    The process-wide table of tenant contexts and the collaborators every
    session shares. Created on application start, shut down on stop.
    """

    def __init__(
        self,
        provisioner: Optional[RoomProvisioner] = None,
        notifier: Optional[ConnectionManager] = None,
        session_factory: Callable[[], Any] = async_session_factory,
        rating: Optional[RatingService] = None,
        overrides: Optional[Dict[str, Any]] = None,
        retry_base_delay: float = Config.ROOM_RETRY_BASE_DELAY,
    ):
        self.provisioner = provisioner or InMemoryRoomProvisioner()
        self.notifier = notifier or ConnectionManager()
        self.session_factory = session_factory
        self.rating = rating or RatingService()
        self.overrides = dict(overrides or {})
        self.retry_base_delay = retry_base_delay
        self.serializer = KeyedSerializer()
        self.prompts = RolePromptRegistry()
        self.tenants: Dict[str, TenantContext] = {}

        if isinstance(self.provisioner, InMemoryRoomProvisioner):
            self.provisioner.on_move(self._on_move)

    def tenant(self, tenant_id: str) -> TenantContext:
        ctx = self.tenants.get(tenant_id)
        if ctx is None:
            ctx = self.tenants[tenant_id] = TenantContext(tenant_id)
        return ctx

    async def _on_move(self, tenant_id: str, actor_id: str, room: Optional[str]) -> None:
        await self.tenant(tenant_id).presence.update(actor_id, room)

    async def report_presence(self, tenant_id: str, actor_id: str, room: Optional[str]) -> None:
        if isinstance(self.provisioner, InMemoryRoomProvisioner):
            await self.provisioner.place(tenant_id, actor_id, room)
        else:
            await self.tenant(tenant_id).presence.update(actor_id, room)

    def settings_for(self, config: TenantConfig) -> SessionSettings:
        settings = SessionSettings.from_tenant_config(config)
        if self.overrides:
            settings = settings.model_copy(update=self.overrides)
        return settings

    def rooms_for(self, settings: SessionSettings) -> RoomService:
        return RoomService(
            self.provisioner,
            attempts=settings.room_retry_attempts,
            base_delay=self.retry_base_delay,
        )

    async def shutdown(self) -> None:
        """Cancel every live session; each one rolls itself back on cancellation."""
        tasks = [task for tenant in self.tenants.values() for task in tenant.live_tasks()]
        self.prompts.cancel_all()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        registry_logger.info(f"Session registry shut down, cancelled {len(tasks)} session(s)")
