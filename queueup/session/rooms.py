"""
Room provisioning for sessions.

The chat platform owns the actual rooms; QueueUp only needs to create them,
move players between them and delete them again. ``InMemoryRoomProvisioner``
is the reference adapter used when no platform is attached.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from queueup.config import Config, logger
from queueup.errors import AppException, RoomUnavailable

room_logger = logger.getChild("session")

MoveListener = Callable[[str, str, Optional[str]], Awaitable[None]]


class RoomProvisioner(ABC):
    @abstractmethod
    async def create_text_room(self, tenant_id: str, name: str) -> str:
        """Create a text room and return its id."""

    @abstractmethod
    async def create_voice_room(self, tenant_id: str, name: str) -> str:
        """Create a voice room and return its id."""

    @abstractmethod
    async def move_actor(self, tenant_id: str, actor_id: str, from_room: str, to_room: str) -> bool:
        """Move an actor who is in ``from_room`` to ``to_room``. Returns False if they were elsewhere."""

    @abstractmethod
    async def delete_room(self, room_id: str) -> None:
        pass

    @abstractmethod
    async def location_of(self, tenant_id: str, actor_id: str) -> Optional[str]:
        pass

    async def post_message(self, room_id: str, text: str) -> None:
        room_logger.info(f"[{room_id}] {text}")


class InMemoryRoomProvisioner(RoomProvisioner):
    def __init__(self):
        self.rooms: Dict[str, Dict[str, Any]] = {}
        self.locations: Dict[Tuple[str, str], str] = {}
        self.messages: Dict[str, List[str]] = {}
        self._listeners: List[MoveListener] = []

    def on_move(self, listener: MoveListener) -> None:
        self._listeners.append(listener)

    async def _notify(self, tenant_id: str, actor_id: str, room_id: Optional[str]) -> None:
        for listener in list(self._listeners):
            await listener(tenant_id, actor_id, room_id)

    async def _create(self, tenant_id: str, name: str, kind: str) -> str:
        room_id = f"{kind}-{uuid.uuid4().hex[:12]}"
        self.rooms[room_id] = {"tenant_id": tenant_id, "name": name, "kind": kind}
        room_logger.info(f"Created {kind} room {name} ({room_id}) for tenant {tenant_id}")
        return room_id

    async def create_text_room(self, tenant_id: str, name: str) -> str:
        return await self._create(tenant_id, name, "text")

    async def create_voice_room(self, tenant_id: str, name: str) -> str:
        return await self._create(tenant_id, name, "voice")

    async def place(self, tenant_id: str, actor_id: str, room_id: Optional[str]) -> None:
        """Record where an actor is, as reported by the platform."""
        if room_id is None:
            self.locations.pop((tenant_id, actor_id), None)
        else:
            self.locations[(tenant_id, actor_id)] = room_id
        await self._notify(tenant_id, actor_id, room_id)

    async def move_actor(self, tenant_id: str, actor_id: str, from_room: str, to_room: str) -> bool:
        if self.locations.get((tenant_id, actor_id)) != from_room:
            return False
        await self.place(tenant_id, actor_id, to_room)
        return True

    async def delete_room(self, room_id: str) -> None:
        room = self.rooms.pop(room_id, None)
        if room is None:
            return
        # Anyone left in a deleted voice room is disconnected
        for (tenant_id, actor_id), location in list(self.locations.items()):
            if location == room_id:
                await self.place(tenant_id, actor_id, None)
        self.messages.pop(room_id, None)
        room_logger.info(f"Deleted room {room['name']} ({room_id})")

    async def location_of(self, tenant_id: str, actor_id: str) -> Optional[str]:
        return self.locations.get((tenant_id, actor_id))

    async def post_message(self, room_id: str, text: str) -> None:
        self.messages.setdefault(room_id, []).append(text)
        await super().post_message(room_id, text)


class RoomService:
    """
    Provisioner calls with exponential-backoff retries.

    A call that still fails after the last attempt raises RoomUnavailable,
    which aborts the session.
    """

    def __init__(
        self,
        provisioner: RoomProvisioner,
        attempts: int = Config.ROOM_RETRY_ATTEMPTS,
        base_delay: float = Config.ROOM_RETRY_BASE_DELAY,
    ):
        self.provisioner = provisioner
        self.attempts = max(1, attempts)
        self.base_delay = base_delay

    async def with_retry(self, description: str, call: Callable[[], Awaitable[Any]]) -> Any:
        last_error: Optional[Exception] = None
        for attempt in range(self.attempts):
            if attempt > 0:
                backoff = self.base_delay * (2 ** (attempt - 1))
                room_logger.info(
                    f"Retry {attempt}/{self.attempts - 1} of {description} after {backoff:.1f}s backoff"
                )
                await asyncio.sleep(backoff)
            try:
                return await call()
            except AppException:
                raise
            except Exception as e:
                last_error = e
                room_logger.warning(f"{description} failed: {str(e)}")
        raise RoomUnavailable(f"{description} failed after {self.attempts} attempts: {last_error}")

    async def create_text_room(self, tenant_id: str, name: str) -> str:
        return await self.with_retry(
            f"Creating text room {name}",
            lambda: self.provisioner.create_text_room(tenant_id, name),
        )

    async def create_voice_room(self, tenant_id: str, name: str) -> str:
        return await self.with_retry(
            f"Creating voice room {name}",
            lambda: self.provisioner.create_voice_room(tenant_id, name),
        )

    async def delete_room(self, room_id: str) -> None:
        await self.with_retry(
            f"Deleting room {room_id}", lambda: self.provisioner.delete_room(room_id)
        )

    async def move_actors(
        self, tenant_id: str, actor_ids: Iterable[str], from_room: str, to_room: str
    ) -> List[str]:
        """Move the given actors who are in ``from_room``; returns the ids actually moved."""
        moved = []
        for actor_id in actor_ids:
            if await self.provisioner.location_of(tenant_id, actor_id) != from_room:
                continue
            ok = await self.with_retry(
                f"Moving {actor_id} to {to_room}",
                lambda actor_id=actor_id: self.provisioner.move_actor(
                    tenant_id, actor_id, from_room, to_room
                ),
            )
            if ok:
                moved.append(actor_id)
        return moved

    async def post_message(self, room_id: str, text: str) -> None:
        await self.with_retry(
            f"Posting to {room_id}", lambda: self.provisioner.post_message(room_id, text)
        )
