import asyncio
from typing import Callable, Dict, Iterable, List, Optional

from queueup.config import logger
from queueup.errors import PresenceTimeout
from queueup.session.timers import Debouncer, race

presence_logger = logger.getChild("session")

Listener = Callable[[str, Optional[str]], None]


class PresenceTracker:
    """
    Live actor -> room map for one tenant.

    Fed by the room provisioner whenever it moves an actor and by clients
    reporting their own location.
    """

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        self.locations: Dict[str, str] = {}
        self._changed = asyncio.Condition()
        self._listeners: List[Listener] = []

    def location_of(self, actor_id: str) -> Optional[str]:
        return self.locations.get(actor_id)

    async def update(self, actor_id: str, room: Optional[str]) -> None:
        async with self._changed:
            if room is None:
                self.locations.pop(actor_id, None)
            else:
                self.locations[actor_id] = room
            self._changed.notify_all()
        for listener in list(self._listeners):
            listener(actor_id, room)

    def missing(self, actor_ids: Iterable[str], room: str) -> List[str]:
        return [pid for pid in actor_ids if self.locations.get(pid) != room]

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def wait_for_all(
        self,
        actor_ids: Iterable[str],
        room: str,
        timeout: float,
        debouncer: Optional[Debouncer] = None,
    ) -> None:
        """
        Block until every actor is in ``room``.

        Location changes while waiting re-render through ``debouncer``; the
        final state is always flushed, whichever way the wait ends.

        Raises:
            PresenceTimeout: listing the actors still elsewhere when time runs out
        """
        actor_ids = list(actor_ids)

        def on_change(actor_id: str, new_room: Optional[str]) -> None:
            if debouncer is not None and actor_id in actor_ids:
                debouncer.trigger()

        async def all_present() -> bool:
            async with self._changed:
                return await self._changed.wait_for(lambda: not self.missing(actor_ids, room))

        self.subscribe(on_change)
        try:
            present = await race(all_present(), timeout)
        finally:
            self.unsubscribe(on_change)
            if debouncer is not None:
                await debouncer.flush()

        if not present:
            missing = self.missing(actor_ids, room)
            presence_logger.info(
                f"Presence barrier for {room} timed out, missing: {', '.join(missing)}"
            )
            raise PresenceTimeout(missing)
        presence_logger.info(f"All {len(actor_ids)} members present in {room}")
