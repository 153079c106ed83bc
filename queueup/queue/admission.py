"""
Role-bucketed admission queue.

Every function here is a plain state transition on a ``Queue`` value. Callers
are expected to run mutations through ``KeyedSerializer`` so that the
check-then-act sequences below are atomic per queue.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from queueup.errors import AlreadyQueued, NotQueued, QueueFull, RoleFull
from queueup.queue.roles import PLAYERS_PER_ROLE, ROLE_ORDER, Role, normalize_role
from queueup.queue.schemas import QueueSnapshot

DEFAULT_CAPACITY = PLAYERS_PER_ROLE


@dataclass
class Queue:
    tenant_id: str
    session_number: int
    capacity: int = DEFAULT_CAPACITY
    buckets: Dict[Role, List[str]] = field(
        default_factory=lambda: {role: [] for role in ROLE_ORDER}
    )

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            tenant_id=self.tenant_id,
            session_number=self.session_number,
            capacity=self.capacity,
            buckets={role.value: list(ids) for role, ids in self.buckets.items()},
            is_full=is_full(self),
        )


def new_queue(tenant_id: str, session_number: int, capacity: int = DEFAULT_CAPACITY) -> Queue:
    return Queue(tenant_id=tenant_id, session_number=session_number, capacity=capacity)


def member_ids(queue: Queue) -> List[str]:
    """All queued ids in role order."""
    return [pid for role in ROLE_ORDER for pid in queue.buckets[role]]


def role_of(queue: Queue, player_id: str) -> Optional[Role]:
    for role in ROLE_ORDER:
        if player_id in queue.buckets[role]:
            return role
    return None


def is_full(queue: Queue) -> bool:
    return all(len(queue.buckets[role]) >= queue.capacity for role in ROLE_ORDER)


def open_roles(queue: Queue) -> List[Role]:
    return [role for role in ROLE_ORDER if len(queue.buckets[role]) < queue.capacity]


def check_can_join(queue: Queue, player_id: str) -> None:
    """Validate the role-independent join preconditions."""
    if role_of(queue, player_id) is not None:
        raise AlreadyQueued()
    if is_full(queue):
        raise QueueFull()


def join(queue: Queue, player_id: str, role: Union[str, Role]) -> QueueSnapshot:
    check_can_join(queue, player_id)
    role = normalize_role(role)
    bucket = queue.buckets[role]
    if len(bucket) >= queue.capacity:
        raise RoleFull(role.value)
    bucket.append(player_id)
    return queue.snapshot()


def leave(queue: Queue, player_id: str) -> QueueSnapshot:
    role = role_of(queue, player_id)
    if role is None:
        raise NotQueued()
    queue.buckets[role].remove(player_id)
    return queue.snapshot()


def reset(queue: Queue) -> QueueSnapshot:
    for role in ROLE_ORDER:
        queue.buckets[role].clear()
    return queue.snapshot()
