"""
Lane-mirror captain draft.

Captains alternate turns. Picking one player of an unresolved role sends the
other player of that role to the opposing team in the same action, so every
pick resolves a whole role pair.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from queueup.config import logger
from queueup.draft.models import Match, Side, Team
from queueup.errors import (
    AlreadyPicked,
    DraftTimeout,
    IncompleteRoster,
    LaneResolved,
    NoActiveSession,
    NotEligible,
    NotYourTurn,
)
from queueup.player.models import DEFAULT_POINTS
from queueup.queue.roles import PLAYERS_PER_ROLE, ROLE_ORDER, Role
from queueup.session.timers import ScheduledCallback, race

draft_logger = logger.getChild("draft")


@dataclass
class PickEvent:
    role: Role
    side: Side
    picked: str
    mirrored: Optional[str]
    auto: bool = False


class LaneMirrorDraft:
    def __init__(
        self,
        buckets: Mapping[Role, List[str]],
        captains: Tuple[str, str],
        points: Optional[Mapping[str, int]] = None,
    ):
        self.buckets: Dict[Role, List[str]] = {role: list(buckets.get(role, [])) for role in ROLE_ORDER}
        for role, ids in self.buckets.items():
            if len(ids) != PLAYERS_PER_ROLE:
                raise IncompleteRoster(
                    f"Each role needs exactly two players to draft, {role.value} has {len(ids)}"
                )
        self.role_by_id: Dict[str, Role] = {
            pid: role for role, ids in self.buckets.items() for pid in ids
        }
        self.points: Dict[str, int] = {
            pid: (points or {}).get(pid, DEFAULT_POINTS) for pid in self.role_by_id
        }

        cap_a, cap_b = captains
        for cap in captains:
            if cap not in self.role_by_id:
                raise NotEligible(f"Captain {cap} is not in the queue")
        # Lower public rating captains blue and picks first
        blue_cap = cap_a if self.points[cap_a] <= self.points[cap_b] else cap_b
        red_cap = cap_b if blue_cap == cap_a else cap_a
        self.teams: Dict[Side, Team] = {
            Side.BLUE: Team(captain=blue_cap),
            Side.RED: Team(captain=red_cap),
        }
        self.current: Side = Side.BLUE
        self.turn = 0
        self.events: List[PickEvent] = []

        # Each captain's own role pair is split before the first turn
        self._resolve(self.role_by_id[blue_cap], blue_cap, Side.BLUE)
        self._resolve(self.role_by_id[red_cap], red_cap, Side.RED)

    def is_resolved(self, role: Role) -> bool:
        return role in self.teams[Side.BLUE].picks and role in self.teams[Side.RED].picks

    def unresolved_roles(self) -> List[Role]:
        return [role for role in ROLE_ORDER if not self.is_resolved(role)]

    @property
    def is_complete(self) -> bool:
        return not self.unresolved_roles()

    @property
    def current_captain(self) -> str:
        return self.teams[self.current].captain

    def owner_of(self, player_id: str) -> Optional[Side]:
        for side, team in self.teams.items():
            if team.owns(player_id):
                return side
        return None

    def _resolve(self, role: Role, chosen: str, side: Side, auto: bool = False) -> Optional[PickEvent]:
        if self.is_resolved(role):
            return None
        pair = self.buckets[role]
        other = next((pid for pid in pair if pid != chosen), None)
        self.teams[side].picks[role] = chosen
        if other is not None:
            self.teams[side.other].picks[role] = other
        event = PickEvent(role=role, side=side, picked=chosen, mirrored=other, auto=auto)
        self.events.append(event)
        return event

    def _advance(self) -> None:
        self.turn += 1
        if not self.is_complete:
            self.current = self.current.other

    def pick(self, actor_id: str, player_id: str) -> PickEvent:
        """Resolve the picked player's role for the acting captain's side."""
        if self.is_complete:
            raise NoActiveSession("The draft is already finished")
        if actor_id != self.current_captain:
            raise NotYourTurn(self.current_captain)
        role = self.role_by_id.get(player_id)
        if role is None:
            raise NotEligible("Unknown player")
        if self.owner_of(player_id) is not None:
            raise AlreadyPicked(player_id)
        if self.is_resolved(role):
            raise LaneResolved(role.value)

        event = self._resolve(role, player_id, self.current)
        draft_logger.info(
            f"{self.current.value} captain {actor_id} picked {player_id} for {role.value}; "
            f"{event.mirrored} mirrored to {self.current.other.value}"
        )
        self._advance()
        return event

    def _points_gap(self, role: Role) -> int:
        first, second = self.buckets[role]
        return abs(self.points[first] - self.points[second])

    def auto_resolve(self) -> Optional[PickEvent]:
        """
        Resolve a role for the captain whose turn expired.

        The least-advantaged choice is made for the current side: the unresolved
        role with the widest points gap within its pair (earliest in role order
        on a tie), taking the lower-rated player of that pair.
        """
        unresolved = self.unresolved_roles()
        if not unresolved:
            return None
        role = max(unresolved, key=self._points_gap)
        first, second = self.buckets[role]
        chosen = first if self.points[first] <= self.points[second] else second
        side = self.current
        event = self._resolve(role, chosen, side, auto=True)
        draft_logger.info(
            f"Turn expired for {side.value} captain {self.teams[side].captain}, "
            f"auto-resolved {role.value}"
        )
        self._advance()
        return event

    def match(self) -> Match:
        if not self.is_complete:
            raise IncompleteRoster("The draft has unresolved roles")
        return Match(blue=self.teams[Side.BLUE], red=self.teams[Side.RED])

    def snapshot(self) -> dict:
        return {
            "phase": "draft",
            "on_the_pick": None if self.is_complete else self.current.value,
            "captain_on_the_pick": None if self.is_complete else self.current_captain,
            "remaining_roles": [role.value for role in self.unresolved_roles()],
            "blue": self.teams[Side.BLUE].to_dict(),
            "red": self.teams[Side.RED].to_dict(),
            "points": dict(self.points),
        }


Serialize = Callable[[Callable[[], Awaitable[None]]], Awaitable[None]]
OnChange = Callable[[LaneMirrorDraft, Optional[PickEvent]], Awaitable[None]]


class DraftRunner:
    """
    Drives a LaneMirrorDraft against the clock.

    Each turn is bounded by ``turn_timeout``; an expired turn is auto-resolved
    and the turn passes. Picks and expiries both go through ``serialize`` so
    they never interleave.
    """

    def __init__(
        self,
        draft: LaneMirrorDraft,
        turn_timeout: float,
        serialize: Serialize,
        on_change: Optional[OnChange] = None,
    ):
        self.draft = draft
        self.turn_timeout = turn_timeout
        self._serialize = serialize
        self._on_change = on_change
        self._timer: Optional[ScheduledCallback] = None
        self._done = asyncio.Event()

    @property
    def turn_ends_in(self) -> Optional[float]:
        return self._timer.remaining() if self._timer else None

    def _arm(self) -> None:
        if self._timer:
            self._timer.cancel()
        turn = self.draft.turn
        self._timer = ScheduledCallback(
            self.turn_timeout,
            lambda: self._serialize(lambda: self._expire(turn)),
            name=f"draft-turn:{turn}",
        )

    async def _after_change(self, event: Optional[PickEvent]) -> None:
        if self.draft.is_complete:
            self.cancel()
            self._done.set()
        else:
            self._arm()
        if self._on_change:
            await self._on_change(self.draft, event)

    async def _expire(self, turn: int) -> None:
        # A pick may have landed while this expiry waited for the serializer
        if self.draft.turn != turn or self.draft.is_complete:
            return
        # The firing timer is the current one; it must not cancel itself on re-arm
        self._timer = None
        event = self.draft.auto_resolve()
        await self._after_change(event)

    async def pick(self, actor_id: str, player_id: str) -> PickEvent:
        """Apply a captain's pick. Must be called inside the session's serializer."""
        event = self.draft.pick(actor_id, player_id)
        await self._after_change(event)
        return event

    async def run(self) -> Match:
        if not self.draft.is_complete:
            self._arm()
            deadline = self.turn_timeout * (len(ROLE_ORDER) + 1)
            await race(self._done.wait(), deadline)
        self.cancel()
        if not self.draft.is_complete:
            raise DraftTimeout([self.draft.current_captain])
        return self.draft.match()

    def cancel(self) -> None:
        if self._timer:
            self._timer.cancel()
            self._timer = None
