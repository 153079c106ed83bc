import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from queueup.draft.captain_vote import CaptainElection
from queueup.draft.lane_draft import DraftRunner
from queueup.draft.models import Match
from queueup.draft.result_vote import ResultVote
from queueup.draft.schemas import SessionView
from queueup.errors import NoActiveSession, QueueFull
from queueup.queue.admission import Queue, member_ids, new_queue
from queueup.session.presence import PresenceTracker
from queueup.tenant.schemas import SessionSettings


class Phase(str, Enum):
    QUEUE = "queue"
    ROOMS = "rooms"
    PRESENCE = "presence"
    CAPTAIN_VOTE = "captain_vote"
    DRAFT = "draft"
    RESULT_VOTE = "result_vote"
    TEARDOWN = "teardown"
    ABORTED = "aborted"
    DONE = "done"


@dataclass
class SessionContext:
    """
    One queue-to-match-to-rating cycle of a tenant.
    """

    tenant_id: str
    number: int
    settings: SessionSettings
    lobby_room: Optional[str] = None
    queue_header: str = ""
    queue: Optional[Queue] = None
    phase: Phase = Phase.QUEUE
    text_room: Optional[str] = None
    voice_room: Optional[str] = None
    team_rooms: Dict[str, str] = field(default_factory=dict)
    election: Optional[CaptainElection] = None
    runner: Optional[DraftRunner] = None
    match: Optional[Match] = None
    result_vote: Optional[ResultVote] = None
    counter_advanced: bool = False
    abort_reason: Optional[str] = None
    task: Optional[asyncio.Task] = None

    def __post_init__(self):
        if self.queue is None:
            self.queue = new_queue(self.tenant_id, self.number, self.settings.per_role_capacity)

    @property
    def key(self) -> Tuple[str, int]:
        return (self.tenant_id, self.number)

    @property
    def admitting(self) -> bool:
        return self.phase is Phase.QUEUE

    @property
    def owned_rooms(self) -> List[str]:
        rooms = [self.voice_room, *self.team_rooms.values(), self.text_room]
        return [room for room in rooms if room]

    @property
    def voice_rooms(self) -> List[str]:
        return [room for room in [self.voice_room, *self.team_rooms.values()] if room]

    def participants(self) -> List[str]:
        if self.match is not None:
            return self.match.participant_ids()
        return member_ids(self.queue)

    def view(self) -> SessionView:
        if self.phase is Phase.CAPTAIN_VOTE and self.election:
            detail = self.election.snapshot()
        elif self.phase is Phase.DRAFT and self.runner:
            detail = self.runner.draft.snapshot()
            detail["turn_ends_in"] = self.runner.turn_ends_in
        elif self.phase is Phase.RESULT_VOTE and self.result_vote:
            detail = self.result_vote.snapshot()
        else:
            detail = {"queue": self.queue.snapshot().model_dump()}
        if self.abort_reason:
            detail["reason"] = self.abort_reason
        return SessionView(
            tenant_id=self.tenant_id,
            session_number=self.number,
            phase=self.phase.value,
            text_room=self.text_room,
            voice_room=self.voice_room,
            captains=list(self.election.captains) if self.election and self.election.captains else None,
            detail=detail,
        )


class TenantContext:
    """
    Live sessions of one tenant.

    At most one session admits players at a time; earlier sessions may still
    be running their match or result vote.
    """

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        self.presence = PresenceTracker(tenant_id)
        self.sessions: Dict[int, SessionContext] = {}
        self.admitting_number: Optional[int] = None

    def open_session(
        self,
        number: int,
        settings: SessionSettings,
        lobby_room: Optional[str] = None,
        queue_header: str = "",
    ) -> SessionContext:
        ctx = SessionContext(
            tenant_id=self.tenant_id,
            number=number,
            settings=settings,
            lobby_room=lobby_room,
            queue_header=queue_header,
        )
        self.sessions[number] = ctx
        self.admitting_number = number
        return ctx

    def admitting(self) -> SessionContext:
        ctx = self.sessions.get(self.admitting_number) if self.admitting_number else None
        if ctx is None:
            raise NoActiveSession("No queue is open, ask an admin to start one")
        if not ctx.admitting:
            raise QueueFull("The queue is full and the session has started")
        return ctx

    def session_for(self, actor_id: str, phase: Phase) -> SessionContext:
        """
        The live session in ``phase`` that ``actor_id`` takes part in, falling
        back to any session in that phase so outsiders get NotEligible from it.
        """
        in_phase = [ctx for ctx in self.sessions.values() if ctx.phase is phase]
        for ctx in in_phase:
            if actor_id in ctx.participants():
                return ctx
        if in_phase:
            return in_phase[0]
        raise NoActiveSession(f"No session is in the {phase.value} phase")

    def session_of(self, actor_id: str) -> Optional[SessionContext]:
        for ctx in self.sessions.values():
            if not ctx.admitting and actor_id in ctx.participants():
                return ctx
        return None

    def latest(self) -> Optional[SessionContext]:
        if not self.sessions:
            return None
        return self.sessions[max(self.sessions)]

    def drop(self, number: int) -> None:
        ctx = self.sessions.pop(number, None)
        if ctx is not None and self.admitting_number == number and ctx.phase is not Phase.QUEUE:
            self.admitting_number = None

    def live_tasks(self) -> List[asyncio.Task]:
        return [ctx.task for ctx in self.sessions.values() if ctx.task and not ctx.task.done()]
