import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from queueup.config import logger
from queueup.draft.models import Match, Side
from queueup.errors import DuplicateVote, NotEligible, NoVoteToClear, VoteClosed
from queueup.session.timers import race

draft_logger = logger.getChild("draft")


@dataclass
class VoteOutcome:
    winner: Optional[Side]
    counts: Dict[Side, int]
    voters: Dict[str, Side] = field(default_factory=dict)
    reason: str = "threshold"


class ResultVote:
    """
    Majority vote on who won a drafted match.

    The vote resolves the instant either side reaches ``threshold``; after that
    every further vote is rejected. A vote that runs out of time resolves with
    no winner.
    """

    def __init__(self, match: Match, threshold: int = 6):
        self.match = match
        self.threshold = threshold
        self.eligible = set(match.participant_ids())
        self.voters: Dict[str, Side] = {}
        self.counts: Dict[Side, int] = {Side.BLUE: 0, Side.RED: 0}
        self.outcome: Optional[VoteOutcome] = None
        self._resolved = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self.outcome is not None

    def cast(self, voter_id: str, side: Optional[Union[str, Side]]) -> Dict[Side, int]:
        """
        Record, change or clear (``side=None``) a participant's vote.
        """
        if self.closed:
            raise VoteClosed("The result vote is closed")
        if voter_id not in self.eligible:
            raise NotEligible("Only match participants can vote on the result")

        previous = self.voters.get(voter_id)
        if side is None:
            if previous is None:
                raise NoVoteToClear()
            self.counts[previous] -= 1
            del self.voters[voter_id]
            return dict(self.counts)

        side = Side(side)
        if previous is side:
            raise DuplicateVote(side.value)
        if previous is not None:
            self.counts[previous] -= 1
        self.counts[side] += 1
        self.voters[voter_id] = side
        draft_logger.info(
            f"Result vote from {voter_id}: {side.value} "
            f"(blue {self.counts[Side.BLUE]}, red {self.counts[Side.RED]})"
        )

        if self.counts[side] >= self.threshold:
            self._close(side, "threshold")
        return dict(self.counts)

    def _close(self, winner: Optional[Side], reason: str) -> VoteOutcome:
        if self.outcome is None:
            self.outcome = VoteOutcome(
                winner=winner,
                counts=dict(self.counts),
                voters=dict(self.voters),
                reason=reason,
            )
            self._resolved.set()
            draft_logger.info(
                f"Result vote resolved by {reason}: "
                f"{winner.value if winner else 'no winner'}"
            )
        return self.outcome

    async def wait(self, timeout: float) -> VoteOutcome:
        await race(self._resolved.wait(), timeout)
        return self._close(None, "timeout")

    def snapshot(self) -> dict:
        return {
            "phase": "result_vote",
            "threshold": self.threshold,
            "blue": self.counts[Side.BLUE],
            "red": self.counts[Side.RED],
            "closed": self.closed,
            "winner": self.outcome.winner.value if self.outcome and self.outcome.winner else None,
            "match": self.match.to_dict(),
        }
