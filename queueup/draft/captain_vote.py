import asyncio
from typing import Dict, List, Mapping, Optional, Tuple, Union

from queueup.config import logger
from queueup.errors import NotEligible, TooManyVotes, UnknownRole, VoteClosed
from queueup.queue.roles import PLAYERS_PER_ROLE, ROLE_ORDER, Role, normalize_role
from queueup.session.timers import race

draft_logger = logger.getChild("draft")

VOTES_PER_VOTER = 2


class CaptainElection:
    """
    Plurality vote for two captains among the queued players.

    Each queued player holds up to two votes. Voting for a candidate already
    chosen takes the vote back. The role quick-vote replaces a voter's picks
    with both candidates of that role.
    """

    def __init__(
        self,
        buckets: Mapping[Role, List[str]],
        games: Optional[Mapping[str, int]] = None,
    ):
        self.buckets: Dict[Role, List[str]] = {
            role: list(buckets.get(role, []))[:PLAYERS_PER_ROLE] for role in ROLE_ORDER
        }
        self.role_by_id: Dict[str, Role] = {
            pid: role for role, ids in self.buckets.items() for pid in ids
        }
        self.games = dict(games or {})
        self.votes: Dict[str, List[str]] = {}
        self.closed = False
        self.captains: Optional[Tuple[str, str]] = None
        self._all_voted = asyncio.Event()

    @property
    def candidate_ids(self) -> List[str]:
        return [pid for role in ROLE_ORDER for pid in self.buckets[role]]

    def _check_voter(self, voter_id: str) -> None:
        if self.closed:
            raise VoteClosed("Captain voting is closed")
        if voter_id not in self.role_by_id:
            raise NotEligible("Only queued players can vote")

    def vote(self, voter_id: str, candidate_id: str) -> List[str]:
        self._check_voter(voter_id)
        if candidate_id not in self.role_by_id:
            raise NotEligible(f"{candidate_id} is not a captain candidate")

        picks = self.votes.setdefault(voter_id, [])
        if candidate_id in picks:
            picks.remove(candidate_id)
        else:
            if len(picks) >= VOTES_PER_VOTER:
                raise TooManyVotes(VOTES_PER_VOTER)
            picks.append(candidate_id)
        self._check_all_voted()
        return list(picks)

    def vote_role(self, voter_id: str, role: Union[str, Role]) -> List[str]:
        self._check_voter(voter_id)
        role = normalize_role(role)
        pair = self.buckets[role]
        if not pair:
            raise UnknownRole(role.value)
        self.votes[voter_id] = list(pair)
        self._check_all_voted()
        return list(pair)

    def _check_all_voted(self) -> None:
        if all(
            len(self.votes.get(pid, [])) >= VOTES_PER_VOTER for pid in self.role_by_id
        ):
            self._all_voted.set()

    def tally(self) -> Dict[str, int]:
        counts = {pid: 0 for pid in self.candidate_ids}
        for picks in self.votes.values():
            for pid in picks:
                if pid in counts:
                    counts[pid] += 1
        return counts

    def standings(self) -> List[Tuple[str, int]]:
        """Candidates by vote count, ties broken by ascending id."""
        return sorted(self.tally().items(), key=lambda item: (-item[1], item[0]))

    def resolve(self) -> Tuple[str, str]:
        if self.captains is None:
            if len(self.role_by_id) < 2:
                raise NotEligible("At least two candidates are needed to elect captains")
            self.closed = True
            top = self.standings()[:2]
            self.captains = (top[0][0], top[1][0])
            draft_logger.info(
                f"Captains elected: {self.captains[0]} ({top[0][1]} votes), "
                f"{self.captains[1]} ({top[1][1]} votes)"
            )
        return self.captains

    async def run(self, timeout: float) -> Tuple[str, str]:
        """Collect votes until the timeout, or until every voter has used both votes."""
        await race(self._all_voted.wait(), timeout)
        return self.resolve()

    def snapshot(self) -> dict:
        counts = self.tally()
        return {
            "phase": "captain_vote",
            "closed": self.closed,
            "candidates": [
                {
                    "player_id": pid,
                    "role": self.role_by_id[pid].value,
                    "games": self.games.get(pid, 0),
                    "votes": counts[pid],
                }
                for pid in self.candidate_ids
            ],
            "total_votes": sum(counts.values()),
            "captains": list(self.captains) if self.captains else None,
        }
