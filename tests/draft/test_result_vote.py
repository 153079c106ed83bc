import pytest

from queueup.draft.models import Match, Side, Team
from queueup.draft.result_vote import ResultVote
from queueup.errors import DuplicateVote, NotEligible, NoVoteToClear, VoteClosed
from queueup.queue.roles import ROLE_ORDER


def make_match():
    blue = Team(captain="b0", picks={role: f"b{i}" for i, role in enumerate(ROLE_ORDER)})
    red = Team(captain="r0", picks={role: f"r{i}" for i, role in enumerate(ROLE_ORDER)})
    return Match(blue=blue, red=red)


def test_only_participants_vote():
    vote = ResultVote(make_match())

    with pytest.raises(NotEligible):
        vote.cast("spectator", Side.BLUE)


def test_change_moves_count_atomically():
    vote = ResultVote(make_match())
    vote.cast("b0", "blue")

    counts = vote.cast("b0", Side.RED)

    assert counts == {Side.BLUE: 0, Side.RED: 1}
    assert vote.voters == {"b0": Side.RED}


def test_duplicate_and_clear():
    vote = ResultVote(make_match())
    vote.cast("r1", Side.RED)

    with pytest.raises(DuplicateVote):
        vote.cast("r1", Side.RED)

    assert vote.cast("r1", None) == {Side.BLUE: 0, Side.RED: 0}
    with pytest.raises(NoVoteToClear):
        vote.cast("r1", None)


def test_threshold_resolves_immediately_and_closes():
    vote = ResultVote(make_match(), threshold=6)
    for pid in ["b0", "b1", "b2", "r0", "r1"]:
        vote.cast(pid, Side.BLUE)
    assert not vote.closed

    vote.cast("r2", Side.BLUE)

    assert vote.closed
    assert vote.outcome.winner is Side.BLUE
    assert vote.outcome.reason == "threshold"
    with pytest.raises(VoteClosed):
        vote.cast("r3", Side.RED)
    with pytest.raises(VoteClosed):
        vote.cast("b0", None)
    assert vote.outcome.counts[Side.BLUE] == 6


@pytest.mark.asyncio
async def test_wait_returns_threshold_outcome():
    vote = ResultVote(make_match(), threshold=2)
    vote.cast("b0", Side.RED)
    vote.cast("b1", Side.RED)

    outcome = await vote.wait(timeout=5)

    assert outcome.winner is Side.RED
    assert outcome.voters == {"b0": Side.RED, "b1": Side.RED}


@pytest.mark.asyncio
async def test_wait_times_out_without_winner():
    vote = ResultVote(make_match())
    vote.cast("b0", Side.BLUE)

    outcome = await vote.wait(timeout=0.01)

    assert outcome.winner is None
    assert outcome.reason == "timeout"
    assert vote.snapshot()["winner"] is None
    with pytest.raises(VoteClosed):
        vote.cast("b1", Side.BLUE)
