"""
Two-track rating engine for 5v5 matches.

Public points use a team-average Elo expectation. The resulting swing is split
across a side's five players according to how far each player's hidden MMR
sits from their public points:
- Expected Score = 1 / (1 + 10^((Opponent Avg - Team Avg) / 400))
- Unit Swing = K * (Actual Score - Expected Score)
- Player Delta = Unit Swing * 5 * m_i / sum(m)

Hidden MMR is a per-player Elo against the opposing team's average hidden
rating, with a step size that shrinks with games played and is scaled by the
player's smoothed win rate.

Everything here is pure: no I/O, no clock, no randomness.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from queueup.draft.models import Match, Side
from queueup.errors import IncompleteRoster, MissingPlayerRecord
from queueup.queue.roles import ROLE_ORDER

TEAM_SIZE = len(ROLE_ORDER)


@dataclass(frozen=True)
class RatingConstants:
    # Public points
    k_points: float = 80
    d_points: float = 400
    bridge_cap: float = 0.50
    bridge_scale: float = 100

    # Hidden MMR
    d_mmr: float = 400
    prior_beta: float = 20
    winrate_gamma: float = 1.5
    winrate_amp: float = 0.6
    k_start: float = 120
    k_end: float = 40
    k_ramp_games: int = 10
    k_floor: float = 20
    k_post_ramp: float = 40
    k_tau: float = 50


DEFAULT_CONSTANTS = RatingConstants()


@dataclass(frozen=True)
class PlayerHistory:
    points: int = 500
    hidden_mmr: int = 500
    wins: int = 0
    losses: int = 0

    @property
    def games(self) -> int:
        return self.wins + self.losses


@dataclass
class TrackResult:
    deltas: Dict[str, int] = field(default_factory=dict)
    after: Dict[str, int] = field(default_factory=dict)


@dataclass
class RatingResult:
    winner: Side
    unit_swing: Dict[Side, float]
    points: TrackResult
    mmr: TrackResult


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def expected_score(rating_a: float, rating_b: float, d: float) -> float:
    """Probability that a side rated ``rating_a`` beats one rated ``rating_b``."""
    return 1 / (1 + 10 ** ((rating_b - rating_a) / d))


def k_hidden_from_games(games: int, c: RatingConstants = DEFAULT_CONSTANTS) -> float:
    """
    Hidden MMR step size for a player with ``games`` completed matches.

    Falls linearly from k_start to k_end over the first k_ramp_games games,
    then relaxes exponentially from k_post_ramp towards k_floor.
    """
    g = max(0, games)
    if g < c.k_ramp_games:
        return c.k_start - (c.k_start - c.k_end) * (g / c.k_ramp_games)
    decayed = c.k_floor + (c.k_post_ramp - c.k_floor) * math.exp(
        -(g - c.k_ramp_games) / c.k_tau
    )
    return max(c.k_floor, decayed)


def smoothed_winrate(wins: int, games: int, beta: float = DEFAULT_CONSTANTS.prior_beta) -> float:
    """Win rate with ``beta`` phantom games at 50%."""
    return (wins + 0.5 * beta) / (games + beta)


def winrate_multiplier(wins: int, games: int, c: RatingConstants = DEFAULT_CONSTANTS) -> float:
    w = smoothed_winrate(wins, games, c.prior_beta)
    x = 2 * w - 1
    f = math.copysign(abs(x) ** c.winrate_gamma, x)
    return clamp(1 + c.winrate_amp * f, 1 - c.winrate_amp, 1 + c.winrate_amp)


def gap_multiplier(
    hidden: int, points: int, unit: float, c: RatingConstants = DEFAULT_CONSTANTS
) -> float:
    """
    Share weight of one player in their side's points swing.

    Players whose hidden MMR is above their points take a bigger share of a
    gain and a smaller share of a loss; the reverse when it is below.
    """
    t = math.tanh((hidden - points) / c.bridge_scale)
    m = 1 + c.bridge_cap * t if unit >= 0 else 1 - c.bridge_cap * t
    return clamp(m, 1 - c.bridge_cap, 1 + c.bridge_cap)


def _team_ids(match: Match, side: Side) -> List[str]:
    return match.team(side).member_ids()


def apply_match_result(
    match: Match,
    winner: Side,
    history: Mapping[str, PlayerHistory],
    constants: RatingConstants = DEFAULT_CONSTANTS,
) -> RatingResult:
    """
    Compute both rating tracks for a finished match.

    Args:
        match: The drafted teams; both must have all five roles resolved
        winner: The side that won
        history: Stored record for every participant, keyed by player id
        constants: Tuning constants

    Returns:
        Integer deltas and resulting values for points and hidden MMR
    """
    c = constants
    winner = Side(winner)
    blue_ids = _team_ids(match, Side.BLUE)
    red_ids = _team_ids(match, Side.RED)
    if len(blue_ids) != TEAM_SIZE or len(red_ids) != TEAM_SIZE:
        raise IncompleteRoster()

    all_ids = blue_ids + red_ids
    missing = [pid for pid in all_ids if pid not in history]
    if missing:
        raise MissingPlayerRecord(missing)

    ids_by_side = {Side.BLUE: blue_ids, Side.RED: red_ids}

    # Public points
    mean_points = {
        side: sum(history[pid].points for pid in ids) / TEAM_SIZE
        for side, ids in ids_by_side.items()
    }
    expected_blue = expected_score(mean_points[Side.BLUE], mean_points[Side.RED], c.d_points)
    score_blue = 1.0 if winner is Side.BLUE else 0.0
    unit_blue = c.k_points * (score_blue - expected_blue)
    unit = {Side.BLUE: unit_blue, Side.RED: -unit_blue}

    points = TrackResult()
    for side, ids in ids_by_side.items():
        weights = [
            gap_multiplier(history[pid].hidden_mmr, history[pid].points, unit[side], c)
            for pid in ids
        ]
        total = sum(weights)
        for pid, m in zip(ids, weights):
            delta = round_half_up(unit[side] * (TEAM_SIZE * m / total))
            points.deltas[pid] = delta
            points.after[pid] = history[pid].points + delta

    # Hidden MMR
    mean_hidden = {
        side: sum(history[pid].hidden_mmr for pid in ids) / TEAM_SIZE
        for side, ids in ids_by_side.items()
    }
    mmr = TrackResult()
    for side, ids in ids_by_side.items():
        score = 1.0 if side is winner else 0.0
        for pid in ids:
            record = history[pid]
            k = k_hidden_from_games(record.games, c)
            expected = expected_score(record.hidden_mmr, mean_hidden[side.other], c.d_mmr)
            m = winrate_multiplier(record.wins, record.games, c)
            delta = round_half_up(k * (score - expected) * m)
            mmr.deltas[pid] = delta
            mmr.after[pid] = record.hidden_mmr + delta

    return RatingResult(winner=winner, unit_swing=unit, points=points, mmr=mmr)
