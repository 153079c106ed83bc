import pytest

from queueup.draft.models import Match, Side, Team
from queueup.errors import IncompleteRoster, MissingPlayerRecord
from queueup.queue.roles import ROLE_ORDER
from queueup.rating.engine import (
    PlayerHistory,
    apply_match_result,
    expected_score,
    gap_multiplier,
    k_hidden_from_games,
    round_half_up,
    smoothed_winrate,
    winrate_multiplier,
)


def make_match():
    blue = Team(captain="b0", picks={role: f"b{i}" for i, role in enumerate(ROLE_ORDER)})
    red = Team(captain="r0", picks={role: f"r{i}" for i, role in enumerate(ROLE_ORDER)})
    return Match(blue=blue, red=red)


def flat_history(**overrides):
    history = {pid: PlayerHistory() for pid in make_match().participant_ids()}
    history.update(overrides)
    return history


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(1.5) == 2
    assert round_half_up(2.5) == 3
    assert round_half_up(-0.5) == 0
    assert round_half_up(-1.6) == -2


def test_expected_score_even_teams():
    assert expected_score(500, 500, 400) == pytest.approx(0.5)
    assert expected_score(900, 500, 400) == pytest.approx(10 / 11)


def test_k_schedule():
    assert k_hidden_from_games(0) == pytest.approx(120)
    assert k_hidden_from_games(4) == pytest.approx(88)
    assert k_hidden_from_games(10) == pytest.approx(40)
    assert k_hidden_from_games(60) == pytest.approx(20 + 20 * 0.36787944, rel=1e-6)
    assert k_hidden_from_games(10_000) == pytest.approx(20)


def test_winrate_multiplier_bounds():
    assert smoothed_winrate(0, 0) == pytest.approx(0.5)
    assert winrate_multiplier(0, 0) == pytest.approx(1.0)
    assert winrate_multiplier(1000, 1000) == pytest.approx(1.6, abs=0.02)
    assert winrate_multiplier(0, 1000) == pytest.approx(0.4, abs=0.02)
    assert 0.4 <= winrate_multiplier(0, 1_000_000) <= 1.6


def test_gap_multiplier_direction():
    # Underrated players gain more and lose less
    assert gap_multiplier(600, 500, unit=10) > 1
    assert gap_multiplier(600, 500, unit=-10) < 1
    assert gap_multiplier(500, 500, unit=10) == pytest.approx(1)
    assert gap_multiplier(5000, 500, unit=10) == pytest.approx(1.5)


def test_even_match_splits_unit_equally():
    result = apply_match_result(make_match(), Side.BLUE, flat_history())

    assert result.unit_swing[Side.BLUE] == pytest.approx(40)
    assert result.unit_swing[Side.RED] == pytest.approx(-40)
    for i in range(5):
        assert result.points.deltas[f"b{i}"] == 40
        assert result.points.deltas[f"r{i}"] == -40
        assert result.points.after[f"b{i}"] == 540
        assert result.points.after[f"r{i}"] == 460


def test_unit_swing_is_zero_sum():
    history = flat_history(
        b0=PlayerHistory(points=700, hidden_mmr=650, wins=12, losses=3),
        r3=PlayerHistory(points=350, hidden_mmr=420, wins=1, losses=6),
    )
    result = apply_match_result(make_match(), Side.RED, history)

    assert result.unit_swing[Side.BLUE] == pytest.approx(-result.unit_swing[Side.RED])
    assert result.unit_swing[Side.RED] > 0


def test_hidden_above_points_takes_bigger_share():
    history = flat_history(b0=PlayerHistory(points=500, hidden_mmr=600))
    result = apply_match_result(make_match(), Side.BLUE, history)

    assert result.points.deltas["b0"] == 51
    for i in range(1, 5):
        assert result.points.deltas[f"b{i}"] == 37


def test_hidden_delta_scenario():
    history = flat_history(b0=PlayerHistory(points=500, hidden_mmr=550, wins=3, losses=1))
    result = apply_match_result(make_match(), Side.BLUE, history)

    assert k_hidden_from_games(4) == pytest.approx(88)
    assert winrate_multiplier(3, 4) > 1
    assert result.mmr.deltas["b0"] == 38
    assert result.mmr.after["b0"] == 588


def test_first_match_hidden_delta():
    result = apply_match_result(make_match(), Side.BLUE, flat_history())

    # K(0) = 120, E = 0.5, m = 1
    assert result.mmr.deltas["b1"] == 60
    assert result.mmr.deltas["r1"] == -60


def test_deterministic():
    history = flat_history(
        b2=PlayerHistory(points=610, hidden_mmr=540, wins=9, losses=2),
        r4=PlayerHistory(points=480, hidden_mmr=700, wins=30, losses=31),
    )
    first = apply_match_result(make_match(), Side.RED, history)
    second = apply_match_result(make_match(), Side.RED, history)

    assert first.points.deltas == second.points.deltas
    assert first.mmr.deltas == second.mmr.deltas


def test_incomplete_roster():
    match = make_match()
    del match.red.picks[ROLE_ORDER[-1]]

    with pytest.raises(IncompleteRoster):
        apply_match_result(match, Side.BLUE, flat_history())


def test_missing_player_record():
    history = flat_history()
    del history["r2"]
    del history["b4"]

    with pytest.raises(MissingPlayerRecord) as exc_info:
        apply_match_result(make_match(), Side.BLUE, history)
    assert sorted(exc_info.value.missing) == ["b4", "r2"]
