import pytest

from holdem import policy
from holdem.evaluator import parse_cards
from holdem.models import Action, ActionType
from holdem.policy import (
    DEFAULT_PARAMS,
    aggression_factor,
    decide_action,
    is_late_position,
    postflop_strength,
    preflop_strength,
    quirk_roll,
    strength_variance,
)

from .helpers import new_table


class FixedRandom:
    """Stands in for random.Random where the policy only calls random()."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def no_quirks(monkeypatch):
    monkeypatch.setattr(policy, "quirk_roll", lambda player_id, hand_number: 0.5)
    monkeypatch.setattr(policy, "strength_variance", lambda *args: 0.0)
    return monkeypatch


def seat_with(state, seat_idx, hole):
    state.seats[seat_idx].hole_cards = parse_cards(hole)
    return state


@pytest.mark.parametrize(
    "hole, expected",
    [
        (["As", "Ad"], 95),
        (["2s", "2d"], 65),
        (["As", "Ks"], 90),
        (["As", "Kd"], 85),
        (["Kh", "Qd"], 65),
        (["8s", "7s"], 32),
        (["8s", "7d"], 20),
        (["7c", "2d"], 7),
    ],
)
def test_preflop_strength_table(hole, expected):
    assert preflop_strength(parse_cards(hole)) == expected


def test_postflop_strength_from_category_and_kicker():
    strength = postflop_strength(parse_cards(["As", "Ad"]), parse_cards(["2c", "7h", "9s"]))
    assert strength == 1 * 15 + 10 + 50


def test_quirk_roll_is_deterministic_per_seat_and_hand():
    assert quirk_roll("player_3", 7) == quirk_roll("player_3", 7)
    rolls = {quirk_roll("player_3", hand) for hand in range(1, 50)}
    assert len(rolls) > 40
    assert all(0 <= roll < 1 for roll in rolls)
    assert all(-0.03 <= strength_variance("player_1", hand) <= 0.03 for hand in range(1, 200))


def test_quirk_bands_do_not_overlap():
    bands = sorted([DEFAULT_PARAMS.fold_band, DEFAULT_PARAMS.bluff_band, DEFAULT_PARAMS.limp_band, DEFAULT_PARAMS.overbet_band])
    for (_, end), (start, _) in zip(bands, bands[1:]):
        assert end <= start


def test_aggression_factor_damps_large_bets():
    assert aggression_factor(0, 0.01) == 1.0
    assert aggression_factor(2, 0.01) == 0.6
    assert aggression_factor(3, 0.01) == 0.3
    assert aggression_factor(0, 0.5) == 0.5


def test_late_position_is_last_two_after_dealer():
    state = new_table()
    assert [idx for idx in range(6) if is_late_position(state, idx)] == [0, 1]


def test_premium_hand_raises(no_quirks):
    state = seat_with(new_table(), 4, ["As", "Ad"])
    action = decide_action(4, state, FixedRandom(0.0))
    # Pot is 30, so the bump is two big blinds.
    assert action == Action(ActionType.RAISE, 60)


def test_premium_hand_calls_when_not_raising(no_quirks):
    state = seat_with(new_table(), 4, ["As", "Ad"])
    assert decide_action(4, state, FixedRandom(0.99)) == Action(ActionType.CALL)


def test_junk_folds_to_a_bet_and_checks_otherwise(no_quirks):
    state = seat_with(new_table(), 4, ["7c", "2d"])
    assert decide_action(4, state, FixedRandom(0.0)) == Action(ActionType.FOLD)
    state.seats[4].bet = state.current_bet
    assert decide_action(4, state, FixedRandom(0.0)) == Action(ActionType.CALL)


def test_fold_quirk_overrides_premium_hand(monkeypatch):
    monkeypatch.setattr(policy, "quirk_roll", lambda player_id, hand_number: 0.001)
    monkeypatch.setattr(policy, "strength_variance", lambda *args: 0.0)
    state = seat_with(new_table(), 4, ["As", "Ad"])
    assert decide_action(4, state, FixedRandom(0.0)) == Action(ActionType.FOLD)


def test_limp_quirk_just_calls_the_big_blind(monkeypatch):
    monkeypatch.setattr(policy, "quirk_roll", lambda player_id, hand_number: 0.98)
    monkeypatch.setattr(policy, "strength_variance", lambda *args: 0.0)
    state = seat_with(new_table(), 4, ["As", "Ad"])
    assert decide_action(4, state, FixedRandom(0.0)) == Action(ActionType.CALL)


def test_bluff_quirk_raises_junk_from_late_position(monkeypatch):
    monkeypatch.setattr(policy, "quirk_roll", lambda player_id, hand_number: 0.01)
    monkeypatch.setattr(policy, "strength_variance", lambda *args: 0.0)
    state = seat_with(new_table(), 0, ["7c", "2d"])
    state.seats[0].bet = 20
    # Live bets 10 + 20 + 20 make a pot of 50.
    assert decide_action(0, state, FixedRandom(0.99)) == Action(ActionType.RAISE, 20 + int(50 * 0.6))


def test_overbet_quirk_with_monster(monkeypatch):
    monkeypatch.setattr(policy, "quirk_roll", lambda player_id, hand_number: 0.995)
    monkeypatch.setattr(policy, "strength_variance", lambda *args: 0.0)
    state = seat_with(new_table(), 4, ["As", "Ad"])
    state.seats[4].bet = 20
    assert decide_action(4, state, FixedRandom(0.99)) == Action(ActionType.RAISE, 20 + int(50 * 1.4))


def test_decide_action_does_not_mutate_state():
    state = seat_with(new_table(), 4, ["Kh", "Kd"])
    before = repr(state)
    decide_action(4, state)
    assert repr(state) == before
