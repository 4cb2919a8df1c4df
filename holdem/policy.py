from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .cards import Card
from .evaluator import evaluate_best
from .models import Action, ActionType, Phase, TableState

_RNG = random.Random()

# Preflop score tables. Each row is (minimum low card, suited score, offsuit score);
# the first row whose minimum the low card reaches wins.
PAIR_TIERS: Tuple[Tuple[int, int], ...] = ((10, 95), (7, 80), (2, 65))
ACE_TIERS: Tuple[Tuple[int, int, int], ...] = ((13, 90, 85), (11, 80, 70), (9, 65, 50), (2, 45, 30))
KING_TIERS: Tuple[Tuple[int, int, int], ...] = ((12, 75, 65), (11, 70, 55), (10, 60, 45), (2, 40, 25))
FACE_TIERS: Tuple[Tuple[int, int, int], ...] = ((11, 65, 50), (10, 55, 40), (2, 35, 20))
SUITED_CONNECTOR_FACTOR = 4.0
OFFSUIT_CONNECTOR_FACTOR = 2.5


@dataclass(frozen=True)
class PolicyParams:
    """Tunable thresholds for the house bots. Values are empirical, not solver output."""

    premium: float = 85
    strong: float = 70
    decent: float = 50
    marginal: float = 30

    premium_raise_prob: float = 0.85
    premium_raise_pot_fraction: float = 0.3
    raise_bb_multiple: int = 2
    strong_small_bet: float = 0.1
    strong_continue_prob: float = 0.8
    strong_raise_prob: float = 0.3
    decent_pot_odds: float = 0.3
    decent_bet_size: float = 0.05
    marginal_pot_odds: float = 0.15
    marginal_bet_size: float = 0.02

    two_raise_aggression: float = 0.6
    three_raise_aggression: float = 0.3
    large_bet: float = 0.3
    large_bet_damping: float = 0.5

    variance_steps: int = 3

    # Quirk bands over the per-hand roll in [0, 1). They must not overlap.
    fold_band: Tuple[float, float] = (0.0, 0.007)
    bluff_band: Tuple[float, float] = (0.007, 0.015)
    limp_band: Tuple[float, float] = (0.973, 0.988)
    overbet_band: Tuple[float, float] = (0.988, 1.0)
    overbet_strength: float = 80
    overbet_pot_fraction: float = 1.4
    bluff_max_strength: float = 25
    bluff_pot_fraction: float = 0.6


DEFAULT_PARAMS = PolicyParams()


def _tier(low: int, suited: bool, tiers: Sequence[Tuple[int, int, int]]) -> float:
    for minimum, suited_score, offsuit_score in tiers:
        if low >= minimum:
            return suited_score if suited else offsuit_score
    return tiers[-1][2]


def preflop_strength(hole: Sequence[Card]) -> float:
    """Rough 0-100 score for two hole cards."""
    if len(hole) < 2:
        return 0
    high, low = sorted((card.rank for card in hole), reverse=True)
    suited = hole[0].suit == hole[1].suit

    if high == low:
        for minimum, score in PAIR_TIERS:
            if high >= minimum:
                return score
    if high == 14:
        return _tier(low, suited, ACE_TIERS)
    if high == 13:
        return _tier(low, suited, KING_TIERS)
    if high >= 11:
        return _tier(low, suited, FACE_TIERS)
    if high - low <= 1:
        return high * (SUITED_CONNECTOR_FACTOR if suited else OFFSUIT_CONNECTOR_FACTOR)
    return high


def postflop_strength(hole: Sequence[Card], community: Sequence[Card]) -> float:
    rank = evaluate_best(list(hole) + list(community))
    return rank.category * 15 + (rank.top_kicker / 14) * 10 + 50


def hand_strength(hole: Sequence[Card], community: Sequence[Card]) -> float:
    if community:
        return postflop_strength(hole, community)
    return preflop_strength(hole)


def _hand_digest(player_id: str, hand_number: int) -> bytes:
    return hashlib.sha256(f"{player_id}:{hand_number}".encode("utf-8")).digest()


def quirk_roll(player_id: str, hand_number: int) -> float:
    """Per-seat, per-hand value in [0, 1). Independent of every random generator."""
    return int.from_bytes(_hand_digest(player_id, hand_number)[:8], "big") / 2**64


def strength_variance(player_id: str, hand_number: int, steps: int = DEFAULT_PARAMS.variance_steps) -> float:
    bucket = int.from_bytes(_hand_digest(player_id, hand_number)[8:16], "big") % (2 * steps + 1)
    return (bucket - steps) / 100


def _in_band(value: float, band: Tuple[float, float]) -> bool:
    return band[0] <= value < band[1]


def is_late_position(state: TableState, seat_idx: int) -> bool:
    """True for the last two seats to act, counted from the dealer over remaining seats."""
    size = len(state.seats)
    order: List[int] = []
    for step in range(1, size + 1):
        idx = (state.dealer + step) % size
        if not state.seats[idx].eliminated:
            order.append(idx)
    if seat_idx not in order:
        return False
    return order.index(seat_idx) >= len(order) - 2


def aggression_factor(estimated_raises: int, bet_size: float, params: PolicyParams = DEFAULT_PARAMS) -> float:
    factor = 1.0
    if estimated_raises >= 3:
        factor = params.three_raise_aggression
    elif estimated_raises >= 2:
        factor = params.two_raise_aggression
    if bet_size > params.large_bet:
        factor *= params.large_bet_damping
    return factor


def _raise_or_call(target: int, state: TableState) -> Action:
    if target > state.current_bet:
        return Action(ActionType.RAISE, target)
    return Action(ActionType.CALL)


def decide_action(
    seat_idx: int,
    state: TableState,
    rng: Optional[random.Random] = None,
    params: PolicyParams = DEFAULT_PARAMS,
) -> Action:
    """Pick an action for a house seat. Reads ``state`` only."""
    rng = rng or _RNG
    seat = state.seats[seat_idx]
    call_amount = max(state.current_bet - seat.bet, 0)
    current_pot = state.pot + state.live_bets()
    in_hand = sum(1 for other in state.seats if other.in_hand)
    average_bet = current_pot / max(1, in_hand)
    estimated_raises = int(average_bet // state.big_blind) if state.big_blind > 0 else 0
    stack_cap = seat.chips + seat.bet

    strength = hand_strength(seat.hole_cards, state.community)
    adjusted = strength * (1 + strength_variance(seat.player_id, state.hand_number, params.variance_steps))
    roll = quirk_roll(seat.player_id, state.hand_number)

    pot_odds = call_amount / (current_pot + call_amount) if call_amount > 0 else 0.0
    bet_size = call_amount / max(1, seat.chips)
    aggression = aggression_factor(estimated_raises, bet_size, params)

    # Rare per-hand quirks.
    if adjusted >= params.premium and call_amount > 0 and _in_band(roll, params.fold_band):
        return Action(ActionType.FOLD)
    if adjusted >= params.overbet_strength and call_amount == 0 and _in_band(roll, params.overbet_band):
        overbet = int(current_pot * params.overbet_pot_fraction)
        if overbet > 0 and state.current_bet + overbet <= stack_cap:
            return Action(ActionType.RAISE, state.current_bet + overbet)
    if (
        adjusted < params.bluff_max_strength
        and call_amount == 0
        and _in_band(roll, params.bluff_band)
        and is_late_position(state, seat_idx)
    ):
        bluff = int(current_pot * params.bluff_pot_fraction)
        if bluff > 0 and state.current_bet + bluff <= stack_cap:
            return Action(ActionType.RAISE, state.current_bet + bluff)
    if (
        state.phase == Phase.PRE_FLOP
        and adjusted >= params.premium
        and _in_band(roll, params.limp_band)
        and call_amount == state.big_blind - seat.bet
    ):
        return Action(ActionType.CALL)

    if adjusted >= params.premium:
        if rng.random() < params.premium_raise_prob * aggression:
            bump = max(state.big_blind * params.raise_bb_multiple, current_pot * params.premium_raise_pot_fraction)
            return _raise_or_call(int(min(state.current_bet + bump, stack_cap)), state)
        return Action(ActionType.CALL)

    if adjusted >= params.strong:
        if bet_size < params.strong_small_bet or rng.random() < params.strong_continue_prob * aggression:
            if rng.random() < params.strong_raise_prob * aggression:
                target = min(state.current_bet + state.big_blind * params.raise_bb_multiple, stack_cap)
                return _raise_or_call(int(target), state)
            return Action(ActionType.CALL)

    if adjusted >= params.decent and (pot_odds < params.decent_pot_odds or bet_size < params.decent_bet_size):
        return Action(ActionType.CALL)

    if adjusted >= params.marginal and (pot_odds < params.marginal_pot_odds or bet_size < params.marginal_bet_size):
        return Action(ActionType.CALL)

    if call_amount == 0:
        return Action(ActionType.CALL)

    return Action(ActionType.FOLD)
