from __future__ import annotations

import copy
import functools
from typing import Dict, List, Optional, Sequence, Tuple

from .cards import cards_to_labels, deal
from .errors import ActionRejected, InvalidPhase, InvalidRaise, InvalidTurn, NoActiveSeat, RoundClosed, RoundNotClosed
from .evaluator import HandRank, compare, evaluate_best
from .models import BETTING_PHASES, Action, ActionType, Phase, PlayerSeat, TableState

# Every public function here validates first, then mutates a private copy of the
# state and returns it together with the events it produced. The input is never
# touched, so a rejection cannot leave a half-applied action behind.

Events = List[Dict[str, object]]

STREET_CARDS = {Phase.PRE_FLOP: (Phase.FLOP, 3), Phase.FLOP: (Phase.TURN, 1), Phase.TURN: (Phase.RIVER, 1)}


def clone(state: TableState) -> TableState:
    return copy.deepcopy(state)


def contenders(state: TableState) -> List[PlayerSeat]:
    return [seat for seat in state.seats if seat.can_act]


def is_round_closed(state: TableState) -> bool:
    live = contenders(state)
    if not live:
        return True
    # A lone contender has nobody left to bet against once it has matched.
    if len(live) == 1:
        return live[0].bet >= state.current_bet
    return all(seat.has_acted and seat.bet == state.current_bet for seat in live)


def next_active_seat(seats: Sequence[PlayerSeat], start: int) -> Optional[int]:
    """First seat after ``start`` that can still act; None after one full lap without a match."""
    size = len(seats)
    for step in range(1, size + 1):
        idx = (start + step) % size
        if seats[idx].can_act:
            return idx
    return None


def legal_actions(state: TableState, seat_idx: int) -> Dict[str, object]:
    seat = state.seats[seat_idx]
    if state.phase not in BETTING_PHASES or state.round_closed or not seat.can_act:
        return {"legal": [], "call_amount": 0, "min_raise_to": None, "max_raise_to": None}
    call_amount = min(state.current_bet - seat.bet, seat.chips)
    legal = [ActionType.FOLD, ActionType.CALL]
    max_raise_to = seat.chips + seat.bet
    min_raise_to: Optional[int] = None
    if max_raise_to > state.current_bet:
        legal.append(ActionType.RAISE)
        min_raise_to = state.current_bet + 1
    legal.append(ActionType.ALL_IN)
    return {
        "legal": [action.value for action in legal],
        "call_amount": call_amount,
        "min_raise_to": min_raise_to,
        "max_raise_to": max_raise_to if min_raise_to is not None else None,
    }


def apply_action(state: TableState, seat_idx: int, action: Action) -> Tuple[TableState, Events]:
    if state.phase not in BETTING_PHASES:
        raise InvalidPhase(f"No betting round in progress (phase {state.phase.value})")
    if state.round_closed:
        raise RoundClosed("Betting round is closed; advance the phase first")
    if seat_idx != state.active_seat:
        raise InvalidTurn(f"Seat {seat_idx} is not the active seat")
    if not state.seats[seat_idx].can_act:
        raise NoActiveSeat(f"Active seat {seat_idx} cannot act")
    if action.action == ActionType.RAISE:
        if action.amount is None:
            raise InvalidRaise("Raise requires amount")
        if action.amount <= state.current_bet:
            raise InvalidRaise(f"Raise to {action.amount} must exceed current bet {state.current_bet}")
    elif action.action not in (ActionType.FOLD, ActionType.CALL, ActionType.ALL_IN):
        raise ActionRejected(f"Unsupported action {action.action}", code="INVALID_ACTION")

    new = clone(state)
    seat = new.seats[seat_idx]
    events: Events = []

    if action.action == ActionType.FOLD:
        seat.folded = True
        seat.has_acted = True
        events.append({"ev": "FOLD", "seat": seat_idx})
    elif action.action == ActionType.CALL:
        _call(new, seat, events)
    elif action.action == ActionType.RAISE:
        assert action.amount is not None
        _raise_to(new, seat, action.amount, events, label="RAISE")
    else:
        _raise_to(new, seat, seat.chips + seat.bet, events, label="ALL_IN")

    events.extend(_settle_turn(new))
    return new, events


def _call(state: TableState, seat: PlayerSeat, events: Events, label: Optional[str] = None) -> None:
    amount = min(state.current_bet - seat.bet, seat.chips)
    seat.chips -= amount
    seat.bet += amount
    seat.has_acted = True
    if seat.chips == 0:
        seat.all_in = True
    if label is None:
        label = "CALL" if amount > 0 else "CHECK"
    events.append({"ev": label, "seat": seat.seat, "amount": amount, "to": seat.bet, "all_in": seat.all_in})


def _raise_to(state: TableState, seat: PlayerSeat, target: int, events: Events, label: str) -> None:
    total = min(target, seat.chips + seat.bet)
    if total <= state.current_bet:
        # Stack too short to go over the current bet: this is an all-in call.
        _call(state, seat, events, label="ALL_IN" if label == "ALL_IN" else None)
        return
    delta = total - seat.bet
    seat.chips -= delta
    seat.bet = total
    seat.has_acted = True
    if seat.chips == 0:
        seat.all_in = True
    state.current_bet = total
    for other in state.seats:
        if other is not seat and other.can_act:
            other.has_acted = False
    events.append({"ev": label, "seat": seat.seat, "amount": delta, "to": total, "all_in": seat.all_in})


def _settle_turn(state: TableState) -> Events:
    if is_round_closed(state):
        state.round_closed = True
        in_hand = [seat for seat in state.seats if seat.in_hand]
        if len(in_hand) == 1:
            return _award_uncontested(state, in_hand[0])
        return []
    nxt = next_active_seat(state.seats, state.active_seat)
    if nxt is not None:
        state.active_seat = nxt
    return []


def _award_uncontested(state: TableState, winner: PlayerSeat) -> Events:
    amount = state.pot + state.live_bets()
    winner.chips += amount
    for seat in state.seats:
        seat.bet = 0
    state.pot = 0
    state.current_bet = 0
    state.phase = Phase.SHOWDOWN
    state.round_closed = True
    state.winner = winner.seat
    return [{"ev": "POT_AWARD", "seat": winner.seat, "amount": amount, "uncontested": True}]


def advance_phase(state: TableState) -> Tuple[TableState, Events]:
    if state.phase not in BETTING_PHASES:
        raise InvalidPhase(f"Cannot advance from phase {state.phase.value}")
    if not state.round_closed:
        raise RoundNotClosed("Betting round must be completed first")

    new = clone(state)
    events: Events = []
    new.pot += new.live_bets()
    for seat in new.seats:
        seat.reset_for_round()
    new.current_bet = 0
    new.round_closed = False

    if new.phase == Phase.RIVER:
        new.phase = Phase.SHOWDOWN
        events.extend(resolve_showdown(new))
        return new, events

    next_phase, count = STREET_CARDS[new.phase]
    cards = deal(new.deck, count)
    new.community.extend(cards)
    new.phase = next_phase
    events.append({"ev": next_phase.value, "cards": cards_to_labels(cards)})

    first = next_active_seat(new.seats, new.dealer)
    if first is None:
        new.round_closed = True
    else:
        new.active_seat = first
        new.round_closed = is_round_closed(new)
    return new, events


def resolve_showdown(state: TableState) -> Events:
    """Pays the single pot to the best hand(s). Mutates ``state`` in place."""
    events: Events = []
    in_hand = [seat for seat in state.seats if seat.in_hand]
    state.round_closed = True
    if len(in_hand) == 1:
        return _award_uncontested(state, in_hand[0])

    ranks: Dict[int, HandRank] = {}
    for seat in in_hand:
        rank = evaluate_best(seat.hole_cards + state.community)
        ranks[seat.seat] = rank
        events.append(
            {
                "ev": "SHOWDOWN",
                "seat": seat.seat,
                "hand": cards_to_labels(seat.hole_cards),
                "board": cards_to_labels(state.community),
                "rank": rank.name,
            }
        )

    best = min(ranks.values(), key=functools.cmp_to_key(compare))
    winners = sorted(idx for idx, rank in ranks.items() if compare(rank, best) == 0)
    share, remainder = divmod(state.pot, len(winners))
    for position, seat_idx in enumerate(winners):
        payout = share + (1 if position < remainder else 0)
        state.seats[seat_idx].chips += payout
        events.append(
            {
                "ev": "POT_AWARD",
                "seat": seat_idx,
                "amount": payout,
                "rank": best.name,
                "split": len(winners) > 1,
            }
        )
    state.pot = 0
    state.winner = winners[0] if len(winners) == 1 else None
    return events
