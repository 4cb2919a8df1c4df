from __future__ import annotations

import random
from typing import List, Optional, Sequence, Tuple

from .betting import Events, clone, is_round_closed, next_active_seat
from .cards import Deck, deal, new_shuffled_deck
from .errors import InvalidPhase
from .models import Phase, PlayerSeat, TableConfig, TableState, TournamentMode

# Cross-hand bookkeeping: seating, the button, blinds and eliminations. Betting
# inside a hand belongs to holdem.betting.


def new_tournament(
    names: Sequence[str],
    config: TableConfig,
    mode: TournamentMode = TournamentMode.STANDARD,
    human_seat: Optional[int] = None,
    table_id: str = "T-1",
) -> TableState:
    if len(names) < 2:
        raise ValueError("At least two players are required")
    if len(names) > config.seats:
        raise ValueError(f"Table seats {config.seats} players at most")
    if human_seat is not None and not 0 <= human_seat < len(names):
        raise ValueError(f"Invalid human seat {human_seat}")

    seats: List[PlayerSeat] = [
        PlayerSeat(
            seat=idx,
            player_id=f"player_{idx}",
            name=name,
            chips=config.starting_stack,
            is_human=idx == human_seat,
        )
        for idx, name in enumerate(names)
    ]

    return TableState(
        table_id=table_id,
        seats=seats,
        deck=Deck(cards=[]),
        small_blind=config.sb,
        big_blind=config.bb,
        mode=mode,
    )


def rotate_dealer(seats: Sequence[PlayerSeat], dealer: int) -> int:
    size = len(seats)
    for step in range(1, size + 1):
        idx = (dealer + step) % size
        if not seats[idx].eliminated:
            return idx
    return dealer


def blind_positions(seats: Sequence[PlayerSeat], dealer: int) -> Tuple[int, int, int]:
    """Small blind, big blind and first actor, counted over non-eliminated seats only."""
    ring = [seat.seat for seat in seats if not seat.eliminated]
    pos = ring.index(dealer)
    return (
        ring[(pos + 1) % len(ring)],
        ring[(pos + 2) % len(ring)],
        ring[(pos + 3) % len(ring)],
    )


def start_hand(state: TableState, rng: Optional[random.Random] = None) -> Tuple[TableState, Events]:
    if state.phase == Phase.TOURNAMENT_COMPLETE:
        raise InvalidPhase("Tournament is complete")
    if len(state.remaining_seats()) < 2:
        raise InvalidPhase("Not enough players to start a hand")

    new = clone(state)
    new.hand_number += 1
    new.dealer = rotate_dealer(new.seats, new.dealer)
    new.deck = new_shuffled_deck(rng)
    new.community = []
    new.pot = 0
    new.winner = None
    new.round_closed = False
    for seat in new.seats:
        seat.reset_for_hand()

    events: Events = [{"ev": "START_HAND", "hand_number": new.hand_number, "dealer": new.dealer}]
    _deal_hole_cards(new)

    sb_seat, bb_seat, first = blind_positions(new.seats, new.dealer)
    sb_paid = _post_blind(new.seats[sb_seat], new.small_blind)
    bb_paid = _post_blind(new.seats[bb_seat], new.big_blind)
    new.seats[sb_seat].has_acted = False
    new.seats[bb_seat].has_acted = True
    new.current_bet = max(sb_paid, bb_paid)
    new.phase = Phase.PRE_FLOP
    events.append(
        {
            "ev": "POST_BLINDS",
            "sb_seat": sb_seat,
            "bb_seat": bb_seat,
            "sb": sb_paid,
            "bb": bb_paid,
        }
    )

    if new.seats[first].can_act:
        new.active_seat = first
    else:
        nxt = next_active_seat(new.seats, first)
        if nxt is not None:
            new.active_seat = nxt
    new.round_closed = is_round_closed(new)
    return new, events


def _deal_hole_cards(state: TableState) -> None:
    size = len(state.seats)
    order = [(state.dealer + step) % size for step in range(1, size + 1)]
    for _ in range(2):
        for seat_idx in order:
            seat = state.seats[seat_idx]
            if seat.eliminated:
                continue
            seat.hole_cards.extend(deal(state.deck, 1))


def _post_blind(seat: PlayerSeat, amount: int) -> int:
    paid = min(amount, seat.chips)
    seat.chips -= paid
    seat.bet += paid
    if seat.chips == 0:
        seat.all_in = True
    return paid


def eliminate_busted(state: TableState) -> Events:
    events: Events = []
    for seat in state.seats:
        if seat.chips == 0 and not seat.eliminated:
            seat.eliminated = True
            seat.folded = True
            seat.hole_cards = []
            events.append({"ev": "ELIMINATED", "seat": seat.seat})
    return events


def start_next_hand(state: TableState, rng: Optional[random.Random] = None) -> Tuple[TableState, Events]:
    if state.phase == Phase.TOURNAMENT_COMPLETE:
        raise InvalidPhase("Tournament is complete")
    if state.phase != Phase.SHOWDOWN:
        raise InvalidPhase("Current hand is still in progress")

    new = clone(state)
    events = eliminate_busted(new)
    remaining = new.remaining_seats()
    if len(remaining) == 1:
        new.phase = Phase.TOURNAMENT_COMPLETE
        new.tournament_winner = remaining[0].seat
        new.round_closed = True
        events.append({"ev": "TOURNAMENT_COMPLETE", "seat": remaining[0].seat})
        return new, events

    new, hand_events = start_hand(new, rng)
    return new, events + hand_events
