from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .cards import Card, Deck


class Phase(str, Enum):
    WAITING = "WAITING"
    PRE_FLOP = "PRE_FLOP"
    FLOP = "FLOP"
    TURN = "TURN"
    RIVER = "RIVER"
    SHOWDOWN = "SHOWDOWN"
    TOURNAMENT_COMPLETE = "TOURNAMENT_COMPLETE"


BETTING_PHASES = (Phase.PRE_FLOP, Phase.FLOP, Phase.TURN, Phase.RIVER)


class ActionType(str, Enum):
    FOLD = "FOLD"
    CALL = "CALL"
    RAISE = "RAISE"
    ALL_IN = "ALL_IN"


class TournamentMode(str, Enum):
    STANDARD = "standard"
    ORACLE = "oracle"
    SILENT = "silent"
    RITUAL = "ritual"
    NO_BLUFF = "nobluff"


@dataclass
class TableConfig:
    seats: int = 6
    starting_stack: int = 1_000
    sb: int = 10
    bb: int = 20
    ai_delay_ms: int = 1_500
    advance_delay_ms: int = 1_000
    log_limit: int = 50
    seed: Optional[int] = None


@dataclass(frozen=True)
class Action:
    action: ActionType
    amount: Optional[int] = None


@dataclass
class PlayerSeat:
    seat: int
    player_id: str
    name: str
    chips: int
    is_human: bool = False
    hole_cards: List[Card] = field(default_factory=list)
    bet: int = 0
    folded: bool = False
    all_in: bool = False
    has_acted: bool = False
    eliminated: bool = False

    @property
    def can_act(self) -> bool:
        return not (self.folded or self.all_in or self.eliminated)

    @property
    def in_hand(self) -> bool:
        return not (self.folded or self.eliminated)

    def reset_for_hand(self) -> None:
        self.hole_cards = []
        self.bet = 0
        self.folded = self.eliminated
        self.all_in = False
        self.has_acted = False

    def reset_for_round(self) -> None:
        self.bet = 0
        self.has_acted = False


@dataclass
class TableState:
    table_id: str
    seats: List[PlayerSeat]
    deck: Deck
    small_blind: int
    big_blind: int
    mode: TournamentMode = TournamentMode.STANDARD
    community: List[Card] = field(default_factory=list)
    pot: int = 0
    current_bet: int = 0
    phase: Phase = Phase.WAITING
    active_seat: int = 0
    dealer: int = 0
    round_closed: bool = False
    hand_number: int = 0
    winner: Optional[int] = None
    tournament_winner: Optional[int] = None

    def seat_of(self, player_id: str) -> Optional[PlayerSeat]:
        for seat in self.seats:
            if seat.player_id == player_id:
                return seat
        return None

    def live_bets(self) -> int:
        return sum(seat.bet for seat in self.seats)

    def total_chips(self) -> int:
        # Constant for the lifetime of a tournament.
        return sum(seat.chips for seat in self.seats) + self.pot + self.live_bets()

    def remaining_seats(self) -> List[PlayerSeat]:
        return [seat for seat in self.seats if not seat.eliminated]
