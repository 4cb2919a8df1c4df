"""No-limit hold'em tournament engine: one human seat against policy-driven house seats."""

from .cards import Card, Deck, RANKS, SUITS, deal, draw, new_shuffled_deck
from .errors import ActionRejected, EngineHalted, InvariantViolation
from .evaluator import HandRank, compare, evaluate_best, parse_cards
from .game import GameEngine
from .models import Action, ActionType, Phase, PlayerSeat, TableConfig, TableState, TournamentMode
from .policy import PolicyParams, decide_action
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler, TurnToken

__all__ = [
    "Card",
    "Deck",
    "RANKS",
    "SUITS",
    "deal",
    "draw",
    "new_shuffled_deck",
    "ActionRejected",
    "EngineHalted",
    "InvariantViolation",
    "HandRank",
    "compare",
    "evaluate_best",
    "parse_cards",
    "GameEngine",
    "Action",
    "ActionType",
    "Phase",
    "PlayerSeat",
    "TableConfig",
    "TableState",
    "TournamentMode",
    "PolicyParams",
    "decide_action",
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "TurnToken",
]
