from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional

from .errors import DeckExhausted

RANK_LABELS = "23456789TJQKA"
RANKS = tuple(range(2, 15))
SUITS = "hdcs"
SUIT_SYMBOLS = {"h": "♥", "d": "♦", "c": "♣", "s": "♠"}
DECK_SIZE = len(RANKS) * len(SUITS)


@dataclass(frozen=True)
class Card:
    rank: int
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    def __deepcopy__(self, memo: dict) -> "Card":
        # Immutable; table snapshots can share card instances.
        return self

    @property
    def label(self) -> str:
        return f"{RANK_LABELS[self.rank - 2]}{self.suit}"

    @property
    def pretty(self) -> str:
        return f"{RANK_LABELS[self.rank - 2]}{SUIT_SYMBOLS[self.suit]}"


@dataclass
class Deck:
    # Cards are handed out by cursor; the list itself is never reordered after the shuffle.
    cards: List[Card]
    cursor: int = 0

    @property
    def remaining(self) -> int:
        return len(self.cards) - self.cursor


def canonical_deck() -> List[Card]:
    return [Card(rank, suit) for suit in SUITS for rank in RANKS]


def new_shuffled_deck(rng: Optional[random.Random] = None) -> Deck:
    """Fisher-Yates over the canonical 52 cards."""
    rng = rng or random.Random()
    cards = canonical_deck()
    for idx in range(len(cards) - 1, 0, -1):
        swap = rng.randint(0, idx)
        cards[idx], cards[swap] = cards[swap], cards[idx]
    return Deck(cards=cards)


def draw(deck: Deck) -> Card:
    if deck.cursor >= len(deck.cards):
        raise DeckExhausted(f"Deck exhausted at cursor {deck.cursor}")
    card = deck.cards[deck.cursor]
    deck.cursor += 1
    return card


def deal(deck: Deck, count: int) -> List[Card]:
    if deck.remaining < count:
        raise DeckExhausted(f"Not enough cards left in deck ({deck.remaining} < {count})")
    return [draw(deck) for _ in range(count)]


def cards_to_labels(cards: List[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    if len(label) != 2 or label[0] not in RANK_LABELS:
        raise ValueError(f"Invalid card label: {label}")
    return Card(RANK_LABELS.index(label[0]) + 2, label[1])
