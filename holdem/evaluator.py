from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .cards import Card, parse_label

ROYAL_FLUSH = 9
STRAIGHT_FLUSH = 8
FOUR_OF_A_KIND = 7
FULL_HOUSE = 6
FLUSH = 5
STRAIGHT = 4
THREE_OF_A_KIND = 3
TWO_PAIR = 2
ONE_PAIR = 1
HIGH_CARD = 0

CATEGORY_NAMES = {
    ROYAL_FLUSH: "Royal Flush",
    STRAIGHT_FLUSH: "Straight Flush",
    FOUR_OF_A_KIND: "Four of a Kind",
    FULL_HOUSE: "Full House",
    FLUSH: "Flush",
    STRAIGHT: "Straight",
    THREE_OF_A_KIND: "Three of a Kind",
    TWO_PAIR: "Two Pair",
    ONE_PAIR: "Pair",
    HIGH_CARD: "High Card",
}

WHEEL = {14, 5, 4, 3, 2}


@dataclass(frozen=True)
class HandRank:
    category: int
    kickers: Tuple[int, ...]

    @property
    def name(self) -> str:
        return CATEGORY_NAMES[self.category]

    @property
    def top_kicker(self) -> int:
        return self.kickers[0] if self.kickers else 0


def compare(first: HandRank, second: HandRank) -> int:
    """Negative when ``first`` is the stronger hand, positive when ``second`` is, 0 on a tie."""
    if first.category != second.category:
        return second.category - first.category
    for idx in range(max(len(first.kickers), len(second.kickers))):
        left = first.kickers[idx] if idx < len(first.kickers) else 0
        right = second.kickers[idx] if idx < len(second.kickers) else 0
        if left != right:
            return right - left
    return 0


def evaluate_best(cards: Sequence[Card]) -> HandRank:
    """Best five-card hand out of 5 to 7 cards (Texas Hold'em)."""
    if not 5 <= len(cards) <= 7:
        raise ValueError(f"Expected 5 to 7 cards, got {len(cards)}")
    best: Optional[HandRank] = None
    for combo in itertools.combinations(cards, 5):
        rank = evaluate_five(combo)
        if best is None or compare(rank, best) < 0:
            best = rank
    assert best is not None
    return best


def evaluate_five(cards: Iterable[Card]) -> HandRank:
    cards = list(cards)
    values = sorted((card.rank for card in cards), reverse=True)
    is_flush = len({card.suit for card in cards}) == 1
    straight_high = _straight_high(values)

    counts = Counter(values)
    # Bigger groups first, then higher ranks: (quad, kicker), (trips, pair), (hi pair, lo pair, kicker)...
    grouped = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    shape = [count for _, count in grouped]
    ordered = tuple(value for value, _ in grouped)

    if straight_high and is_flush:
        if straight_high == 14:
            return HandRank(ROYAL_FLUSH, (14,))
        return HandRank(STRAIGHT_FLUSH, (straight_high,))
    if shape[0] == 4:
        return HandRank(FOUR_OF_A_KIND, ordered)
    if shape[:2] == [3, 2]:
        return HandRank(FULL_HOUSE, ordered)
    if is_flush:
        return HandRank(FLUSH, tuple(values))
    if straight_high:
        return HandRank(STRAIGHT, (straight_high,))
    if shape[0] == 3:
        return HandRank(THREE_OF_A_KIND, ordered)
    if shape[:2] == [2, 2]:
        return HandRank(TWO_PAIR, ordered)
    if shape[0] == 2:
        return HandRank(ONE_PAIR, ordered)
    return HandRank(HIGH_CARD, tuple(values))


def _straight_high(values: List[int]) -> Optional[int]:
    distinct = set(values)
    if len(distinct) != 5:
        return None
    if max(distinct) - min(distinct) == 4:
        return max(distinct)
    if distinct == WHEEL:
        return 5
    return None


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
