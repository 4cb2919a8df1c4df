#!/usr/bin/env python3
"""Play all-house tournaments headlessly on a virtual clock.

Every seat is driven by the decision policy and every timer runs through a
ManualScheduler, so thousands of hands finish in seconds. Chip conservation is
checked after every hand.

Example:
    python scripts/tourney_sim.py --players 6 --tournaments 20 --seed 7
"""

from __future__ import annotations

import argparse
import collections
import logging
import random
from typing import Counter, Optional

from holdem.game import GameEngine
from holdem.models import Phase, TableConfig, TournamentMode
from holdem.scheduler import ManualScheduler

LOGGER = logging.getLogger("tourney_sim")


class ChipLeak(RuntimeError):
    pass


def play_tournament(
    engine: GameEngine,
    players: int,
    mode: TournamentMode = TournamentMode.STANDARD,
    max_hands: int = 2_000,
) -> Optional[int]:
    """Run one tournament to completion. Returns the winning seat, or None if the hand cap hit first."""
    scheduler = engine.scheduler
    assert isinstance(scheduler, ManualScheduler)

    names = [f"Player {idx}" for idx in range(1, players + 1)]
    state = engine.start_tournament(names, mode=mode)
    expected = state.total_chips()

    while state.hand_number <= max_hands:
        scheduler.run_until_idle()
        state = engine.table_state()
        if state.total_chips() != expected:
            raise ChipLeak(f"Hand {state.hand_number}: {state.total_chips()} chips on table, expected {expected}")
        if state.phase == Phase.TOURNAMENT_COMPLETE:
            return state.tournament_winner
        state = engine.start_next_hand()
    LOGGER.warning("Tournament %s stopped at the %s hand cap", state.table_id, max_hands)
    return None


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run headless all-house tournaments")
    parser.add_argument("--players", type=int, default=6)
    parser.add_argument("--tournaments", type=int, default=10)
    parser.add_argument("--starting-stack", type=int, default=1_000)
    parser.add_argument("--sb", type=int, default=10)
    parser.add_argument("--bb", type=int, default=20)
    parser.add_argument("--mode", default=TournamentMode.STANDARD.value, choices=[mode.value for mode in TournamentMode])
    parser.add_argument("--max-hands", type=int, default=2_000)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = TableConfig(
        seats=args.players,
        starting_stack=args.starting_stack,
        sb=args.sb,
        bb=args.bb,
        seed=args.seed,
    )
    engine = GameEngine(
        config,
        scheduler=ManualScheduler(),
        rng=random.Random(args.seed),
        policy_rng=random.Random(args.seed + 1),
    )

    wins: Counter[Optional[int]] = collections.Counter()
    for number in range(1, args.tournaments + 1):
        winner = play_tournament(engine, args.players, TournamentMode(args.mode), args.max_hands)
        state = engine.table_state()
        wins[winner] += 1
        LOGGER.info("Tournament %s: winner seat %s after %s hands", number, winner, state.hand_number)

    for seat, count in sorted(wins.items(), key=lambda item: -item[1]):
        label = "unfinished" if seat is None else f"seat {seat}"
        LOGGER.info("%s: %s", label, count)


if __name__ == "__main__":
    main()
