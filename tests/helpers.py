from __future__ import annotations

import random
from typing import Iterable, List, Optional, Sequence, Tuple

from holdem import betting
from holdem.betting import Events
from holdem.game import GameEngine
from holdem.models import BETTING_PHASES, Action, ActionType, Phase, TableConfig, TableState
from holdem.scheduler import ManualScheduler
from holdem.tournament import new_tournament, start_hand


def new_table(
    *,
    seats: int = 6,
    starting_stack: int = 1_000,
    sb: int = 10,
    bb: int = 20,
    seed: int = 42,
    human_seat: Optional[int] = None,
) -> TableState:
    """First hand of a fresh tournament, blinds posted."""
    config = TableConfig(seats=seats, starting_stack=starting_stack, sb=sb, bb=bb)
    names = [f"Player{idx}" for idx in range(seats)]
    state = new_tournament(names, config, human_seat=human_seat)
    state, _ = start_hand(state, random.Random(seed))
    return state


def act(state: TableState, action: ActionType, amount: Optional[int] = None) -> Tuple[TableState, Events]:
    return betting.apply_action(state, state.active_seat, Action(action, amount))


def perform_actions(state: TableState, actions: Iterable[Tuple[ActionType, Optional[int]]]) -> TableState:
    """Apply a scripted sequence of (action, amount) for whoever is active."""
    for action, amount in actions:
        state, _ = act(state, action, amount)
    return state


def play_out_hand(state: TableState) -> Tuple[TableState, Events]:
    """Check/call every seat down to showdown."""
    events: Events = []
    while state.phase in BETTING_PHASES:
        if state.round_closed:
            state, produced = betting.advance_phase(state)
        else:
            state, produced = act(state, ActionType.CALL)
        events.extend(produced)
    return state, events


def create_engine(
    *,
    seats: int = 6,
    starting_stack: int = 1_000,
    sb: int = 10,
    bb: int = 20,
    log_limit: int = 50,
    seed: int = 42,
    policy=None,
) -> GameEngine:
    config = TableConfig(
        seats=seats,
        starting_stack=starting_stack,
        sb=sb,
        bb=bb,
        log_limit=log_limit,
        seed=seed,
    )
    return GameEngine(config, scheduler=ManualScheduler(), policy=policy)


def run_tournament(engine: GameEngine, names: Sequence[str], max_hands: int = 1_000) -> List[TableState]:
    """Drive an all-house tournament to the end. Returns the table after every hand."""
    history = [engine.start_tournament(names)]
    scheduler = engine.scheduler
    assert isinstance(scheduler, ManualScheduler)
    while len(history) <= max_hands:
        scheduler.run_until_idle()
        state = engine.table_state()
        history.append(state)
        if state.phase == Phase.TOURNAMENT_COMPLETE:
            break
        engine.start_next_hand()
    return history
