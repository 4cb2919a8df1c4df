from __future__ import annotations

import logging
import random
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional, Sequence, Tuple, Union

from . import betting, tournament
from .betting import Events, clone, legal_actions
from .cards import cards_to_labels
from .errors import ActionRejected, EngineHalted, InvalidPhase, InvalidTurn, InvariantViolation
from .models import BETTING_PHASES, Action, ActionType, Phase, TableConfig, TableState, TournamentMode
from .policy import decide_action
from .scheduler import ManualScheduler, Scheduler, TurnToken

LOGGER = logging.getLogger("poker_engine")

Policy = Callable[[int, TableState, random.Random], Action]
Listener = Callable[[Events], None]

# GameEngine owns the latest TableState value and nothing else. Rules live in
# holdem.betting / holdem.tournament; this class sequences them, keeps the
# audit log, and schedules the house seats.


class GameEngine:
    """Single-table tournament: one human seat (optional) and policy-driven house seats."""

    def __init__(
        self,
        config: TableConfig,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        policy_rng: Optional[random.Random] = None,
        policy: Optional[Policy] = None,
    ) -> None:
        self.config = config
        self.scheduler = scheduler or ManualScheduler()
        self.scheduler.bind(lambda: self.state)
        # Shuffle and bot randomness are kept apart so a seeded deck stays reproducible.
        self.rng = rng or random.Random(config.seed)
        self.policy_rng = policy_rng or random.Random(None if config.seed is None else config.seed + 1)
        self.policy: Policy = policy or decide_action
        self.state: Optional[TableState] = None
        self.log: Deque[str] = deque(maxlen=config.log_limit)
        self.listeners: List[Listener] = []
        self.halted: Optional[str] = None
        self._tables = 0

    # Boundary operations ---------------------------------------------

    def start_tournament(
        self,
        names: Sequence[str],
        mode: Union[TournamentMode, str] = TournamentMode.STANDARD,
        human_seat: Optional[int] = None,
    ) -> TableState:
        # Bad input must leave a halted engine halted.
        state = tournament.new_tournament(
            names,
            self.config,
            mode=TournamentMode(mode),
            human_seat=human_seat,
            table_id=f"T-{self._tables + 1}",
        )
        self.halted = None
        self._tables += 1
        self.log.clear()
        self.state = state
        state, events = self._transition(tournament.start_hand, state, self.rng)
        LOGGER.info("Tournament %s started with %s (mode=%s)", state.table_id, ", ".join(names), state.mode.value)
        self._record(f"Tournament started - Hand #{state.hand_number}")
        self._record(f"Players: {', '.join(names)}")
        self._commit(state, events)
        return self.table_state()

    def submit_action(
        self,
        player_id: str,
        action: Union[ActionType, str],
        amount: Optional[int] = None,
    ) -> TableState:
        state = self._require_state()
        seat = state.seat_of(player_id)
        if seat is None:
            raise InvalidTurn(f"Unknown player {player_id}")
        try:
            action_type = ActionType(action)
        except ValueError:
            raise ActionRejected(f"Unknown action {action}", code="INVALID_ACTION") from None
        try:
            new, events = self._transition(betting.apply_action, state, seat.seat, Action(action_type, amount))
        except ActionRejected as exc:
            LOGGER.warning(
                "Rejected action player=%s action=%s amount=%s reason=%s",
                player_id,
                action_type.value,
                amount,
                exc,
            )
            if isinstance(exc, InvalidTurn):
                self._record(f"It's not {seat.name}'s turn!")
            else:
                self._record(f"{seat.name}: {exc.msg}")
            raise
        LOGGER.debug("Applied action hand=%s seat=%s action=%s amount=%s", state.hand_number, seat.seat, action_type.value, amount)
        self._commit(new, events)
        return self.table_state()

    def advance_phase(self) -> TableState:
        state = self._require_state()
        try:
            new, events = self._transition(betting.advance_phase, state)
        except ActionRejected as exc:
            self._record(exc.msg)
            raise
        self._commit(new, events)
        return self.table_state()

    def start_next_hand(self) -> TableState:
        state = self._require_state()
        new, events = self._transition(tournament.start_next_hand, state, self.rng)
        if new.phase == Phase.TOURNAMENT_COMPLETE:
            LOGGER.info("Tournament %s complete after %s hands", new.table_id, new.hand_number)
        else:
            LOGGER.info("Hand %s started on %s", new.hand_number, new.table_id)
        self._commit(new, events)
        return self.table_state()

    def table_state(self) -> TableState:
        return clone(self._require_state())

    def add_listener(self, listener: Listener) -> None:
        self.listeners.append(listener)

    # Snapshot ---------------------------------------------------------

    def snapshot(self, viewer: Optional[str] = None) -> Dict[str, object]:
        """Read-only view. ``viewer`` hides every other seat's hole cards until showdown."""
        if self.state is None:
            return {"phase": Phase.WAITING.value, "seats": [], "log": list(self.log), "halted": self.halted}
        state = self.state
        in_hand = [seat for seat in state.seats if seat.in_hand]
        shown_down = state.phase == Phase.SHOWDOWN and len(in_hand) > 1
        betting_open = state.phase in BETTING_PHASES and not state.round_closed

        seats = []
        for seat in state.seats:
            visible = viewer is None or seat.player_id == viewer or (shown_down and seat.in_hand)
            seats.append(
                {
                    "seat": seat.seat,
                    "player_id": seat.player_id,
                    "name": seat.name,
                    "chips": seat.chips,
                    "bet": seat.bet,
                    "folded": seat.folded,
                    "all_in": seat.all_in,
                    "has_acted": seat.has_acted,
                    "eliminated": seat.eliminated,
                    "is_human": seat.is_human,
                    "is_dealer": seat.seat == state.dealer and not seat.eliminated,
                    "hole": cards_to_labels(seat.hole_cards) if visible else None,
                    "hole_count": len(seat.hole_cards),
                }
            )

        payload: Dict[str, object] = {
            "table_id": state.table_id,
            "hand_number": state.hand_number,
            "mode": state.mode.value,
            "phase": state.phase.value,
            "pot": state.pot,
            "current_bet": state.current_bet,
            "community": cards_to_labels(state.community),
            "dealer": state.dealer,
            "active_seat": state.active_seat if betting_open else None,
            "round_closed": state.round_closed,
            "sb": state.small_blind,
            "bb": state.big_blind,
            "winner": state.winner,
            "tournament_winner": state.tournament_winner,
            "seats": seats,
            "log": list(self.log),
            "halted": self.halted,
        }
        you = state.seat_of(viewer) if viewer else None
        if you is not None and betting_open and you.seat == state.active_seat:
            payload["you"] = {"seat": you.seat, **legal_actions(state, you.seat)}
        return payload

    # Internals --------------------------------------------------------

    def _require_state(self) -> TableState:
        if self.halted:
            raise EngineHalted(f"Engine halted: {self.halted}; start a new tournament")
        if self.state is None:
            raise InvalidPhase("No tournament in progress")
        return self.state

    def _transition(self, fn: Callable[..., Tuple[TableState, Events]], *args: object) -> Tuple[TableState, Events]:
        try:
            return fn(*args)
        except InvariantViolation as exc:
            LOGGER.exception("Invariant violation; abandoning hand")
            self.halted = str(exc)
            self._record(f"Engine halted: {exc}")
            self._notify([{"ev": "ENGINE_HALTED", "reason": self.halted}])
            raise

    def _commit(self, state: TableState, events: Events) -> None:
        self.state = state
        for event in events:
            for line in self._describe(event, state):
                self._record(line)
        self._notify(events)
        self._schedule_next()

    def _notify(self, events: Events) -> None:
        for listener in self.listeners:
            listener(events)

    def _schedule_next(self) -> None:
        state = self.state
        if state is None or state.phase not in BETTING_PHASES:
            return
        token = TurnToken.of(state)
        if state.round_closed:
            self.scheduler.schedule(self.config.advance_delay_ms, token, self._auto_advance, label="advance")
            return
        if not state.seats[state.active_seat].is_human:
            self.scheduler.schedule(self.config.ai_delay_ms, token, self._run_house_turn, label="house_turn")

    def _auto_advance(self) -> None:
        self.advance_phase()

    def _run_house_turn(self) -> None:
        state = self._require_state()
        seat = state.seats[state.active_seat]
        action = self.policy(seat.seat, state, self.policy_rng)
        try:
            self.submit_action(seat.player_id, action.action, action.amount)
        except ActionRejected:
            # Same preference as a timed-out client: check, else call.
            LOGGER.warning("House seat %s produced an illegal %s; falling back to call", seat.seat, action)
            self.submit_action(seat.player_id, ActionType.CALL)

    def _record(self, message: str) -> None:
        self.log.append(f"[{datetime.now().strftime('%H:%M:%S')}] {message}")

    def _describe(self, event: Dict[str, object], state: TableState) -> List[str]:
        ev = event["ev"]
        seat_idx = event.get("seat")
        name = state.seats[seat_idx].name if isinstance(seat_idx, int) else ""
        all_in = " (ALL-IN)" if event.get("all_in") else ""

        if ev == "START_HAND":
            return [f"--- Hand #{event['hand_number']} ---", f"Dealer: {state.seats[state.dealer].name}"]
        if ev == "POST_BLINDS":
            lines = [
                f"{state.seats[event['sb_seat']].name} posts small blind ({event['sb']})",
                f"{state.seats[event['bb_seat']].name} posts big blind ({event['bb']})",
            ]
            if not state.round_closed:
                lines.append(f"First to act: {state.seats[state.active_seat].name}")
            return lines
        if ev == "FOLD":
            return [f"{name} folds"]
        if ev == "CHECK":
            return [f"{name} checks"]
        if ev == "CALL":
            return [f"{name} calls {event['amount']}{all_in}"]
        if ev == "RAISE":
            return [f"{name} raises to {event['to']}{all_in}"]
        if ev == "ALL_IN":
            return [f"{name} goes all-in with {event['to']}"]
        if ev in (Phase.FLOP.value, Phase.TURN.value, Phase.RIVER.value):
            street = str(ev).capitalize()
            return [f"{street} dealt: {' '.join(event['cards'])}"]
        if ev == "SHOWDOWN":
            return [f"{name}: {event['rank']} ({', '.join(event['hand'])})"]
        if ev == "POT_AWARD":
            if event.get("uncontested"):
                return [f"{name} wins {event['amount']} (everyone else folded)"]
            if event.get("split"):
                return [f"Split pot! {name} wins {event['amount']} with {event['rank']}"]
            return [f"{name} wins {event['amount']} with {event['rank']}"]
        if ev == "ELIMINATED":
            return [f"💀 {name} has been eliminated from the tournament"]
        if ev == "TOURNAMENT_COMPLETE":
            return [f"🏆 TOURNAMENT COMPLETE! {name} wins the tournament!"]
        return []
