from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .models import Phase, TableState

LOGGER = logging.getLogger("poker_scheduler")

StateSource = Callable[[], Optional[TableState]]


@dataclass(frozen=True)
class TurnToken:
    """The parts of the table a deferred callback depends on."""

    table_id: str
    hand_number: int
    phase: Phase
    active_seat: int
    round_closed: bool
    winner: Optional[int]

    @classmethod
    def of(cls, state: TableState) -> "TurnToken":
        return cls(
            table_id=state.table_id,
            hand_number=state.hand_number,
            phase=state.phase,
            active_seat=state.active_seat,
            round_closed=state.round_closed,
            winner=state.winner,
        )


@dataclass
class ScheduledTask:
    label: str
    token: TurnToken
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False
    handle: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()


class Scheduler:
    """Single-shot delayed callbacks guarded by a TurnToken.

    A task only runs if, when it fires, the table still yields the token it was
    scheduled with. Anything that moved the table on (an action, a new hand, a
    new tournament) turns older tasks into no-ops.
    """

    def __init__(self, current: Optional[StateSource] = None) -> None:
        self._current = current

    def bind(self, current: StateSource) -> None:
        self._current = current

    def schedule(self, delay_ms: int, token: TurnToken, callback: Callable[[], None], label: str = "task") -> ScheduledTask:
        task = ScheduledTask(label=label, token=token, callback=callback)
        self._enqueue(task, max(delay_ms, 0))
        return task

    def is_current(self, token: TurnToken) -> bool:
        state = self._current() if self._current else None
        return state is not None and TurnToken.of(state) == token

    def _fire(self, task: ScheduledTask) -> bool:
        """Runs the callback if the task is still current. Returns whether it ran."""
        if task.cancelled or task.fired:
            return False
        task.fired = True
        if not self.is_current(task.token):
            LOGGER.debug("Dropping stale %s for %s", task.label, task.token)
            return False
        task.callback()
        return True

    def _enqueue(self, task: ScheduledTask, delay_ms: int) -> None:
        raise NotImplementedError


class AsyncioScheduler(Scheduler):
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None, current: Optional[StateSource] = None) -> None:
        super().__init__(current)
        self._loop = loop

    def _enqueue(self, task: ScheduledTask, delay_ms: int) -> None:
        loop = self._loop or asyncio.get_running_loop()
        task.handle = loop.call_later(delay_ms / 1000, self._fire, task)


class ManualScheduler(Scheduler):
    """Virtual clock for tests and headless simulations."""

    def __init__(self, current: Optional[StateSource] = None) -> None:
        super().__init__(current)
        self.now_ms = 0
        self._queue: List[Tuple[int, int, ScheduledTask]] = []
        self._seq = itertools.count()

    def _enqueue(self, task: ScheduledTask, delay_ms: int) -> None:
        heapq.heappush(self._queue, (self.now_ms + delay_ms, next(self._seq), task))

    @property
    def pending(self) -> List[ScheduledTask]:
        return [task for _, _, task in sorted(self._queue) if not task.cancelled]

    def advance(self, ms: int) -> int:
        """Move the clock forward and fire everything that came due. Returns how many callbacks ran."""
        deadline = self.now_ms + ms
        fired = 0
        while self._queue and self._queue[0][0] <= deadline:
            due, _, task = heapq.heappop(self._queue)
            self.now_ms = due
            if self._fire(task):
                fired += 1
        self.now_ms = deadline
        return fired

    def run_next(self) -> bool:
        """Pops the next live task, stale or not. False once the queue is empty."""
        while self._queue:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self.now_ms = max(self.now_ms, due)
            self._fire(task)
            return True
        return False

    def run_until_idle(self, max_tasks: int = 10_000) -> int:
        ran = 0
        while ran < max_tasks and self.run_next():
            ran += 1
        return ran
