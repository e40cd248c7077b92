"""
Phase Scheduler

Cooperative, single-threaded timing for round phases. Nothing here blocks:
callbacks are queued on a TimerQueue and run when the host frame loop polls
it. Every deferred callback carries the scheduler generation that created it,
so callbacks belonging to a superseded round never touch the new one.
"""

import heapq
import itertools
import time
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from ..utils.errors import StaleCallback
from ..utils.game_logger import game_logger


class TimerQueue:
    """Deferred callbacks ordered by due time, then by insertion."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._heap: List[tuple] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self.clock()

    def call_later(self, delay_ms: float, callback: Callable, *args: Any) -> int:
        """Queue callback to run no earlier than delay_ms from now."""
        seq = next(self._counter)
        due = self.now() + max(0.0, float(delay_ms)) / 1000.0
        heapq.heappush(self._heap, (due, seq, callback, args))
        return seq

    def run_due(self) -> int:
        """Run every callback that is due. Returns how many ran."""
        now = self.now()
        ran = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, callback, args = heapq.heappop(self._heap)
            callback(*args)
            ran += 1
        return ran

    def next_due(self) -> Optional[float]:
        return self._heap[0][0] if self._heap else None

    def clear(self) -> None:
        self._heap.clear()

    def __len__(self) -> int:
        return len(self._heap)


class PlaybackState(Enum):
    PENDING = "pending"
    VISIBLE = "visible"
    GAP = "gap"
    DONE = "done"
    CANCELLED = "cancelled"


class Playback:
    """
    One play_sequence run, as an explicit state machine.

    pending -> visible -> gap -> visible -> ... -> done. Step N+1 is never
    shown before step N is hidden.
    """

    def __init__(self, scheduler: "PhaseScheduler", steps: Sequence[Any],
                 highlight_ms: float, gap_ms: float,
                 on_step_visible: Callable[[Any], None],
                 on_step_hidden: Callable[[Any], None],
                 on_complete: Callable[[], None]):
        self.scheduler = scheduler
        self.steps = list(steps)
        self.highlight_ms = highlight_ms
        self.gap_ms = gap_ms
        self.on_step_visible = on_step_visible
        self.on_step_hidden = on_step_hidden
        self.on_complete = on_complete
        self.index = 0
        self.generation = scheduler.generation
        self._state = PlaybackState.PENDING

    @property
    def state(self) -> PlaybackState:
        if self._state != PlaybackState.DONE and self.generation != self.scheduler.generation:
            return PlaybackState.CANCELLED
        return self._state

    def start(self) -> "Playback":
        self.scheduler.defer(0, self._show_step)
        return self

    def _show_step(self) -> None:
        if self.index >= len(self.steps):
            self._state = PlaybackState.DONE
            self.on_complete()
            return
        self._state = PlaybackState.VISIBLE
        self.on_step_visible(self.steps[self.index])
        self.scheduler.defer(self.highlight_ms, self._hide_step)

    def _hide_step(self) -> None:
        self._state = PlaybackState.GAP
        self.on_step_hidden(self.steps[self.index])
        self.index += 1
        self.scheduler.defer(self.gap_ms, self._show_step)


class PhaseScheduler:
    """
    Generation-guarded deferral on top of a TimerQueue.

    invalidate() is called whenever a round or session is torn down; any
    callback queued before that becomes a silent no-op.
    """

    def __init__(self, timers: TimerQueue, owner: Optional[str] = None):
        self.timers = timers
        self.owner = owner
        self.generation = 0

    def now(self) -> float:
        return self.timers.now()

    def invalidate(self) -> int:
        self.generation += 1
        return self.generation

    def defer(self, delay_ms: float, callback: Callable, *args: Any) -> int:
        return self.timers.call_later(delay_ms, self._guarded, self.generation, callback, args)

    def _guarded(self, generation: int, callback: Callable, args: tuple) -> None:
        try:
            self._check_generation(generation)
        except StaleCallback as stale:
            game_logger.log_discarded(self.owner, stale, callback=getattr(callback, '__name__', repr(callback)))
            return
        callback(*args)

    def _check_generation(self, generation: int) -> None:
        if generation != self.generation:
            raise StaleCallback(generation, self.generation)

    def play_sequence(self, steps: Sequence[Any], highlight_ms: float, gap_ms: float,
                      on_step_visible: Callable[[Any], None],
                      on_step_hidden: Callable[[Any], None],
                      on_complete: Callable[[], None]) -> Playback:
        """
        Show each step for highlight_ms, hide it, wait gap_ms, advance;
        call on_complete after the last gap. Zero steps complete on the next poll.
        """
        return Playback(self, steps, highlight_ms, gap_ms,
                        on_step_visible, on_step_hidden, on_complete).start()


def expand_repetitions(steps: Sequence[Any], repetitions: int) -> List[Any]:
    """Concatenate the sequence `repetitions` times before playback."""
    return list(steps) * max(0, int(repetitions))


class Countdown:
    """Phase time limit, checked once per frame. Fires at most once."""

    def __init__(self, started_at: float, limit_seconds: float):
        self.started_at = started_at
        self.limit_seconds = float(limit_seconds)
        self.fired = False

    def elapsed(self, now: float) -> float:
        return max(0.0, now - self.started_at)

    def remaining(self, now: float) -> float:
        return max(0.0, self.limit_seconds - self.elapsed(now))

    def expired(self, now: float) -> bool:
        return self.elapsed(now) >= self.limit_seconds

    def fire(self) -> bool:
        """Claim the expiry. Only the first call returns True."""
        if self.fired:
            return False
        self.fired = True
        return True
