import logging
import math
from typing import Callable


logger = logging.getLogger(__name__)

TICK_MS = 1000


def remaining_seconds(start_time: float, now: float) -> int:
    """Whole seconds left before ``start_time``, as shown to the player."""
    return math.ceil((start_time - now) / TICK_MS)


class Countdown:
    """Countdown to an absolute epoch-ms anchor.

    Every tick recomputes the remaining time from the anchor and the local
    clock, then sleeps until the displayed value next changes. At zero it
    calls ``on_zero`` once and schedules nothing further. ``loop`` is
    anything with an asyncio-style ``call_later(seconds, callback)``.
    """

    def __init__(self, start_time: float, loop, clock: Callable[[], float],
                 on_tick: Callable[[int], None], on_zero: Callable[[], None]):
        self.start_time = start_time
        self._loop = loop
        self._clock = clock
        self._on_tick = on_tick
        self._on_zero = on_zero
        self._handle = None
        self.finished = False
        self.cancelled = False

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self.finished or self.cancelled or self.running:
            return
        self._tick()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if not self.finished:
            self.cancelled = True

    def _tick(self) -> None:
        self._handle = None
        if self.cancelled:
            return
        now = self._clock()
        remaining_ms = self.start_time - now
        seconds = remaining_seconds(self.start_time, now)
        if seconds <= 0:
            self.finished = True
            logger.info(f"[countdown-zero] start_time={self.start_time} overshoot_ms={-remaining_ms:.0f}")
            self._on_zero()
            return
        self._on_tick(seconds)
        delay_ms = remaining_ms - (seconds - 1) * TICK_MS
        self._handle = self._loop.call_later(max(delay_ms, 1) / 1000.0, self._tick)

