"""Shot timer state machine.

Tracks the two phases of a shot: the pump running before the first drop
(PUMPING) and the extraction itself (EXTRACTING). Elapsed seconds are always
recomputed from the captured start instant, so repeated ticks never drift.

    IDLE --start--> PUMPING --first_drop--> EXTRACTING --stop--> IDLE
    any  --reset--> IDLE
"""

import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from logging_config import get_logger

logger = get_logger()


class TimerPhase(str, Enum):
    IDLE = "idle"
    PUMPING = "pumping"
    EXTRACTING = "extracting"


@dataclass(frozen=True)
class TimerSnapshot:
    phase: TimerPhase
    pump_seconds: int
    extraction_seconds: int

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "pump_seconds": self.pump_seconds,
            "extraction_seconds": self.extraction_seconds,
        }


class ShotTimer:
    """Pump/extraction timer driven by wall-clock polling.

    Args:
        on_stop: Called with the whole extraction seconds, once per stop.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(
        self,
        on_stop: Optional[Callable[[int], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._on_stop = on_stop
        self._clock = clock
        self._phase = TimerPhase.IDLE
        self._pump_started: Optional[float] = None
        self._extraction_started: Optional[float] = None
        self._pump_seconds = 0
        self._extraction_seconds = 0

    @property
    def phase(self) -> TimerPhase:
        return self._phase

    def _elapsed(self, started: float) -> int:
        return max(0, math.floor(self._clock() - started))

    def start(self) -> bool:
        """Start the pump. Only valid from IDLE."""
        if self._phase is not TimerPhase.IDLE:
            logger.debug("Ignoring timer start", extra={"phase": self._phase.value})
            return False
        self._pump_seconds = 0
        self._extraction_seconds = 0
        self._extraction_started = None
        self._pump_started = self._clock()
        self._phase = TimerPhase.PUMPING
        return True

    def first_drop(self) -> bool:
        """Freeze the pump counter and start timing the extraction."""
        if self._phase is not TimerPhase.PUMPING:
            logger.debug("Ignoring first drop", extra={"phase": self._phase.value})
            return False
        now = self._clock()
        self._pump_seconds = max(0, math.floor(now - self._pump_started))
        self._extraction_started = now
        self._extraction_seconds = 0
        self._phase = TimerPhase.EXTRACTING
        return True

    def stop(self) -> Optional[int]:
        """End the extraction and report its whole seconds.

        Returns None (and emits nothing) unless the timer is EXTRACTING.
        """
        if self._phase is not TimerPhase.EXTRACTING:
            logger.debug("Ignoring timer stop", extra={"phase": self._phase.value})
            return None
        seconds = self._elapsed(self._extraction_started)
        self._clear()
        logger.info("Extraction stopped", extra={"extraction_seconds": seconds})
        if self._on_stop is not None:
            self._on_stop(seconds)
        return seconds

    def reset(self) -> None:
        """Discard both counters without emitting anything."""
        self._clear()

    def _clear(self) -> None:
        self._phase = TimerPhase.IDLE
        self._pump_started = None
        self._extraction_started = None
        self._pump_seconds = 0
        self._extraction_seconds = 0

    def tick(self) -> TimerSnapshot:
        """Recompute the running counter from its start instant."""
        if self._phase is TimerPhase.PUMPING:
            self._pump_seconds = self._elapsed(self._pump_started)
        elif self._phase is TimerPhase.EXTRACTING:
            self._extraction_seconds = self._elapsed(self._extraction_started)
        return TimerSnapshot(self._phase, self._pump_seconds, self._extraction_seconds)

    def apply(self, event: str) -> bool:
        """Dispatch an event by name; returns whether it was accepted."""
        name = event.strip().lower().replace("-", "_")
        if name == "start":
            return self.start()
        if name == "first_drop":
            return self.first_drop()
        if name == "stop":
            return self.stop() is not None
        if name == "reset":
            self.reset()
            return True
        raise ValueError(f"Unknown timer event: {event}")


# Shared timer for the single brewing station
_shot_timer: Optional[ShotTimer] = None


def get_shot_timer() -> ShotTimer:
    """Lazily create the shared timer, wired to the brew session draft."""
    global _shot_timer
    if _shot_timer is None:
        from services.brew_session import get_brew_session

        _shot_timer = ShotTimer(
            on_stop=lambda seconds: get_brew_session().set_extraction_time(seconds)
        )
    return _shot_timer


def reset_shot_timer() -> None:
    global _shot_timer
    _shot_timer = None
