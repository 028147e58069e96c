"""
Progress overlay timing.

The overlay stays up for a minimum duration so a fast response does not
flash it on and off, and walks through three scripted stages while visible.
Timing is fully determined by the start time and the stop time, which keeps
it testable with an injected clock and scheduler.
"""
import asyncio
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import structlog

from src.config import settings
from src.domain.enums.generation_mode import GenerationMode

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProgressStep:
    label: str
    detail_by_mode: dict[GenerationMode, str]


GENERATION_STEPS: tuple[ProgressStep, ...] = (
    ProgressStep(
        "Analyzing",
        {
            GenerationMode.IMAGE: "Reading image cues and product signals.",
            GenerationMode.TEXT: "Parsing product details and condition notes.",
        },
    ),
    ProgressStep(
        "Crafting",
        {
            GenerationMode.IMAGE: "Building title and core description.",
            GenerationMode.TEXT: "Drafting title and structured description.",
        },
    ),
    ProgressStep(
        "Optimizing",
        {
            GenerationMode.IMAGE: "Refining language for marketplace performance.",
            GenerationMode.TEXT: "Polishing language for marketplace performance.",
        },
    ),
)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def _loop_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    return asyncio.get_running_loop().call_later(delay, callback)


def step_index_at(elapsed: float, step_interval: float, step_count: int = len(GENERATION_STEPS)) -> int:
    """Stage shown after `elapsed` seconds, capped at the last stage."""
    if elapsed <= 0:
        return 0
    return min(step_count - 1, math.floor(elapsed / step_interval))


def visible_duration(started_at: float, stop_requested_at: float, minimum: float) -> float:
    """Total time the overlay is shown when stop() is requested at stop_requested_at."""
    return max(stop_requested_at - started_at, minimum)


def final_step_index(
    started_at: float, stop_requested_at: float, minimum: float, step_interval: float
) -> int:
    return step_index_at(visible_duration(started_at, stop_requested_at, minimum), step_interval)


class ProgressController:
    def __init__(
        self,
        minimum_seconds: float = settings.progress_minimum_seconds,
        step_interval_seconds: float = settings.progress_step_interval_seconds,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Scheduler = _loop_scheduler,
    ) -> None:
        self._minimum = minimum_seconds
        self._step_interval = step_interval_seconds
        self._clock = clock
        self._scheduler = scheduler

        self._visible = False
        self._started_at: float | None = None
        self._hide_handle: Cancellable | None = None
        self._hidden = asyncio.Event()
        self._hidden.set()
        self.last_visible_duration: float | None = None

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def hide_pending(self) -> bool:
        return self._hide_handle is not None

    @property
    def step_index(self) -> int:
        if not self._visible or self._started_at is None:
            return 0
        return step_index_at(self._clock() - self._started_at, self._step_interval)

    def current_step(self) -> ProgressStep:
        return GENERATION_STEPS[self.step_index]

    def start(self) -> None:
        if self._hide_handle is not None:
            # Work resumed before the overlay went away: keep the original start time
            self._hide_handle.cancel()
            self._hide_handle = None
            return
        if self._visible:
            return

        self._visible = True
        self._started_at = self._clock()
        self._hidden.clear()

    def stop(self) -> float:
        """Request hiding. Returns the delay before the overlay actually hides."""
        if not self._visible or self._started_at is None or self._hide_handle is not None:
            return 0.0

        elapsed = self._clock() - self._started_at
        remaining = max(0.0, self._minimum - elapsed)
        self.last_visible_duration = visible_duration(
            self._started_at, self._started_at + elapsed, self._minimum
        )
        self._hide_handle = self._scheduler(remaining, self._hide)
        logger.debug("progress_hide_scheduled", elapsed=elapsed, remaining=remaining)
        return remaining

    async def wait_until_hidden(self) -> None:
        await self._hidden.wait()

    def _hide(self) -> None:
        self._visible = False
        self._started_at = None
        self._hide_handle = None
        self._hidden.set()
