"""Cyclic status messages shown while a persona is being generated.

The sequence is driven by wall-clock ticks only; it has no idea how far the
service actually is and keeps cycling for as long as the request runs.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Iterator

from reddidna.config import LoadingStep

_log = logging.getLogger(__name__)


def steps_cycle(steps: tuple[LoadingStep, ...]) -> Iterator[tuple[int, LoadingStep]]:
    """Infinite view of the step table as (index, step); call again to restart."""
    return itertools.cycle(enumerate(steps))


def format_countdown(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


@dataclass(frozen=True)
class LoadingFrame:
    index: int
    countdown: int
    step: LoadingStep

    @property
    def clock(self) -> str:
        return format_countdown(self.countdown)


class LoadingSequence:
    """Step index + countdown; ``tick()`` advances by one second."""

    def __init__(self, steps: tuple[LoadingStep, ...]) -> None:
        if not steps:
            raise ValueError("at least one loading step is required")
        self._steps = steps
        self.reset()

    def reset(self) -> LoadingFrame:
        self._cycle = steps_cycle(self._steps)
        self._advance()
        return self.frame

    def _advance(self) -> None:
        self._index, step = next(self._cycle)
        self._countdown = step.duration

    @property
    def frame(self) -> LoadingFrame:
        return LoadingFrame(self._index, self._countdown, self._steps[self._index])

    def tick(self) -> LoadingFrame:
        if self._countdown > 1:
            self._countdown -= 1
        else:
            self._advance()
        return self.frame


class LoadingTicker:
    """Runs a LoadingSequence on an asyncio task while acquisition is pending."""

    def __init__(
        self,
        sequence: LoadingSequence,
        on_tick: Callable[[LoadingFrame], None],
        *,
        interval: float = 1.0,
    ) -> None:
        self._sequence = sequence
        self._on_tick = on_tick
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> LoadingFrame:
        """(Re)start from the first step; returns the initial frame."""
        self.stop()
        frame = self._sequence.reset()
        self._task = asyncio.get_running_loop().create_task(self._run())
        return frame

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            frame = self._sequence.tick()
            _log.debug("loading tick step=%d countdown=%d", frame.index, frame.countdown)
            self._on_tick(frame)
