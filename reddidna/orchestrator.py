"""Acquisition state machine: Idle -> Pending -> Ready | Failed.

Every submission takes a new generation number. A response is applied only if
its generation is still the current one, so a slow answer for a superseded
identity can never overwrite what is displayed for a newer one.

States are immutable snapshots; listeners receive each new snapshot, including
the Pending snapshots produced by every loading tick.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Union

from reddidna.client import PersonaServiceClient
from reddidna.config import Settings
from reddidna.errors import IdentityError, ReddidnaError
from reddidna.evidence import EvidenceLookup
from reddidna.exporter import ReportExporter
from reddidna.identity import resolve, validate_submission
from reddidna.loading import LoadingFrame, LoadingSequence, LoadingTicker
from reddidna.models import PersonaReport

_log = logging.getLogger(__name__)

UNEXPECTED_FAILURE = "Something went wrong while generating the persona. Please try again."


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Pending:
    identity: str
    frame: LoadingFrame


@dataclass(frozen=True)
class Ready:
    identity: str
    report: PersonaReport


@dataclass(frozen=True)
class Failed:
    identity: str
    message: str


State = Union[Idle, Pending, Ready, Failed]
Listener = Callable[[State], None]


def _log_notification(message: str) -> None:
    _log.warning(message)


class AcquisitionOrchestrator:
    def __init__(
        self,
        client: PersonaServiceClient,
        settings: Settings,
        *,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._state: State = Idle()
        self._generation = 0
        self._last_identity: str | None = None
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()
        self._current: asyncio.Task | None = None
        self._ticker = LoadingTicker(
            LoadingSequence(settings.loading_steps),
            self._on_tick,
            interval=settings.tick_interval,
        )
        self._exporter = ReportExporter(client, notify or _log_notification)
        self.evidence = EvidenceLookup()
        self.validation_error: str | None = None

    async def __aenter__(self) -> "AcquisitionOrchestrator":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ── Read-only views ──────────────────────────────────────────────────────

    @property
    def state(self) -> State:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loading(self) -> bool:
        return self._ticker.running

    @property
    def report(self) -> PersonaReport | None:
        return self._state.report if isinstance(self._state, Ready) else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every new state; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── User actions ─────────────────────────────────────────────────────────

    def submit(self, raw_input: str) -> str | None:
        """Normalize and start an acquisition.

        Invalid input sets ``validation_error`` and returns None without
        touching state or issuing a request.
        """
        try:
            identity = resolve(raw_input, strict=self._settings.strict_identity)
        except IdentityError as exc:
            self.validation_error = str(exc)
            _log.info("rejected input %r: %s", raw_input, exc)
            return None
        self.validation_error = None
        self._start(identity)
        return identity

    async def acquire(self, identity: str) -> State:
        """Start an acquisition for ``identity`` and wait for its own outcome.

        The returned Ready/Failed is this request's result; it is only shown
        (made the current state) if no newer submission happened meanwhile.
        """
        validate_submission(identity)
        return await self._start(identity)

    async def wait(self) -> State:
        """Wait for the latest acquisition to resolve and return the current state."""
        while self._current is not None and not self._current.done():
            await asyncio.shield(self._current)
        return self._state

    def retry(self) -> str | None:
        if self._last_identity is None:
            return None
        self._start(self._last_identity)
        return self._last_identity

    def reset(self) -> None:
        """Drop the current report or error and ignore any request still in flight."""
        self._generation += 1
        self._current = None
        self._ticker.stop()
        self.evidence.close()
        self.validation_error = None
        self._set_state(Idle())

    async def export(self, directory: Path) -> Path | None:
        state = self._state
        if not isinstance(state, Ready):
            return None
        return await self._exporter.export(state.identity, state.report, directory)

    async def aclose(self) -> None:
        self._ticker.stop()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._current = None

    # ── Internals ────────────────────────────────────────────────────────────

    def _start(self, identity: str) -> asyncio.Task:
        self._generation += 1
        generation = self._generation
        self._last_identity = identity
        self.evidence.close()
        frame = self._ticker.start()
        self._set_state(Pending(identity, frame))

        task = asyncio.get_running_loop().create_task(self._acquire(identity, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._current = task
        return task

    async def _acquire(self, identity: str, generation: int) -> State:
        outcome: State
        try:
            report = await self._client.generate_persona(identity)
            outcome = Ready(identity, report)
        except ReddidnaError as exc:
            outcome = Failed(identity, str(exc))
        except Exception:
            _log.exception("unexpected error generating persona for %s", identity)
            outcome = Failed(identity, UNEXPECTED_FAILURE)

        if generation != self._generation:
            _log.debug("discarding result for %s (generation %d, current %d)", identity, generation, self._generation)
            return outcome

        self._ticker.stop()
        self._set_state(outcome)
        return outcome

    def _on_tick(self, frame: LoadingFrame) -> None:
        if isinstance(self._state, Pending):
            self._set_state(replace(self._state, frame=frame))

    def _set_state(self, state: State) -> None:
        if type(state) is not type(self._state):
            _log.info("state %s -> %s", type(self._state).__name__, type(state).__name__)
        self._state = state
        for listener in list(self._listeners):
            listener(state)
