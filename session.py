"""
session.py — the analysis lifecycle of one user.

    IDLE ──image──▶ LOADING ──┬──▶ SUCCESS(result)
      ▲                       └──▶ ERROR(message)
      │                               │
      │   SUCCESS/ERROR ──corrections──▶ REFINING ──▶ SUCCESS / ERROR
      └──────────── reset() from anywhere ─────────────┘

Exactly one recognition call is expected in flight per session; callers
check `is_busy` before starting another. The call itself cannot be
cancelled, so every state change is tagged with a generation number and
an answer that comes back after reset() (or after a newer call started)
is dropped instead of overwriting the newer state.

The correction history survives reset(): learning carries over to the
next photo and is only lost when the process restarts.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from history import CorrectionHistory, diff_corrections
from models import ImagePayload, RecognitionResult
from providers.base import RecognitionRequest

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Analysis failed"

RecognitionClient = Callable[[RecognitionRequest], Awaitable[RecognitionResult]]


class Phase(str, Enum):
    IDLE     = "IDLE"
    LOADING  = "LOADING"
    REFINING = "REFINING"
    SUCCESS  = "SUCCESS"
    ERROR    = "ERROR"


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot handed to listeners."""
    phase: Phase
    result: Optional[RecognitionResult] = None   # set only in SUCCESS
    error: Optional[str] = None                  # set only in ERROR
    generation: int = 0
    history_size: int = 0

    @property
    def is_busy(self) -> bool:
        return self.phase in (Phase.LOADING, Phase.REFINING)


Listener = Callable[[SessionState], Any]


class AnalysisSession:

    def __init__(
        self,
        client: RecognitionClient,
        history: Optional[CorrectionHistory] = None,
        *,
        default_error: str = DEFAULT_ERROR_MESSAGE,
        timeout: float = 0,
    ):
        self._client        = client
        self._history       = history if history is not None else CorrectionHistory()
        self._default_error = default_error
        self._timeout       = timeout

        self._phase: Phase                        = Phase.IDLE
        self._image: Optional[ImagePayload]       = None
        self._result: Optional[RecognitionResult] = None
        self._error: Optional[str]                = None
        self._generation                          = 0
        self._listeners: list[Listener]           = []

    # ── read-only view ────────────────────────────────────────────────────────

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def image(self) -> Optional[ImagePayload]:
        return self._image

    @property
    def result(self) -> Optional[RecognitionResult]:
        """Latest successful result; kept through ERROR so it can still be refined."""
        return self._result

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def history(self) -> CorrectionHistory:
        return self._history

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_busy(self) -> bool:
        return self._phase in (Phase.LOADING, Phase.REFINING)

    @property
    def state(self) -> SessionState:
        return SessionState(
            phase=self._phase,
            result=self._result if self._phase is Phase.SUCCESS else None,
            error=self._error if self._phase is Phase.ERROR else None,
            generation=self._generation,
            history_size=len(self._history),
        )

    # ── observers ─────────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def _emit(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            try:
                outcome = listener(state)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                logger.warning("Session listener %r failed: %s", listener, exc)

    # ── transitions ───────────────────────────────────────────────────────────

    async def start_analysis(
        self,
        image: ImagePayload,
        corrections: Optional[dict] = None,
    ) -> bool:
        """
        Run one recognition call for *image*.

        With *corrections* the session goes through REFINING and, when a
        previous result exists, records every renamed object in the
        history before the call is made.

        Returns False when the outcome was discarded because the session
        was reset (or restarted) while the call was outstanding.
        """
        self._generation += 1
        generation = self._generation

        self._image = image
        self._error = None
        self._phase = Phase.REFINING if corrections is not None else Phase.LOADING

        if corrections is not None and self._result is not None:
            learned = diff_corrections(self._result, corrections)
            if learned:
                self._history.append(learned)
                logger.info(
                    "Learned %d correction(s), history now %d/%d",
                    len(learned), len(self._history), self._history.capacity,
                )

        await self._emit()
        if generation != self._generation:
            return False

        request = RecognitionRequest(
            image=image,
            corrections=corrections,
            history=self._history.snapshot(),
        )

        try:
            result = await self._call(request)
        except Exception as exc:
            if generation != self._generation:
                logger.info("Discarding stale failure from generation %d: %s", generation, exc)
                return False
            logger.error("Recognition call failed: %s", exc)
            self._error = str(exc) or self._default_error
            self._phase = Phase.ERROR
            await self._emit()
            return True

        if generation != self._generation:
            logger.info("Discarding stale result from generation %d", generation)
            return False

        self._result = result
        self._phase  = Phase.SUCCESS
        await self._emit()
        return True

    async def refine(self, corrections: dict) -> bool:
        """Resubmit the held image with *corrections*. No-op without an image."""
        if self._image is None:
            logger.debug("refine() ignored: no image held")
            return False
        return await self.start_analysis(self._image, corrections)

    async def retry(self) -> bool:
        """Manual retry: analyse the held image again from scratch."""
        if self._image is None:
            logger.debug("retry() ignored: no image held")
            return False
        return await self.start_analysis(self._image)

    async def reset(self) -> None:
        """Back to IDLE. Image, result and error are dropped; history is kept."""
        self._generation += 1
        self._phase  = Phase.IDLE
        self._image  = None
        self._result = None
        self._error  = None
        await self._emit()

    async def _call(self, request: RecognitionRequest) -> RecognitionResult:
        if self._timeout > 0:
            return await asyncio.wait_for(self._client(request), timeout=self._timeout)
        return await self._client(request)

    def __repr__(self) -> str:
        return f"AnalysisSession(phase={self._phase.value}, generation={self._generation}, history={len(self._history)})"
