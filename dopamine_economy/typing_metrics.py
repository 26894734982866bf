"""Typing metrics — words-per-minute, focus sessions and error trend.

WPM counts hand-typed characters over a short sliding window. Focus time is
the length of the current activity session, which restarts after an idle
gap. Error trend compares the diagnostics error count at each save against
the count at the previous save of the same document.
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

from .edit_classifier import EditHunk

WPM_WINDOW_SECONDS = 10.0
IDLE_TIMEOUT_SECONDS = 5 * 60
CHARS_PER_WORD = 5


class DiagnosticsProvider(Protocol):
    def error_count(self, doc_key: str) -> int:
        """Return the number of error-severity diagnostics for the document."""


@dataclass(frozen=True)
class PerformanceSnapshot:
    wpm: int
    focus_minutes: int
    error_count: int
    error_delta: int  # positive = errors fixed, negative = errors introduced
    is_clean: bool


class TypingMetrics:
    """Tracks typing speed, focus session and per-document error counts."""

    def __init__(
        self,
        diagnostics: DiagnosticsProvider | None = None,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
        window_seconds: float = WPM_WINDOW_SECONDS,
        idle_timeout_seconds: float = IDLE_TIMEOUT_SECONDS,
    ) -> None:
        self._diagnostics = diagnostics
        self._clock = clock
        self._logger = logger or logging.getLogger("dopamine.metrics")
        self._window = window_seconds
        self._idle_timeout = idle_timeout_seconds

        now = clock()
        # Focus session
        self._session_start: float = now
        self._last_activity: float = now

        # Ring buffer of (arrival_time, char_count) with running total
        self._arrivals: deque[tuple[float, int]] = deque()
        self._chars_in_window = 0

        # Error baseline per document: {doc_key: error_count_at_last_snapshot}
        self._previous_errors: dict[str, int] = {}

    # ══════════════════════════════════════════════════════════
    #  Event intake
    # ══════════════════════════════════════════════════════════

    def on_edit(self, doc_key: str, hunks: Iterable[EditHunk], bulk_threshold: int) -> None:
        now = self._clock()
        self._update_focus(now)

        for hunk in hunks:
            length = len(hunk.text)
            # Larger changes are pastes or generated code
            if 0 < length <= bulk_threshold:
                if self._arrivals and self._arrivals[-1][0] == now:
                    ts, count = self._arrivals[-1]
                    self._arrivals[-1] = (ts, count + length)
                else:
                    self._arrivals.append((now, length))
                self._chars_in_window += length

        self._prune(now)

    def on_close(self, doc_key: str) -> None:
        """Forget the error baseline of a closed document."""
        self._previous_errors.pop(doc_key, None)

    def _update_focus(self, now: float) -> None:
        if now - self._last_activity > self._idle_timeout:
            self._logger.debug("Idle for %.0fs, focus session restarted", now - self._last_activity)
            self._session_start = now
        self._last_activity = now

    def _prune(self, now: float) -> None:
        cutoff = now - self._window
        while self._arrivals and self._arrivals[0][0] < cutoff:
            _, count = self._arrivals.popleft()
            self._chars_in_window -= count

    # ══════════════════════════════════════════════════════════
    #  Queries
    # ══════════════════════════════════════════════════════════

    def wpm(self) -> int:
        self._prune(self._clock())
        words = self._chars_in_window / CHARS_PER_WORD
        return round(words * (60 / self._window))

    def focus_minutes(self) -> int:
        return math.floor((self._clock() - self._session_start) / 60)

    def _current_errors(self, doc_key: str) -> int:
        if self._diagnostics is None:
            return 0
        try:
            return int(self._diagnostics.error_count(doc_key))
        except Exception as exc:
            self._logger.warning("Diagnostics unavailable for %s: %s", doc_key, exc)
            return 0

    def snapshot(self, doc_key: str) -> PerformanceSnapshot:
        """Compute the save-time snapshot and move the error baseline forward."""
        errors = self._current_errors(doc_key)
        previous = self._previous_errors.get(doc_key, errors)
        self._previous_errors[doc_key] = errors

        return PerformanceSnapshot(
            wpm=self.wpm(),
            focus_minutes=self.focus_minutes(),
            error_count=errors,
            error_delta=previous - errors,
            is_clean=errors == 0,
        )
