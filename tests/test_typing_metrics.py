"""Tests for dopamine_economy.typing_metrics module."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from conftest import FakeClock
from dopamine_economy.edit_classifier import EditHunk
from dopamine_economy.typing_metrics import TypingMetrics

DOC = "file:///main.py"
BULK = 50


def _make(clock: FakeClock, diagnostics=None) -> TypingMetrics:
    return TypingMetrics(diagnostics, clock=clock.seconds, logger=logging.getLogger("test"))


def _provider(*counts: int) -> MagicMock:
    provider = MagicMock()
    provider.error_count = MagicMock(side_effect=list(counts))
    return provider


def _type(metrics: TypingMetrics, text: str, doc: str = DOC) -> None:
    metrics.on_edit(doc, [EditHunk(text)], BULK)


class TestWpm:

    def test_no_typing(self, clock: FakeClock):
        assert _make(clock).wpm() == 0

    def test_chars_in_window(self, clock: FakeClock):
        metrics = _make(clock)
        _type(metrics, "abcde")
        _type(metrics, "fghij")
        # 10 chars = 2 words in 10s = 12 wpm
        assert metrics.wpm() == 12

    def test_whitespace_counts_toward_speed(self, clock: FakeClock):
        metrics = _make(clock)
        _type(metrics, "a b c d e ")
        assert metrics.wpm() == 12

    def test_paste_ignored(self, clock: FakeClock):
        metrics = _make(clock)
        _type(metrics, "x" * 51)
        assert metrics.wpm() == 0

    def test_deletion_ignored(self, clock: FakeClock):
        metrics = _make(clock)
        metrics.on_edit(DOC, [EditHunk("", replaced_text="removed")], BULK)
        assert metrics.wpm() == 0

    def test_rounding(self, clock: FakeClock):
        metrics = _make(clock)
        _type(metrics, "abc")
        # 3 / 5 * 6 = 3.6
        assert metrics.wpm() == 4

    def test_window_expiry(self, clock: FakeClock):
        metrics = _make(clock)
        _type(metrics, "a" * 40)
        clock.advance(seconds=5)
        _type(metrics, "b" * 10)
        clock.advance(seconds=5)
        # First burst is exactly at the window edge, still counted
        assert metrics.wpm() == 60
        clock.advance(seconds=1)
        assert metrics.wpm() == 12
        clock.advance(seconds=5)
        assert metrics.wpm() == 0

    def test_burst_uses_one_slot(self, clock: FakeClock):
        metrics = _make(clock)
        for _ in range(500):
            _type(metrics, "k")
        assert len(metrics._arrivals) == 1
        assert metrics.wpm() == 600


class TestFocus:

    def test_focus_accumulates_with_activity(self, clock: FakeClock):
        metrics = _make(clock)
        for _ in range(8):
            clock.advance(minutes=4)
            _type(metrics, "x")
        assert metrics.focus_minutes() == 32

    def test_idle_gap_restarts_session(self, clock: FakeClock):
        metrics = _make(clock)
        clock.advance(minutes=20)
        _type(metrics, "x")
        clock.advance(minutes=3)
        assert metrics.focus_minutes() == 3

    def test_gap_equal_to_timeout_keeps_session(self, clock: FakeClock):
        metrics = _make(clock)
        clock.advance(minutes=5)
        _type(metrics, "x")
        assert metrics.focus_minutes() == 5

    def test_focus_floors_minutes(self, clock: FakeClock):
        metrics = _make(clock)
        clock.advance(seconds=119)
        assert metrics.focus_minutes() == 1


class TestErrors:

    def test_first_snapshot_has_zero_delta(self, clock: FakeClock):
        metrics = _make(clock, _provider(3))
        snap = metrics.snapshot(DOC)
        assert snap.error_count == 3
        assert snap.error_delta == 0
        assert snap.is_clean is False

    def test_fixed_then_introduced(self, clock: FakeClock):
        metrics = _make(clock, _provider(3, 1, 4))
        metrics.snapshot(DOC)
        assert metrics.snapshot(DOC).error_delta == 2
        assert metrics.snapshot(DOC).error_delta == -3

    def test_clean_flag(self, clock: FakeClock):
        metrics = _make(clock, _provider(2, 0))
        metrics.snapshot(DOC)
        snap = metrics.snapshot(DOC)
        assert snap.is_clean is True
        assert snap.error_delta == 2

    def test_baselines_per_document(self, clock: FakeClock):
        metrics = _make(clock, _provider(5, 1, 0))
        metrics.snapshot("file:///a.py")
        assert metrics.snapshot("file:///b.py").error_delta == 0
        assert metrics.snapshot("file:///a.py").error_delta == 5

    def test_close_forgets_baseline(self, clock: FakeClock):
        metrics = _make(clock, _provider(4, 0))
        metrics.snapshot(DOC)
        metrics.on_close(DOC)
        assert metrics.snapshot(DOC).error_delta == 0

    def test_close_unknown_document(self, clock: FakeClock):
        _make(clock).on_close("file:///never-opened.py")

    def test_missing_provider_is_clean(self, clock: FakeClock):
        snap = _make(clock, None).snapshot(DOC)
        assert snap.error_count == 0
        assert snap.is_clean is True

    def test_failing_provider_is_clean(self, clock: FakeClock, caplog: pytest.LogCaptureFixture):
        provider = MagicMock()
        provider.error_count = MagicMock(side_effect=RuntimeError("language server gone"))
        with caplog.at_level(logging.WARNING):
            snap = _make(clock, provider).snapshot(DOC)
        assert snap.error_count == 0
        assert "Diagnostics unavailable" in caplog.text

    def test_snapshot_carries_speed_and_focus(self, clock: FakeClock):
        metrics = _make(clock, _provider(0))
        clock.advance(minutes=2)
        _type(metrics, "z" * 25)
        snap = metrics.snapshot(DOC)
        assert snap.wpm == 30
        assert snap.focus_minutes == 2
