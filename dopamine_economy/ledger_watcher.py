"""Ledger watcher — notices journal writes made by other editor processes.

Polls the modification stamps of the monthly journal files and, after a
short debounce, calls a refresh callback (normally ``Wallet.refresh``) so a
cached balance display catches up. This is a reconciliation heuristic, not
a lock.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .ledger import Ledger

DEBOUNCE_SECONDS = 0.2
POLL_INTERVAL_SECONDS = 0.5


class LedgerWatcher:
    """Debounced change watch over the ledger directory."""

    def __init__(
        self,
        ledger: Ledger,
        on_change: Callable[[], object],
        logger: logging.Logger | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ) -> None:
        self._ledger = ledger
        self._on_change = on_change
        self._logger = logger or logging.getLogger("dopamine.watcher")
        self._poll_interval = poll_interval
        self._debounce = debounce_seconds

        self._task: asyncio.Task | None = None
        self._pending: asyncio.TimerHandle | None = None
        self._stamps: dict[str, tuple[int, int]] = {}

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Lifecycle ────────────────────────────────────────────

    async def start(self) -> None:
        """Start polling. A ledger without usable storage is not watched."""
        if not self._ledger.storage_available:
            self._logger.warning("Ledger storage unavailable, change watch disabled")
            return
        if self.running:
            return
        self._stamps = self._scan()
        self._task = asyncio.create_task(self._watch_loop())
        self._logger.info("Watching %s for ledger changes", self._ledger.directory)

    async def stop(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    # ── Internal ─────────────────────────────────────────────

    def _scan(self) -> dict[str, tuple[int, int]]:
        stamps: dict[str, tuple[int, int]] = {}
        for path in self._ledger.month_files():
            try:
                st = path.stat()
            except OSError:
                continue
            stamps[path.name] = (st.st_mtime_ns, st.st_size)
        return stamps

    async def _watch_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                current = self._scan()
            except OSError as exc:
                self._logger.warning("Ledger scan failed: %s", exc)
                continue
            if current != self._stamps:
                self._stamps = current
                self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        """(Re)arm the debounce timer so a burst of writes refreshes once."""
        if self._pending is not None:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self._debounce, self._fire)

    def _fire(self) -> None:
        self._pending = None
        try:
            self._on_change()
        except Exception:
            self._logger.exception("Ledger change callback failed")
