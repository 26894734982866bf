"""Wallet — the daily coin balance.

The balance lives in the StateStore and is reset to zero at the first
access on each new local calendar day. Every mutation is journaled to the
Ledger after the store is updated, and announced to balance listeners.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from .database import StateStore
from .ledger import Ledger, TransactionType
from .utils import day_label, now_local

KEY_BALANCE = "balance"
KEY_LAST_ACTIVE_DATE = "last_active_date"

BalanceListener = Callable[[int], None]


class Wallet:
    """Durable balance with daily-reset semantics."""

    def __init__(
        self,
        store: StateStore,
        ledger: Ledger,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._logger = logger or logging.getLogger("dopamine.wallet")
        self._clock = clock
        self._listeners: list[BalanceListener] = []
        self._last_notified: int | None = None

        self.check_daily_reset()

    # ══════════════════════════════════════════════════════════
    #  Notifications
    # ══════════════════════════════════════════════════════════

    def add_listener(self, listener: BalanceListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: BalanceListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, balance: int) -> None:
        self._last_notified = balance
        for listener in list(self._listeners):
            try:
                listener(balance)
            except Exception:
                self._logger.exception("Balance listener failed")

    # ══════════════════════════════════════════════════════════
    #  Balance
    # ══════════════════════════════════════════════════════════

    def _stored_balance(self) -> int:
        return int(self._store.get(KEY_BALANCE, 0))

    def check_daily_reset(self) -> bool:
        """Zero the balance if the last activity was on another day.

        Returns True when a reset happened.
        """
        today = day_label(self._clock())
        last_date = self._store.get(KEY_LAST_ACTIVE_DATE)
        if last_date == today:
            return False

        self._store.set(KEY_BALANCE, 0)
        self._store.set(KEY_LAST_ACTIVE_DATE, today)
        self._logger.info("New day (%s), balance reset", today)
        self._notify(0)
        self._ledger.append(TransactionType.RESET, 0, 0, "Daily Reset")
        return True

    def get_balance(self) -> int:
        self.check_daily_reset()
        return self._stored_balance()

    def add_coins(self, amount: int, reason: str = "Coins earned") -> int:
        """Credit coins. Returns the new balance."""
        new_balance = self.get_balance() + amount
        self._store.set(KEY_BALANCE, new_balance)
        self._notify(new_balance)
        self._ledger.append(TransactionType.EARN, amount, new_balance, reason)
        return new_balance

    def spend_coins(self, amount: int, reason: str = "Coins spent") -> bool:
        """Debit coins if the balance covers them. Returns success."""
        current = self.get_balance()
        if current < amount:
            self._logger.debug("Spend of %d refused, balance %d", amount, current)
            return False
        new_balance = current - amount
        self._store.set(KEY_BALANCE, new_balance)
        self._notify(new_balance)
        self._ledger.append(TransactionType.SPEND, amount, new_balance, reason)
        return True

    def refresh(self) -> int:
        """Re-read the balance, notifying listeners if another process changed it."""
        balance = self.get_balance()
        if balance != self._last_notified:
            self._notify(balance)
        return balance
