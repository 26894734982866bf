"""Service orchestrator — DopamineApp.

Wires config → state store → ledger → wallet → trackers → reward engine and
exposes the method contract the editor integration calls:
``on_edit`` for every content change, ``on_save`` when a document is saved
and ``on_close`` when it is closed. Presentation consumes the returned
``SaveResult`` values and balance notifications.
"""

from __future__ import annotations

import logging
import os
import random
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from .config import DopamineConfig, RewardItemConfig, StorageConfig, load_config
from .database import StateStore
from .edit_classifier import EditClassifier, EditHunk
from .ledger import Ledger
from .ledger_watcher import LedgerWatcher
from .reward_engine import JACKPOT_LABEL, RewardDecision, RewardEngine
from .typing_metrics import DiagnosticsProvider, TypingMetrics
from .utils import now_local
from .wallet import Wallet
from .weighted_selector import WeightedSelector

SETTINGS_SCHEME = "vscode-userdata:"
SETTINGS_FILENAME = "/settings.json"


@dataclass(frozen=True)
class SaveResult:
    """Everything presentation needs to show for one save."""

    doc_key: str
    decision: RewardDecision
    balance: int
    reason: str = ""
    reward: RewardItemConfig | None = None
    sound: str | None = None  # "win", "coin" or None


def build_reason(decision: RewardDecision) -> str:
    """Ledger reason, e.g. ``'Code Action (Medium) JACKPOT Flow×2, Clean Code'``."""
    parts = [f"Code Action ({decision.magnitude.value})"]
    if decision.jackpot:
        parts.append(JACKPOT_LABEL)
    labels = [b for b in decision.bonuses if b != JACKPOT_LABEL]
    if labels:
        parts.append(", ".join(labels))
    return " ".join(parts)


def open_state_store(storage: StorageConfig, logger: logging.Logger) -> StateStore:
    """Open the balance store.

    When the configured location cannot be created or opened, the store moves
    to ``storage.fallback_state_db_path`` so balance operations keep working.
    A failure there propagates.
    """
    store_logger = logging.getLogger("dopamine.store")
    db_path = storage.state_db_path
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        store = StateStore(db_path, store_logger)
        store.initialize()
        return store
    except (OSError, sqlite3.Error):
        fallback = storage.fallback_state_db_path
        logger.exception("State store unavailable at %s, using %s", db_path, fallback)

    fallback.parent.mkdir(parents=True, exist_ok=True)
    store = StateStore(fallback, store_logger)
    store.initialize()
    return store


class DopamineApp:
    """Top-level application orchestrator."""

    def __init__(
        self,
        config: DopamineConfig,
        diagnostics: DiagnosticsProvider | None = None,
        rng: random.Random | None = None,
        result_sink: Callable[[SaveResult], None] | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger("dopamine")
        self._result_sink = result_sink
        rng = rng or random.Random()

        storage_dir = config.storage.path
        self.ledger = Ledger(storage_dir, logging.getLogger("dopamine.ledger"), clock=clock)
        self.store = open_state_store(config.storage, self.logger)

        self.wallet = Wallet(self.store, self.ledger, logging.getLogger("dopamine.wallet"), clock=clock)
        self.classifier = EditClassifier(logging.getLogger("dopamine.edits"))
        self.metrics = TypingMetrics(
            diagnostics,
            clock=lambda: clock().timestamp(),
            logger=logging.getLogger("dopamine.metrics"),
        )
        self.reward_engine = RewardEngine(config, rng, logging.getLogger("dopamine.rewards"))
        self.selector = WeightedSelector(rng, logging.getLogger("dopamine.selector"))
        self.watcher = LedgerWatcher(
            self.ledger, self.wallet.refresh, logging.getLogger("dopamine.watcher"),
        )

        # Counters
        self.saves_processed: int = 0
        self.coins_awarded_total: int = 0
        self.jackpots_total: int = 0

    @classmethod
    def from_path(cls, config_path: str, **kwargs) -> DopamineApp:
        return cls(load_config(config_path), **kwargs)

    def update_config(self, new_config: DopamineConfig) -> None:
        """Hot-swap the config reference. Storage location is fixed at startup."""
        self.config = new_config
        self.reward_engine.update_config(new_config)

    # ── Lifecycle ────────────────────────────────────────────

    async def start(self) -> None:
        await self.watcher.start()

    async def stop(self) -> None:
        await self.watcher.stop()

    # ══════════════════════════════════════════════════════════
    #  Editor events
    # ══════════════════════════════════════════════════════════

    def on_edit(self, doc_key: str, hunks: Iterable[EditHunk]) -> None:
        hunks = list(hunks)
        threshold = self.config.bulk_threshold
        self.classifier.on_edit(doc_key, hunks, threshold)
        self.metrics.on_edit(doc_key, hunks, threshold)

    def on_close(self, doc_key: str) -> None:
        self.metrics.on_close(doc_key)

    def should_ignore(self, doc_key: str, file_name: str | None = None) -> bool:
        """Editor settings files and ignored extensions never pay out."""
        name = file_name or doc_key
        if doc_key.startswith(SETTINGS_SCHEME) or name.endswith(SETTINGS_FILENAME):
            return True
        ext = os.path.splitext(name)[1]
        return ext in self.config.ignore_extensions

    def on_save(self, doc_key: str, file_name: str | None = None) -> SaveResult | None:
        """Settle a save. Returns None when the document is ignored."""
        if self.should_ignore(doc_key, file_name):
            self.logger.debug("Ignoring save of %s", file_name or doc_key)
            return None

        stats = self.classifier.drain(doc_key)
        perf = self.metrics.snapshot(doc_key)
        decision = self.reward_engine.decide(stats, perf)
        self.saves_processed += 1

        if decision.gated:
            self.logger.debug(
                "Minor change in %s (%d chars), no reward", doc_key, stats.chars_added,
            )
            result = SaveResult(
                doc_key=doc_key, decision=decision, balance=self.wallet.get_balance(),
            )
            self._emit(result)
            return result

        reason = build_reason(decision)
        balance = self.wallet.add_coins(decision.coins, reason)
        self.coins_awarded_total += decision.coins

        reward = None
        if decision.jackpot:
            self.jackpots_total += 1
            reward = self.selector.pick(self.config.rewards)

        result = SaveResult(
            doc_key=doc_key,
            decision=decision,
            balance=balance,
            reason=reason,
            reward=reward,
            sound=self._sound_cue(decision, perf.error_delta),
        )
        self.logger.info("Save %s: +%d coins (%s), balance %d", doc_key, decision.coins, reason, balance)
        self._emit(result)
        return result

    def _sound_cue(self, decision: RewardDecision, error_delta: int) -> str | None:
        if not self.config.sounds.enabled:
            return None
        if decision.jackpot and decision.coins > 0:
            return "win"
        # No coin sound for a save that introduced errors
        if decision.coins > 0 and error_delta >= 0:
            return "coin"
        return None

    def _emit(self, result: SaveResult) -> None:
        if self._result_sink is None:
            return
        try:
            self._result_sink(result)
        except Exception:
            self.logger.exception("Result sink failed for %s", result.doc_key)

    # ══════════════════════════════════════════════════════════
    #  Spending
    # ══════════════════════════════════════════════════════════

    def respin(self, cost: int | None = None) -> RewardItemConfig | None:
        """Pay to draw another bonus reward. Returns None if unaffordable."""
        if not self.config.rewards:
            return None
        if cost is None:
            cost = self.config.respin_cost
        if not self.wallet.spend_coins(cost, "Reward Respin"):
            return None
        return self.selector.pick(self.config.rewards)

    def log_path(self) -> Path:
        return self.ledger.current_log_path()
