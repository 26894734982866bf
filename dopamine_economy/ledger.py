"""Transaction ledger — append-only JSONL journal rotated by calendar month.

One JSON object per line, one file per local calendar month
(``transactions-2025-01.jsonl``). The ledger is an audit trail: the wallet
store is authoritative for the balance, so write failures are logged and
never propagate. Reads skip malformed lines individually.

A pre-rotation single-file journal (``transactions.jsonl``) is renamed out
of the way on first construction and then replayed into month files.
"""

from __future__ import annotations

import calendar
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable

from .utils import format_timestamp, local_date, month_key, now_local, parse_timestamp

LEGACY_FILENAME = "transactions.jsonl"
MIGRATED_SUFFIX = ".migrated"
FILE_PREFIX = "transactions-"
FILE_SUFFIX = ".jsonl"


# ═══════════════════════════════════════════════════════════════
#  Data types
# ═══════════════════════════════════════════════════════════════


class TransactionType(Enum):
    EARN = "earn"
    SPEND = "spend"
    RESET = "reset"


@dataclass(frozen=True)
class Transaction:
    timestamp: str
    type: TransactionType
    amount: int
    balance_after: int
    reason: str

    @property
    def when(self) -> datetime:
        parsed = parse_timestamp(self.timestamp)
        if parsed is None:
            raise ValueError(f"Bad timestamp: {self.timestamp!r}")
        return parsed

    def to_record(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "type": self.type.value,
            "amount": self.amount,
            "balanceAfter": self.balance_after,
            "reason": self.reason,
        }

    @classmethod
    def from_record(cls, raw: Any) -> Transaction:
        """Build from a decoded journal line. Raises ValueError if malformed."""
        if not isinstance(raw, dict):
            raise ValueError("record is not an object")
        try:
            txn = cls(
                timestamp=raw["timestamp"],
                type=TransactionType(raw["type"]),
                amount=raw["amount"],
                balance_after=raw["balanceAfter"],
                reason=raw.get("reason", ""),
            )
        except KeyError as exc:
            raise ValueError(f"missing field {exc}") from exc
        for name in ("amount", "balance_after"):
            value = getattr(txn, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} is not a number")
        if not isinstance(txn.reason, str):
            raise ValueError("reason is not a string")
        if parse_timestamp(txn.timestamp) is None:
            raise ValueError(f"bad timestamp {txn.timestamp!r}")
        return txn


@dataclass
class DailyAggregate:
    date: str  # YYYY-MM-DD, local
    earned: int = 0
    spent: int = 0


# ═══════════════════════════════════════════════════════════════
#  Ledger
# ═══════════════════════════════════════════════════════════════


class Ledger:
    """Monthly-rotated transaction journal."""

    def __init__(
        self,
        directory: str | Path,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self._dir = Path(directory)
        self._logger = logger or logging.getLogger("dopamine.ledger")
        self._clock = clock

        self.storage_available = True
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            self._logger.exception("Failed to create ledger directory %s", self._dir)
            self.storage_available = False

        if self.storage_available:
            self._migrate_legacy()

    @property
    def directory(self) -> Path:
        return self._dir

    # ── Paths ────────────────────────────────────────────────

    def path_for_month(self, key: str) -> Path:
        return self._dir / f"{FILE_PREFIX}{key}{FILE_SUFFIX}"

    def current_log_path(self) -> Path:
        """Path of the file the next append will land in."""
        return self.path_for_month(month_key(self._clock()))

    def month_files(self) -> list[Path]:
        """All rotated journal files, oldest month first."""
        if not self._dir.is_dir():
            return []
        return sorted(self._dir.glob(f"{FILE_PREFIX}*{FILE_SUFFIX}"))

    # ══════════════════════════════════════════════════════════
    #  Writing
    # ══════════════════════════════════════════════════════════

    def append(
        self,
        kind: TransactionType | str,
        amount: int,
        balance_after: int,
        reason: str,
    ) -> Transaction:
        """Append one transaction to the current month's file."""
        now = self._clock()
        txn = Transaction(
            timestamp=format_timestamp(now),
            type=TransactionType(kind),
            amount=amount,
            balance_after=balance_after,
            reason=reason,
        )
        try:
            self._write_lines(self.path_for_month(month_key(now)), [txn])
        except OSError:
            self._logger.exception("Failed to write transaction log entry: %s", txn.reason)
        return txn

    @staticmethod
    def _write_lines(path: Path, txns: Iterable[Transaction]) -> None:
        with open(path, "a", encoding="utf-8") as f:
            for txn in txns:
                f.write(json.dumps(txn.to_record(), ensure_ascii=False) + "\n")

    # ══════════════════════════════════════════════════════════
    #  Reading
    # ══════════════════════════════════════════════════════════

    def _read_file(self, path: Path) -> list[Transaction]:
        """Read every valid transaction in file order."""
        if not path.exists():
            return []
        txns: list[Transaction] = []
        skipped = 0
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        txns.append(Transaction.from_record(json.loads(line)))
                    except (json.JSONDecodeError, ValueError):
                        skipped += 1
        except OSError as exc:
            self._logger.warning("Could not read %s: %s", path, exc)
            return txns
        if skipped:
            self._logger.debug("Skipped %d malformed line(s) in %s", skipped, path.name)
        return txns

    def _read_month(self, year: int, month: int) -> list[Transaction]:
        return self._read_file(self.path_for_month(f"{year:04d}-{month:02d}"))

    def recent(self, limit: int = 50) -> list[Transaction]:
        """Most recent transactions, newest first.

        Looks at the current month and falls back to the previous month when
        the current one holds fewer than ``limit`` entries.
        """
        if limit <= 0:
            return []
        today = local_date(self._clock())
        previous = today.replace(day=1) - timedelta(days=1)

        # Newest-first within each file before the stable sort
        candidates = list(reversed(self._read_month(today.year, today.month)))
        if len(candidates) < limit:
            candidates.extend(reversed(self._read_month(previous.year, previous.month)))

        candidates.sort(key=lambda t: t.when, reverse=True)
        return candidates[:limit]

    # ══════════════════════════════════════════════════════════
    #  Aggregation
    # ══════════════════════════════════════════════════════════

    @staticmethod
    def _accumulate(buckets: dict[date, DailyAggregate], txns: Iterable[Transaction]) -> None:
        for txn in txns:
            bucket = buckets.get(local_date(txn.when))
            if bucket is None:
                continue
            if txn.type is TransactionType.EARN:
                bucket.earned += txn.amount
            elif txn.type is TransactionType.SPEND:
                bucket.spent += txn.amount

    def monthly_aggregate(self, year: int, month: int) -> list[DailyAggregate]:
        """Earned/spent per local day for every day of the month, in day order."""
        days_in_month = calendar.monthrange(year, month)[1]
        buckets: dict[date, DailyAggregate] = {}
        for day in range(1, days_in_month + 1):
            d = date(year, month, day)
            buckets[d] = DailyAggregate(date=d.isoformat())

        self._accumulate(buckets, self._read_month(year, month))
        return list(buckets.values())

    def daily_stats(self, days: int = 7) -> list[DailyAggregate]:
        """Earned/spent for the last ``days`` local days, oldest first, ending today."""
        if days <= 0:
            return []
        today = local_date(self._clock())
        buckets: dict[date, DailyAggregate] = {}
        for offset in range(days - 1, -1, -1):
            d = today - timedelta(days=offset)
            buckets[d] = DailyAggregate(date=d.isoformat())

        for year, month in sorted({(d.year, d.month) for d in buckets}):
            self._accumulate(buckets, self._read_month(year, month))
        return list(buckets.values())

    # ══════════════════════════════════════════════════════════
    #  Legacy migration
    # ══════════════════════════════════════════════════════════

    def _migrate_legacy(self) -> None:
        """Retire the single-file journal, then replay it into month files.

        The rename comes first so an interrupted replay is never repeated.
        """
        legacy = self._dir / LEGACY_FILENAME
        if not legacy.exists():
            return

        retired = legacy.with_name(legacy.name + MIGRATED_SUFFIX)
        try:
            legacy.replace(retired)
        except OSError:
            self._logger.exception("Could not retire legacy transaction log %s", legacy)
            return

        by_month: dict[str, list[Transaction]] = {}
        for txn in self._read_file(retired):
            by_month.setdefault(month_key(txn.when), []).append(txn)

        try:
            for key, txns in sorted(by_month.items()):
                self._write_lines(self.path_for_month(key), txns)
        except OSError:
            self._logger.exception(
                "Legacy transaction log migration failed, %s kept for manual recovery", retired.name,
            )
            return

        self._logger.info(
            "Migrated %d legacy transaction(s) into %d monthly file(s)",
            sum(len(t) for t in by_month.values()), len(by_month),
        )
