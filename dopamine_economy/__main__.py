"""CLI entry point for dopamine-economy.

Validates a config file and inspects the wallet and transaction ledger.
"""
import argparse
import logging
import sys
from pathlib import Path

from .config import DopamineConfig, load_config
from .ledger import Ledger, TransactionType
from .main import open_state_store
from .wallet import Wallet


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dopamine Economy — Coding Reward Ledger")
    parser.add_argument("--config", type=str, help="Path to config.yaml")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--validate-config", action="store_true", help="Validate config and exit")
    parser.add_argument("--balance", action="store_true", help="Print today's balance")
    parser.add_argument("--recent", type=int, metavar="N", help="Print the N most recent transactions")
    parser.add_argument("--month", type=str, metavar="YYYY-MM", help="Print daily totals for a month")
    parser.add_argument("--days", type=int, metavar="N", help="Print daily totals for the last N days")
    return parser.parse_args(argv)


def resolve_config_path(explicit: str | None) -> str | None:
    if explicit:
        return explicit
    for candidate in [
        "./config.yaml",
        str(Path("~/.dopamine-economy/config.yaml").expanduser()),
    ]:
        if Path(candidate).exists():
            return candidate
    return None


def _parse_month(value: str) -> tuple[int, int]:
    year_s, _, month_s = value.partition("-")
    year, month = int(year_s), int(month_s)
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {value}")
    return year, month


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger("dopamine")

    config_path = resolve_config_path(args.config)
    try:
        config = load_config(config_path) if config_path else DopamineConfig()
    except Exception as e:
        logger.error("Config validation failed: %s", e)
        return 1

    if args.validate_config:
        print(f"Config is valid ({config_path or 'defaults'}).")
        return 0

    ledger = Ledger(config.storage.path)

    if args.balance:
        wallet = Wallet(open_state_store(config.storage, logger), ledger)
        print(f"Balance: {wallet.get_balance()} coins")

    if args.recent:
        for txn in ledger.recent(args.recent):
            sign = "-" if txn.type is TransactionType.SPEND else "+"
            print(f"{txn.timestamp}  {sign}{txn.amount:<5} balance {txn.balance_after:<6} {txn.reason}")

    if args.month:
        try:
            year, month = _parse_month(args.month)
        except ValueError:
            logger.error("Invalid --month %r, expected YYYY-MM", args.month)
            return 1
        for day in ledger.monthly_aggregate(year, month):
            print(f"{day.date}  earned {day.earned:<6} spent {day.spent}")

    if args.days:
        for day in ledger.daily_stats(args.days):
            print(f"{day.date}  earned {day.earned:<6} spent {day.spent}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
