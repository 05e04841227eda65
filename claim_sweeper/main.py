#!/usr/bin/env python3
"""
Claim Sweeper - claims pending claimable balances and forwards them.

USAGE:
    python -m claim_sweeper.main            # Loop forever (default)
    python -m claim_sweeper.main --once     # Single cycle
    python -m claim_sweeper.main --dry-run  # Build and sign, never submit

REQUIRES (.env):
    - MNEMONIC, RECEIVER_ADDRESS
    - Optional: SPONSOR_MNEMONIC (pays fees, enables sweep)
    - Optional: TELEGRAM_BOT_TOKEN + TELEGRAM_CHAT_ID for notifications
"""
import argparse
import asyncio
import logging
import os
import sys

from claim_sweeper.config import SweeperConfig
from claim_sweeper.exceptions import ConfigurationError, DerivationError
from claim_sweeper.ledger import LedgerClient
from claim_sweeper.loop import ClaimSweeper, SweeperLoop
from claim_sweeper.notifier import TelegramNotifier

log = logging.getLogger("claim_sweeper")


def setup_logging(debug: bool = False):
    level = "DEBUG" if debug else os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-5s %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    # Request URLs contain the Telegram bot token
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("stellar_sdk").setLevel(logging.WARNING)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Claim claimable balances and sweep them to a receiver")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument("--dry-run", action="store_true", help="Build and sign transactions without submitting")
    parser.add_argument("--no-sweep", action="store_true", help="Only claim, never sweep the remaining balance")
    parser.add_argument("--sweep", action="store_true", help="Sweep the remaining balance even without a sponsor")
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def load_config(args) -> SweeperConfig:
    """Build config from env + CLI flags. Raises ConfigurationError."""
    config = SweeperConfig()
    if args.dry_run:
        config.dry_run = True
    if args.sweep:
        config.sweep_enabled = True
    if args.no_sweep:
        config.sweep_enabled = False

    errors = config.validate()
    if errors:
        raise ConfigurationError("Invalid configuration", {"errors": errors})
    return config


async def run(config: SweeperConfig, once: bool = False):
    ledger = LedgerClient(config)
    notifier = TelegramNotifier(config)
    try:
        sweeper = ClaimSweeper.from_config(config, ledger)
        loop = SweeperLoop(config, sweeper, notifier)
        loop.install_signal_handlers()
        await loop.run(max_cycles=1 if once else None)
    finally:
        await notifier.close()
        await ledger.close()


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.debug)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        log.error("Configuration errors:")
        for err in e.details.get("errors", [e.message]):
            log.error(f"  - {err}")
        return 1

    if not config.has_telegram:
        log.warning("TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID not set, reports go to the log only")

    try:
        asyncio.run(run(config, once=args.once))
    except DerivationError as e:
        log.error(f"Key derivation failed: {e.message}")
        return 1
    except KeyboardInterrupt:
        log.info("Interrupted by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
