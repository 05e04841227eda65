# Claim Sweeper
# Claims pending claimable balances and forwards them to a fixed receiver

from claim_sweeper.config import SweeperConfig
from claim_sweeper.models import Asset, ClaimableBalance, CycleReport, SubmitOutcome
from claim_sweeper.ledger import LedgerClient
from claim_sweeper.notifier import TelegramNotifier
from claim_sweeper.loop import ClaimSweeper, SweeperLoop

__all__ = [
    "SweeperConfig",
    "Asset",
    "ClaimableBalance",
    "CycleReport",
    "SubmitOutcome",
    "LedgerClient",
    "TelegramNotifier",
    "ClaimSweeper",
    "SweeperLoop",
]
