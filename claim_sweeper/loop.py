"""
Claim Loop - claim-and-sweep cycle plus the driver that repeats it forever.

One cycle:
    load accounts -> claim batch (if any claimables) -> submit
    -> reload sender -> sweep (if enabled and above reserve) -> submit

Every cycle ends in exactly one report to the notifier, whatever happened
(nothing-to-do cycles are only logged when notify_idle is off), and the
driver waits cycle_delay before starting the next one. Only a stop request
(SIGINT/SIGTERM) ends the loop.
"""
import asyncio
import logging
import signal
import time
from decimal import Decimal
from typing import Optional

from claim_sweeper.batch import build_batch
from claim_sweeper.config import SweeperConfig
from claim_sweeper.exceptions import CycleCancelled, DerivationError, SweeperError
from claim_sweeper.keys import derive_keypair
from claim_sweeper.ledger import LedgerClient
from claim_sweeper.models import CycleReport, CycleStatus, SigningIdentity
from claim_sweeper.notifier import TelegramNotifier
from claim_sweeper.submitter import Submitter
from claim_sweeper.sweep import build_sweep_transaction, plan_sweep

log = logging.getLogger("claim_sweeper")


class ClaimSweeper:
    """
    Runs single claim-and-sweep cycles for one sender.

    With a sponsor identity the sponsor is the transaction source (pays fees,
    consumes its sequence number) and both keys sign; without one the sender
    does both.
    """

    def __init__(
        self,
        config: SweeperConfig,
        ledger: LedgerClient,
        sender: SigningIdentity,
        sponsor: Optional[SigningIdentity] = None,
    ):
        self.config = config
        self.ledger = ledger
        self.sender = sender
        self.sponsor = sponsor
        self.submitter = Submitter(ledger, dry_run=config.dry_run)

    @classmethod
    def from_config(cls, config: SweeperConfig, ledger: LedgerClient) -> "ClaimSweeper":
        """Derive signing identities. DerivationError here is fatal."""
        try:
            sender = derive_keypair(config.mnemonic, config.derivation_path)
        except DerivationError as e:
            raise DerivationError(f"MNEMONIC: {e.message}")

        sponsor = None
        if config.has_sponsor:
            try:
                sponsor = derive_keypair(config.sponsor_mnemonic, config.derivation_path)
            except DerivationError as e:
                raise DerivationError(f"SPONSOR_MNEMONIC: {e.message}")
        return cls(config, ledger, sender, sponsor)

    @property
    def fee_payer(self) -> SigningIdentity:
        return self.sponsor or self.sender

    async def run_cycle(self, stop_event: Optional[asyncio.Event] = None) -> CycleReport:
        """Execute one cycle. Never raises; failures end up in the report."""
        report = CycleReport(
            started_at=int(time.time()),
            sender=self.sender.public_key,
            sponsored=self.sponsor is not None,
        )

        try:
            await self._claim_and_sweep(report, stop_event)
        except SweeperError as e:
            log.error(f"Cycle error: {e.message}")
            report.error = e.message
        except Exception as e:
            log.exception("Unexpected error in cycle")
            report.error = f"{e.__class__.__name__}: {e}"

        report.finished_at = int(time.time())
        log.info(f"Cycle {report.status.value}: {report.submissions} submissions in {report.finished_at - report.started_at}s")
        return report

    async def _claim_and_sweep(self, report: CycleReport, stop_event: Optional[asyncio.Event]):
        def checkpoint(phase: str):
            if stop_event is not None and stop_event.is_set():
                raise CycleCancelled(f"Stopped before {phase}")

        # === LOAD ACCOUNTS ===
        checkpoint("loading accounts")
        sender_account = await self.ledger.load_account(self.sender.public_key)
        fee_payer_account = sender_account
        if self.sponsor:
            fee_payer_account = await self.ledger.load_account(self.sponsor.public_key)
        log.info(f"Sender {sender_account.address} seq={sender_account.sequence} native={sender_account.native_balance}")

        # === CLAIM BATCH ===
        checkpoint("querying claimable balances")
        claimables = await self.ledger.claimable_balances(self.sender.public_key)
        report.claimables_found = len(claimables)

        base_fee = None
        if claimables:
            log.info(f"Found {len(claimables)} claimable balances")
            base_fee = await self.ledger.fetch_base_fee()
            log.info(f"Using base fee {base_fee} (paid by {'sponsor' if self.sponsor else 'sender'})")

            built = build_batch(
                claimables,
                sender_identity=self.sender,
                fee_payer=fee_payer_account,
                fee_payer_identity=self.fee_payer,
                base_fee=base_fee,
                destination=self.config.receiver_address,
                network_passphrase=self.config.network_passphrase,
                max_pairs=self.config.max_pairs,
                timeout=self.config.tx_timeout_s,
            )
            if built is not None:
                plan, envelope = built
                report.pairs = plan.pair_count
                report.deferred = plan.deferred

                checkpoint("submitting claim batch")
                report.batch = await self.submitter.submit(envelope, f"claim batch of {plan.pair_count} pairs")
        else:
            log.info("No claimable balances found")

        if not self.config.sweep_enabled:
            return

        # === SWEEP ===
        # Reload: the batch moved balances and consumed a sequence number
        checkpoint("reloading accounts for sweep")
        sender_account = await self.ledger.load_account(self.sender.public_key)
        fee_payer_account = sender_account
        if self.sponsor:
            fee_payer_account = await self.ledger.load_account(self.sponsor.public_key)

        plan = plan_sweep(sender_account, self.config.receiver_address, self.config.min_reserve)
        report.sweep_amount = plan.amount if plan else Decimal("0")
        if plan is None:
            return

        if base_fee is None:
            base_fee = await self.ledger.fetch_base_fee()
        envelope = build_sweep_transaction(
            plan,
            fee_payer=fee_payer_account,
            base_fee=base_fee,
            network_passphrase=self.config.network_passphrase,
            sender_identity=self.sender,
            fee_payer_identity=self.fee_payer,
            timeout=self.config.tx_timeout_s,
        )

        checkpoint("submitting sweep")
        report.sweep = await self.submitter.submit(envelope, "sweep")


class SweeperLoop:
    """
    Drives ClaimSweeper cycles sequentially until stopped.

    Features:
    - Exactly one notification per cycle (idle cycles only logged when notify_idle is off)
    - Fixed delay between cycles, cut short by a stop request
    - Graceful shutdown on SIGTERM/SIGINT (between phases, never mid-call)
    """

    def __init__(self, config: SweeperConfig, sweeper: ClaimSweeper, notifier: TelegramNotifier):
        self.config = config
        self.sweeper = sweeper
        self.notifier = notifier
        self.stop_event = asyncio.Event()
        self.cycles = 0

    def stop(self):
        self.stop_event.set()

    async def run(self, max_cycles: Optional[int] = None):
        """Main loop. max_cycles is for single runs and tests; None runs forever."""
        log.info("=" * 60)
        log.info("Claim Sweeper starting...")
        log.info(f"  Mode: {'DRY RUN' if self.config.dry_run else 'LIVE'}")
        log.info(f"  Sender: {self.sweeper.sender.public_key}")
        log.info(f"  Sponsor: {self.sweeper.sponsor.public_key if self.sweeper.sponsor else '-'}")
        log.info(f"  Receiver: {self.config.receiver_address}")
        log.info(f"  Max pairs per tx: {self.config.max_pairs}")
        log.info(f"  Sweep: {'on' if self.config.sweep_enabled else 'off'} (reserve {self.config.min_reserve})")
        log.info(f"  Cycle delay: {self.config.cycle_delay_ms}ms")
        log.info("=" * 60)

        while not self.stop_event.is_set():
            report = await self.sweeper.run_cycle(self.stop_event)
            await self._report(report)
            self.cycles += 1

            if max_cycles is not None and self.cycles >= max_cycles:
                break
            if self.stop_event.is_set():
                break

            log.info(f"Waiting {self.config.cycle_delay_ms}ms before next cycle...")
            log.info("-" * 60)
            await self.wait_delay(self.config.cycle_delay_s)

        log.info(f"Claim Sweeper stopped after {self.cycles} cycles")

    async def wait_delay(self, seconds: float):
        """Sleep between cycles; returns early when stop is requested."""
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _report(self, report: CycleReport):
        if report.status is CycleStatus.NOTHING_TO_DO and not self.config.notify_idle:
            log.info("Nothing to do, notification skipped")
            return
        try:
            await self.notifier.notify(report.to_message())
        except Exception as e:
            log.error(f"Notifier error: {e}")

    def install_signal_handlers(self):
        """Must be called from inside the running event loop."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self._handle_signal, signum)

    def _handle_signal(self, signum):
        """Handle shutdown signals."""
        log.info(f"Received signal {signum}, shutting down...")
        self.stop()
