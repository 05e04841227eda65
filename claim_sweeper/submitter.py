"""
Submitter - submits a signed transaction once and classifies the result.

A rejected transaction is never retried here: a bad sequence number, fee or
missing signature would be rejected again identically. The next cycle rebuilds
from fresh account state instead.
"""
import logging

from stellar_sdk import TransactionEnvelope

from claim_sweeper.exceptions import AmbiguousSubmissionError, SubmissionError
from claim_sweeper.ledger import LedgerClient
from claim_sweeper.models import SubmitOutcome, format_result_codes

log = logging.getLogger(__name__)


class Submitter:
    def __init__(self, ledger: LedgerClient, dry_run: bool = False):
        self.ledger = ledger
        self.dry_run = dry_run

    async def submit(self, envelope: TransactionEnvelope, label: str = "transaction") -> SubmitOutcome:
        """
        Submit and classify:
        - SUCCESS: ledger returned a hash
        - NO_HASH: accepted (or timed out) without a hash, outcome unknown
        - FAILED: rejected, with result codes when Horizon provides them
        """
        ops = len(envelope.transaction.operations)

        if self.dry_run:
            tx_hash = envelope.hash_hex()
            log.info(f"[DRY-RUN] Would submit {label} ({ops} ops): {tx_hash}")
            log.debug(f"[DRY-RUN] XDR: {envelope.to_xdr()}")
            return SubmitOutcome.success(tx_hash, dry_run=True)

        log.info(f"Submitting {label} ({ops} ops, {len(envelope.signatures)} signatures)...")
        try:
            tx_hash = await self.ledger.submit_transaction(envelope)
        except AmbiguousSubmissionError as e:
            log.warning(f"{label} submitted without hash: {e.message}")
            return SubmitOutcome.without_hash(e.message)
        except SubmissionError as e:
            if e.result_codes:
                log.error(f"{label} rejected: {format_result_codes(e.result_codes)}")
            else:
                log.error(f"{label} failed: {e.message}")
            return SubmitOutcome.failed(e.message, e.result_codes)

        log.info(f"{label} succeeded: {tx_hash}")
        return SubmitOutcome.success(tx_hash)
