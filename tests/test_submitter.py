"""
Tests for submission outcome classification.
"""
import asyncio
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from claim_sweeper.batch import build_batch
from claim_sweeper.exceptions import AmbiguousSubmissionError, SubmissionError
from claim_sweeper.models import OutcomeKind
from claim_sweeper.submitter import Submitter
from fakes import FakeLedger, account, claimables, identity


def _envelope():
    sender = identity()
    _, envelope = build_batch(
        claimables(2),
        sender_identity=sender,
        fee_payer=account(sender.public_key),
        fee_payer_identity=sender,
        base_fee=100,
        destination=identity().public_key,
        network_passphrase="Pi Network",
    )
    return envelope


def _submit(result, dry_run=False):
    ledger = FakeLedger(submit_results=[result])
    outcome = asyncio.run(Submitter(ledger, dry_run=dry_run).submit(_envelope(), "batch"))
    return outcome, ledger


def test_success_with_hash():
    outcome, ledger = _submit("deadbeef")
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.tx_hash == "deadbeef"
    assert len(ledger.submitted) == 1


def test_accepted_without_hash():
    outcome, _ = _submit(AmbiguousSubmissionError("no hash"))
    assert outcome.kind is OutcomeKind.NO_HASH
    assert not outcome.ok


def test_rejected_with_result_codes():
    codes = {"transaction": "tx_bad_seq"}
    outcome, ledger = _submit(SubmissionError("Transaction Failed", result_codes=codes))
    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.result_codes == codes
    assert "tx_bad_seq" in outcome.describe()
    # single attempt, no retry
    assert len(ledger.submitted) == 1


def test_rejected_without_codes_uses_message():
    outcome, _ = _submit(SubmissionError("Submission failed: 500"))
    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.result_codes is None
    assert outcome.describe() == "failed: Submission failed: 500"


def test_dry_run_never_submits():
    outcome, ledger = _submit("unused", dry_run=True)
    assert outcome.ok
    assert outcome.dry_run
    assert len(outcome.tx_hash) == 64
    assert ledger.submitted == []
