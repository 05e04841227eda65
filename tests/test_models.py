"""
Tests for ledger record parsing and cycle reports.
"""
import sys
from decimal import Decimal
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from stellar_sdk import Keypair

from claim_sweeper.exceptions import LedgerDataError
from claim_sweeper.models import (
    Account,
    Asset,
    ClaimableBalance,
    CycleReport,
    CycleStatus,
    SubmitOutcome,
)

ISSUER = Keypair.random().public_key


def test_asset_parse():
    assert Asset.parse("native") == Asset.native()
    assert Asset.parse("native").is_native

    usd = Asset.parse(f"USD:{ISSUER}")
    assert usd == Asset.issued("USD", ISSUER)
    assert not usd.is_native
    assert str(usd) == f"USD:{ISSUER}"
    assert usd.to_sdk().code == "USD"


def test_asset_from_type_triple():
    assert Asset.from_record({"asset_type": "native"}).is_native
    record = {"asset_type": "credit_alphanum4", "asset_code": "USD", "asset_issuer": ISSUER}
    assert Asset.from_record(record) == Asset.issued("USD", ISSUER)


def test_unknown_asset_descriptor():
    with pytest.raises(LedgerDataError):
        Asset.parse("garbage")
    with pytest.raises(LedgerDataError):
        Asset.from_record({"asset_type": "liquidity_pool_shares"})
    with pytest.raises(LedgerDataError):
        Asset.issued("USD", "")


def test_claimable_balance_from_record():
    cb = ClaimableBalance.from_record({"id": "00000000abc", "amount": "12.5000000", "asset": "native"})
    assert cb.balance_id == "00000000abc"
    assert cb.amount == Decimal("12.5")
    assert cb.asset.is_native


def test_claimable_balance_bad_amount():
    with pytest.raises(LedgerDataError):
        ClaimableBalance.from_record({"id": "00000000abc", "amount": "lots", "asset": "native"})
    with pytest.raises(LedgerDataError):
        ClaimableBalance.from_record({"id": "00000000abc", "amount": "-1", "asset": "native"})


def test_account_from_record():
    record = {
        "account_id": "GSENDER",
        "sequence": "123456789",
        "balances": [
            {"asset_type": "credit_alphanum4", "asset_code": "USD", "asset_issuer": ISSUER, "balance": "3.0000000"},
            {"asset_type": "liquidity_pool_shares", "liquidity_pool_id": "abc", "balance": "1.0000000"},
            {"asset_type": "native", "balance": "7.2500000"},
        ],
    }
    acc = Account.from_record(record)
    assert acc.sequence == 123456789
    assert acc.native_balance == Decimal("7.25")
    assert acc.balances[Asset.issued("USD", ISSUER)] == Decimal("3")
    assert len(acc.balances) == 2


def test_account_without_native_line():
    acc = Account.from_record({"account_id": "GSENDER", "sequence": "1", "balances": []})
    assert acc.native_balance == 0


def test_report_status():
    assert CycleReport().status is CycleStatus.NOTHING_TO_DO
    assert CycleReport(error="boom").status is CycleStatus.FAILED
    assert CycleReport(batch=SubmitOutcome.success("h")).status is CycleStatus.COMPLETED
    assert CycleReport(
        batch=SubmitOutcome.success("h"), sweep=SubmitOutcome.failed("x")
    ).status is CycleStatus.PARTIAL
    assert CycleReport(batch=SubmitOutcome.without_hash()).status is CycleStatus.PARTIAL
    assert CycleReport(batch=SubmitOutcome.failed("x")).status is CycleStatus.FAILED
    assert CycleReport(batch=SubmitOutcome.success("h"), error="reload failed").status is CycleStatus.PARTIAL


def test_report_message():
    report = CycleReport(
        sender="GSENDER",
        sponsored=True,
        claimables_found=30,
        pairs=25,
        deferred=5,
        batch=SubmitOutcome.success("abc123"),
        sweep_amount=Decimal("0.7000000"),
        sweep=SubmitOutcome.failed("bad", {"transaction": "tx_failed", "operations": ["op_underfunded"]}),
    )
    msg = report.to_message()

    assert "PARTIAL" in msg
    assert "(sponsored)" in msg
    assert "Claim batch (25 pairs): Tx Hash: abc123" in msg
    assert "Deferred to next cycle: 5" in msg
    assert "Sweep 0.7000000: rejected: tx_failed [op_underfunded]" in msg


def test_nothing_to_do_message():
    msg = CycleReport(sender="GSENDER", sweep_amount=Decimal("0")).to_message()
    assert "NOTHING_TO_DO" in msg
    assert "Claimable balances: 0" in msg
    assert "at or below reserve" in msg
