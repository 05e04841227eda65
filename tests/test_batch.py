"""
Tests for the claim batch builder.
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from stellar_sdk.operation import ClaimClaimableBalance, Payment

from claim_sweeper.batch import build_batch, build_batch_transaction, count_pairs, plan_batch
from fakes import account, claimables, identity

PASSPHRASE = "Pi Network"


def _build(n, sponsor=False, max_pairs=25):
    sender = identity()
    fee_payer = identity() if sponsor else sender
    receiver = identity().public_key
    balances = claimables(n)
    built = build_batch(
        balances,
        sender_identity=sender,
        fee_payer=account(fee_payer.public_key, sequence=5000),
        fee_payer_identity=fee_payer,
        base_fee=100,
        destination=receiver,
        network_passphrase=PASSPHRASE,
        max_pairs=max_pairs,
    )
    return built, sender, fee_payer, receiver, balances


def test_pairs_alternate_claim_and_payment_from_sender():
    for n in (1, 7, 25):
        (plan, envelope), sender, _, receiver, balances = _build(n)
        ops = envelope.transaction.operations

        assert len(ops) == 2 * n
        for i in range(n):
            claim, payment = ops[2 * i], ops[2 * i + 1]
            assert isinstance(claim, ClaimClaimableBalance)
            assert isinstance(payment, Payment)
            assert claim.balance_id == balances[i].balance_id
            assert claim.source.account_id == sender.public_key
            assert payment.source.account_id == sender.public_key
            assert payment.destination.account_id == receiver
            assert payment.amount == "1.5000000"
        assert plan.deferred == 0


def test_caps_at_max_pairs_in_discovery_order():
    (plan, envelope), _, _, _, balances = _build(40)
    ops = envelope.transaction.operations

    assert len(ops) == 50
    assert plan.pair_count == 25
    assert plan.deferred == 15
    claimed = [op.balance_id for op in ops if isinstance(op, ClaimClaimableBalance)]
    assert claimed == [b.balance_id for b in balances[:25]]


def test_empty_list_builds_nothing():
    built, *_ = _build(0)
    assert built is None

    plan = plan_batch([], "GSENDER", "GRECEIVER")
    assert plan.is_empty
    assert build_batch_transaction(plan, account(identity().public_key), 100, PASSPHRASE, identity(), identity()) is None


def test_signature_count_by_mode():
    (_, solo), sender, fee_payer, _, _ = _build(3)
    assert fee_payer is sender
    assert len(solo.signatures) == 1

    (_, sponsored), sender, sponsor, _, _ = _build(3, sponsor=True)
    assert len(sponsored.signatures) == 2


def test_fee_payer_is_transaction_source():
    (_, envelope), sender, sponsor, _, _ = _build(2, sponsor=True)
    tx = envelope.transaction

    assert tx.source.account_id == sponsor.public_key
    assert tx.sequence == 5001
    assert tx.fee == 100 * 4
    assert tx.preconditions.time_bounds.max_time > 0


def test_count_pairs_recovers_pair_count():
    for n in (1, 12, 25, 30):
        (plan, envelope), *_ = _build(n)
        assert count_pairs(envelope.transaction.operations) == min(n, 25) == plan.pair_count


def test_custom_cap():
    (plan, envelope), *_ = _build(10, max_pairs=4)
    assert plan.pair_count == 4
    assert len(envelope.transaction.operations) == 8
