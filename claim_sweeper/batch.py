"""
Batch Builder - packs claimable balances into one signed transaction.

Each balance becomes a pair of operations, both sourced from the sender:
    1. claim_claimable_balance(balance_id)
    2. payment(receiver, same asset, same amount)

The transaction itself is sourced from the fee payer (the sender, or the
sponsor when one is configured), so the sponsor's sequence number is consumed
and its balance pays the fee while the sender's balances move.
"""
import logging
from typing import Optional, Sequence

from stellar_sdk import Account as SdkAccount
from stellar_sdk import Keypair, TransactionBuilder, TransactionEnvelope
from stellar_sdk.operation import ClaimClaimableBalance, Payment

from claim_sweeper.models import (
    Account,
    BatchPlan,
    ClaimableBalance,
    ClaimPair,
    SigningIdentity,
    format_amount,
)

log = logging.getLogger(__name__)

MAX_PAIRS = 25
TX_TIMEOUT_S = 30


def plan_batch(
    balances: Sequence[ClaimableBalance],
    sender: str,
    destination: str,
    max_pairs: int = MAX_PAIRS,
) -> BatchPlan:
    """Take balances in discovery order until max_pairs; the rest are deferred."""
    pairs = []
    for balance in balances:
        if len(pairs) >= max_pairs:
            log.info(f"Reached {max_pairs} claim/payment pairs, deferring {len(balances) - len(pairs)} balances")
            break
        pairs.append(ClaimPair(balance=balance, source=sender, destination=destination))

    return BatchPlan(pairs=tuple(pairs), deferred=len(balances) - len(pairs))


def new_builder(fee_payer: Account, base_fee: int, network_passphrase: str) -> TransactionBuilder:
    """Transaction builder on the fee payer's current sequence number."""
    return TransactionBuilder(
        source_account=SdkAccount(fee_payer.address, fee_payer.sequence),
        network_passphrase=network_passphrase,
        base_fee=base_fee,
    )


def sign_envelope(envelope: TransactionEnvelope, fee_payer: SigningIdentity, sender: SigningIdentity):
    """Fee payer always signs; the sender signs too when someone else pays."""
    envelope.sign(Keypair.from_secret(fee_payer.secret_key))
    if sender.public_key != fee_payer.public_key:
        envelope.sign(Keypair.from_secret(sender.secret_key))


def build_batch_transaction(
    plan: BatchPlan,
    fee_payer: Account,
    base_fee: int,
    network_passphrase: str,
    sender_identity: SigningIdentity,
    fee_payer_identity: SigningIdentity,
    timeout: int = TX_TIMEOUT_S,
) -> Optional[TransactionEnvelope]:
    """
    Build and sign the batch transaction for a plan.

    Returns None for an empty plan; callers must not submit anything then.
    """
    if plan.is_empty:
        return None

    builder = new_builder(fee_payer, base_fee, network_passphrase)
    for pair in plan.pairs:
        cb = pair.balance
        log.info(f"Claiming {cb.balance_id[:16]}... ({format_amount(cb.amount)} {cb.asset})")
        builder.append_claim_claimable_balance_op(balance_id=cb.balance_id, source=pair.source)
        builder.append_payment_op(
            destination=pair.destination,
            asset=cb.asset.to_sdk(),
            amount=format_amount(cb.amount),
            source=pair.source,
        )

    envelope = builder.set_timeout(timeout).build()
    sign_envelope(envelope, fee_payer_identity, sender_identity)
    return envelope


def count_pairs(operations: Sequence) -> int:
    """Number of claim operations immediately followed by a payment."""
    pairs = 0
    for current, following in zip(operations, operations[1:]):
        if isinstance(current, ClaimClaimableBalance) and isinstance(following, Payment):
            pairs += 1
    return pairs


def build_batch(
    balances: Sequence[ClaimableBalance],
    sender_identity: SigningIdentity,
    fee_payer: Account,
    fee_payer_identity: SigningIdentity,
    base_fee: int,
    destination: str,
    network_passphrase: str,
    max_pairs: int = MAX_PAIRS,
    timeout: int = TX_TIMEOUT_S,
) -> Optional[tuple[BatchPlan, TransactionEnvelope]]:
    """Plan and build in one step. None when there is nothing to claim."""
    plan = plan_batch(balances, sender_identity.public_key, destination, max_pairs)
    envelope = build_batch_transaction(
        plan, fee_payer, base_fee, network_passphrase, sender_identity, fee_payer_identity, timeout
    )
    if envelope is None:
        return None
    return plan, envelope
