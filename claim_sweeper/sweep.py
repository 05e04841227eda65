"""
Sweep - moves the sender's native balance above the reserve to the receiver.

Must be computed from an account snapshot loaded after the claim batch was
submitted; the batch changes the balance.
"""
import logging
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from stellar_sdk import Asset as SdkAsset
from stellar_sdk import TransactionEnvelope

from claim_sweeper.batch import TX_TIMEOUT_S, new_builder, sign_envelope
from claim_sweeper.models import AMOUNT_QUANTUM, Account, SigningIdentity, SweepPlan, format_amount

log = logging.getLogger(__name__)


def compute_sweep_amount(native_balance: Decimal, min_reserve: Decimal) -> Decimal:
    """max(0, balance - reserve), cut to 7 decimal places (never rounds up)."""
    amount = (native_balance - min_reserve).quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)
    return max(amount, Decimal("0").quantize(AMOUNT_QUANTUM))


def plan_sweep(account: Account, destination: str, min_reserve: Decimal) -> Optional[SweepPlan]:
    """Sweep plan for a fresh snapshot, or None if nothing is above the reserve."""
    balance = account.native_balance
    amount = compute_sweep_amount(balance, min_reserve)
    if amount <= 0:
        log.info(f"Native balance {format_amount(balance)} <= reserve {min_reserve}, nothing to sweep")
        return None

    return SweepPlan(
        source=account.address,
        destination=destination,
        amount=amount,
        balance=balance,
        reserve=min_reserve,
    )


def build_sweep_transaction(
    plan: SweepPlan,
    fee_payer: Account,
    base_fee: int,
    network_passphrase: str,
    sender_identity: SigningIdentity,
    fee_payer_identity: SigningIdentity,
    timeout: int = TX_TIMEOUT_S,
) -> TransactionEnvelope:
    """Single native payment, signed the same way as the claim batch."""
    log.info(f"Sweeping {format_amount(plan.amount)} (balance {format_amount(plan.balance)}, reserve {plan.reserve})")

    builder = new_builder(fee_payer, base_fee, network_passphrase)
    builder.append_payment_op(
        destination=plan.destination,
        asset=SdkAsset.native(),
        amount=format_amount(plan.amount),
        source=plan.source,
    )
    envelope = builder.set_timeout(timeout).build()
    sign_envelope(envelope, fee_payer_identity, sender_identity)
    return envelope
