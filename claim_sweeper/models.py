"""
Data models for the Claim Sweeper.

Ledger responses are parsed into these records once, at the adapter boundary,
so the rest of the package never inspects raw Horizon dicts.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from stellar_sdk import Asset as SdkAsset

from claim_sweeper.exceptions import LedgerDataError

# Ledger amounts carry 7 fractional digits (1 unit = 10^7 stroops)
AMOUNT_QUANTUM = Decimal("0.0000001")


def parse_amount(raw) -> Decimal:
    """Parse a ledger amount string into a Decimal."""
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerDataError(f"Invalid amount: {raw!r}")
    if not amount.is_finite() or amount < 0:
        raise LedgerDataError(f"Invalid amount: {raw!r}")
    return amount


def format_amount(amount: Decimal) -> str:
    """Format an amount with the ledger's 7 decimal places."""
    return str(amount.quantize(AMOUNT_QUANTUM))


@dataclass(frozen=True)
class Asset:
    """Native asset (code/issuer None) or an issued asset (code, issuer)."""

    code: Optional[str] = None
    issuer: Optional[str] = None

    def __post_init__(self):
        if (self.code is None) != (self.issuer is None):
            raise LedgerDataError(f"Issued asset needs both code and issuer: {self.code!r}/{self.issuer!r}")

    @classmethod
    def native(cls) -> "Asset":
        return cls()

    @classmethod
    def issued(cls, code: str, issuer: str) -> "Asset":
        if not code or not issuer:
            raise LedgerDataError(f"Issued asset needs both code and issuer: {code!r}/{issuer!r}")
        return cls(code=code, issuer=issuer)

    @classmethod
    def parse(cls, descriptor: str) -> "Asset":
        """Parse a Horizon canonical asset string: "native" or "CODE:ISSUER"."""
        if descriptor == "native":
            return cls.native()
        parts = descriptor.split(":") if isinstance(descriptor, str) else []
        if len(parts) != 2:
            raise LedgerDataError(f"Unknown asset descriptor: {descriptor!r}")
        return cls.issued(parts[0], parts[1])

    @classmethod
    def from_record(cls, record: dict) -> "Asset":
        """Parse an asset from a Horizon record ("asset" string or asset_type triple)."""
        if "asset" in record:
            return cls.parse(record["asset"])

        asset_type = record.get("asset_type")
        if asset_type == "native":
            return cls.native()
        if asset_type in ("credit_alphanum4", "credit_alphanum12"):
            return cls.issued(record.get("asset_code", ""), record.get("asset_issuer", ""))
        raise LedgerDataError(f"Unknown asset type: {asset_type!r}")

    @property
    def is_native(self) -> bool:
        return self.code is None

    def to_sdk(self) -> SdkAsset:
        if self.is_native:
            return SdkAsset.native()
        return SdkAsset(self.code, self.issuer)

    def __str__(self) -> str:
        if self.is_native:
            return "native"
        return f"{self.code}:{self.issuer}"


@dataclass(frozen=True)
class Account:
    """Snapshot of a ledger account."""

    address: str
    sequence: int
    balances: dict = field(default_factory=dict)  # Asset -> Decimal

    @classmethod
    def from_record(cls, record: dict) -> "Account":
        try:
            address = record["account_id"]
            sequence = int(record["sequence"])
        except (KeyError, TypeError, ValueError):
            raise LedgerDataError("Account record without account_id/sequence")

        balances = {}
        for line in record.get("balances", []):
            # Liquidity pool shares are not payable assets
            if line.get("asset_type") == "liquidity_pool_shares":
                continue
            balances[Asset.from_record(line)] = parse_amount(line.get("balance"))

        return cls(address=address, sequence=sequence, balances=balances)

    @property
    def native_balance(self) -> Decimal:
        return self.balances.get(Asset.native(), Decimal("0"))


@dataclass(frozen=True)
class ClaimableBalance:
    """A pending claimable balance the sender can claim."""

    balance_id: str
    amount: Decimal
    asset: Asset

    @classmethod
    def from_record(cls, record: dict) -> "ClaimableBalance":
        balance_id = record.get("id")
        if not balance_id:
            raise LedgerDataError("Claimable balance record without id")
        return cls(
            balance_id=balance_id,
            amount=parse_amount(record.get("amount")),
            asset=Asset.from_record(record),
        )


@dataclass(frozen=True)
class SigningIdentity:
    """Public/secret key pair derived from a mnemonic."""

    public_key: str
    secret_key: str = field(repr=False)


@dataclass(frozen=True)
class ClaimPair:
    """A claim operation followed by the payment forwarding its amount."""

    balance: ClaimableBalance
    source: str
    destination: str


@dataclass(frozen=True)
class BatchPlan:
    """Claim/payment pairs for one transaction, in discovery order."""

    pairs: tuple = ()  # tuple[ClaimPair, ...]
    deferred: int = 0  # Balances left for a later cycle

    @property
    def pair_count(self) -> int:
        return len(self.pairs)

    @property
    def operation_count(self) -> int:
        return 2 * len(self.pairs)

    @property
    def is_empty(self) -> bool:
        return not self.pairs


@dataclass(frozen=True)
class SweepPlan:
    """Single native payment moving everything above the reserve."""

    source: str
    destination: str
    amount: Decimal
    balance: Decimal
    reserve: Decimal


class OutcomeKind(Enum):
    SUCCESS = "SUCCESS"
    NO_HASH = "NO_HASH"  # Accepted, outcome unknown
    FAILED = "FAILED"


@dataclass(frozen=True)
class SubmitOutcome:
    """Classified result of one transaction submission."""

    kind: OutcomeKind
    tx_hash: str = ""
    result_codes: Optional[dict] = None
    message: str = ""
    dry_run: bool = False

    @classmethod
    def success(cls, tx_hash: str, dry_run: bool = False) -> "SubmitOutcome":
        return cls(OutcomeKind.SUCCESS, tx_hash=tx_hash, dry_run=dry_run)

    @classmethod
    def without_hash(cls, message: str = "") -> "SubmitOutcome":
        return cls(OutcomeKind.NO_HASH, message=message)

    @classmethod
    def failed(cls, message: str, result_codes: Optional[dict] = None) -> "SubmitOutcome":
        return cls(OutcomeKind.FAILED, message=message, result_codes=result_codes)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def describe(self) -> str:
        if self.kind is OutcomeKind.SUCCESS:
            prefix = "[DRY-RUN] " if self.dry_run else ""
            return f"{prefix}Tx Hash: {self.tx_hash}"
        if self.kind is OutcomeKind.NO_HASH:
            return "submitted but no hash returned (outcome unknown)"
        if self.result_codes:
            return f"rejected: {format_result_codes(self.result_codes)}"
        return f"failed: {self.message}"


def format_result_codes(result_codes: dict) -> str:
    """Render Horizon result codes as "tx_failed [op_success, op_no_trust]"."""
    tx_code = result_codes.get("transaction", "unknown")
    ops = result_codes.get("operations") or []
    if ops:
        return f"{tx_code} [{', '.join(ops)}]"
    return str(tx_code)


class CycleStatus(Enum):
    COMPLETED = "COMPLETED"
    NOTHING_TO_DO = "NOTHING_TO_DO"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


@dataclass
class CycleReport:
    """Result of one claim-and-sweep cycle."""

    started_at: int = 0
    finished_at: int = 0
    sender: str = ""
    sponsored: bool = False
    claimables_found: int = 0
    pairs: int = 0
    deferred: int = 0
    batch: Optional[SubmitOutcome] = None
    sweep_amount: Optional[Decimal] = None
    sweep: Optional[SubmitOutcome] = None
    error: str = ""

    @property
    def submissions(self) -> int:
        return sum(1 for o in (self.batch, self.sweep) if o is not None)

    @property
    def status(self) -> CycleStatus:
        if self.error and self.submissions == 0:
            return CycleStatus.FAILED
        if self.submissions == 0:
            return CycleStatus.NOTHING_TO_DO

        outcomes = [o for o in (self.batch, self.sweep) if o is not None]
        succeeded = sum(1 for o in outcomes if o.ok)
        if succeeded == len(outcomes) and not self.error:
            return CycleStatus.COMPLETED
        if succeeded == 0 and all(o.kind is OutcomeKind.FAILED for o in outcomes):
            return CycleStatus.FAILED
        return CycleStatus.PARTIAL

    def to_message(self) -> str:
        """Human-readable report for the notification sink."""
        status = self.status
        icon = {
            CycleStatus.COMPLETED: "✅",
            CycleStatus.NOTHING_TO_DO: "ℹ️",
            CycleStatus.PARTIAL: "⚠️",
            CycleStatus.FAILED: "❌",
        }[status]

        lines = [f"{icon} Claim & sweep cycle: {status.value}"]
        if self.sender:
            lines.append(f"Sender: {self.sender}{' (sponsored)' if self.sponsored else ''}")

        if self.batch is not None:
            lines.append(f"Claim batch ({self.pairs} pairs): {self.batch.describe()}")
            if self.deferred:
                lines.append(f"Deferred to next cycle: {self.deferred} balances")
        elif status is not CycleStatus.FAILED:
            lines.append(f"Claimable balances: {self.claimables_found}")

        if self.sweep is not None:
            lines.append(f"Sweep {format_amount(self.sweep_amount)}: {self.sweep.describe()}")
        elif self.sweep_amount is not None:
            lines.append("Sweep: balance at or below reserve, nothing to send")

        if self.error:
            lines.append(f"Error: {self.error}")
        return "\n".join(lines)
