"""
Configuration for the Claim Sweeper.
"""
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from dotenv import load_dotenv
from stellar_sdk import StrKey

load_dotenv()

# Pi Network mainnet (Stellar-family ledger)
HORIZON_URL = "https://api.mainnet.minepi.com"
NETWORK_PASSPHRASE = "Pi Network"

# BIP-44 path with Pi's registered coin type
DERIVATION_PATH = "m/44'/314159'/0'"

# Hard limit of the ledger is 100 ops per transaction; a claim/payment pair is 2 ops
LEDGER_MAX_PAIRS = 50


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SweeperConfig:
    """Configuration for the Claim Sweeper."""

    # === WALLETS ===
    mnemonic: str = ""
    receiver_address: str = ""
    sponsor_mnemonic: str = ""  # Optional: pays fees for the sender
    derivation_path: str = DERIVATION_PATH

    # === NETWORK ===
    horizon_url: str = ""
    network_passphrase: str = ""

    # === LIMITS ===
    max_pairs: int | None = None  # 25 pairs = 50 operations
    tx_timeout_s: int | None = None
    min_reserve: Decimal | None = None  # Native units left behind by the sweep
    max_claimable_pages: int | None = None

    # === TIMING ===
    cycle_delay_ms: int | None = None
    http_timeout_s: float | None = None

    # === NOTIFICATIONS ===
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    notify_idle: bool = _env_bool("NOTIFY_IDLE", "true")  # false: nothing-to-do cycles are only logged

    # === MODES ===
    # None = sweep only when a sponsor pays the fees
    sweep_enabled: bool | None = None
    dry_run: bool = _env_bool("DRY_RUN", "false")

    # Env values that could not be parsed, reported by validate()
    parse_errors: list[str] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.mnemonic:
            self.mnemonic = os.getenv("MNEMONIC", "").strip()
        if not self.receiver_address:
            self.receiver_address = os.getenv("RECEIVER_ADDRESS", "").strip()
        if not self.sponsor_mnemonic:
            self.sponsor_mnemonic = os.getenv("SPONSOR_MNEMONIC", "").strip()
        if not self.horizon_url:
            self.horizon_url = os.getenv("HORIZON_URL", HORIZON_URL)
        if not self.network_passphrase:
            self.network_passphrase = os.getenv("NETWORK_PASSPHRASE", NETWORK_PASSPHRASE)
        if not self.telegram_bot_token:
            self.telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN", "")
        if not self.telegram_chat_id:
            self.telegram_chat_id = os.getenv("TELEGRAM_CHAT_ID", "")

        if self.max_pairs is None:
            self.max_pairs = self._env_number("MAX_PAIRS_PER_TX", "25", int)
        if self.tx_timeout_s is None:
            self.tx_timeout_s = self._env_number("TX_TIMEOUT_SECONDS", "30", int)
        if self.max_claimable_pages is None:
            self.max_claimable_pages = self._env_number("MAX_CLAIMABLE_PAGES", "5", int)
        if self.cycle_delay_ms is None:
            self.cycle_delay_ms = self._env_number("CYCLE_DELAY_MS", "1000", int)
        if self.http_timeout_s is None:
            self.http_timeout_s = self._env_number("HTTP_TIMEOUT_SECONDS", "30", float)

        if self.sweep_enabled is None:
            raw = os.getenv("SWEEP_ENABLED", "")
            if raw:
                self.sweep_enabled = raw.strip().lower() in ("1", "true", "yes", "on")
            else:
                self.sweep_enabled = self.has_sponsor

        if self.min_reserve is None:
            self.min_reserve = os.getenv("MIN_RESERVE", "0.3")
        if not isinstance(self.min_reserve, Decimal):
            try:
                self.min_reserve = Decimal(str(self.min_reserve).strip())
            except InvalidOperation:
                self.min_reserve = Decimal("NaN")

    def _env_number(self, name: str, default: str, cast):
        raw = os.getenv(name, default).strip()
        try:
            return cast(raw)
        except ValueError:
            self.parse_errors.append(f"{name} {raw!r} is not a number")
            return cast(default)

    @property
    def has_sponsor(self) -> bool:
        return bool(self.sponsor_mnemonic)

    @property
    def has_telegram(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @property
    def cycle_delay_s(self) -> float:
        return self.cycle_delay_ms / 1000.0

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = list(self.parse_errors)

        if not self.mnemonic:
            errors.append("MNEMONIC not set")
        if not self.receiver_address:
            errors.append("RECEIVER_ADDRESS not set")
        elif not _is_account_address(self.receiver_address):
            errors.append(f"RECEIVER_ADDRESS {self.receiver_address!r} is not a valid account address")

        if self.sponsor_mnemonic and self.sponsor_mnemonic == self.mnemonic:
            errors.append("SPONSOR_MNEMONIC must differ from MNEMONIC")

        if not 1 <= self.max_pairs <= LEDGER_MAX_PAIRS:
            errors.append(f"max_pairs {self.max_pairs} outside 1..{LEDGER_MAX_PAIRS}")
        if self.tx_timeout_s <= 0:
            errors.append(f"tx_timeout_s {self.tx_timeout_s} must be positive")
        if not self.min_reserve.is_finite() or self.min_reserve < 0:
            errors.append(f"min_reserve {self.min_reserve} must be a non-negative number")
        if self.cycle_delay_ms < 0:
            errors.append(f"cycle_delay_ms {self.cycle_delay_ms} must not be negative")
        if self.max_claimable_pages < 1:
            errors.append(f"max_claimable_pages {self.max_claimable_pages} must be at least 1")

        if bool(self.telegram_bot_token) != bool(self.telegram_chat_id):
            errors.append("TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID must be set together")

        return errors


def _is_account_address(address: str) -> bool:
    return StrKey.is_valid_ed25519_public_key(address)
