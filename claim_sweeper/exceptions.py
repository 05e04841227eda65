"""
Exceptions raised by the Claim Sweeper.

Startup errors (configuration, key derivation) abort the process. Everything
raised inside a cycle is caught at the cycle boundary and reported.
"""
from typing import Any, Dict, Optional


class SweeperError(Exception):
    """Base exception for all claim sweeper errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SweeperError):
    """Raised when required configuration is missing or invalid."""
    pass


class DerivationError(SweeperError):
    """Raised when a mnemonic cannot be turned into a keypair."""
    pass


class AccountLoadError(SweeperError):
    """Raised when an account (or its claimables) cannot be read from the ledger."""
    pass


class LedgerDataError(SweeperError):
    """Raised when a ledger record has an unexpected shape (bad amount, unknown asset)."""
    pass


class SubmissionError(SweeperError):
    """Raised when the ledger rejects a transaction."""

    def __init__(self, message: str, result_codes: Optional[Dict[str, Any]] = None):
        super().__init__(message, {"result_codes": result_codes} if result_codes else None)
        self.result_codes = result_codes


class AmbiguousSubmissionError(SweeperError):
    """Raised when the ledger accepted a submission but returned no hash."""
    pass


class NotificationError(SweeperError):
    """Raised when a notification cannot be delivered. Never escapes the notifier."""
    pass


class LedgerQueryError(SweeperError):
    """Raised when a ledger read other than an account load fails (base fee lookup)."""
    pass


class CycleCancelled(SweeperError):
    """Stop was requested between two phases of a cycle."""
    pass
