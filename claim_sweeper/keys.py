"""
Key derivation: BIP-39 mnemonic -> ed25519 keypair (SLIP-10, hardened path).
"""
import hashlib
import hmac
import logging

from mnemonic import Mnemonic
from stellar_sdk import Keypair

from claim_sweeper.config import DERIVATION_PATH
from claim_sweeper.exceptions import DerivationError
from claim_sweeper.models import SigningIdentity

log = logging.getLogger(__name__)

ED25519_CURVE_KEY = b"ed25519 seed"
HARDENED_OFFSET = 0x80000000


def parse_path(path: str) -> list[int]:
    """Parse "m/44'/314159'/0'" into hardened indexes."""
    parts = path.strip().split("/")
    if not parts or parts[0] != "m":
        raise DerivationError(f"Derivation path must start with 'm': {path!r}")

    indexes = []
    for part in parts[1:]:
        # ed25519 only supports hardened derivation
        if not part.endswith("'"):
            raise DerivationError(f"Non-hardened segment {part!r} in {path!r}")
        try:
            index = int(part[:-1])
        except ValueError:
            raise DerivationError(f"Invalid segment {part!r} in {path!r}")
        if not 0 <= index < HARDENED_OFFSET:
            raise DerivationError(f"Segment {part!r} out of range in {path!r}")
        indexes.append(index + HARDENED_OFFSET)
    return indexes


def derive_ed25519_key(seed: bytes, path: str) -> bytes:
    """SLIP-10 ed25519 private key for the given path."""
    digest = hmac.new(ED25519_CURVE_KEY, seed, hashlib.sha512).digest()
    key, chain_code = digest[:32], digest[32:]

    for index in parse_path(path):
        data = b"\x00" + key + index.to_bytes(4, "big")
        digest = hmac.new(chain_code, data, hashlib.sha512).digest()
        key, chain_code = digest[:32], digest[32:]

    return key


def derive_keypair(mnemonic: str, path: str = DERIVATION_PATH) -> SigningIdentity:
    """
    Derive the signing identity for a wallet mnemonic.

    Raises DerivationError for a mnemonic that fails the BIP-39 checksum.
    """
    phrase = " ".join(mnemonic.split())
    if not phrase or not Mnemonic("english").check(phrase):
        raise DerivationError("Invalid mnemonic")

    seed = Mnemonic.to_seed(phrase)
    keypair = Keypair.from_raw_ed25519_seed(derive_ed25519_key(seed, path))
    log.debug(f"Derived {keypair.public_key} on {path}")

    return SigningIdentity(public_key=keypair.public_key, secret_key=keypair.secret)
