"""
Stellar account identifier validation.

Account IDs (ed25519 public keys) are strkey-encoded: a version byte,
32 key bytes and a CRC16-XModem checksum, base32-encoded to 56 characters
starting with "G".

Example: GA5ZSEJYB37JRC5AVCIA5MOP4RHTM335X2KGX3IHOJAPP5RE34K4KZVN

is_valid_address() checks the textual shape only (length, prefix,
alphabet). It is pure and never raises, and is the single gate every
account field passes through. has_valid_checksum() additionally decodes
the strkey via stellar-sdk.

Reference: https://developers.stellar.org/docs/learn/encyclopedia/data-format/strkey
"""

from __future__ import annotations

from typing import Any

from stellar_sdk import StrKey

from stellar_agent.errors import InvalidAddressError

ACCOUNT_ID_LENGTH = 56
ACCOUNT_ID_PREFIX = "G"

# RFC 4648 base32 alphabet
_ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")


def validate_address(address: Any) -> bool:
    """
    Validate the shape of a Stellar account identifier.

    Args:
        address: candidate account ID

    Returns:
        True if valid

    Raises:
        InvalidAddressError: with the first rule the value breaks
    """
    if not isinstance(address, str):
        raise InvalidAddressError(
            f"Account ID must be a string, got {type(address).__name__}"
        )
    if len(address) != ACCOUNT_ID_LENGTH:
        raise InvalidAddressError(
            f"Invalid account ID {address!r}: expected {ACCOUNT_ID_LENGTH} characters, "
            f"got {len(address)}"
        )
    if not address.startswith(ACCOUNT_ID_PREFIX):
        raise InvalidAddressError(
            f"Invalid account ID {address!r}: must start with {ACCOUNT_ID_PREFIX!r}"
        )
    bad = sorted({c for c in address[1:] if c not in _ALPHABET})
    if bad:
        raise InvalidAddressError(
            f"Invalid account ID {address!r}: characters outside base32 alphabet: {''.join(bad)}"
        )
    return True


def is_valid_address(address: Any) -> bool:
    """
    Check if a Stellar account ID is well-formed without raising exceptions.

    Returns:
        bool: True if valid, False otherwise
    """
    try:
        return validate_address(address)
    except InvalidAddressError:
        return False


def has_valid_checksum(address: str) -> bool:
    """Check that a well-formed account ID also decodes with a correct strkey checksum."""
    if not is_valid_address(address):
        return False
    return StrKey.is_valid_ed25519_public_key(address)


def require_account(address: Any, field: str) -> str:
    """Validate shape and checksum of an account field, naming the field on failure."""
    try:
        validate_address(address)
    except InvalidAddressError as e:
        raise InvalidAddressError(f"{field}: {e}") from None
    if not has_valid_checksum(address):
        raise InvalidAddressError(f"{field}: checksum mismatch for account ID {address!r}")
    return address
