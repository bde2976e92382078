"""
Unit tests for stellar_agent.core.address.
"""

import pytest
from stellar_sdk import Keypair

from stellar_agent.core.address import (
    has_valid_checksum,
    is_valid_address,
    require_account,
    validate_address,
)
from stellar_agent.errors import ErrorKind, InvalidAddressError

KNOWN_ACCOUNT = "GA5ZSEJYB37JRC5AVCIA5MOP4RHTM335X2KGX3IHOJAPP5RE34K4KZVN"


def test_known_account_is_valid():
    assert is_valid_address(KNOWN_ACCOUNT)
    assert validate_address(KNOWN_ACCOUNT) is True


def test_random_keypair_is_valid():
    address = Keypair.random().public_key
    assert is_valid_address(address)
    assert has_valid_checksum(address)


@pytest.mark.parametrize(
    "candidate",
    [
        "",
        "G",
        KNOWN_ACCOUNT[:-1],
        KNOWN_ACCOUNT + "A",
        "S" + KNOWN_ACCOUNT[1:],  # secret seed prefix
        "M" + KNOWN_ACCOUNT[1:],  # muxed account prefix
        KNOWN_ACCOUNT[:10] + "1" + KNOWN_ACCOUNT[11:],  # '1' is not base32
        KNOWN_ACCOUNT.lower(),
        None,
        12345,
    ],
)
def test_invalid_shapes_rejected(candidate):
    assert is_valid_address(candidate) is False
    with pytest.raises(InvalidAddressError):
        validate_address(candidate)


@pytest.mark.parametrize(
    "candidate",
    [KNOWN_ACCOUNT, "GABC", "X" * 56, KNOWN_ACCOUNT.lower(), "", None, 12345],
)
def test_validation_gives_same_answer_when_repeated(candidate):
    first = is_valid_address(candidate)
    assert is_valid_address(candidate) == first
    if first:
        assert validate_address(candidate) is True
        assert validate_address(candidate) is True
        return
    messages = []
    for _ in range(2):
        with pytest.raises(InvalidAddressError) as exc:
            validate_address(candidate)
        messages.append(str(exc.value))
    assert messages[0] == messages[1]


def test_predicate_never_raises_on_garbage():
    for junk in (object(), [], {}, b"G" * 56, 3.14):
        assert is_valid_address(junk) is False


def test_error_message_names_rule():
    with pytest.raises(InvalidAddressError, match="56 characters"):
        validate_address("GABC")
    with pytest.raises(InvalidAddressError, match="must start with 'G'"):
        validate_address("X" * 56)


def test_checksum_mismatch_detected():
    # Same shape, last character changed
    tampered = KNOWN_ACCOUNT[:-1] + ("A" if KNOWN_ACCOUNT[-1] != "A" else "B")
    assert is_valid_address(tampered)
    assert has_valid_checksum(tampered) is False


def test_require_account_names_field():
    with pytest.raises(InvalidAddressError, match="destinationAccount") as exc:
        require_account("GABC", "destinationAccount")
    assert exc.value.kind == ErrorKind.INVALID_ADDRESS


def test_require_account_returns_address():
    assert require_account(KNOWN_ACCOUNT, "sourceAccount") == KNOWN_ACCOUNT
