"""
Unit tests for TransactionCompiler.

A MockNode stands in for Horizon and records every call, so tests can
assert that local validation never touches the network.
"""

from decimal import Decimal

import pytest
from stellar_sdk import Asset, Keypair, Network, TransactionEnvelope
from stellar_sdk.memo import HashMemo, IdMemo, NoneMemo, ReturnHashMemo, TextMemo
from stellar_sdk.operation import (
    ChangeTrust,
    CreateAccount,
    Payment,
    PathPaymentStrictReceive,
)

from stellar_agent.config import StellarConfig
from stellar_agent.core.compiler import (
    TransactionCompiler,
    coerce_intent,
    parse_amount,
    summarize_intent,
)
from stellar_agent.core.models import AccountState, IntentKind, TransactionIntent
from stellar_agent.errors import (
    ConfigurationError,
    ErrorKind,
    InvalidAddressError,
    InvalidAmountError,
    InvalidIntentError,
    MemoEncodingError,
    MissingRequiredFieldError,
    SourceAccountLoadFailedError,
    UnknownIntentKindError,
    UnsupportedAssetReferenceError,
)

PASSPHRASE = Network.TESTNET_NETWORK_PASSPHRASE
SOURCE = Keypair.random().public_key
DEST = Keypair.random().public_key
ISSUER = Keypair.random().public_key


class MockNode:
    """Records calls; serves a fixed sequence number and base fee."""

    def __init__(self, sequence=1000, exists=True, base_fee=100):
        self.sequence = sequence
        self.exists = exists
        self.base_fee = base_fee
        self.calls = []

    def load_account(self, address):
        self.calls.append(("load_account", address))
        return AccountState(account_id=address, sequence=self.sequence, exists=self.exists)

    def current_base_fee(self):
        self.calls.append(("current_base_fee",))
        return self.base_fee


@pytest.fixture
def node():
    return MockNode()


@pytest.fixture
def compiler(node):
    return TransactionCompiler(node, PASSPHRASE)


def payment(**overrides):
    intent = {
        "type": "payment",
        "sourceAccount": SOURCE,
        "destinationAccount": DEST,
        "amount": "12.5",
    }
    intent.update(overrides)
    return intent


def decode(compiled):
    return TransactionEnvelope.from_xdr(compiled.xdr, PASSPHRASE)


# ----------------------------------------------------------------------
# payment
# ----------------------------------------------------------------------


def test_payment_round_trip(compiler, node):
    compiled = compiler.compile(payment())
    tx = decode(compiled).transaction

    assert len(tx.operations) == 1
    op = tx.operations[0]
    assert isinstance(op, Payment)
    assert op.destination.account_id == DEST
    assert Decimal(op.amount) == Decimal("12.5")
    assert op.asset.is_native()
    assert isinstance(tx.memo, NoneMemo)
    assert tx.source.account_id == SOURCE

    assert compiled.kind == "payment"
    assert compiled.source_account == SOURCE
    assert compiled.sequence == node.sequence + 1
    assert tx.sequence == compiled.sequence
    assert compiled.fee == 100
    assert compiled.signed is False
    assert node.calls == [("current_base_fee",), ("load_account", SOURCE)]


@pytest.mark.parametrize("amount", ["0.0000001", "922337203685.4775807", "1", "100.1234567"])
def test_payment_amount_precision_preserved(compiler, amount):
    op = decode(compiler.compile(payment(amount=amount))).transaction.operations[0]
    assert Decimal(op.amount) == Decimal(amount)


def test_payment_issued_asset(compiler):
    compiled = compiler.compile(payment(asset={"code": "USDC", "issuer": ISSUER}))
    op = decode(compiled).transaction.operations[0]
    assert op.asset == Asset("USDC", ISSUER)


@pytest.mark.parametrize("amount", ["0", "-5", "abc", "", "   ", "1.00000001", "NaN", "Infinity", "1e20"])
def test_bad_amount_rejected_without_network(compiler, node, amount):
    with pytest.raises((InvalidAmountError, MissingRequiredFieldError)):
        compiler.compile(payment(amount=amount))
    assert node.calls == []


def test_invalid_destination_rejected_without_network(compiler, node):
    with pytest.raises(InvalidAddressError, match="destinationAccount"):
        compiler.compile(payment(destinationAccount="GABC"))
    assert node.calls == []


def test_bad_checksum_rejected_without_network(compiler, node):
    tampered = DEST[:-1] + ("A" if DEST[-1] != "A" else "B")
    with pytest.raises(InvalidAddressError, match="checksum"):
        compiler.compile(payment(destinationAccount=tampered))
    assert node.calls == []


def test_missing_destination(compiler, node):
    intent = payment()
    del intent["destinationAccount"]
    with pytest.raises(MissingRequiredFieldError, match="destinationAccount"):
        compiler.compile(intent)
    assert node.calls == []


def test_issued_asset_without_issuer(compiler, node):
    with pytest.raises(UnsupportedAssetReferenceError, match="issuer"):
        compiler.compile(payment(asset={"code": "USDC"}))
    assert node.calls == []


def test_bad_asset_code(compiler):
    with pytest.raises(UnsupportedAssetReferenceError):
        compiler.compile(payment(asset={"code": "WAY-TOO-LONG-CODE", "issuer": ISSUER}))


# ----------------------------------------------------------------------
# memos
# ----------------------------------------------------------------------


def test_text_memo(compiler):
    tx = decode(compiler.compile(payment(memo="invoice 42"))).transaction
    assert isinstance(tx.memo, TextMemo)


def test_id_memo(compiler):
    tx = decode(compiler.compile(payment(memo="18446744073709551615", memoType="id"))).transaction
    assert isinstance(tx.memo, IdMemo)
    assert tx.memo.memo_id == 2**64 - 1


def test_hash_and_return_memos(compiler):
    digest = "ab" * 32
    tx = decode(compiler.compile(payment(memo=digest, memoType="hash"))).transaction
    assert isinstance(tx.memo, HashMemo)
    assert tx.memo.memo_hash == bytes.fromhex(digest)

    tx = decode(compiler.compile(payment(memo=digest, memoType="return"))).transaction
    assert isinstance(tx.memo, ReturnHashMemo)


@pytest.mark.parametrize(
    "memo,memo_type",
    [
        ("x" * 29, "text"),
        ("é" * 15, "text"),  # 30 bytes in UTF-8
        ("-1", "id"),
        ("18446744073709551616", "id"),
        ("twelve", "id"),
        ("ab" * 31, "hash"),
        ("zz" * 32, "return"),
        ("hello", "emoji"),
    ],
)
def test_memo_encoding_errors(compiler, node, memo, memo_type):
    with pytest.raises(MemoEncodingError):
        compiler.compile(payment(memo=memo, memoType=memo_type))
    assert node.calls == []


# ----------------------------------------------------------------------
# createAccount / changeTrust / pathPayment
# ----------------------------------------------------------------------


def test_create_account(compiler):
    compiled = compiler.compile({
        "type": "createAccount",
        "sourceAccount": SOURCE,
        "destinationAccount": DEST,
        "startingBalance": "2.5",
    })
    op = decode(compiled).transaction.operations[0]
    assert isinstance(op, CreateAccount)
    assert op.destination == DEST
    assert Decimal(op.starting_balance) == Decimal("2.5")
    assert "Starting Balance: 2.5 XLM" in compiled.summary


def test_create_account_below_minimum(compiler, node):
    with pytest.raises(InvalidAmountError, match="minimum"):
        compiler.compile({
            "type": "createAccount",
            "sourceAccount": SOURCE,
            "destinationAccount": DEST,
            "startingBalance": "0.5",
        })
    assert node.calls == []


def test_change_trust(compiler):
    compiled = compiler.compile({
        "type": "changeTrust",
        "sourceAccount": SOURCE,
        "trustAsset": {"code": "USDC", "issuer": ISSUER},
        "trustLimit": "1000",
    })
    op = decode(compiled).transaction.operations[0]
    assert isinstance(op, ChangeTrust)
    assert op.asset == Asset("USDC", ISSUER)
    assert Decimal(op.limit) == Decimal("1000")


def test_change_trust_zero_limit_removes_trustline(compiler):
    compiled = compiler.compile({
        "type": "changeTrust",
        "sourceAccount": SOURCE,
        "trustAsset": {"code": "USDC", "issuer": ISSUER},
        "trustLimit": "0",
    })
    op = decode(compiled).transaction.operations[0]
    assert Decimal(op.limit) == 0


def test_change_trust_missing_issuer_fails_before_load(compiler, node):
    with pytest.raises(MissingRequiredFieldError) as exc:
        compiler.compile({
            "type": "changeTrust",
            "sourceAccount": SOURCE,
            "trustAsset": {"code": "USDC"},
        })
    assert exc.value.kind == ErrorKind.MISSING_REQUIRED_FIELD
    assert exc.value.field == "trustAsset.issuer"
    assert node.calls == []


def test_change_trust_missing_asset(compiler, node):
    with pytest.raises(MissingRequiredFieldError, match="trustAsset"):
        compiler.compile({"type": "changeTrust", "sourceAccount": SOURCE})
    assert node.calls == []


def test_change_trust_native_rejected(compiler):
    with pytest.raises(UnsupportedAssetReferenceError):
        compiler.compile({
            "type": "changeTrust",
            "sourceAccount": SOURCE,
            "trustAsset": {"code": "XLM", "issuer": ISSUER},
        })


def test_path_payment(compiler):
    compiled = compiler.compile({
        "type": "pathPayment",
        "sourceAccount": SOURCE,
        "destinationAccount": DEST,
        "sendAsset": {"code": "XLM"},
        "sendMax": "50",
        "destAsset": {"code": "USDC", "issuer": ISSUER},
        "destAmount": "10",
        "path": [{"code": "EURC", "issuer": ISSUER}],
    })
    op = decode(compiled).transaction.operations[0]
    assert isinstance(op, PathPaymentStrictReceive)
    assert op.destination.account_id == DEST
    assert op.send_asset.is_native()
    assert Decimal(op.send_max) == Decimal("50")
    assert op.dest_asset == Asset("USDC", ISSUER)
    assert Decimal(op.dest_amount) == Decimal("10")
    assert op.path == [Asset("EURC", ISSUER)]
    assert "Path: EURC" in compiled.summary


def test_path_payment_missing_send_max(compiler, node):
    with pytest.raises(MissingRequiredFieldError, match="sendMax"):
        compiler.compile({
            "type": "pathPayment",
            "sourceAccount": SOURCE,
            "destinationAccount": DEST,
            "destAmount": "10",
        })
    assert node.calls == []


# ----------------------------------------------------------------------
# kinds, sources and raw wire
# ----------------------------------------------------------------------


def test_unknown_kind(compiler, node):
    with pytest.raises(UnknownIntentKindError, match="mintNft"):
        compiler.compile({"type": "mintNft", "sourceAccount": SOURCE})
    assert node.calls == []


def test_missing_kind():
    with pytest.raises(MissingRequiredFieldError, match="kind"):
        coerce_intent({"amount": "1"})


def test_non_mapping_intent():
    with pytest.raises(InvalidIntentError):
        coerce_intent(["payment"])


def test_malformed_intent_shape():
    with pytest.raises(InvalidIntentError):
        coerce_intent({"type": "payment", "path": "not-a-list"})


def test_missing_source_without_signer(compiler, node):
    intent = payment()
    del intent["sourceAccount"]
    with pytest.raises(MissingRequiredFieldError, match="sourceAccount"):
        compiler.compile(intent)
    assert node.calls == []


def test_source_defaults_to_signer_and_envelope_is_signed(node):
    signer = Keypair.random()
    compiler = TransactionCompiler(node, PASSPHRASE, signer=signer)
    intent = payment()
    del intent["sourceAccount"]

    compiled = compiler.compile(intent)
    envelope = decode(compiled)
    assert compiled.signed
    assert compiled.source_account == signer.public_key
    assert len(envelope.signatures) == 1
    signer.verify(envelope.hash(), envelope.signatures[0].signature)


def test_missing_source_account_on_ledger(node):
    node.exists = False
    compiler = TransactionCompiler(node, PASSPHRASE)
    with pytest.raises(SourceAccountLoadFailedError, match="not found") as exc:
        compiler.compile(payment())
    assert exc.value.retryable


def test_fixed_base_fee_skips_fee_lookup(node):
    compiler = TransactionCompiler(node, PASSPHRASE, base_fee=500)
    compiled = compiler.compile(payment())
    assert compiled.fee == 500
    assert ("current_base_fee",) not in node.calls


def test_every_compile_reloads_sequence(compiler, node):
    first = compiler.compile(payment())
    node.sequence += 1
    second = compiler.compile(payment())
    assert second.sequence == first.sequence + 1
    assert [c for c in node.calls if c[0] == "load_account"] == [("load_account", SOURCE)] * 2


def test_raw_wire_passes_through_without_network(compiler, node):
    compiled_payment = compiler.compile(payment())
    node.calls.clear()

    wrapped = compiler.compile({"type": "xdr", "xdr": compiled_payment.xdr})
    assert wrapped.kind == IntentKind.RAW_WIRE.value
    assert wrapped.xdr == compiled_payment.xdr
    assert wrapped.summary.startswith("Raw XDR submission (")
    assert node.calls == []


@pytest.mark.parametrize("wire", ["", "not base64!!", "===="])
def test_raw_wire_invalid(compiler, wire):
    with pytest.raises((InvalidIntentError, MissingRequiredFieldError)):
        compiler.wrap_raw_wire({"type": "rawWire", "wire": wire})


def test_validate_runs_no_network(compiler, node):
    intent = compiler.validate(payment())
    assert isinstance(intent, TransactionIntent)
    assert node.calls == []


# ----------------------------------------------------------------------
# construction
# ----------------------------------------------------------------------


@pytest.mark.parametrize("timeout", [0, 301])
def test_bad_timeout_rejected(node, timeout):
    with pytest.raises(ConfigurationError):
        TransactionCompiler(node, PASSPHRASE, timeout_seconds=timeout)


def test_signer_without_secret_rejected(node):
    public_only = Keypair.from_public_key(SOURCE)
    with pytest.raises(ConfigurationError):
        TransactionCompiler(node, PASSPHRASE, signer=public_only)


def test_from_config_bad_secret(node):
    config = StellarConfig(secret_key="SNOTAVALIDSEED")
    with pytest.raises(ConfigurationError, match="STELLAR_PRIVATE_KEY"):
        TransactionCompiler.from_config(config, node)


def test_from_config_uses_network(node):
    signer = Keypair.random()
    config = StellarConfig(network="mainnet", secret_key=signer.secret, base_fee=200)
    compiler = TransactionCompiler.from_config(config, node)
    assert compiler.network_passphrase == Network.PUBLIC_NETWORK_PASSPHRASE
    assert compiler.signer_public_key == signer.public_key
    assert compiler.base_fee == 200


# ----------------------------------------------------------------------
# helpers
# ----------------------------------------------------------------------


def test_parse_amount_normalizes_exponent():
    assert parse_amount("1e-7", "amount", "payment") == "0.0000001"


def test_summary_format():
    intent = TransactionIntent.model_validate(payment(memo="hi"))
    assert summarize_intent(intent) == f"Amount: 12.5 XLM\nTo: {DEST}\nMemo (text): hi"
