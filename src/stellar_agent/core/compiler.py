"""
TransactionCompiler: turns a TransactionIntent into a Stellar transaction envelope.

Compilation runs in two stages:

1. Local validation. Every account ID, amount, asset and memo in the
   intent is checked and resolved into stellar-sdk objects. Nothing touches
   the network, so a malformed intent never costs a Horizon call or relay
   credits.
2. Build. The source account's sequence number is loaded fresh from
   Horizon, exactly one operation is added, the memo is attached and a
   bounded timeout is set. The envelope is signed when a signer is
   configured.

Either a complete CompiledTransaction is returned or an error from
stellar_agent.errors is raised; no partially built state escapes.

Usage:
    compiler = TransactionCompiler(HorizonNode(), Network.TESTNET_NETWORK_PASSPHRASE)
    compiled = compiler.compile({
        "type": "payment",
        "sourceAccount": "GB...",
        "destinationAccount": "GA...",
        "amount": "100",
        "asset": {"code": "XLM"},
    })
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Any

from pydantic import ValidationError
from stellar_sdk import Account, Asset, Keypair, Network, TransactionBuilder
from stellar_sdk.exceptions import (
    AssetCodeInvalidError,
    AssetIssuerInvalidError,
    Ed25519SecretSeedInvalidError,
)

from stellar_agent.config import MAX_TX_TIMEOUT_SECONDS, StellarConfig
from stellar_agent.core.address import require_account
from stellar_agent.core.models import (
    AssetRef,
    CompiledTransaction,
    IntentKind,
    MemoKind,
    TransactionIntent,
)
from stellar_agent.errors import (
    ConfigurationError,
    InvalidAmountError,
    InvalidIntentError,
    MemoEncodingError,
    MissingRequiredFieldError,
    SourceAccountLoadFailedError,
    UnknownIntentKindError,
    UnsupportedAssetReferenceError,
)

logger = logging.getLogger("stellar_agent.compiler")

# Ledger limits
AMOUNT_DECIMALS = 7
MAX_AMOUNT = Decimal("922337203685.4775807")  # int64 max, in stroops
MIN_STARTING_BALANCE = Decimal("1")  # two base reserves of 0.5 XLM
MAX_MEMO_TEXT_BYTES = 28
MAX_MEMO_ID = 2**64 - 1
MEMO_HASH_BYTES = 32
DEFAULT_TX_TIMEOUT_SECONDS = 30

_STROOP = Decimal(1).scaleb(-AMOUNT_DECIMALS)
_ASSET_CODE_RE = re.compile(r"^[A-Za-z0-9]{1,12}$")
_DIGITS_RE = re.compile(r"^[0-9]+$")

BuildStep = Callable[[TransactionBuilder], Any]


def coerce_intent(intent: TransactionIntent | dict[str, Any]) -> TransactionIntent:
    """Accept a TransactionIntent or the raw dict an extractor produced."""
    if isinstance(intent, TransactionIntent):
        return intent
    if not isinstance(intent, dict):
        raise InvalidIntentError(f"Intent must be a mapping, got {type(intent).__name__}")
    kind = intent.get("kind", intent.get("type"))
    if not kind:
        raise MissingRequiredFieldError("kind", "unknown")
    try:
        return TransactionIntent.model_validate(intent)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidIntentError(f"Malformed {kind} intent: {problems}") from None


class TransactionCompiler:
    """
    Compiles intents into base64 transaction envelopes.

    Args:
        node: account-state collaborator with load_account(address) and
              current_base_fee() (normally a HorizonNode)
        network_passphrase: passphrase of the target network
        base_fee: per-operation fee in stroops; read from the ledger when None
        timeout_seconds: validity window set on every transaction (1..300)
        signer: optional Keypair with a secret seed; envelopes are signed with it
    """

    def __init__(
        self,
        node: Any,
        network_passphrase: str = Network.TESTNET_NETWORK_PASSPHRASE,
        base_fee: int | None = None,
        timeout_seconds: int = DEFAULT_TX_TIMEOUT_SECONDS,
        signer: Keypair | None = None,
    ) -> None:
        if not 0 < timeout_seconds <= MAX_TX_TIMEOUT_SECONDS:
            raise ConfigurationError(
                f"timeout_seconds must be between 1 and {MAX_TX_TIMEOUT_SECONDS}, got {timeout_seconds}"
            )
        if base_fee is not None and base_fee <= 0:
            raise ConfigurationError(f"base_fee must be positive, got {base_fee}")
        if signer is not None and not signer.can_sign():
            raise ConfigurationError("signer keypair has no secret seed")
        self._node = node
        self.network_passphrase = network_passphrase
        self.base_fee = base_fee
        self.timeout_seconds = timeout_seconds
        self._signer = signer

    @classmethod
    def from_config(cls, config: StellarConfig, node: Any) -> TransactionCompiler:
        signer = None
        if config.secret_key:
            try:
                signer = Keypair.from_secret(config.secret_key)
            except Ed25519SecretSeedInvalidError:
                raise ConfigurationError("STELLAR_PRIVATE_KEY is not a valid secret seed") from None
        return cls(
            node,
            network_passphrase=config.network_passphrase,
            base_fee=config.base_fee,
            timeout_seconds=config.timeout_seconds,
            signer=signer,
        )

    @property
    def signer_public_key(self) -> str | None:
        return self._signer.public_key if self._signer else None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile(self, intent: TransactionIntent | dict[str, Any]) -> CompiledTransaction:
        """
        Compile an intent into a transaction envelope.

        Returns:
            CompiledTransaction: base64 XDR plus kind, source, sequence, fee and summary

        Raises:
            CompileError subclasses for anything wrong with the intent (no network used),
            SourceAccountLoadFailedError if Horizon cannot provide the source account
        """
        intent = coerce_intent(intent)
        kind = _resolve_kind(intent.kind)
        if kind is IntentKind.RAW_WIRE:
            return self.wrap_raw_wire(intent)

        operation = _plan_operation(kind, intent)
        memo = _plan_memo(intent)
        source = self._resolve_source(intent)
        summary = summarize_intent(intent)

        base_fee = self._current_base_fee()
        account = self._load_source(source)

        builder = TransactionBuilder(
            source_account=Account(source, account.sequence),
            network_passphrase=self.network_passphrase,
            base_fee=base_fee,
        )
        operation(builder)
        if memo is not None:
            memo(builder)
        envelope = builder.set_timeout(self.timeout_seconds).build()

        if self._signer is not None:
            envelope.sign(self._signer)

        compiled = CompiledTransaction(
            kind=kind.value,
            source_account=source,
            xdr=envelope.to_xdr(),
            summary=summary,
            sequence=envelope.transaction.sequence,
            fee=envelope.transaction.fee,
            signed=self._signer is not None,
        )
        logger.info(
            f"Compiled {kind.value} from {source} at sequence {compiled.sequence} "
            f"(fee {compiled.fee} stroops, signed={compiled.signed})"
        )
        return compiled

    def validate(self, intent: TransactionIntent | dict[str, Any]) -> TransactionIntent:
        """Run the local validation stage only. Returns the coerced intent."""
        intent = coerce_intent(intent)
        kind = _resolve_kind(intent.kind)
        if kind is IntentKind.RAW_WIRE:
            _decode_wire(intent)
        else:
            _plan_operation(kind, intent)
            _plan_memo(intent)
            self._resolve_source(intent)
        return intent

    def wrap_raw_wire(self, intent: TransactionIntent | dict[str, Any]) -> CompiledTransaction:
        """Wrap a pre-built envelope without compiling it. No network access."""
        intent = coerce_intent(intent)
        raw = _decode_wire(intent)
        source = None
        if intent.source_account:
            source = require_account(intent.source_account, "sourceAccount")
        return CompiledTransaction(
            kind=IntentKind.RAW_WIRE.value,
            source_account=source,
            xdr=intent.wire.strip(),
            summary=summarize_intent(intent, wire_bytes=len(raw)),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_source(self, intent: TransactionIntent) -> str:
        if intent.source_account:
            return require_account(intent.source_account, "sourceAccount")
        if self._signer is not None:
            return self._signer.public_key
        raise MissingRequiredFieldError("sourceAccount", intent.kind)

    def _current_base_fee(self) -> int:
        if self.base_fee is not None:
            return self.base_fee
        return self._node.current_base_fee()

    def _load_source(self, source: str) -> Any:
        # Always read fresh; a cached sequence number gets rejected as tx_bad_seq.
        account = self._node.load_account(source)
        if not account.exists:
            raise SourceAccountLoadFailedError(f"Source account {source} not found on the ledger")
        return account


# ----------------------------------------------------------------------
# Validation stage (pure)
# ----------------------------------------------------------------------


def _resolve_kind(kind: str) -> IntentKind:
    try:
        return IntentKind(kind)
    except ValueError:
        raise UnknownIntentKindError(kind) from None


def _plan_operation(kind: IntentKind, intent: TransactionIntent) -> BuildStep:
    """Validate the kind-specific fields and return the step that appends the operation."""
    if kind is IntentKind.PAYMENT:
        destination = _require_destination(intent)
        amount = parse_amount(intent.amount, "amount", kind.value)
        asset = resolve_asset(intent.asset, "asset")
        return partial(
            TransactionBuilder.append_payment_op,
            destination=destination,
            asset=asset,
            amount=amount,
        )

    if kind is IntentKind.CREATE_ACCOUNT:
        destination = _require_destination(intent)
        starting_balance = parse_amount(intent.starting_balance, "startingBalance", kind.value)
        if Decimal(starting_balance) < MIN_STARTING_BALANCE:
            raise InvalidAmountError(
                f"startingBalance {starting_balance} is below the network minimum of "
                f"{MIN_STARTING_BALANCE} XLM"
            )
        return partial(
            TransactionBuilder.append_create_account_op,
            destination=destination,
            starting_balance=starting_balance,
        )

    if kind is IntentKind.CHANGE_TRUST:
        ref = intent.trust_asset
        if ref is None:
            raise MissingRequiredFieldError("trustAsset", kind.value)
        if not ref.code:
            raise MissingRequiredFieldError("trustAsset.code", kind.value)
        if not ref.issuer:
            raise MissingRequiredFieldError("trustAsset.issuer", kind.value)
        if ref.is_native:
            raise UnsupportedAssetReferenceError("Cannot establish a trustline to the native asset")
        asset = resolve_asset(ref, "trustAsset")
        limit = None
        if intent.trust_limit is not None:
            limit = parse_amount(intent.trust_limit, "trustLimit", kind.value, allow_zero=True)
        return partial(TransactionBuilder.append_change_trust_op, asset=asset, limit=limit)

    if kind is IntentKind.PATH_PAYMENT:
        destination = _require_destination(intent)
        send_max = parse_amount(intent.send_max, "sendMax", kind.value)
        dest_amount = parse_amount(intent.dest_amount, "destAmount", kind.value)
        send_asset = resolve_asset(intent.send_asset, "sendAsset")
        dest_asset = resolve_asset(intent.dest_asset, "destAsset")
        path = [resolve_asset(hop, f"path[{i}]") for i, hop in enumerate(intent.path)]
        return partial(
            TransactionBuilder.append_path_payment_strict_receive_op,
            destination=destination,
            send_asset=send_asset,
            send_max=send_max,
            dest_asset=dest_asset,
            dest_amount=dest_amount,
            path=path,
        )

    # RAW_WIRE never reaches the builder
    raise UnknownIntentKindError(kind.value)


def _require_destination(intent: TransactionIntent) -> str:
    if not intent.destination_account:
        raise MissingRequiredFieldError("destinationAccount", intent.kind)
    return require_account(intent.destination_account, "destinationAccount")


def parse_amount(value: str | None, field: str, kind: str, allow_zero: bool = False) -> str:
    """
    Validate a decimal amount string.

    Returns the amount in plain (non-exponent) notation, e.g. "1e-7" -> "0.0000001".

    Raises:
        MissingRequiredFieldError: value is absent or blank
        InvalidAmountError: not a number, not positive, finer than a stroop, or above int64
    """
    if value is None or not str(value).strip():
        raise MissingRequiredFieldError(field, kind)
    text = str(value).strip()
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise InvalidAmountError(f"{field}: {text!r} is not a decimal number") from None
    if not amount.is_finite():
        raise InvalidAmountError(f"{field}: {text!r} is not a finite number")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmountError(f"{field}: amount must be positive, got {text}")
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(f"{field}: {text} exceeds the maximum amount {MAX_AMOUNT}")
    if amount % _STROOP != 0:
        raise InvalidAmountError(
            f"{field}: {text} has more than {AMOUNT_DECIMALS} decimal places"
        )
    return format(amount, "f")


def resolve_asset(ref: AssetRef | None, field: str) -> Asset:
    """
    Resolve an AssetRef into a stellar-sdk Asset.
    A missing ref, an empty code, "XLM" or "native" compile to the native asset.
    """
    if ref is None or ref.is_native:
        return Asset.native()
    code = ref.code.strip()
    if not _ASSET_CODE_RE.match(code):
        raise UnsupportedAssetReferenceError(
            f"{field}: asset code {code!r} must be 1-12 alphanumeric characters"
        )
    if not ref.issuer:
        raise UnsupportedAssetReferenceError(f"{field}: non-native asset {code} requires an issuer")
    issuer = require_account(ref.issuer, f"{field}.issuer")
    try:
        return Asset(code, issuer)
    except (AssetCodeInvalidError, AssetIssuerInvalidError) as e:
        raise UnsupportedAssetReferenceError(f"{field}: {e}") from None


def _plan_memo(intent: TransactionIntent) -> BuildStep | None:
    if intent.memo is None or intent.memo == "":
        return None
    memo = intent.memo
    try:
        memo_kind = MemoKind((intent.memo_kind or MemoKind.TEXT.value).strip().lower())
    except ValueError:
        raise MemoEncodingError(f"Unknown memo type: {intent.memo_kind!r}") from None

    if memo_kind is MemoKind.TEXT:
        size = len(memo.encode("utf-8"))
        if size > MAX_MEMO_TEXT_BYTES:
            raise MemoEncodingError(
                f"Text memo is {size} bytes; the limit is {MAX_MEMO_TEXT_BYTES} bytes"
            )
        return partial(TransactionBuilder.add_text_memo, memo_text=memo)

    if memo_kind is MemoKind.ID:
        text = memo.strip()
        if not _DIGITS_RE.match(text) or int(text) > MAX_MEMO_ID:
            raise MemoEncodingError(f"ID memo must be an unsigned 64-bit integer, got {memo!r}")
        return partial(TransactionBuilder.add_id_memo, memo_id=int(text))

    digest = _decode_memo_hash(memo, memo_kind)
    if memo_kind is MemoKind.HASH:
        return partial(TransactionBuilder.add_hash_memo, memo_hash=digest)
    return partial(TransactionBuilder.add_return_hash_memo, memo_return=digest)


def _decode_memo_hash(memo: str, memo_kind: MemoKind) -> bytes:
    try:
        digest = bytes.fromhex(memo.strip())
    except ValueError:
        raise MemoEncodingError(f"{memo_kind.value} memo must be hex encoded, got {memo!r}") from None
    if len(digest) != MEMO_HASH_BYTES:
        raise MemoEncodingError(
            f"{memo_kind.value} memo must be {MEMO_HASH_BYTES} bytes, got {len(digest)}"
        )
    return digest


def _decode_wire(intent: TransactionIntent) -> bytes:
    if not intent.wire or not intent.wire.strip():
        raise MissingRequiredFieldError("wire", IntentKind.RAW_WIRE.value)
    try:
        raw = base64.b64decode(intent.wire.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidIntentError("wire payload is not valid base64") from None
    if not raw:
        raise InvalidIntentError("wire payload is empty")
    return raw


# ----------------------------------------------------------------------
# Summaries
# ----------------------------------------------------------------------


def summarize_intent(intent: TransactionIntent, wire_bytes: int | None = None) -> str:
    """Human-readable, deterministic description of an intent for audit logs."""
    kind = intent.kind
    if kind == IntentKind.PAYMENT.value:
        label = intent.asset.label if intent.asset else "XLM"
        lines = [f"Amount: {intent.amount} {label}", f"To: {intent.destination_account}"]
    elif kind == IntentKind.CREATE_ACCOUNT.value:
        lines = [
            f"New Account: {intent.destination_account}",
            f"Starting Balance: {intent.starting_balance} XLM",
        ]
    elif kind == IntentKind.CHANGE_TRUST.value:
        ref = intent.trust_asset or AssetRef()
        lines = [
            f"Asset: {ref.code}",
            f"Issuer: {ref.issuer}",
            f"Limit: {intent.trust_limit or 'Unlimited'}",
        ]
    elif kind == IntentKind.PATH_PAYMENT.value:
        send = intent.send_asset.label if intent.send_asset else "XLM"
        dest = intent.dest_asset.label if intent.dest_asset else "XLM"
        lines = [
            f"Send Max: {intent.send_max} {send}",
            f"Receive: {intent.dest_amount} {dest}",
            f"To: {intent.destination_account}",
        ]
        if intent.path:
            lines.append("Path: " + " -> ".join(hop.label for hop in intent.path))
    elif kind == IntentKind.RAW_WIRE.value:
        size = f" ({wire_bytes} bytes)" if wire_bytes is not None else ""
        lines = [f"Raw XDR submission{size}"]
    else:
        lines = [f"Type: {kind}"]

    if intent.memo:
        lines.append(f"Memo ({intent.memo_kind or 'text'}): {intent.memo}")
    return "\n".join(lines)
