"""
Core data models for Stellar intents, compiled transactions and relay results.
All amounts are decimal strings in asset units; relay credits are integer
stroops (1 XLM = 10,000,000 stroops).
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from stellar_agent.errors import ErrorKind, StellarAgentError

STROOPS_PER_XLM = 10_000_000
NATIVE_ASSET_CODE = "XLM"
_NATIVE_MARKERS = {"", "xlm", "native"}


class IntentKind(str, Enum):
    PAYMENT = "payment"
    CREATE_ACCOUNT = "createAccount"
    CHANGE_TRUST = "changeTrust"
    PATH_PAYMENT = "pathPayment"
    RAW_WIRE = "rawWire"


class MemoKind(str, Enum):
    TEXT = "text"
    ID = "id"
    HASH = "hash"
    RETURN = "return"


# Spellings the extractor is known to emit for each kind
_KIND_SPELLINGS = {
    "payment": IntentKind.PAYMENT.value,
    "createaccount": IntentKind.CREATE_ACCOUNT.value,
    "changetrust": IntentKind.CHANGE_TRUST.value,
    "pathpayment": IntentKind.PATH_PAYMENT.value,
    "rawwire": IntentKind.RAW_WIRE.value,
    "xdr": IntentKind.RAW_WIRE.value,
}


class AssetRef(BaseModel):
    """A fungible asset: native XLM, or an issued asset identified by code + issuer."""
    model_config = ConfigDict(frozen=True)

    code: str | None = None
    issuer: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _parse_shorthand(cls, data: Any) -> Any:
        # "XLM", "native" or "USDC:GA5Z..."
        if isinstance(data, str):
            code, _, issuer = data.partition(":")
            return {"code": code or None, "issuer": issuer or None}
        return data

    @property
    def is_native(self) -> bool:
        return self.code is None or self.code.strip().lower() in _NATIVE_MARKERS

    @property
    def label(self) -> str:
        """Human-readable asset code."""
        return NATIVE_ASSET_CODE if self.is_native else str(self.code)


def _coerce_decimal_text(value: Any) -> Any:
    # JSON numbers from the extractor become decimal strings; bools are left to fail.
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


class TransactionIntent(BaseModel):
    """
    Structured description of a requested ledger operation.

    Produced by an external extractor (LLM or form) and consumed by the
    TransactionCompiler. Accepts both snake_case and the camelCase keys the
    extractor emits, e.g. {"type": "payment", "destinationAccount": ...}.

    The kind is kept as a free string so an unknown kind reaches the
    compiler and is rejected there.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    kind: str = Field(validation_alias=AliasChoices("kind", "type"))
    source_account: str | None = None
    memo: str | None = None
    memo_kind: str | None = Field(
        default=None,
        validation_alias=AliasChoices("memo_kind", "memoKind", "memoType", "memo_type"),
    )

    # payment / createAccount / pathPayment
    destination_account: str | None = None
    amount: str | None = None
    asset: AssetRef | None = None
    starting_balance: str | None = None

    # changeTrust
    trust_asset: AssetRef | None = None
    trust_limit: str | None = None

    # pathPayment
    send_asset: AssetRef | None = None
    send_max: str | None = None
    dest_asset: AssetRef | None = None
    dest_amount: str | None = None
    path: list[AssetRef] = Field(default_factory=list)

    # rawWire
    wire: str | None = Field(default=None, validation_alias=AliasChoices("wire", "xdr"))

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> Any:
        if isinstance(value, IntentKind):
            return value.value
        if isinstance(value, str):
            key = value.strip().replace("_", "").replace("-", "").lower()
            return _KIND_SPELLINGS.get(key, value.strip())
        return value

    @field_validator(
        "amount", "starting_balance", "trust_limit", "send_max", "dest_amount", "memo",
        mode="before",
    )
    @classmethod
    def _numbers_as_text(cls, value: Any) -> Any:
        return _coerce_decimal_text(value)

    @field_validator("path", mode="before")
    @classmethod
    def _null_path(cls, value: Any) -> Any:
        return [] if value is None else value


class CompiledTransaction(BaseModel):
    """A base64 transaction envelope plus audit metadata derived from the intent."""
    model_config = ConfigDict(frozen=True)

    kind: str
    source_account: str | None = None
    xdr: str
    summary: str
    sequence: int | None = None
    fee: int | None = None
    signed: bool = False


class CreditAccount(BaseModel):
    """Relay-side prepaid balance, as last reported by the relay."""
    model_config = ConfigDict(frozen=True)

    token_id: str | None = Field(default=None, repr=False)
    credits_remaining: int
    activated: bool = False

    @property
    def credits_xlm(self) -> Decimal:
        return Decimal(self.credits_remaining) / STROOPS_PER_XLM

    def to_agent_summary(self) -> str:
        """Human-readable summary for the LLM."""
        status = "ready for transactions" if self.credits_remaining > 0 else "exhausted"
        activation = "activated" if self.activated else "not activated"
        return (
            f"Credits: {self.credits_remaining:,} stroops "
            f"({self.credits_xlm:.7f} XLM), {status}, token {activation}"
        )


class SubmissionError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    detail: str
    retryable: bool = False


class SubmissionResult(BaseModel):
    """Terminal outcome of one submission attempt."""
    model_config = ConfigDict(frozen=True)

    status: Literal["success", "error"]
    tx_hash: str | None = None
    credits_remaining: int | None = None
    raw_details: dict[str, Any] = Field(default_factory=dict)
    error: SubmissionError | None = None

    @model_validator(mode="after")
    def _check_consistency(self) -> SubmissionResult:
        if self.status == "success" and not self.tx_hash:
            raise ValueError("a successful submission must carry a transaction hash")
        if self.status == "error" and self.error is None:
            raise ValueError("a failed submission must carry an error")
        return self

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def failure(cls, exc: StellarAgentError, **raw_details: Any) -> SubmissionResult:
        """Build an error result from a taxonomy exception."""
        details = dict(raw_details)
        status_code = getattr(exc, "status_code", None)
        if status_code is not None:
            details.setdefault("status_code", status_code)
            details.setdefault("body", getattr(exc, "body", ""))
        return cls(
            status="error",
            raw_details=details,
            error=SubmissionError(kind=exc.kind, detail=str(exc), retryable=exc.retryable),
        )

    def to_agent_summary(self) -> str:
        if self.ok:
            credits = (
                f"{self.credits_remaining:,} stroops"
                if self.credits_remaining is not None else "unknown"
            )
            return f"Transaction submitted: {self.tx_hash} (credits remaining: {credits})"
        if self.error is None:
            return "Submission failed"
        retry =" (retryable)" if self.error.retryable else ""
        return f"Submission failed [{self.error.kind.value}]{retry}: {self.error.detail}"


class AssetBalance(BaseModel):
    asset: AssetRef
    balance: str
    limit: str | None = None


class AccountState(BaseModel):
    """Ledger state of an account as read from Horizon."""
    account_id: str
    sequence: int = 0
    exists: bool = True
    balances: list[AssetBalance] = Field(default_factory=list)

    @property
    def native_balance(self) -> str:
        for b in self.balances:
            if b.asset.is_native:
                return b.balance
        return "0"

    def to_agent_summary(self) -> str:
        """Human-readable summary for the LLM."""
        if not self.exists:
            return f"Account {self.account_id} does not exist on the ledger"
        lines = [f"XLM: {self.native_balance}"]
        for b in self.balances:
            if not b.asset.is_native:
                lines.append(f"{b.asset.label}: {b.balance}")
        return ", ".join(lines)
