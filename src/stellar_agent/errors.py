"""
stellar-agent error types.

Every failure the compiler, relay client or orchestrator can report is a
subclass of StellarAgentError carrying a machine-checkable ``kind`` and a
``retryable`` flag, so callers can decide to retry, abort or alert without
parsing messages.

Local errors are raised before any network access. Transient errors may
succeed on a fresh attempt (with a freshly loaded sequence number).
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ADDRESS = "InvalidAddress"
    INVALID_AMOUNT = "InvalidAmount"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    UNSUPPORTED_ASSET_REFERENCE = "UnsupportedAssetReference"
    MEMO_ENCODING_ERROR = "MemoEncodingError"
    UNKNOWN_INTENT_KIND = "UnknownIntentKind"
    INVALID_INTENT = "InvalidIntent"
    INVALID_SUBMISSION_REQUEST = "InvalidSubmissionRequest"
    SOURCE_ACCOUNT_LOAD_FAILED = "SourceAccountLoadFailed"
    RELAY_UNREACHABLE = "RelayUnreachable"
    STALE_SEQUENCE = "StaleSequence"
    RELAY_REJECTED = "RelayRejected"
    RELAY_RESPONSE_INVALID = "RelayResponseInvalid"
    TOKEN_ACTIVATION_FAILED = "TokenActivationFailed"
    CREDITS_UNPARSEABLE = "CreditsUnparseable"
    CLAIM_TOKEN_EXTRACTION_FAILED = "ClaimTokenExtractionFailed"
    CONFIGURATION_ERROR = "ConfigurationError"
    CANCELLED = "Cancelled"


class StellarAgentError(Exception):
    """Base error for all stellar-agent operations."""

    kind: ErrorKind = ErrorKind.INVALID_INTENT
    retryable: bool = False


# Compile-time errors (never touch the network)
class CompileError(StellarAgentError):
    """Base error for intents rejected locally by the compiler."""
    pass


class InvalidAddressError(CompileError):
    """An account identifier failed validation."""
    kind = ErrorKind.INVALID_ADDRESS


class InvalidAmountError(CompileError):
    """An amount is not a positive decimal the ledger can represent."""
    kind = ErrorKind.INVALID_AMOUNT


class MissingRequiredFieldError(CompileError):
    """A field required by the intent kind is absent."""
    kind = ErrorKind.MISSING_REQUIRED_FIELD

    def __init__(self, field: str, intent_kind: str):
        self.field = field
        self.intent_kind = intent_kind
        super().__init__(f"{intent_kind} intent requires '{field}'")


class UnsupportedAssetReferenceError(CompileError):
    """Asset code is malformed, or a native asset was used where an issued one is required."""
    kind = ErrorKind.UNSUPPORTED_ASSET_REFERENCE


class MemoEncodingError(CompileError):
    """Memo value cannot be encoded as the requested memo kind."""
    kind = ErrorKind.MEMO_ENCODING_ERROR


class UnknownIntentKindError(CompileError):
    kind = ErrorKind.UNKNOWN_INTENT_KIND

    def __init__(self, intent_kind: str):
        self.intent_kind = intent_kind
        super().__init__(f"Unsupported transaction type: {intent_kind!r}")


class InvalidIntentError(CompileError):
    """Payload could not be shaped into a TransactionIntent at all."""
    kind = ErrorKind.INVALID_INTENT


class SubmissionRequestError(StellarAgentError):
    """Relay submission request violates the xdr / func+auth contract."""
    kind = ErrorKind.INVALID_SUBMISSION_REQUEST


# Transient errors
class SourceAccountLoadFailedError(StellarAgentError):
    """Source account could not be read from Horizon."""
    kind = ErrorKind.SOURCE_ACCOUNT_LOAD_FAILED
    retryable = True


class RelayUnreachableError(StellarAgentError):
    """Relay did not answer within the connect/read deadline."""
    kind = ErrorKind.RELAY_UNREACHABLE
    retryable = True


# Relay-reported errors
class RelayRejectedError(StellarAgentError):
    """Relay answered with a non-2xx status. The raw body is preserved."""
    kind = ErrorKind.RELAY_REJECTED

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Launchtube API error ({status_code}): {body}")


class StaleSequenceError(RelayRejectedError):
    """Ledger rejected the transaction's sequence number (tx_bad_seq)."""
    kind = ErrorKind.STALE_SEQUENCE
    retryable = True


class TokenActivationError(RelayRejectedError):
    """Activation was refused. Terminal for that token."""
    kind = ErrorKind.TOKEN_ACTIVATION_FAILED


class RelayResponseError(StellarAgentError):
    """Relay answered 2xx but the body is not what the protocol promises."""
    kind = ErrorKind.RELAY_RESPONSE_INVALID


# Parsing errors
class CreditsUnparseableError(StellarAgentError):
    kind = ErrorKind.CREDITS_UNPARSEABLE

    def __init__(self, raw: object):
        self.raw = raw
        super().__init__(f"Unable to parse credits value: {raw!r}")


class ClaimTokenExtractionFailedError(StellarAgentError):
    kind = ErrorKind.CLAIM_TOKEN_EXTRACTION_FAILED


# Configuration
class ConfigurationError(StellarAgentError):
    """Missing credential or malformed endpoint, raised at construction."""
    kind = ErrorKind.CONFIGURATION_ERROR


class CancelledError(StellarAgentError):
    """Caller cancelled the submission before the relay answered."""
    kind = ErrorKind.CANCELLED
