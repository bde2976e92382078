"""core module init"""
from stellar_agent.core.address import (
    has_valid_checksum,
    is_valid_address,
    require_account,
    validate_address,
)
from stellar_agent.core.compiler import TransactionCompiler, coerce_intent, summarize_intent
from stellar_agent.core.horizon import HorizonError, HorizonNode
from stellar_agent.core.models import (
    AccountState,
    AssetBalance,
    AssetRef,
    CompiledTransaction,
    CreditAccount,
    IntentKind,
    MemoKind,
    SubmissionError,
    SubmissionResult,
    TransactionIntent,
)

__all__ = [
    "AccountState",
    "AssetBalance",
    "AssetRef",
    "CompiledTransaction",
    "CreditAccount",
    "HorizonError",
    "HorizonNode",
    "IntentKind",
    "MemoKind",
    "SubmissionError",
    "SubmissionResult",
    "TransactionCompiler",
    "TransactionIntent",
    "coerce_intent",
    "has_valid_checksum",
    "is_valid_address",
    "require_account",
    "summarize_intent",
    "validate_address",
]
