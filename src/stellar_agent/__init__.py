"""
stellar-agent: Python SDK for AI agents submitting Stellar transactions through Launchtube.

Usage:
    from stellar_agent import SubmissionOrchestrator, TransactionIntent
    from stellar_agent.tools import StellarToolkit
"""

from stellar_agent.core.compiler import TransactionCompiler
from stellar_agent.core.horizon import HorizonNode
from stellar_agent.core.models import (
    AssetRef,
    CompiledTransaction,
    CreditAccount,
    SubmissionResult,
    TransactionIntent,
)
from stellar_agent.relay.client import RelayAdminClient, RelayClient, SubmitRequest
from stellar_agent.submission import SubmissionOrchestrator

__version__ = "0.1.0"
__all__ = [
    "AssetRef",
    "CompiledTransaction",
    "CreditAccount",
    "HorizonNode",
    "RelayAdminClient",
    "RelayClient",
    "SubmissionOrchestrator",
    "SubmissionResult",
    "SubmitRequest",
    "TransactionCompiler",
    "TransactionIntent",
]
