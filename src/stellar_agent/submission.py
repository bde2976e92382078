"""
SubmissionOrchestrator: compile an intent and submit it through Launchtube.

One call is one attempt: the intent is compiled (or a raw envelope is
wrapped), submitted once, and the outcome is returned as a single
SubmissionResult. Local errors short-circuit before any network call, so a
malformed intent never spends relay credits.

Submissions from the same source account must be serialized by the caller.
Each compiled transaction captures one sequence number; two concurrent
compiles race and the loser comes back as a retryable StaleSequence error.
Retrying means calling compile_and_submit again, which reloads the sequence.

Usage:
    orchestrator = SubmissionOrchestrator.from_env()
    result = orchestrator.compile_and_submit({
        "type": "payment",
        "sourceAccount": "GB...",
        "destinationAccount": "GA...",
        "amount": "10",
    })
    if result.ok:
        print(result.tx_hash, result.credits_remaining)
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any

from stellar_agent.config import RelayConfig, StellarConfig
from stellar_agent.core.compiler import TransactionCompiler, coerce_intent
from stellar_agent.core.horizon import HorizonNode
from stellar_agent.core.models import (
    CompiledTransaction,
    CreditAccount,
    IntentKind,
    SubmissionResult,
    TransactionIntent,
)
from stellar_agent.errors import CancelledError, StellarAgentError
from stellar_agent.relay.client import RelayClient, SubmitRequest

logger = logging.getLogger("stellar_agent.submission")

# How often an in-flight submission checks its cancel event, in seconds
CANCEL_POLL_SECONDS = 0.05


class SubmissionOrchestrator:
    """Composes a TransactionCompiler and a RelayClient. Holds no per-call state."""

    def __init__(self, compiler: TransactionCompiler, relay: RelayClient) -> None:
        self._compiler = compiler
        self._relay = relay

    @classmethod
    def from_config(
        cls,
        stellar_config: StellarConfig,
        relay_config: RelayConfig,
        node: HorizonNode | None = None,
    ) -> SubmissionOrchestrator:
        node = node or HorizonNode.from_config(stellar_config)
        return cls(
            compiler=TransactionCompiler.from_config(stellar_config, node),
            relay=RelayClient.from_config(relay_config),
        )

    @classmethod
    def from_env(cls) -> SubmissionOrchestrator:
        return cls.from_config(StellarConfig.from_env(), RelayConfig.from_env())

    @property
    def compiler(self) -> TransactionCompiler:
        return self._compiler

    @property
    def relay(self) -> RelayClient:
        return self._relay

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile_and_submit(
        self,
        intent: TransactionIntent | dict[str, Any],
        token: str | None = None,
        simulate: bool = True,
        cancel: threading.Event | None = None,
    ) -> SubmissionResult:
        """
        Compile an intent and submit it once.

        Args:
            intent: TransactionIntent or the extractor's raw dict
            token: credit token for this submission (defaults to the relay client's)
            simulate: let the relay simulate before submitting
            cancel: setting it aborts the wait on the relay and the result is
                    a Cancelled error. The relay may already have accepted
                    the transaction, so it is never resubmitted.

        Returns:
            SubmissionResult: never raises for taxonomy errors
        """
        try:
            intent = coerce_intent(intent)
            if intent.kind == IntentKind.RAW_WIRE.value:
                compiled = self._compiler.wrap_raw_wire(intent)
            else:
                compiled = self._compiler.compile(intent)
        except StellarAgentError as e:
            logger.warning(f"Intent rejected before submission [{e.kind.value}]: {e}")
            return SubmissionResult.failure(e)
        return self._submit(compiled, token, simulate, cancel)

    def submit_wire(
        self,
        wire: str,
        token: str | None = None,
        simulate: bool = True,
        cancel: threading.Event | None = None,
    ) -> SubmissionResult:
        """Submit a pre-built base64 envelope without compiling anything."""
        return self.compile_and_submit(
            {"kind": IntentKind.RAW_WIRE.value, "wire": wire},
            token=token,
            simulate=simulate,
            cancel=cancel,
        )

    def check_credits(self, token: str | None = None) -> CreditAccount:
        """Read the credit balance of a token. Errors propagate."""
        return self._relay.check_credits(token=token)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _submit(
        self,
        compiled: CompiledTransaction,
        token: str | None,
        simulate: bool,
        cancel: threading.Event | None,
    ) -> SubmissionResult:
        context = {
            "kind": compiled.kind,
            "summary": compiled.summary,
            "source_account": compiled.source_account,
            "sequence": compiled.sequence,
        }
        if cancel is not None and cancel.is_set():
            logger.info(f"Submission of {compiled.kind} cancelled before reaching the relay")
            return SubmissionResult.failure(
                CancelledError("Submission cancelled before it was sent"), **context
            )

        request = SubmitRequest(xdr=compiled.xdr, sim=simulate)
        try:
            if cancel is None:
                result = self._relay.submit(request, token=token)
            else:
                result = self._submit_cancellable(request, token, cancel)
        except CancelledError as e:
            # the relay may already have the transaction; never resubmit
            logger.warning(f"Submission of {compiled.kind} cancelled while in flight")
            return SubmissionResult.failure(e, **context)
        except StellarAgentError as e:
            logger.warning(f"Submission of {compiled.kind} failed [{e.kind.value}]: {e}")
            return SubmissionResult.failure(e, **context)

        return SubmissionResult(
            status=result.status,
            tx_hash=result.tx_hash,
            credits_remaining=result.credits_remaining,
            raw_details={**result.raw_details, **context},
        )

    def _submit_cancellable(
        self,
        request: SubmitRequest,
        token: str | None,
        cancel: threading.Event,
    ) -> SubmissionResult:
        """
        Run the relay call on a worker thread and wait on it and `cancel` together.

        On cancellation the request is abandoned: the worker finishes against
        the client's read deadline and its answer is discarded.
        """
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="launchtube-submit")
        future = pool.submit(self._relay.submit, request, token)
        try:
            while True:
                done, _ = wait([future], timeout=CANCEL_POLL_SECONDS)
                if done:
                    return future.result()
                if cancel.is_set():
                    future.cancel()
                    raise CancelledError("Submission cancelled while waiting for the relay")
        finally:
            pool.shutdown(wait=False)
