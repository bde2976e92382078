"""
StellarToolkit: the main entry point for AI agents.

This class wraps the intent compiler and the Launchtube relay into a single
interface that:
1. Exposes plain Python methods for every agent action
2. Turns every failure into a structured result instead of an exception
3. Generates tool schemas for OpenAI and Anthropic

Usage:
    from stellar_agent import HorizonNode, SubmissionOrchestrator
    from stellar_agent.tools import StellarToolkit

    node = HorizonNode()
    orchestrator = SubmissionOrchestrator.from_env()
    toolkit = StellarToolkit(node, orchestrator)

    credits = toolkit.check_credits()
    result = toolkit.submit_transaction({"type": "payment", ...})

    # For LLM integration:
    tools = toolkit.to_openai_tools()    # list of OpenAI tool dicts
    tools = toolkit.to_anthropic_tools() # list of Anthropic tool dicts
"""

from __future__ import annotations

import json
import logging
from typing import Any

from stellar_agent.core.horizon import HorizonNode
from stellar_agent.core.models import TransactionIntent
from stellar_agent.errors import CreditsUnparseableError, StellarAgentError
from stellar_agent.submission import SubmissionOrchestrator

logger = logging.getLogger("stellar_agent.toolkit")


class StellarToolkit:
    """
    Unified AI agent toolkit for Stellar transactions relayed through Launchtube.

    All methods are safe to call directly from an LLM's tool-calling loop.
    Submissions spend relay credits; a malformed intent is rejected locally
    and costs nothing.
    """

    def __init__(self, node: HorizonNode, orchestrator: SubmissionOrchestrator) -> None:
        self._node = node
        self._orchestrator = orchestrator

    # ------------------------------------------------------------------
    # Read-only actions
    # ------------------------------------------------------------------

    def get_account_balance(self, address: str) -> dict[str, Any]:
        """
        Get the XLM and issued-asset balances of an account.

        Returns:
            dict with 'address', 'exists', 'xlm', 'assets' and 'summary'
        """
        state = self._node.get_balance(address)
        return {
            "address": state.account_id,
            "exists": state.exists,
            "xlm": state.native_balance,
            "assets": [
                {"code": b.asset.label, "issuer": b.asset.issuer, "balance": b.balance}
                for b in state.balances
                if not b.asset.is_native
            ],
            "summary": state.to_agent_summary(),
        }

    def check_credits(self) -> dict[str, Any]:
        """
        Check the remaining Launchtube credits of the configured token.

        Returns:
            dict with 'credits' (stroops), 'credits_xlm', 'activated' and 'summary'
        """
        try:
            account = self._orchestrator.check_credits()
        except CreditsUnparseableError as e:
            logger.warning(f"Launchtube returned unparseable credits: {e.raw!r}")
            return {"error": e.kind.value, "message": str(e), "parsing_error": True}
        return {
            "credits": account.credits_remaining,
            "credits_xlm": str(account.credits_xlm),
            "activated": account.activated,
            "summary": account.to_agent_summary(),
        }

    # ------------------------------------------------------------------
    # State-changing actions
    # ------------------------------------------------------------------

    def submit_transaction(
        self,
        intent: TransactionIntent | dict[str, Any] | None = None,
        simulate: bool = True,
        **intent_fields: Any,
    ) -> dict[str, Any]:
        """
        Compile an intent and submit it through Launchtube.

        Args:
            intent: a TransactionIntent or its dict form; alternatively pass
                    the intent's fields as keyword arguments
            simulate: ask the relay to simulate before submitting

        Returns:
            dict: the SubmissionResult fields plus a 'summary' line
        """
        if intent is None:
            intent = intent_fields
        result = self._orchestrator.compile_and_submit(intent, simulate=simulate)
        payload = result.model_dump(mode="json")
        payload["summary"] = result.to_agent_summary()
        return payload

    def activate_token(self, token: str) -> dict[str, Any]:
        """Activate a Launchtube credit token."""
        self._orchestrator.relay.activate(token)
        return {"status": "activated"}

    def claim_token(self, code: str) -> dict[str, Any]:
        """Exchange a Launchtube claim code for a new credit token."""
        token = self._orchestrator.relay.claim(code)
        return {"status": "claimed", "token": token}

    # ------------------------------------------------------------------
    # Tool schema generators
    # ------------------------------------------------------------------

    def to_openai_tools(self) -> list[dict[str, Any]]:
        """Generate OpenAI function-calling tool definitions."""
        from stellar_agent.tools.openai_tools import build_openai_tools
        return build_openai_tools(self)

    def to_anthropic_tools(self) -> list[dict[str, Any]]:
        """Generate Anthropic tool-use definitions."""
        from stellar_agent.tools.anthropic_tools import build_anthropic_tools
        return build_anthropic_tools(self)

    def execute_tool(self, tool_name: str, tool_input: dict[str, Any]) -> str:
        """
        Execute a tool by name with given inputs.
        Used by LLM frameworks to dispatch tool calls.

        Returns:
            str: JSON-encoded result
        """
        tool_map = {
            "get_account_balance": lambda i: self.get_account_balance(**i),
            "check_credits": lambda _: self.check_credits(),
            "submit_transaction": lambda i: self.submit_transaction(
                {k: v for k, v in i.items() if k != "simulate"},
                simulate=i.get("simulate", True),
            ),
            "activate_token": lambda i: self.activate_token(**i),
            "claim_token": lambda i: self.claim_token(**i),
        }

        fn = tool_map.get(tool_name)
        if not fn:
            return json.dumps({"error": f"Unknown tool: {tool_name}"})

        try:
            result = fn(tool_input or {})
            return json.dumps(result, indent=2)
        except StellarAgentError as e:
            logger.warning(f"Tool {tool_name} failed [{e.kind.value}]: {e}")
            return json.dumps({
                "error": e.kind.value,
                "message": str(e),
                "retryable": e.retryable,
            })
        except Exception as e:
            logger.error(f"Tool {tool_name} failed: {e}")
            return json.dumps({"error": str(e)})
