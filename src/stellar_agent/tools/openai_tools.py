"""OpenAI function-calling tool definitions for StellarToolkit."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from stellar_agent.tools.anthropic_tools import INTENT_SCHEMA

if TYPE_CHECKING:
    from stellar_agent.tools.toolkit import StellarToolkit


def build_openai_tools(toolkit: StellarToolkit) -> list[dict[str, Any]]:
    """Return a list of OpenAI function-calling tool definitions."""
    return [
        {
            "type": "function",
            "function": {
                "name": "get_account_balance",
                "description": "Get the XLM and issued-asset balances of a Stellar account.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "address": {
                            "type": "string",
                            "description": "Stellar account ID, 56 characters starting with 'G'",
                        },
                    },
                    "required": ["address"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": "check_credits",
                "description": (
                    "Check the remaining Launchtube credits that pay transaction fees. "
                    "Credits are reported in stroops (1 XLM = 10,000,000 stroops)."
                ),
                "parameters": {"type": "object", "properties": {}, "required": []},
            },
        },
        {
            "type": "function",
            "function": {
                "name": "submit_transaction",
                "description": (
                    "Build a Stellar transaction from a structured intent and submit it through "
                    "Launchtube, which pays the network fee. Each submission spends credits. "
                    "Invalid intents are rejected locally without spending anything."
                ),
                "parameters": INTENT_SCHEMA,
            },
        },
        {
            "type": "function",
            "function": {
                "name": "activate_token",
                "description": "Activate a Launchtube credit token. Required once before the token can pay fees.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "token": {"type": "string", "description": "Launchtube credit token"},
                    },
                    "required": ["token"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": "claim_token",
                "description": "Exchange a Launchtube claim code for a new credit token.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "code": {"type": "string", "description": "Claim code"},
                    },
                    "required": ["code"],
                },
            },
        },
    ]
