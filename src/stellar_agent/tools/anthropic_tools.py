"""Anthropic tool-use definitions for StellarToolkit."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stellar_agent.tools.toolkit import StellarToolkit

_ASSET = {
    "type": "object",
    "description": "Asset reference. Omit, or use code 'XLM', for the native asset.",
    "properties": {
        "code": {"type": "string", "description": "Asset code (e.g. 'USDC', 'XLM')"},
        "issuer": {"type": "string", "description": "Issuer account ID (G...), required for non-XLM assets"},
    },
}

# Shared with the OpenAI definitions
INTENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {
            "type": "string",
            "enum": ["payment", "createAccount", "changeTrust", "pathPayment", "rawWire"],
            "description": "Kind of transaction to build",
        },
        "sourceAccount": {"type": "string", "description": "Source account ID (G...); defaults to the signer"},
        "destinationAccount": {"type": "string", "description": "Recipient account ID (G...)"},
        "amount": {"type": "string", "description": "payment: decimal amount, up to 7 decimal places"},
        "asset": _ASSET,
        "startingBalance": {"type": "string", "description": "createAccount: initial XLM, at least 1"},
        "trustAsset": _ASSET,
        "trustLimit": {"type": "string", "description": "changeTrust: optional limit; '0' removes the trustline"},
        "sendAsset": _ASSET,
        "sendMax": {"type": "string", "description": "pathPayment: most the sender will spend"},
        "destAsset": _ASSET,
        "destAmount": {"type": "string", "description": "pathPayment: exact amount the recipient receives"},
        "path": {"type": "array", "items": _ASSET, "description": "pathPayment: intermediate assets"},
        "memo": {"type": "string", "description": "Optional memo"},
        "memoType": {
            "type": "string",
            "enum": ["text", "id", "hash", "return"],
            "description": "Memo encoding (default 'text')",
        },
        "xdr": {"type": "string", "description": "rawWire: pre-built base64 transaction envelope"},
        "simulate": {"type": "boolean", "description": "Simulate on the relay before submitting (default true)"},
    },
    "required": ["type"],
}


def build_anthropic_tools(toolkit: StellarToolkit) -> list[dict[str, Any]]:
    """Return a list of Anthropic tool-use definitions."""
    return [
        {
            "name": "get_account_balance",
            "description": "Get the XLM and issued-asset balances of a Stellar account.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "address": {"type": "string", "description": "Stellar account ID (G...)"},
                },
                "required": ["address"],
            },
        },
        {
            "name": "check_credits",
            "description": (
                "Check the remaining Launchtube credits (in stroops) that pay "
                "transaction fees. Check before submitting."
            ),
            "input_schema": {"type": "object", "properties": {}},
        },
        {
            "name": "submit_transaction",
            "description": (
                "Build a Stellar transaction from a structured intent and submit it "
                "through Launchtube, which pays the fee. Spends credits."
            ),
            "input_schema": INTENT_SCHEMA,
        },
        {
            "name": "activate_token",
            "description": "Activate a Launchtube credit token before first use.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "token": {"type": "string", "description": "Launchtube credit token"},
                },
                "required": ["token"],
            },
        },
        {
            "name": "claim_token",
            "description": "Exchange a Launchtube claim code for a new credit token.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "code": {"type": "string", "description": "Claim code"},
                },
                "required": ["code"],
            },
        },
    ]
