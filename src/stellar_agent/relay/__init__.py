"""relay module init"""
from stellar_agent.relay.client import (
    CREDITS_HEADER,
    RelayAdminClient,
    RelayClient,
    SubmitRequest,
    encode_submission,
    extract_claim_token,
    parse_credits,
)

__all__ = [
    "CREDITS_HEADER",
    "RelayAdminClient",
    "RelayClient",
    "SubmitRequest",
    "encode_submission",
    "extract_claim_token",
    "parse_credits",
]
