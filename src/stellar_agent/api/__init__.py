"""
API module for the Stellar Agent SDK.

Provides FastAPI routes and models for exposing intent submission and
Launchtube token management as a REST API.
"""

from stellar_agent.api.models import (
    ActivateRequest,
    ActivateResponse,
    ClaimRequest,
    ClaimResponse,
    CreditsResponse,
    ErrorResponse,
)

__all__ = [
    "ActivateRequest",
    "ActivateResponse",
    "ClaimRequest",
    "ClaimResponse",
    "CreditsResponse",
    "ErrorResponse",
]
