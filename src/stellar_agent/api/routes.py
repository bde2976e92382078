from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from stellar_agent.api.models import (
    ActivateRequest,
    ActivateResponse,
    ClaimRequest,
    ClaimResponse,
    CreditsResponse,
)
from stellar_agent.core.models import SubmissionResult
from stellar_agent.errors import ErrorKind
from stellar_agent.submission import SubmissionOrchestrator

router = APIRouter(tags=["Launchtube"])

# HTTP status for each error kind; anything not listed is a client error (400)
STATUS_BY_KIND = {
    ErrorKind.INVALID_ADDRESS: 422,
    ErrorKind.INVALID_AMOUNT: 422,
    ErrorKind.MISSING_REQUIRED_FIELD: 422,
    ErrorKind.UNSUPPORTED_ASSET_REFERENCE: 422,
    ErrorKind.MEMO_ENCODING_ERROR: 422,
    ErrorKind.UNKNOWN_INTENT_KIND: 422,
    ErrorKind.INVALID_INTENT: 422,
    ErrorKind.INVALID_SUBMISSION_REQUEST: 422,
    ErrorKind.STALE_SEQUENCE: 409,
    ErrorKind.SOURCE_ACCOUNT_LOAD_FAILED: 503,
    ErrorKind.RELAY_UNREACHABLE: 503,
    ErrorKind.RELAY_REJECTED: 502,
    ErrorKind.RELAY_RESPONSE_INVALID: 502,
    ErrorKind.TOKEN_ACTIVATION_FAILED: 502,
    ErrorKind.CREDITS_UNPARSEABLE: 502,
    ErrorKind.CLAIM_TOKEN_EXTRACTION_FAILED: 502,
    ErrorKind.CONFIGURATION_ERROR: 500,
}


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, 400)


def get_orchestrator(request: Request) -> SubmissionOrchestrator:
    """Dependency to retrieve the SubmissionOrchestrator built at startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        detail = getattr(request.app.state, "config_error", None) or "orchestrator not initialized"
        raise HTTPException(status_code=500, detail=detail)
    return orchestrator


def bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    """The caller's own credit token, when sent as `Authorization: Bearer <token>`."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Authorization header must be 'Bearer <token>'")
    return token.strip()


@router.post("/transactions", response_model=SubmissionResult)
def submit_transaction(
    intent: dict[str, Any] = Body(..., description="Transaction intent, e.g. {'type': 'payment', ...}"),
    simulate: bool = True,
    token: str | None = Depends(bearer_token),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """
    Compile an intent and submit it through Launchtube.

    Always answers with a SubmissionResult; the HTTP status reflects the error kind.
    """
    result = orchestrator.compile_and_submit(intent, token=token, simulate=simulate)
    status_code = 200 if result.ok else status_for(result.error.kind)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.get("/credits", response_model=CreditsResponse)
def get_credits(
    token: str | None = Depends(bearer_token),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """Remaining credits of the caller's token (or the server's configured token)."""
    account = orchestrator.check_credits(token=token)
    return CreditsResponse(
        credits_remaining=account.credits_remaining,
        credits_xlm=str(account.credits_xlm),
        activated=account.activated,
    )


@router.post("/tokens/activate", response_model=ActivateResponse)
def activate_token(
    req: ActivateRequest,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    orchestrator.relay.activate(req.token)
    return ActivateResponse()


@router.post("/tokens/claim", response_model=ClaimResponse)
def claim_token(
    req: ClaimRequest,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """Exchange a claim code for a new credit token."""
    return ClaimResponse(token=orchestrator.relay.claim(req.code))
