from pydantic import BaseModel, Field


class CreditsResponse(BaseModel):
    """Response model for a credit balance check."""

    credits_remaining: int = Field(..., description="Remaining credits in stroops")
    credits_xlm: str = Field(..., description="Remaining credits expressed in XLM")
    activated: bool = Field(..., description="Whether the token has been activated")


class ActivateRequest(BaseModel):
    """Request model for activating a credit token."""

    token: str = Field(..., min_length=1, description="Launchtube credit token to activate")


class ActivateResponse(BaseModel):
    status: str = Field("activated", description="Always 'activated' on success")


class ClaimRequest(BaseModel):
    """Request model for exchanging a claim code."""

    code: str = Field(..., min_length=1, description="Claim code issued by Launchtube")


class ClaimResponse(BaseModel):
    """Response model for a successful claim."""

    token: str = Field(..., description="New credit token. Store it securely.")


class ErrorResponse(BaseModel):
    """Body returned for every StellarAgentError."""

    error: str = Field(..., description="Error kind, e.g. 'InvalidAddress'")
    detail: str = Field(..., description="Human-readable message")
    retryable: bool = Field(False, description="Whether a fresh attempt may succeed")
