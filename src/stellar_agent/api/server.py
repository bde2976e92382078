import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stellar_agent.api.models import ErrorResponse
from stellar_agent.api.routes import router, status_for
from stellar_agent.config import RelayConfig, StellarConfig
from stellar_agent.core.horizon import HorizonNode
from stellar_agent.errors import ConfigurationError, StellarAgentError
from stellar_agent.submission import SubmissionOrchestrator

logger = logging.getLogger("stellar_agent.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Load configuration; a bad environment leaves the app up but every route answers 500
    app.state.orchestrator = None
    app.state.config_error = None
    node = None
    try:
        stellar_config = StellarConfig.from_env()
        relay_config = RelayConfig.from_env(stellar_config.network)
        node = HorizonNode.from_config(stellar_config)
        app.state.orchestrator = SubmissionOrchestrator.from_config(stellar_config, relay_config, node)
        logger.info(
            f"Launchtube API ready on {stellar_config.network} (relay {relay_config.base_url})"
        )
    except ConfigurationError as e:
        logger.warning(f"Launchtube API started without a relay: {e}")
        app.state.config_error = str(e)

    yield

    orchestrator = app.state.orchestrator
    if orchestrator is not None:
        orchestrator.relay.close()
    if node is not None:
        node.close()


app = FastAPI(
    title="Stellar Agent SDK - Launchtube API",
    description="REST API for compiling Stellar transaction intents and relaying them through Launchtube",
    version="0.1.0",
    lifespan=lifespan,
)

# Allow CORS for easy frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(router)


@app.exception_handler(StellarAgentError)
async def stellar_agent_error_handler(request: Request, exc: StellarAgentError):
    body = ErrorResponse(error=exc.kind.value, detail=str(exc), retryable=exc.retryable)
    return JSONResponse(status_code=status_for(exc.kind), content=body.model_dump())


@app.get("/health")
async def health_check():
    """Simple health check endpoint."""
    configured = getattr(app.state, "orchestrator", None) is not None
    return {"status": "ok" if configured else "unconfigured"}
