# decision_wizard/main.py
"""
FastAPI application - HTTP surface for the single-page decision wizard.

The page renders whatever ``GET /state`` returns and posts user actions back.
One controller per process; there are no per-user sessions.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging
import os

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from decision_wizard.core.config import settings, validate_required_settings
from decision_wizard.core.credential_gate import (
    CredentialChain,
    CredentialGate,
    InteractiveCredentialHost,
    SettingsCredentialProvider,
)
from decision_wizard.core.exceptions import FlowError, ValidationError
from decision_wizard.core.flow_controller import DecisionFlowController
from decision_wizard.core.flow_handlers import FlowHandlers
from decision_wizard.core.logging_config import setup_logging
from decision_wizard.core.prompt_manager import get_prompt_manager
from decision_wizard.services.generation_service import GenerationService

logger = logging.getLogger(__name__)


def build_controller(credential_host: InteractiveCredentialHost) -> DecisionFlowController:
    """Wire gate, service, handlers and controller for one process."""
    # A key picked in the page overrides the configured one
    gate = CredentialGate(
        CredentialChain([credential_host, SettingsCredentialProvider(settings)]),
        selector=credential_host
    )
    prompt_manager = get_prompt_manager()
    service = GenerationService(gate, prompt_manager=prompt_manager)
    handlers = FlowHandlers(service, prompt_manager=prompt_manager)
    return DecisionFlowController(handlers, prompt_manager=prompt_manager)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown"""
    logger.info("=" * 60)
    logger.info(f"{settings.APP_NAME} API starting...")

    validate_required_settings()

    credential_host = InteractiveCredentialHost()
    controller = build_controller(credential_host)
    await controller.check_credential()

    app.state.credential_host = credential_host
    app.state.controller = controller

    logger.info(f"  - Question model: {settings.QUESTION_MODEL}")
    logger.info(f"  - Analysis model: {settings.ANALYSIS_MODEL}")
    logger.info(f"  - Questions per topic: {settings.QUESTION_COUNT}")
    logger.info("=" * 60)

    yield

    await controller.handlers.generation_service.shutdown()
    logger.info(f"{settings.APP_NAME} API shut down")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Guided decision wizard backed by a generation model",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None
)

setup_logging()


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_controller(request: Request) -> DecisionFlowController:
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        logger.error("Controller not initialized!")
        raise HTTPException(status_code=503, detail="Service not ready")
    return controller


def get_credential_host(request: Request) -> InteractiveCredentialHost:
    host = getattr(request.app.state, "credential_host", None)
    if host is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return host


# =============================================================================
# ERROR HANDLING
# =============================================================================

@app.exception_handler(FlowError)
async def flow_error_handler(request: Request, exc: FlowError):
    logger.warning(f"Rejected action on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=409,
        content={"detail": "This action is not available right now.", "state": exc.current_state}
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning(f"Invalid input on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "field": exc.field}
    )


# =============================================================================
# MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests except health checks"""
    if request.url.path != "/health":
        logger.info(f"Request: {request.method} {request.url.path}")
    return await call_next(request)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses"""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# =============================================================================
# API MODELS
# =============================================================================

class TopicRequest(BaseModel):
    topic: str


class AnswerRequest(BaseModel):
    option: str


class CredentialRequest(BaseModel):
    api_key: Optional[str] = None


# =============================================================================
# ROUTES
# =============================================================================

@app.get("/health", status_code=200)
def health():
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/health/backend")
async def backend_health(controller: DecisionFlowController = Depends(get_controller)):
    """
    Generation backend status with service metrics.

    Sends one minimal completion, so it needs a usable key.
    """
    service = controller.handlers.generation_service
    health = await service.health_check()
    if not health["healthy"]:
        logger.warning(f"Backend health check failed: {health['details'].get('error')}")
    return {
        "overall": "healthy" if health["healthy"] else "unhealthy",
        "backend": health,
        "metrics": service.get_metrics(),
        "timestamp": datetime.now().isoformat()
    }


@app.get("/state")
def get_state(controller: DecisionFlowController = Depends(get_controller)):
    return controller.snapshot()


@app.post("/topic")
async def submit_topic(req: TopicRequest, controller: DecisionFlowController = Depends(get_controller)):
    await controller.submit_topic(req.topic)
    return controller.snapshot()


@app.post("/answer")
def select_answer(req: AnswerRequest, controller: DecisionFlowController = Depends(get_controller)):
    controller.select_option(req.option)
    return controller.snapshot()


@app.post("/next")
async def next_question(controller: DecisionFlowController = Depends(get_controller)):
    await controller.advance()
    return controller.snapshot()


@app.post("/previous")
def previous_question(controller: DecisionFlowController = Depends(get_controller)):
    controller.go_back()
    return controller.snapshot()


@app.post("/reset")
def reset(controller: DecisionFlowController = Depends(get_controller)):
    controller.reset()
    return controller.snapshot()


@app.post("/error/dismiss")
def dismiss_error(controller: DecisionFlowController = Depends(get_controller)):
    controller.dismiss_error()
    return controller.snapshot()


@app.get("/credential")
def credential_status(
    controller: DecisionFlowController = Depends(get_controller),
    host: InteractiveCredentialHost = Depends(get_credential_host)
):
    return {
        "needs_credential": controller.state.needs_credential,
        "selection_requested": host.selection_requested,
        "state": controller.credential_gate.state.value,
    }


@app.post("/credential/select")
async def open_credential_selection(controller: DecisionFlowController = Depends(get_controller)):
    await controller.open_credential_dialog()
    return controller.snapshot()


@app.post("/credential")
def submit_credential(
    req: CredentialRequest,
    controller: DecisionFlowController = Depends(get_controller),
    host: InteractiveCredentialHost = Depends(get_credential_host)
):
    host.submit_key(req.api_key)
    controller.credential_selected()
    return controller.snapshot()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting server on port {port}...")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
