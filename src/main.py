"""Application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.container import get_container
from src.api.dependencies import limiter
from src.api.routes.config import router as config_router
from src.api.routes.generation import router as generation_router
from src.api.routes.sessions import router as sessions_router
from src.api.routes.workspaces import router as workspaces_router
from src.domain.errors import (
    CompletionBackendError,
    InvalidSessionStateError,
    MountProjectionError,
    PersistenceError,
    RoundInProgressError,
    RuntimeUnavailableError,
    SessionNotFoundError,
    WorkspaceError,
    WorkspaceNotFoundError,
)
from src.infrastructure.config.model_validator import validate_models_config
from src.infrastructure.resilience import get_all_breakers
from src.shared.logging import RequestLogMiddleware, setup_logging

log = structlog.get_logger()

# Most specific class wins (handlers are looked up along the exception's MRO).
ERROR_STATUS: dict[type[WorkspaceError], int] = {
    WorkspaceError: 500,
    CompletionBackendError: 502,
    PersistenceError: 500,
    SessionNotFoundError: 404,
    WorkspaceNotFoundError: 404,
    RoundInProgressError: 409,
    InvalidSessionStateError: 409,
    RuntimeUnavailableError: 503,
    MountProjectionError: 500,
}


def _apply_logging_config(container):
    """Apply logging from container config (stdout + optional file)."""
    c = container.config
    setup_logging(
        level=c.log_level,
        file_path=c.log_file or "",
        rotation_max_mb=c.log_rotation_max_mb,
        rotation_backups=c.log_rotation_backups,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: logging and model check. Shutdown: stop dev servers, close clients."""
    container = get_container()
    _apply_logging_config(container)
    log.info(
        "startup_begin",
        llm_provider=container.config.llm.provider,
        runtime_enabled=container.config.runtime.enabled,
    )
    await validate_models_config(container.llm, container.config)
    log.info("startup_complete")
    yield
    log.info("shutdown_begin")
    await get_container().shutdown()
    log.info("shutdown_complete")


async def workspace_error_handler(request: Request, exc: WorkspaceError) -> JSONResponse:
    status = next((ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS), 500)
    if status >= 500:
        log.warning("request_error", path=request.url.path, error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


# Create app
app = FastAPI(
    title="Forgebox",
    version="0.1.0",
    description="Prompt-to-project workspace service",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(WorkspaceError, workspace_error_handler)

# CORS
container = get_container()
app.add_middleware(
    CORSMiddleware,
    allow_origins=container.config.security.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLogMiddleware)

# Register routers
app.include_router(config_router)
app.include_router(generation_router)
app.include_router(sessions_router)
app.include_router(workspaces_router)


@app.get("/health")
@limiter.limit("100/minute")
async def health(request: Request) -> dict:
    """Health check with completion backend availability."""
    container = get_container()
    llm_available = await container.llm.is_available()
    return {
        "status": "ok",
        "service": "forgebox",
        "llm_provider": container.config.llm.provider,
        "llm_available": llm_available,
        "workspaces": len(container.workspaces),
        "circuit_breakers": get_all_breakers(),
    }
