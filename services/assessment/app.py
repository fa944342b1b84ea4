# services/assessment/app.py
"""FastAPI app for the Assessment (take-test grading) service:
- /v1/submit: submit, read, list and re-grade take tests
- /health: liveness
- /metrics: Prometheus exposition

Build it with `create_app(settings)`; settings, store and workflow live on
`app.state`.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from packages.common.config import Settings
from packages.common.logging import configure_logging
from packages.common.tracing import trace_middleware
from packages.schemas.assessment import ErrorResponse
from .errors import (
    AssessmentError,
    AttemptNotFoundError,
    AttemptValidationError,
    PersistenceError,
    ReferenceResolutionError,
)
from .repo import AttemptStore, SqlAttemptStore
from .routes import router as submit_router
from .workflow import GradingWorkflow

logger = logging.getLogger(__name__)

_STATUS = (
    (AttemptValidationError, 422),
    (AttemptNotFoundError, 404),
    (ReferenceResolutionError, 409),
    (PersistenceError, 503),
)


def _status_for(exc: AssessmentError) -> int:
    for cls, code in _STATUS:
        if isinstance(exc, cls):
            return code
    return 500


async def assessment_error_handler(request: Request, exc: AssessmentError) -> JSONResponse:
    """Render workflow errors as `ErrorResponse` JSON."""
    code = _status_for(exc)
    if code >= 500:
        logger.error(f"{exc.kind} on {request.url.path}: {exc.message}")
    body = ErrorResponse(
        error=exc.kind,
        detail=exc.message,
        retryable=exc.retryable,
        take_test_id=exc.take_test_id,
    )
    return JSONResponse(status_code=code, content=body.model_dump())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies in the same `ErrorResponse` shape."""
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    body = ErrorResponse(error=AttemptValidationError.kind, detail=problems or "invalid request")
    return JSONResponse(status_code=422, content=body.model_dump())


def create_app(settings: Optional[Settings] = None, store: Optional[AttemptStore] = None) -> FastAPI:
    """Build the service.

    Args:
        settings: Service settings; read from env / .env when omitted.
        store: Persistence backend; a `SqlAttemptStore` on `settings.DATABASE_DSN`
            when omitted. Its schema is created on startup if it supports `init_db`.
    """
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL, settings.SERVICE_NAME)
    store = store or SqlAttemptStore(settings.DATABASE_DSN)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.SERVICE_NAME} env={settings.ENV}")
        if hasattr(store, "init_db"):
            await store.init_db()
        yield
        logger.info(f"Shutting down {settings.SERVICE_NAME}")
        if hasattr(store, "dispose"):
            await store.dispose()

    app = FastAPI(title="Assessment Grading Service", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.workflow = GradingWorkflow(store, timeout=settings.IO_TIMEOUT_SECONDS)

    app.middleware("http")(trace_middleware)
    app.add_exception_handler(AssessmentError, assessment_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(submit_router)
    app.mount("/metrics", make_asgi_app())

    @app.get("/health", tags=["system"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
