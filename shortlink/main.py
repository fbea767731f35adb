"""FastAPI application entry point for the shortlink service.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ lifespan():  │
    │ service      │
    │ manager init │
    │ (tables,     │
    │ cache, log)  │
    └──────┬───────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ lifespan():  │
    │ drain remote │
    │ log, close   │
    │ redis + db   │
    └──────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn shortlink.main:app --host 0.0.0.0 --port 8000 --reload

**Make API calls**::
    curl -X POST http://localhost:8000/shorturls \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com", "validity": 30}'

Key Behaviours
===============
- Each domain error maps to its own HTTP status with a JSON body
  ``{"detail": ..., "error": ...}``.
- CORS is enabled for all origins.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app", "ERROR_STATUS_CODES", "status_code_for"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortlink.config import get_settings
from shortlink.dependencies import _service_manager
from shortlink.exceptions import (
    ShortcodeExhaustedError,
    ShortcodeExpiredError,
    ShortcodeNotFoundError,
    ShortcodeTakenError,
    ShortlinkError,
    StoreUnavailableError,
    ValidationError,
)
from shortlink.routes import router
from shortlink.schemas import ErrorResponse

settings = get_settings()

# Checked in order, so subclasses must precede their bases
ERROR_STATUS_CODES: list[tuple[type[ShortlinkError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ShortcodeTakenError, status.HTTP_409_CONFLICT),
    (ShortcodeNotFoundError, status.HTTP_404_NOT_FOUND),
    (ShortcodeExpiredError, status.HTTP_410_GONE),
    (ShortcodeExhaustedError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: ShortlinkError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    yield
    # Shutdown
    await _service_manager.cleanup()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="URL shortener with expiring links and click analytics",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShortlinkError)
async def shortlink_error_handler(request: Request, exc: ShortlinkError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code_for(exc),
        content=ErrorResponse(detail=str(exc), error=exc.error_code).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Bodies that are not a JSON object never reach the field checks
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            detail=f"Malformed request: {'; '.join(problems)}",
            error=ValidationError.error_code,
        ).model_dump(),
    )


Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
