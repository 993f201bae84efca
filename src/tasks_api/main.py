"""
ASGI application for the tasks API.

Usage:
    uvicorn tasks_api.main:app --host 0.0.0.0 --port 8000

Configuration is read from the environment when this module is imported;
see tasks_api.settings for the variables.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import ApiError, InternalError, StoreError
from .gate import EdgeGateMiddleware
from .identity import IdentityError
from .logging_config import setup_logging
from .routers import auth as auth_router
from .routers import tasks as tasks_router
from .routing import RouteTable
from .settings import get_settings
from .validation import FieldError

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "tasks", "description": "Owner-scoped CRUD operations for tasks."},
    {"name": "auth", "description": "Sign-up, email verification and sessions via the identity provider."},
]

_settings = get_settings()
setup_logging(_settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("starting with %s persistence backend", _settings.persistence_backend)
    yield
    if _settings.persistence_backend == "mongo":
        from .db import close_client

        close_client()


app = FastAPI(
    title="Tasks Backend",
    description="Multi-user task API with identity-provider authentication and an edge routing gate.",
    version="0.1.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

app.add_middleware(
    EdgeGateMiddleware,
    table=RouteTable(public_prefixes=tuple(_settings.public_routes)),
)

# Configure CORS based on settings (CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """
    Return the error taxonomy as JSON.

    Response format:
        {"error": "<category>", "details": <message or field list>}
    """
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


_REQUEST_SOURCES = ("body", "query", "path", "header", "cookie")


def _error_field(loc: Sequence[Any]) -> str:
    """Dotted field name for a request validation ``loc``; positions inside the raw body report as ``body``."""
    tail = list(loc[1:]) if loc and loc[0] in _REQUEST_SOURCES else list(loc)
    if not tail or not isinstance(tail[0], str):
        return "body"
    return ".".join(str(p) for p in tail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Malformed JSON or mistyped parameters are reported like payload validation
    failures: 400 with a list of ``{"field", "message"}`` entries.
    """
    errors = [
        FieldError(field=_error_field(err.get("loc", ())), message=err.get("msg", "Invalid value")).to_dict()
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Validation error", "details": errors})


@app.exception_handler(IdentityError)
async def identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("store failure on %s %s", request.method, request.url.path, exc_info=exc)
    err = InternalError()
    return JSONResponse(status_code=err.status_code, content=err.to_body())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    err = InternalError()
    return JSONResponse(status_code=err.status_code, content=err.to_body())


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """Liveness probe; also reports which persistence backend is active."""
    return {"message": "Healthy", "backend": _settings.persistence_backend}


# Include routers
app.include_router(tasks_router.router)
app.include_router(auth_router.router)
