# studydesk/main.py
import uuid

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from studydesk import __version__
from studydesk.api.v1.router import api_router
from studydesk.core.config import get_settings
from studydesk.core.errors import AuthError
from studydesk.core.logging import request_id_var, setup_logging
from studydesk.db.bootstrap import run_migrations_and_seed

setup_logging()
log = structlog.get_logger(__name__)

settings = get_settings()

api = FastAPI(
    title="StudyDesk - Auth API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    swagger_ui_parameters={"displayRequestDuration": True, "persistAuthorization": True},
)

api.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# métricas /metrics (Prometheus)
Instrumentator().instrument(api).expose(api, include_in_schema=False, should_gzip=True)

api.include_router(api_router, prefix="/api/v1")


@api.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(rid)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = rid
    return response


@api.get("/healthz", tags=["health"])
def healthz():
    return {"status": "ok"}


@api.on_event("startup")
def startup():
    if get_settings().RUN_MIGRATIONS_ON_STARTUP:
        run_migrations_and_seed()


@api.exception_handler(AuthError)
def handle_auth_error(request: Request, exc: AuthError):
    failure = exc.failure
    return JSONResponse(
        status_code=failure.status_code,
        content={"code": failure.code, "message": failure.message},
        headers=failure.headers(),
    )


@api.exception_handler(IntegrityError)
def handle_integrity_error(request: Request, exc: IntegrityError):
    # sem detalhes do driver na resposta
    log.warning("integrity_error", error=type(getattr(exc, "orig", exc)).__name__)
    return JSONResponse(
        status_code=409,
        content={"code": "UNIQUE_VIOLATION", "message": "Duplicate record."},
    )


@api.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    log.exception("unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "message": "Internal error."},
    )
