"""FastAPI backend for LLM Council."""

from __future__ import annotations

import logging
import re
import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routes import conversations as conversations_routes
from .routes import council as council_routes
from .. import config
from ..engine import openrouter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not config.OPENROUTER_API_KEY:
        logger.warning("OPENROUTER_API_KEY is not set; every model call will be rejected upstream.")
    limits = httpx.Limits(
        max_connections=max(1, config.OPENROUTER_MAX_CONCURRENCY),
        max_keepalive_connections=max(1, config.OPENROUTER_MAX_CONCURRENCY),
    )
    timeout = httpx.Timeout(config.OPENROUTER_TIMEOUT_SECONDS)
    client = httpx.AsyncClient(timeout=timeout, limits=limits)
    openrouter.set_client(client)
    try:
        yield
    finally:
        openrouter.set_client(None)
        await client.aclose()


app = FastAPI(title="LLM Council API", lifespan=lifespan)

_cors_origins = config.cors_allow_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=False if _cors_origins == ["*"] else True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)


def _safe_detail(detail: object) -> str:
    if isinstance(detail, str):
        return detail
    return "Request failed"


def _maybe_error_code(detail: str) -> str | None:
    if re.fullmatch(r"[a-z0-9_]+", detail or ""):
        return detail
    return None


def _content_length(request: Request) -> int | None:
    value = request.headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "LLM Council API"}


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    length = _content_length(request)
    if length is not None and length > config.MAX_REQUEST_BODY_BYTES:
        resp = JSONResponse(
            status_code=413,
            content={"detail": "request_body_too_large", "request_id": request_id, "error_code": "request_body_too_large"},
        )
    else:
        resp = await call_next(request)
    resp.headers["X-Request-ID"] = request_id
    return resp


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    detail = _safe_detail(exc.detail)
    payload: dict[str, object] = {"detail": detail, "request_id": request_id}
    code = _maybe_error_code(detail)
    if code:
        payload["error_code"] = code
    logger.info("HTTPException %s request_id=%s detail=%s", exc.status_code, request_id, detail)
    resp = JSONResponse(status_code=exc.status_code, content=payload)
    resp.headers["X-Request-ID"] = request_id
    return resp


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    logger.exception("Unhandled exception request_id=%s", request_id)
    resp = JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": request_id, "error_code": "internal_server_error"},
    )
    resp.headers["X-Request-ID"] = request_id
    return resp


app.include_router(conversations_routes.router)
app.include_router(council_routes.router)
