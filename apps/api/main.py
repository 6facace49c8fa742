from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.storage.json_file_store import JsonFileSnapshotStore
from core.domain.validation import parse_payload
from core.errors import (
    InvalidJsonError,
    MissingSyncKeyError,
    PayloadTooLargeError,
    RateLimitedError,
    RelayError,
    SnapshotNotFoundError,
)
from core.logging_utils import configure_logging
from core.ports.snapshot_store import SnapshotStore
from core.rate_limit import SlidingWindowRateLimiter
from core.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings.log_level, settings.log_file)
    store = JsonFileSnapshotStore(settings.data_file or None)
    rate_limiter = SlidingWindowRateLimiter(
        window_ms=settings.rate_limit_window_ms,
        max_requests=settings.rate_limit_max_requests,
        sweep_interval_seconds=settings.rate_limit_sweep_seconds,
    )

    app.state.store = store
    app.state.rate_limiter = rate_limiter
    logger.info(
        "Sync relay ready data_file=%s rate_limit=%d/%dms",
        settings.data_file or "<memory>",
        settings.rate_limit_max_requests,
        settings.rate_limit_window_ms,
    )

    try:
        yield
    finally:
        await asyncio.to_thread(store.close)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> SnapshotStore:
    return request.app.state.store


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.rate_limiter


SettingsDep = Annotated[Settings, Depends(get_settings)]
StoreDep = Annotated[SnapshotStore, Depends(get_store)]
RateLimiterDep = Annotated[SlidingWindowRateLimiter, Depends(get_rate_limiter)]


def _client_address(request: Request, settings: Settings) -> str:
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


def _parse_since(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return 0


def _reject_constant(token: str) -> Any:
    raise ValueError(f"non-standard JSON constant {token}")


async def _read_json_body(request: Request, max_bytes: int) -> Any:
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLargeError()
    body = await request.body()
    if len(body) > max_bytes:
        raise PayloadTooLargeError()
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except ValueError as exc:
        raise InvalidJsonError() from exc


@router.get("/health", summary="Health check", status_code=status.HTTP_200_OK)
async def healthcheck(store: StoreDep) -> dict[str, Any]:
    return {"status": "ok", "sync_keys": len(store.keys())}


@router.post("/api/webhook", summary="Receive a snapshot push", status_code=status.HTTP_200_OK)
async def receive_webhook(
    request: Request,
    store: StoreDep,
    rate_limiter: RateLimiterDep,
    settings: SettingsDep,
    sync_key: Annotated[str | None, Header(alias="sync-key")] = None,
) -> dict[str, Any]:
    if not sync_key or not sync_key.strip():
        raise MissingSyncKeyError()

    address = _client_address(request, settings)
    if not rate_limiter.allow(address):
        raise RateLimitedError()

    body = await _read_json_body(request, settings.max_body_bytes)
    payload = parse_payload(body)

    snapshot = await asyncio.to_thread(store.put, sync_key, payload, source_ip=address)
    logger.info(
        "Webhook received key=%s trades=%d positions=%d from=%s",
        sync_key,
        len(payload.trades),
        len(payload.open_positions),
        address,
    )
    return {"success": True, "lastUpdated": snapshot.last_updated}


@router.get("/api/trades/{sync_key}", summary="Poll the latest snapshot")
async def poll_snapshot(
    sync_key: str,
    store: StoreDep,
    last_updated: Annotated[str | None, Query(alias="lastUpdated")] = None,
) -> Response:
    since = _parse_since(last_updated)
    snapshot = store.get(sync_key)
    if snapshot is None:
        raise SnapshotNotFoundError()
    if snapshot.last_updated <= since:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED)
    return JSONResponse({"success": True, **snapshot.to_wire()})


async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    if isinstance(exc, SnapshotNotFoundError):
        logger.debug("No snapshot for %s", request.url.path)
    elif exc.status_code >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("Rejected %s %s status=%d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="Sync Relay API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RelayError, _relay_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
    app.include_router(router)
    return app


app = create_app()
