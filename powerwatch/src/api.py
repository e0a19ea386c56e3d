"""
Read-only JSON API over the latest inverter and battery state.

Endpoints:
- GET /                  service status
- GET /health            liveness plus the health-file state
- GET /api/info          latest inverter telemetry
- GET /api/info/battery  latest BMS status (404 until one was received)
- GET /api/info/labels   labels of the enumerated inverter settings

The app is built by :func:`create_app` around an existing
:class:`~powerwatch.src.state.TelemetryStore`; route handlers reach it
through ``app.state``.

CHANGELOG:
- 2026-10-14: Add the labels endpoint
- 2026-10-13: Initial creation (STORY-013)

TODO:
- None
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from powerwatch.src import labels
from powerwatch.src.battery import BatteryStatus
from powerwatch.src.health import HealthWriter
from powerwatch.src.state import TelemetryStore
from powerwatch.src.telemetry import InverterTelemetry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["info"])


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_store(request: Request) -> TelemetryStore:
    return request.app.state.store


def get_health(request: Request) -> HealthWriter | None:
    return request.app.state.health


Store = Annotated[TelemetryStore, Depends(get_store)]
Health = Annotated[HealthWriter | None, Depends(get_health)]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok", "service": "power-watch"}


@router.get("/health")
async def health(health: Health) -> dict[str, Any]:
    """Return liveness and, when available, the daemon health state."""
    body: dict[str, Any] = {"status": "ok"}
    if health is not None:
        body.update(health.snapshot())
    return body


@router.get("/api/info")
async def info(store: Store) -> InverterTelemetry:
    """Return the latest inverter telemetry (defaults until the first poll)."""
    return store.snapshot()


@router.get("/api/info/battery")
async def battery(store: Store) -> BatteryStatus:
    """Return the latest battery status.

    Raises:
        HTTPException: 404 when no battery frame has been decoded yet.
    """
    status = store.battery_status()
    if status is None:
        raise HTTPException(status_code=404, detail="No battery data received yet")
    return status


@router.get("/api/info/labels")
async def info_labels(store: Store) -> dict[str, str]:
    return labels.describe(store.snapshot())


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(store: TelemetryStore, health: HealthWriter | None = None) -> FastAPI:
    """Build the FastAPI app serving *store*.

    Args:
        store: State shared with the poll loop and serial reader.
        health: Optional health writer whose state ``/health`` reports.
    """
    app = FastAPI(
        title="power-watch",
        description="Latest inverter and battery telemetry.",
        version="0.1.0",
    )
    app.state.store = store
    app.state.health = health

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
