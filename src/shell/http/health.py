"""
Health endpoints.

- /health-check: liveness, always {"is_healthy": true}
- /health/ready: 200 once the subscription store answers a ping, else 503

The lifespan handler publishes the store's ping as app.state.store_ping.
Until it does, the service reports itself as not ready.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def ping_store(ping: Callable[[], None] | None) -> tuple[bool, str, float]:
    """Run the store ping. Returns (ready, message, latency in ms)."""
    if ping is None:
        return False, "Store not initialised", 0.0

    start = time.perf_counter()
    try:
        ping()
    except Exception as e:
        latency = (time.perf_counter() - start) * 1000
        logger.warning("Store ping failed", extra={"error": str(e)})
        return False, f"Database error: {e!s}", latency
    return True, "Database connected", (time.perf_counter() - start) * 1000


@router.get(
    "/health-check",
    response_model=None,
    responses={200: {"description": "Service process is alive"}},
)
def health_check() -> JSONResponse:
    """Liveness probe. Returns 200 whenever the process can answer."""
    return JSONResponse(content={"is_healthy": True}, status_code=status.HTTP_200_OK)


@router.get(
    "/health/ready",
    response_model=None,
    responses={
        200: {"description": "Subscription store is reachable"},
        503: {"description": "Subscription store is unavailable"},
    },
)
def readiness_check(request: Request) -> JSONResponse:
    ready, message, latency = ping_store(getattr(request.app.state, "store_ping", None))
    return JSONResponse(
        content={"ready": ready, "database": message, "latency_ms": latency},
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
