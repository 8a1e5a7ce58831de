"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from eventcrawl.core.exceptions import EventCrawlError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(request: Request):
    """Ready once the catalog namespace is reachable."""
    coordinator = request.app.state.coordinator
    try:
        namespace = await run_in_threadpool(
            coordinator.catalog.get_namespace, coordinator.namespace.name,
        )
    except EventCrawlError as exc:
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": str(exc)})
    if namespace is None:
        return JSONResponse(status_code=503, content={"status": "unavailable",
                                                      "error": "namespace missing"})
    return {"status": "ready", "namespace": namespace.name}
