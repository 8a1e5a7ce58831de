"""Admin endpoints for catalog inspection and full crawls."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from eventcrawl.access.boundary import AccessBoundary

router = APIRouter(tags=["admin"])


@router.get("/tables")
async def list_tables(request: Request) -> dict:
    """Return every table schema in the crawler's namespace."""
    coordinator = request.app.state.coordinator
    namespace = coordinator.namespace.name
    tables = await run_in_threadpool(coordinator.catalog.list_tables, namespace)
    return {"namespace": namespace, "tables": [t.model_dump(mode="json") for t in tables]}


@router.get("/tables/{name}")
async def get_table(name: str, request: Request) -> dict:
    coordinator = request.app.state.coordinator
    table = await run_in_threadpool(coordinator.catalog.get_table, coordinator.namespace.name, name)
    if table is None:
        raise HTTPException(status_code=404, detail=f"Table {name!r} not found")
    return table.model_dump(mode="json")


@router.post("/crawl")
async def crawl_all(request: Request) -> dict:
    """Run a full crawl of every target."""
    result = await run_in_threadpool(request.app.state.coordinator.crawl_all)
    return {
        "outcomes": [o.model_dump(mode="json") for o in result.outcomes],
        "failed_prefixes": result.failed_prefixes,
    }


@router.get("/policy")
async def policy(request: Request) -> dict:
    """Return the least-privilege IAM policy for the crawl role."""
    return AccessBoundary.from_settings(request.app.state.settings).policy_document()
