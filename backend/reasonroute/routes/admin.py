"""
Admin endpoints for router management.

GET  /admin/router/stats
POST /admin/router/reload
POST /admin/router/cache/clear
GET  /admin/reasoning/config
"""
from fastapi import APIRouter, HTTPException, Request

from reasonroute.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/router/stats")
async def router_stats(request: Request):
    """Query counts, cache hit rate and route distribution since startup."""
    return request.app.state.route_selector.get_stats()


@router.post("/router/reload")
async def reload_router_config(request: Request):
    """
    Reload the keyword configuration and clear the route cache.

    The previous configuration stays active when the new one cannot be loaded.
    """
    selector = request.app.state.route_selector
    reloaded = await selector.reload_config()
    if not reloaded:
        raise HTTPException(
            status_code=500,
            detail="Keyword configuration reload failed; previous configuration kept",
        )
    logger.info("admin_router_reloaded")
    return {"status": "reloaded", "version": selector.snapshot.version}


@router.post("/router/cache/clear")
async def clear_router_cache(request: Request):
    request.app.state.route_selector.clear_cache()
    return {"status": "cleared"}


@router.get("/reasoning/config")
async def reasoning_config(request: Request):
    return request.app.state.reasoning_orchestrator.reasoning_config()
