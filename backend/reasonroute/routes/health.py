"""
Health check endpoint.
"""
from fastapi import APIRouter, Request

from reasonroute import __version__

router = APIRouter()


@router.get("")
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Reports whether the route selector has loaded its keyword configuration.
    """
    selector = request.app.state.route_selector
    return {
        "status": "ok",
        "message": "API is running",
        "version": __version__,
        "router_initialized": selector.is_initialized,
    }
