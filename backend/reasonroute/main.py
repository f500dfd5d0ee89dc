import asyncio
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from reasonroute import __version__
from reasonroute.core.logging import configure_logging, get_logger, get_request_id
from reasonroute.core.middleware import RequestContextMiddleware
from reasonroute.routes import admin, chat, health, metrics
from reasonroute.services.ai.llm_client import LLMClient
from reasonroute.services.ai.reasoning import Generator, ReasoningOrchestrator
from reasonroute.services.ai.schema import ReasoningConfig
from reasonroute.services.routing.selector import RouteSelector

logger = get_logger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def build_route_selector() -> RouteSelector:
    """Route selector configured from KEYWORDS_CONFIG_PATH / ROUTER_* env vars."""
    threshold = os.getenv("ROUTER_CONFIDENCE_THRESHOLD")
    return RouteSelector(
        config_path=os.getenv("KEYWORDS_CONFIG_PATH") or None,
        confidence_threshold=float(threshold) if threshold else None,
        enable_cache=_env_bool("ROUTER_ENABLE_CACHE", "true"),
    )


def create_app(
    route_selector: Optional[RouteSelector] = None,
    generator: Optional[Generator] = None,
    reasoning_config: Optional[ReasoningConfig] = None,
) -> FastAPI:
    """
    Build the application and its components.

    Components are created here once and stored on app.state; routes read
    them from there. Tests pass their own selector or generator.
    """
    load_dotenv()

    # JSON output in production (containerized), console output in development
    log_level = os.getenv("LOG_LEVEL", "INFO")
    json_output = _env_bool("LOG_JSON", "true")
    configure_logging(log_level=log_level, json_output=json_output)

    route_selector = route_selector or build_route_selector()
    generator = generator or LLMClient.from_env(route_selector=route_selector)
    orchestrator = ReasoningOrchestrator(
        route_selector=route_selector,
        config=reasoning_config or ReasoningConfig.from_env(),
        generator=generator,
    )

    app = FastAPI(
        title="ReasonRoute API",
        description="Keyword routing and reasoning-enhanced generation",
        version=__version__,
    )
    app.state.route_selector = route_selector
    app.state.generator = generator
    app.state.reasoning_orchestrator = orchestrator

    app.add_middleware(RequestContextMiddleware)

    @app.on_event("startup")
    async def startup_event():
        logger.info("app_startup_started")
        await asyncio.to_thread(route_selector.initialize)
        logger.info("app_startup_completed")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        request_id = get_request_id()
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
            method=request.method,
        )
        response = JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "status_code": exc.status_code,
                "request_id": request_id,
            },
        )
        if request_id:
            response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        request_id = get_request_id()
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )
        response = JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "status_code": 500,
                "request_id": request_id,
            },
        )
        if request_id:
            response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(chat.router, tags=["Chat"])
    app.include_router(metrics.router, prefix="/metrics", tags=["Metrics"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    return app


app = create_app()
