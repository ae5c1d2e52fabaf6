"""SuperAgent Server.

API server that lets Gemini operate a user's Google Sheets, Docs, Drive and
Slides through Composio, and renders generated slide decks.
Entry point: the web client posts chat turns to /api/superagent.
"""

import secrets
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from superagent_server import connections, health, presentations, superagent
from superagent_server.config import get_settings
from superagent_server.gateway import ComposioGateway
from superagent_server.logging import configure_logging, request_id_ctx
from superagent_server.model import GeminiModel
from superagent_server.rate_limit import limiter, rate_limit_exceeded_handler
from superagent_server.tools import build_local_tools

SERVICE_NAME = "superagent-server"
REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to assign a request ID and log each request."""

    async def dispatch(self, request: Request, call_next):
        request_id = secrets.token_hex(8)
        token = request_id_ctx.set(request_id)

        logger.info(
            f"{request.method} {request.url.path}",
            extra={"method": request.method, "path": request.url.path},
        )

        try:
            response = await call_next(request)
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={"status_code": response.status_code},
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception as e:
            logger.exception(f"Request failed: {e}")
            raise
        finally:
            request_id_ctx.reset(token)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global handler for unhandled exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()

    logger.info(
        f"Starting SuperAgent server on port {settings.port}",
        extra={
            "environment": settings.environment,
            "has_composio_key": bool(settings.composio_api_key),
            "has_google_key": bool(settings.google_generative_ai_api_key),
        },
    )

    # Clients are stored in app.state for dependency injection
    model = GeminiModel(api_key=settings.google_generative_ai_api_key)
    app.state.gateway = ComposioGateway(api_key=settings.composio_api_key)
    app.state.model = model
    app.state.local_tools = build_local_tools(
        model,
        slide_model=settings.slide_model,
        browser_timeout_ms=settings.browser_timeout_ms,
    )

    yield

    logger.info("Shutting down SuperAgent server")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Configure structured JSON logging for Cloud Logging
    configure_logging(
        is_production=settings.is_production,
        log_level=settings.log_level,
    )

    app = FastAPI(
        title="SuperAgent",
        description="Gemini agent for Google Workspace through Composio",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
    )

    # Exception handlers
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.state.limiter = limiter

    # Note: type: ignore needed because Starlette's _MiddlewareFactory Protocol
    # doesn't properly type class-based middleware (only function factories)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)  # type: ignore[arg-type]

    app.include_router(health.router, prefix="/api")
    app.include_router(superagent.router, prefix="/api")
    app.include_router(connections.router, prefix="/api")
    app.include_router(presentations.router, prefix="/api")

    @app.get("/")
    async def home() -> dict:
        return {
            "service": SERVICE_NAME,
            "environment": settings.environment,
            "endpoints": [
                "/api/superagent",
                "/api/check-connections",
                "/api/create-google-slides",
                "/api/health",
            ],
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "superagent_server.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=not settings.is_production,
    )
