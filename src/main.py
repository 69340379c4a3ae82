"""FastAPI application initialization."""

import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from src.api import health, media, token, webhook
from src.config import ConfigurationError, get_settings
from src.logging_config import setup_logfire
from src.middleware.correlation_id import CorrelationIDMiddleware
from src.services.instagram_service import InstagramAPIError, StoryPublishError
from src.services.instagram_token_api import InstagramTokenClient
from src.services.token_cache import TokenCache
from src.services.token_manager import TokenManager

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: observability plus the process-wide token manager."""
    settings = get_settings()

    setup_logfire(app)

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            send_default_pii=False,
            integrations=[FastApiIntegration()],
        )

    # One cache per process, shared by every request through the manager
    app.state.token_manager = TokenManager.create(
        cache=TokenCache(),
        token_client=InstagramTokenClient(
            timeout_seconds=settings.instagram_api_timeout_seconds
        ),
    )

    logfire.info(
        "Application startup complete",
        environment=settings.env,
        auto_refresh=settings.instagram_auto_refresh,
        strict_webhook_auth=settings.strict_webhook_auth,
        webhook_events=settings.webhook_events,
    )

    yield

    logfire.info(
        "Application shutdown complete",
        cached_tokens=len(app.state.token_manager.cache),
    )


app = FastAPI(
    title="Instagram Graph Adapter",
    description="Instagram Graph API actions and webhook receiver with managed access tokens",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Correlation ID middleware (must be first for request tracing)
app.add_middleware(CorrelationIDMiddleware)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logfire.error("Configuration error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(InstagramAPIError)
async def instagram_api_error_handler(request: Request, exc: InstagramAPIError):
    logfire.error(
        "Instagram API error",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(status_code=502, content={"detail": exc.message})


@app.exception_handler(StoryPublishError)
async def story_publish_error_handler(request: Request, exc: StoryPublishError):
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "status": exc.status,
            "containerId": exc.container_id,
        },
    )


# Register routers
app.include_router(health.router, tags=["health"])
app.include_router(webhook.router, prefix="/webhook", tags=["webhook"])
app.include_router(token.router, prefix="/token", tags=["token"])
app.include_router(media.router, prefix="/media", tags=["media"])


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Instagram Graph Adapter API",
        "version": APP_VERSION,
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "src.main:app", host="0.0.0.0", port=port, reload=os.getenv("ENV") == "local"
    )
