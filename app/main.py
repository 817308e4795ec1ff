"""Main FastAPI application for the content intake service."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import analyze, health
from app.config.logging import get_logger, setup_logging
from app.config.settings import Settings, settings
from app.core.redis_client import CacheClient, RedisConfig
from app.middleware.request_logging import ProcessingTimeMiddleware, RequestLoggingMiddleware
from app.orchestrator.analysis_orchestrator import AnalysisOrchestrator
from app.services.language_detector import LanguageDetector
from app.services.redirect_resolver import RedirectResolver

logger = get_logger(__name__)


def _format_validation_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "invalid value")
    return f"{location} {message}" if location else message


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed payloads with a 400 listing every failed constraint."""
    messages = [_format_validation_error(error) for error in exc.errors()]
    logger.warning("Request validation failed", path=request.url.path, errors=messages)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"statusCode": 400, "message": messages, "error": "Bad Request"},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"statusCode": 500, "message": "Internal server error"},
    )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; collaborators are created in the lifespan."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(app_settings)
        logger.info(
            "Starting content intake service",
            environment=app_settings.ENVIRONMENT.value,
            port=app_settings.PORT,
        )

        cache = CacheClient(RedisConfig.from_settings(app_settings))
        await cache.connect()

        redirect_resolver = RedirectResolver.from_settings(cache, app_settings)
        language_detector = LanguageDetector()
        await asyncio.to_thread(language_detector.warm_up)

        app.state.cache = cache
        app.state.redirect_resolver = redirect_resolver
        app.state.language_detector = language_detector
        app.state.orchestrator = AnalysisOrchestrator(
            cache,
            language_detector,
            redirect_resolver,
            phone_region=app_settings.PHONE_DEFAULT_REGION,
            cache_ttl=app_settings.ANALYSIS_CACHE_TTL,
        )

        yield

        logger.info("Shutting down content intake service")
        await redirect_resolver.aclose()
        await cache.close()

    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
        description="Message content intake: language, links, phone numbers and public IPs",
        docs_url="/docs" if app_settings.DEBUG else None,
        redoc_url="/redoc" if app_settings.DEBUG else None,
        lifespan=lifespan,
    )

    # Outermost last: timing wraps logging so the header covers the whole request
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ProcessingTimeMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(analyze.router, tags=["Analysis"])
    app.include_router(health.router, tags=["Health"])

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
