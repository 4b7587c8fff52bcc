"""
FastAPI application for the INTERVAI API.

This module sets up the FastAPI app with routes, middleware, error
handlers and the process-wide application context.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intervai import __version__
from intervai.config import config
from intervai.context import AppContext, build_context
from intervai.errors import AppError
from intervai.queue.connection import describe_redis_url, redis_health_check
from intervai.routes import admin, analytics, bulk, exports, notifications, questions, queue
from intervai.utils.logging import api_logger as logger, configure_logging, get_log_buffer


def _validation_errors(exc: RequestValidationError):
    """Flatten pydantic errors to [{field, message}], one per invalid field."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc) or "body",
            "message": err.get("msg", "Invalid value"),
        })
    return errors


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the API.

    Args:
        context: Pre-built application context (tests); built from the
            environment at startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.context is None:
            configure_logging(config.LOG_LEVEL)
            app.state.context = build_context(config)

        ctx = app.state.context
        print("=" * 60)
        print("INTERVAI API Starting...")
        print("=" * 60)
        print(f"   Redis: {describe_redis_url(ctx.config.REDIS_URL)}")
        print(f"   Supabase: {'✓ Set' if ctx.config.supabase_configured else '✗ Missing'}")
        print(f"   ENVIRONMENT: {ctx.config.ENVIRONMENT}")
        logger.info("API started", environment=ctx.config.ENVIRONMENT)

        yield

        logger.info("API shutting down")

    app = FastAPI(
        title="INTERVAI API",
        description="AI-assisted interview preparation: question generation, exports and analytics",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.context = context

    # CORS middleware for frontend access (cookies need credentials)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module in (questions, bulk, queue, exports, notifications, analytics, admin):
        app.include_router(module.router)

    # ===== Error Handlers =====

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(
                exc.message,
                path=request.url.path,
                error_type=type(exc).__name__
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={
            "success": False,
            "message": "Validation error",
            "errors": _validation_errors(exc),
        })

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(
            "Unhandled error",
            exc_info=True,
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__
        )
        return JSONResponse(status_code=500, content={
            "success": False,
            "message": "Internal server error",
        })

    # ===== Health Check =====

    @app.get("/health")
    @app.get(f"{config.API_BASE_PATH}/health")
    async def health_check(request: Request):
        """Redis reachability, queue sizes and recent error counts."""
        ctx: AppContext = request.app.state.context
        redis_status = redis_health_check(ctx.redis, ctx.queues)
        log_stats = get_log_buffer().get_stats()
        healthy = redis_status["status"] == "healthy"

        return JSONResponse(status_code=200 if healthy else 503, content={
            "status": "healthy" if healthy else "degraded",
            "version": __version__,
            "redis": redis_status,
            "logs": {
                "errors": log_stats["error_count"],
                "warnings": log_stats["warning_count"],
            },
        })

    return app


app = create_app()
