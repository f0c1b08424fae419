import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.v1.api import router as api_router
from .core.config import get_settings
from .core.container import Container, build_container
from .core.exceptions import AppError
from .core.logging_config import configure_logging
from .schemas.common import failure

logger = logging.getLogger(__name__)

def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Build the FastAPI application.

    When no container is passed, one is built from the environment settings
    during startup.
    """
    settings = container.settings if container else get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.container = container or build_container(settings)
        logger.info(
            f"Starting up {settings.app_name} in {settings.environment} environment "
            f"({settings.database_backend} database)"
        )
        yield
        logger.info("Shutting down")

    app = FastAPI(
        title=settings.app_name,
        description="""
    API for the SkillSwap skill-bartering marketplace.

    ## Authentication

    1. Register with `/api/v1/auth/register` or log in with `/api/v1/auth/login`.
    2. Click the "Authorize" button and paste the access token (no "Bearer" prefix).

    Every response uses the envelope `{success, message?, data}`; errors use
    `{success: false, message, error?}`.
    """,
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
        swagger_ui_parameters={
            "persistAuthorization": True,
            "displayRequestDuration": True,
            "docExpansion": "none",
        },
    )

    origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
        settings.frontend_url,
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/")
    async def root():
        return {"message": f"Welcome to the {settings.app_name}", "environment": settings.environment}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "environment": settings.environment}

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(exc.detail, jsonable_encoder(exc.error)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=failure("Validation failed", jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=failure("Something went wrong!"))

    return app

app = create_app()
