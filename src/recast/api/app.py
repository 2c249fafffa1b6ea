"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, settings as default_settings
from ..pipeline.orchestrator import RewritePipeline
from .routes import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Startup
    pipeline: RewritePipeline = app.state.pipeline
    await pipeline.initialize()
    yield
    # Shutdown
    await pipeline.shutdown()


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400)."""
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[RewritePipeline] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings

    app = FastAPI(
        title="Recast",
        description="Streaming text rewrite pipeline",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Clients are built once per process and shared by all requests
    app.state.settings = settings
    app.state.pipeline = pipeline or RewritePipeline.from_settings(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # API routes
    app.include_router(router, prefix="/api")

    return app
