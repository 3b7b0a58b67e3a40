"""FastAPI application for the yieldbook API.

Run via: yieldbook-api (or python -m backend.app.main)
"""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from rich.console import Console
from rich.logging import RichHandler
from starlette.exceptions import HTTPException as StarletteHTTPException

from yieldbook import __version__
from yieldbook.config import Settings
from yieldbook.storage import PropertyStore

from .db import init_store
from .routers import properties

logger = logging.getLogger(__name__)

console = Console()


def _format_validation_errors(errors: list[dict]) -> str:
    """Flatten pydantic error entries into one readable message."""
    messages = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        msg = error.get("msg", "Invalid value")
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "; ".join(messages) or "Invalid request"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[PropertyStore] = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Application settings. Read from the environment if omitted.
        store: Store to serve from. If omitted, one is opened at startup from
               ``settings.database_url`` and closed at shutdown.

    Returns:
        A configured FastAPI instance
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the store on startup (fatal on failure) and close it on shutdown."""
        owns_store = app.state.store is None
        if owns_store:
            app.state.store = await init_store(settings)
        logger.info(f"Serving properties from {app.state.store.backend} store")

        yield

        if owns_store:
            await app.state.store.close()
            app.state.store = None

    app = FastAPI(
        title="yieldbook API",
        description="Property listings with filtering, sorting and pagination",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": _format_validation_errors(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(properties.router, prefix="/api/properties", tags=["Properties"])

    @app.get("/")
    async def root():
        """API root endpoint."""
        return {
            "name": "yieldbook API",
            "version": __version__,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        store = request.app.state.store
        return {
            "status": "healthy",
            "store": store.backend if store is not None else None,
        }

    return app


app = create_app()


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    numeric_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the API server."""
    settings = Settings()

    parser = argparse.ArgumentParser(description="Run the yieldbook API server")
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Port (default: {settings.port})")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level (default: INFO)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.verbose)
    logger.info(f"Starting server on {args.host}:{args.port}")

    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
