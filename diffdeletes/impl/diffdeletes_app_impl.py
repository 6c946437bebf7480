import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from diffdeletes.config.config_loader import DiffDeletesConfig
from diffdeletes.db.sparql_inf import SparqlBackendInterface
from diffdeletes.endpoint.delta_endpoint import DeltaEndpoint
from diffdeletes.impl.diffdeletes_impl import DiffDeletesImpl


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the SPARQL connection pool on server shutdown."""
    yield
    app_impl = getattr(app.state, "diffdeletes_app_impl", None)
    if app_impl is not None:
        await app_impl.diffdeletes_impl.close()


class DiffDeletesAppImpl:
    """
    Diff Deletes FastAPI Application Implementation

    Configures logging, builds the service components and registers the
    delta endpoint and the catch-all error handler on the FastAPI app.
    The app must be created with ``lifespan`` so the backend is closed on
    shutdown.
    """

    def __init__(self, app: FastAPI, config: DiffDeletesConfig,
                 sparql_impl: Optional[SparqlBackendInterface] = None):
        """Initialize the application with FastAPI app and configuration."""
        self.app = app
        self.config = config

        # Configure logging based on config file
        app_config = config.get_app_config()
        log_level = app_config.get('log_level', 'INFO')
        numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)
        logging.getLogger().setLevel(numeric_level)

        self.logger = logging.getLogger(f"{__name__}.DiffDeletesAppImpl")

        self.diffdeletes_impl = DiffDeletesImpl(config=self.config, sparql_impl=sparql_impl)
        self.app.state.diffdeletes_app_impl = self

        self._setup_middleware()
        self._setup_exception_handlers()
        self._setup_all_endpoints()

    def _setup_middleware(self):
        """Setup request logging middleware"""

        @self.app.middleware("http")
        async def log_requests(request: Request, call_next):
            self.logger.debug(f"INCOMING REQUEST: {request.method} {request.url}")
            response = await call_next(request)
            self.logger.debug(f"RESPONSE STATUS: {response.status_code}")
            return response

    def _setup_exception_handlers(self):
        """Errors escaping a request handler are logged and, when enabled, stored."""

        @self.app.exception_handler(Exception)
        async def handle_unexpected_error(request: Request, exc: Exception):
            await self.diffdeletes_impl.record_error(exc, f"Unexpected error handling {request.method} {request.url.path}")
            return JSONResponse(status_code=500, content={"message": "Internal server error"})

    def _setup_all_endpoints(self):
        self.logger.info("Initializing delta routes...")
        delta_endpoint = DeltaEndpoint(self.diffdeletes_impl)
        self.app.include_router(delta_endpoint.router)
