"""FastAPI application for the RiskScope service."""

import contextlib
import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env file
load_dotenv()

from ..domain.errors import DependencyError, DuplicateRecordError, NotFoundError, ValidationError
from ..infrastructure.dependencies import ServiceContainer, get_service_container
from .endpoints import claims, health, products, reports, sites

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Create the application around a service container.

    Args:
        container: Container to use, the global one when omitted
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the configured store on startup and release it on shutdown."""
        await app.state.container.startup()
        yield  # Application runs here
        await app.state.container.shutdown()

    app = FastAPI(
        title="RiskScope API",
        description="Site risk scoring and revenue claim plausibility checks",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.container = container or get_service_container()

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc), "field": exc.field})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_handler(request: Request, exc: DuplicateRecordError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"error": str(exc)})

    @app.exception_handler(DependencyError)
    async def dependency_error_handler(request: Request, exc: DependencyError) -> JSONResponse:
        logger.error(f"❌ Dependency failure on {request.url.path}: {exc}")
        content = {"error": "Backing store unavailable", "details": str(exc)}
        if exc.claim_id:
            content["claim_id"] = exc.claim_id
        return JSONResponse(status_code=503, content=content)

    # Include routers
    app.include_router(health.router)
    app.include_router(sites.router)
    app.include_router(reports.router)
    app.include_router(claims.router)
    app.include_router(products.router)
    return app


app = create_app()
