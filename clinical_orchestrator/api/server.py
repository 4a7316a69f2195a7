"""FastAPI application for the clinical orchestrator."""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from .config import load_config
from .routes import health_router, orchestration_router
from .routes.orchestration import get_orchestration_system, reset_orchestration_system

load_dotenv()


def configure_logging() -> None:
    """Configure process logging from the server log level, ORCHESTRATOR_LOG_LEVEL included."""
    logging.basicConfig(
        level=load_config().server.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run periodic maintenance for the lifetime of the process."""
    system = get_orchestration_system()
    system.start()
    logger.info(f"Clinical orchestrator API {__version__} ready")
    try:
        yield
    finally:
        await system.shutdown()
        reset_orchestration_system()
        logger.info("Clinical orchestrator API stopped")


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal orchestration error", "code": "internal_error"},
    )


def create_app() -> FastAPI:
    """Build the application with CORS, routers and the error handler.

    Returns:
        Configured FastAPI application
    """
    server = load_config().server

    app = FastAPI(
        title="Clinical Orchestrator API",
        description="Intent routing and tool selection for clinical assistant agents",
        version=__version__,
        debug=server.debug,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(Exception, unhandled_error)

    app.include_router(health_router)
    app.include_router(orchestration_router)
    return app


app = create_app()
