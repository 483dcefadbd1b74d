"""
FastAPI gateway for medical agenda attendance extraction.

This gateway provides a REST API that receives a photo of a medical schedule
sheet and returns the patients marked as arrived, using a Gemini
vision-language model for the extraction.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from agenda_gateway import __version__
from agenda_gateway.config import GatewayConfig
from agenda_gateway.errors import GatewayError
from agenda_gateway.middleware import BodySizeLimitMiddleware
from agenda_gateway.routers import extraction, health
from agenda_gateway.services.extraction import ExtractionGateway
from agenda_gateway.services.gemini_client import GeminiClient

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

_file_sinks: dict[str, int] = {}


def configure_logging(config: GatewayConfig) -> None:
    """Add the rotating file sink once per log directory."""
    if not config.log_dir or config.log_dir in _file_sinks:
        return
    log_path = Path(config.log_dir) / "gateway_{time}.log"
    _file_sinks[config.log_dir] = logger.add(
        str(log_path),
        rotation="100 MB",
        retention="7 days",
        level="INFO",
        format=LOG_FORMAT,
    )


def create_app(
    config: Optional[GatewayConfig] = None,
    client: Optional[GeminiClient] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Gateway configuration (defaults to GatewayConfig.from_env())
        client: Upstream client (defaults to a GeminiClient built from config)

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = GatewayConfig.from_env()
    configure_logging(config)

    gateway = ExtractionGateway(config, client)

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        """Log the active settings on startup and close the upstream client on shutdown."""
        logger.info("🚀 Agenda Attendance Gateway starting up...")
        logger.info(f"   Version: {__version__}")
        logger.info(f"   Mode: {config.environment}")
        logger.info(f"   Model: {config.model} (template: {config.prompt_template})")
        logger.info(f"   API key configured: {config.has_api_key}")

        yield  # Application runs here

        await gateway.close()
        logger.info("👋 Agenda Attendance Gateway shutting down...")

    app = FastAPI(
        title="Agenda Attendance Gateway",
        description="REST API for extracting attending patients from medical agenda images",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.gateway = gateway

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=config.max_body_bytes)

    # CORS_ORIGINS env var: comma-separated list of allowed origins, default "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.origins_list,
        allow_credentials=config.origins_list != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.error(f"Error en {request.url.path}: {type(exc).__name__}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Invalid request body on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": "Cuerpo de la petición inválido: se espera JSON con imageData"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"error": "Ruta no encontrada"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Error interno del servidor"})

    app.include_router(health.router)
    app.include_router(extraction.router)

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Agenda Attendance Gateway",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/health",
            "extraction": "/api/process-image",
        }

    return app
