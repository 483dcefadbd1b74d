"""
Health check endpoints for the gateway.

Provides status for the gateway itself and reachability of the upstream model.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from loguru import logger

from agenda_gateway import __version__
from agenda_gateway.models import HealthCheckResponse
from agenda_gateway.routers.extraction import get_gateway
from agenda_gateway.services.extraction import ExtractionGateway

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(gateway: ExtractionGateway = Depends(get_gateway)) -> HealthCheckResponse:
    """
    Report gateway status and whether an upstream credential is configured.

    Does not call the upstream model.
    """
    config = gateway.config
    response = HealthCheckResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        hasApiKey=config.has_api_key,
        environment=config.environment,
        port=config.port,
        model=config.model,
        promptTemplate=config.prompt_template,
        version=__version__,
    )
    logger.debug(f"Health check complete: hasApiKey={config.has_api_key}")
    return response


@router.get("/health/upstream")
async def upstream_health_check(gateway: ExtractionGateway = Depends(get_gateway)) -> dict:
    """
    Check that the configured model is reachable with the configured key.

    Returns:
        Dict with upstream availability and the model identifier
    """
    logger.debug("Upstream health check requested")

    available = await gateway.client.model_available()

    return {
        "upstreamAvailable": available,
        "model": gateway.config.model,
    }
