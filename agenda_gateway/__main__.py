"""Run the gateway with uvicorn: ``python -m agenda_gateway``."""
import uvicorn
from loguru import logger

from agenda_gateway.config import GatewayConfig


def main():
    config = GatewayConfig.from_env()
    logger.info(f"Servidor corriendo en puerto {config.port} (modo: {config.environment})")
    uvicorn.run(
        "agenda_gateway.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=config.port,
        reload=config.environment == "development",
    )


if __name__ == "__main__":
    main()
