"""Service entry point: reminder loop plus the local API."""

import logging

import uvicorn

from lets_pray.api.app import create_app
from lets_pray.config import AppConfig, get_config, setup_logging

logger = logging.getLogger(__name__)


def run_server(config: AppConfig) -> None:
    """Serve the API until interrupted; the reminder tick lives in the app lifespan."""
    setup_logging(config.log_level)

    if not config.adhan_path.exists():
        logger.warning(f"Adhan file missing ({config.adhan_path}), the built-in tone will play.")
    logger.info(f"Settings at {config.settings_path}, API on http://{config.host}:{config.port}")

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


def main() -> None:
    run_server(get_config())


if __name__ == "__main__":
    main()
