"""Run the reputation API server: ``python -m repboard``."""

from __future__ import annotations

import uvicorn

from repboard.api import create_app
from repboard.core.config import Config
from repboard.core.logging import configure_logging
from repboard.service import ReputationService


def main() -> None:
    """Serve the API with settings from the environment."""
    config = Config.from_env()
    logger = configure_logging(config.log_level)

    app = create_app(ReputationService(config))
    logger.info(f"Reputation dashboard API on http://{config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
