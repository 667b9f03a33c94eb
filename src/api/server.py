# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Uvicorn entrypoint for the governance API.

Usage:
    API_PORT=8080 python -m src.api.server
"""

import uvicorn

from src.core.config import Settings, get_settings
from src.utils.logging import get_logger

logger = get_logger(__name__)

APP_FACTORY = "src.api.app:create_app"


def run(settings: Settings | None = None) -> None:
    """Serve the application with the host, port and workers from API_* settings.

    Development runs use a single reloading worker.
    """
    settings = settings or get_settings()
    api = settings.api
    reload = settings.is_development and settings.debug
    workers = 1 if reload else api.workers

    logger.info("api_server_starting", host=api.host, port=api.port, workers=workers)
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=api.host,
        port=api.port,
        workers=workers,
        reload=reload,
        log_config=None,
    )


if __name__ == "__main__":
    run()
