"""
Run the API server: ``python -m fitbyte``.
"""

from __future__ import annotations

import logging

import uvicorn

from fitbyte.app import create_app
from fitbyte.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host, port = settings.bind_host_port
    logger.info("Starting server at %s:%d", host, port)
    uvicorn.run(create_app(), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
