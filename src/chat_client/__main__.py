"""Entrypoint: python -m chat_client"""
from __future__ import annotations

import uvicorn

from chat_client.app import configure_logging
from chat_client.config import settings


def main() -> None:
    configure_logging()
    uvicorn.run(
        "chat_client.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
