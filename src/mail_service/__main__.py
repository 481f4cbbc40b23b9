"""Entrypoint: ``python -m mail_service`` serves the admin API, ``python -m mail_service worker`` runs the event consumer."""
from __future__ import annotations

import sys

import uvicorn

from mail_service.config import settings
from mail_service.workers import store_events_consumer


def main() -> None:
    if sys.argv[1:2] == ["worker"]:
        store_events_consumer.main()
        return
    uvicorn.run(
        "mail_service.app:create_app",
        factory=True,
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
