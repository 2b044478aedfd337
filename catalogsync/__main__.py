"""Run the catalog synchronization service: ``python -m catalogsync``."""

import asyncio
import logging
import signal

from .application import CatalogService
from .config import ServiceSettings
from .logging import configure_logging

LOGGER = logging.getLogger("catalogsync")


async def serve(service: CatalogService) -> None:
    """Run ``service`` until SIGINT or SIGTERM is received."""
    loop = asyncio.get_running_loop()
    stopping: set[asyncio.Task[None]] = set()

    def request_stop() -> None:
        task = loop.create_task(service.stop())
        stopping.add(task)
        task.add_done_callback(stopping.discard)

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, request_stop)

    try:
        async with service:
            LOGGER.info("Catalog service started")
            await service.run_consumer()
    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)
    LOGGER.info("Catalog service stopped")


def main() -> None:
    settings = ServiceSettings()
    configure_logging(settings.log_level)
    asyncio.run(serve(CatalogService.from_settings(settings)))


if __name__ == "__main__":
    main()
