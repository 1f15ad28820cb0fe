"""Dashboard composition root."""

import logging

from rich.console import Console
from rich.live import Live

from bullscope.broker.redis import create_client
from bullscope.broker.registry import QueueRegistry
from bullscope.config import Settings
from bullscope.core.intents import Intents
from bullscope.core.polling import Poller
from bullscope.core.rates import RateTracker
from bullscope.core.store import JobListing, Snapshot, Store
from bullscope.ui.controller import Controller
from bullscope.ui.render import render_dashboard
from bullscope.ui.terminal import raw_mode, read_keys

logger = logging.getLogger(__name__)

# Relative times ("5s ago") drift between polls
REFRESH_PER_SECOND = 2


async def run_dashboard(settings: Settings, *, console: Console | None = None) -> None:
    """Run the interactive dashboard until the operator quits."""
    client = create_client(settings)
    registry = QueueRegistry(
        client, prefix=settings.bullmq_prefix, queue_names=settings.queues
    )
    store = Store(Snapshot(listing=JobListing(page_size=settings.page_size)))
    tracker = RateTracker()
    poller = Poller(
        store, registry, tracker, interval_seconds=settings.poll_interval_seconds
    )
    intents = Intents(store, poller)
    controller = Controller(store, intents, poller, registry)
    server = f"{settings.redis_host}:{settings.redis_port}"

    logger.debug("Connecting to %s", settings.redis_url)

    with (
        raw_mode(),
        Live(
            render_dashboard(store.get_snapshot(), server=server),
            console=console,
            screen=True,
            auto_refresh=True,
            refresh_per_second=REFRESH_PER_SECOND,
        ) as live,
    ):
        unsubscribe = store.subscribe(
            lambda snapshot: live.update(render_dashboard(snapshot, server=server))
        )
        try:
            await poller.start()
            async for key in read_keys():
                if not await controller.handle_key(key):
                    break
        finally:
            unsubscribe()
            await poller.stop()
            registry.close_all()
            await client.aclose()
