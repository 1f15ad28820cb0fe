"""Poll scheduler that keeps the Store in sync with Redis.

Two kinds of refresh feed the store:

- A full poll (timer driven, or ``refresh()``) reloads queue stats, global
  metrics and the active job/scheduler page. A failure marks the store
  disconnected.
- A partial refresh (``refresh_jobs()`` / ``refresh_schedulers()``) reloads
  only the active page after an operator action. A failure is logged and
  the last good page stays on screen.

At most one full poll runs at a time; a poll requested while another is in
flight is dropped and the running one picks up the latest state.
"""

import asyncio
import logging
from dataclasses import dataclass, replace

from bullscope.broker.models import ListView, Page
from bullscope.broker.registry import QueueRegistry
from bullscope.core.metrics import get_all_queue_stats, get_global_metrics
from bullscope.core.paginate import list_jobs, list_schedulers
from bullscope.core.rates import RateTracker
from bullscope.core.store import (
    SchedulerListing,
    Snapshot,
    Store,
    clamp_index,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 3.0


@dataclass(frozen=True)
class ListingRequest:
    """What the active page was fetched for."""

    queue: str
    view: ListView
    page: int
    page_size: int

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "ListingRequest | None":
        queue = snapshot.selected_queue
        if queue is None:
            return None
        listing = snapshot.listing
        return cls(
            queue=queue.name,
            view=listing.view,
            page=listing.page,
            page_size=listing.page_size,
        )


class Poller:
    """Drives full polls on an interval and serves partial refreshes."""

    def __init__(
        self,
        store: Store,
        registry: QueueRegistry,
        tracker: RateTracker,
        *,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self._store = store
        self._registry = registry
        self._tracker = tracker
        self._interval_seconds = interval_seconds
        self._polling = False
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._background: set[asyncio.Task[None]] = set()

    @property
    def is_polling(self) -> bool:
        return self._polling

    @property
    def is_running(self) -> bool:
        return self._task is not None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Poll once immediately, then keep polling on the interval."""
        if self._task is not None:
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._poll_loop())
        await self.poll()
        logger.debug("Poller started (interval=%.2fs)", self._interval_seconds)

    async def stop(self) -> None:
        """Stop the timer and any spawned partial refreshes."""
        if self._task is None:
            return

        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
        logger.debug("Poller stopped")

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._interval_seconds
                )
                return
            except TimeoutError:
                pass
            await self.poll()

    # =========================================================================
    # FULL POLL
    # =========================================================================

    async def poll(self) -> None:
        """Reload queue stats, global metrics and the active page."""
        if self._polling:
            return
        self._polling = True

        was_connected = self._store.get_snapshot().connected
        try:
            self._store.set_partial(is_loading=True)

            # One discovery and one counts read per queue feed both the list
            # and the aggregate; per-queue reads run concurrently
            queues = await get_all_queue_stats(self._registry)
            metrics = get_global_metrics(queues, self._tracker)

            current = self._store.get_snapshot()
            self._store.set_partial(
                queues=tuple(queues),
                global_metrics=metrics,
                connected=True,
                error=None,
                selected_queue_index=clamp_index(
                    current.selected_queue_index, len(queues)
                ),
            )

            # Re-read: the operator may have changed filter or page meanwhile
            await self._load_listing(self._store.get_snapshot())

            self._store.set_partial(is_loading=False)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning("Poll failed: %s", message)
            if was_connected:
                # A baseline from before the outage would show a rate spike
                self._tracker.reset()
            self._store.set_partial(connected=False, error=message, is_loading=False)
        finally:
            self._polling = False
            # Cancellation from stop() skips both branches above
            if self._store.get_snapshot().is_loading:
                self._store.set_partial(is_loading=False)

    async def refresh(self) -> None:
        """Manual full refresh."""
        await self.poll()

    # =========================================================================
    # PARTIAL REFRESH
    # =========================================================================

    async def refresh_jobs(self) -> None:
        """Reload only the active job or scheduler page."""
        try:
            await self._load_listing(self._store.get_snapshot())
        except Exception as e:
            logger.warning("Failed to refresh jobs: %s", e)

    async def refresh_schedulers(self) -> None:
        """Reload the scheduler page; no-op while a job filter is active."""
        snapshot = self._store.get_snapshot()
        if not isinstance(snapshot.listing, SchedulerListing):
            return
        try:
            await self._load_listing(snapshot)
        except Exception as e:
            logger.warning("Failed to refresh schedulers: %s", e)

    def schedule_listing_refresh(self) -> None:
        """Run refresh_jobs() in the background (for synchronous callers)."""
        task = asyncio.create_task(self.refresh_jobs())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _load_listing(self, snapshot: Snapshot) -> None:
        request = ListingRequest.from_snapshot(snapshot)
        if request is None:
            self._store.set_partial(
                listing=replace(snapshot.listing, items=(), total=0, selected_index=0)
            )
            return

        queue = self._registry.get(request.queue)
        page: Page
        if request.view is ListView.SCHEDULERS:
            page = await list_schedulers(queue, request.page, request.page_size)
        else:
            page = await list_jobs(queue, request.view, request.page, request.page_size)

        latest = self._store.get_snapshot()
        if ListingRequest.from_snapshot(latest) != request:
            logger.debug("Dropping stale page for %s", request)
            return

        # Same request implies the same listing variant, so items type-match
        listing = latest.listing
        items = tuple(page.items)
        self._store.set_partial(
            listing=replace(
                listing,
                items=items,
                total=page.total,
                selected_index=clamp_index(listing.selected_index, len(items)),
            )
        )
