"""Per-queue statistics and cross-queue aggregate metrics."""

import asyncio
import logging
from collections.abc import Sequence
from functools import reduce

from bullscope.broker.models import GlobalMetrics, JobCounts, QueueStats, Rates
from bullscope.broker.queue import BullQueue
from bullscope.broker.registry import QueueRegistry
from bullscope.core.rates import RateTracker

logger = logging.getLogger(__name__)


async def get_queue_stats(queue: BullQueue) -> QueueStats:
    """Counts, pause flag and scheduler count for one queue."""
    counts, is_paused, schedulers = await asyncio.gather(
        queue.get_job_counts(),
        queue.is_paused(),
        queue.get_scheduler_count(),
    )
    return QueueStats(
        name=queue.name,
        counts=JobCounts.from_broker(counts),
        schedulers=schedulers,
        is_paused=is_paused,
    )


async def get_all_queue_stats(registry: QueueRegistry) -> list[QueueStats]:
    """Stats for every discovered queue, in discovery (sorted) order."""
    names = await registry.discover_queue_names()
    return list(
        await asyncio.gather(*(get_queue_stats(registry.get(name)) for name in names))
    )


def get_global_metrics(
    queues: Sequence[QueueStats], tracker: RateTracker
) -> GlobalMetrics:
    """
    Aggregate job counts over already fetched queue stats and feed the
    rate tracker.

    Built from the same stats the queue list shows, so one poll reads each
    queue's counts once.
    """
    if not queues:
        return GlobalMetrics(queue_count=0, counts=JobCounts(), rates=Rates())

    counts = reduce(lambda acc, stats: acc + stats.counts, queues, JobCounts())
    rates = tracker.update(counts)
    logger.debug(
        "Global metrics: %d queue(s), %d job(s), enq=%.1f/m deq=%.1f/m",
        len(queues),
        counts.total,
        rates.enqueued_per_min,
        rates.dequeued_per_min,
    )
    return GlobalMetrics(queue_count=len(queues), counts=counts, rates=rates)
