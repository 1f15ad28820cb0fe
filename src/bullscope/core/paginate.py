"""Cross-category pagination for jobs and job schedulers.

BullMQ keeps jobs in one list or sorted set per lifecycle state, each with its
own ordering. The "latest" view and the "wait" view (plain + prioritized) need
a single newest-first page across several of them. No remote list provides
that order, so every category is read from offset 0 up to the end of the
requested page, merged, sorted by creation time and sliced locally.

The merge is exact within the fetched prefixes only. A category whose
unfetched tail holds jobs newer than another category's fetched tail can
still be ranked too low; the alternative is reading entire collections.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from bullscope.broker.models import (
    COLLECTION_STATES,
    JobRecord,
    JobState,
    JobSummary,
    ListView,
    NextJob,
    Page,
    RecentJob,
    SchedulerDetail,
    SchedulerSummary,
)
from bullscope.broker.queue import BullQueue

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25

# Scheduler detail scan bounds (inclusive end offsets)
NEXT_JOB_SCAN_END = 100
HISTORY_SCAN_END = 50
RECENT_HISTORY_LIMIT = 10

LATEST_COLLECTIONS: tuple[str, ...] = (
    "active",
    "wait",
    "paused",
    "completed",
    "failed",
    "delayed",
    "prioritized",
)
# Legacy paused-list jobs are counted as waiting, so they are listed there too
WAIT_COLLECTIONS: tuple[str, ...] = ("wait", "paused", "prioritized")

# Single-collection views with native offset pagination
DIRECT_VIEWS: dict[ListView, str] = {
    ListView.ACTIVE: "active",
    ListView.COMPLETED: "completed",
    ListView.FAILED: "failed",
    ListView.DELAYED: "delayed",
}


def page_bounds(page: int, page_size: int) -> tuple[int, int]:
    """Inclusive [start, end] offsets of a 1-based page."""
    start = (max(page, 1) - 1) * page_size
    return start, start + page_size - 1


T = TypeVar("T")


def merge_newest_first(
    categories: Iterable[Sequence[T]],
    *,
    page: int,
    page_size: int,
    timestamp: Callable[[T], int],
) -> list[T]:
    """Concatenate category prefixes, sort newest first and slice one page."""
    merged = [item for category in categories for item in category]
    merged.sort(key=timestamp, reverse=True)
    start, end = page_bounds(page, page_size)
    return merged[start : end + 1]


async def _fetch_tagged(
    queue: BullQueue, collection: str, start: int, end: int
) -> list[tuple[JobRecord, JobState]]:
    records = await queue.get_jobs(collection, start, end)
    state = COLLECTION_STATES[collection]
    return [(record, state) for record in records]


async def _merged_page(
    queue: BullQueue, collections: Sequence[str], page: int, page_size: int
) -> list[JobSummary]:
    _, end = page_bounds(page, page_size)
    categories = await asyncio.gather(
        *(_fetch_tagged(queue, collection, 0, end) for collection in collections)
    )
    window = merge_newest_first(
        categories,
        page=page,
        page_size=page_size,
        timestamp=lambda tagged: tagged[0].timestamp,
    )
    return [record.to_summary(state) for record, state in window]


async def list_jobs(
    queue: BullQueue,
    view: ListView,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page[JobSummary]:
    """Fetch one page of jobs for a status filter."""
    if view is ListView.SCHEDULERS:
        raise ValueError("schedulers are listed with list_schedulers()")

    counts = await queue.get_job_counts()

    if view is ListView.LATEST:
        total = sum(counts.values())
        items = await _merged_page(queue, LATEST_COLLECTIONS, page, page_size)
    elif view is ListView.WAIT:
        total = counts["waiting"] + counts["prioritized"]
        items = await _merged_page(queue, WAIT_COLLECTIONS, page, page_size)
    else:
        collection = DIRECT_VIEWS[view]
        total = counts[collection]
        start, end = page_bounds(page, page_size)
        records = await queue.get_jobs(collection, start, end)
        state = COLLECTION_STATES[collection]
        items = [record.to_summary(state) for record in records]

    return Page(items=items, total=total, page=page, page_size=page_size)


async def list_schedulers(
    queue: BullQueue,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page[SchedulerSummary]:
    """Fetch one page of job schedulers."""
    start, end = page_bounds(page, page_size)
    records, total = await asyncio.gather(
        queue.get_schedulers(start, end),
        queue.get_scheduler_count(),
    )
    return Page(
        items=[record.to_summary() for record in records],
        total=total,
        page=page,
        page_size=page_size,
    )


async def get_scheduler_detail(
    queue: BullQueue, scheduler_key: str
) -> SchedulerDetail | None:
    """
    Look up one scheduler and enrich it with its next and recent jobs.

    BullMQ has no lookup by key, so the whole scheduler set is read and
    scanned. Scheduler counts are small next to job counts.
    """
    schedulers = await queue.get_schedulers(0, -1)
    record = next((s for s in schedulers if s.key == scheduler_key), None)
    if record is None:
        return None

    delayed, completed, failed = await asyncio.gather(
        queue.get_jobs("delayed", 0, NEXT_JOB_SCAN_END),
        queue.get_jobs("completed", 0, HISTORY_SCAN_END),
        queue.get_jobs("failed", 0, HISTORY_SCAN_END),
    )

    next_job: NextJob | None = None
    pending = next((job for job in delayed if job.repeat_job_key == scheduler_key), None)
    if pending is not None:
        next_job = NextJob(
            id=pending.id,
            state=await queue.get_job_state(pending.id),
            timestamp=pending.timestamp,
            delay=pending.delay,
            data=pending.data,
            opts=pending.opts,
        )

    history = [job for job in (*completed, *failed) if job.repeat_job_key == scheduler_key]
    history.sort(key=lambda job: job.timestamp, reverse=True)
    history = history[:RECENT_HISTORY_LIMIT]
    states = await asyncio.gather(*(queue.get_job_state(job.id) for job in history))
    recent = tuple(
        RecentJob(
            id=job.id,
            state=state,
            timestamp=job.timestamp,
            processed_on=job.processed_on,
            finished_on=job.finished_on,
            failed_reason=job.failed_reason,
        )
        for job, state in zip(history, states, strict=True)
    )

    return record.to_detail(next_job=next_job, recent_jobs=recent)
