"""Read-mostly view of a single BullMQ queue in Redis.

Only the operations the dashboard needs are implemented: counts, paginated
collections, job and scheduler lookup, and job removal. Queue semantics
(locks, retries, promotion of delayed jobs) stay with BullMQ itself.
"""

import logging
from typing import Any

from pydantic import ValidationError

from bullscope.broker.keys import (
    DEFAULT_PREFIX,
    LIST_SUFFIXES,
    collection_key,
    job_key,
    job_lock_key,
    job_logs_key,
    meta_key,
    scheduler_key,
    schedulers_key,
)
from bullscope.broker.models import (
    COLLECTION_STATES,
    JobDetail,
    JobRecord,
    JobState,
    SchedulerRecord,
)

logger = logging.getLogger(__name__)


class JobLockedError(Exception):
    """A worker holds the job's lock, so it cannot be removed."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} is locked by a worker")
        self.job_id = job_id


# Order matters for state lookup: terminal sets first, then waiting lists.
_STATE_LOOKUP_ORDER: tuple[str, ...] = (
    "completed",
    "failed",
    "delayed",
    "prioritized",
    "active",
    "wait",
    "paused",
)

# Every collection a job id can live in
JOB_COLLECTIONS: tuple[str, ...] = (
    "wait",
    "paused",
    "active",
    "prioritized",
    "completed",
    "failed",
    "delayed",
)


class BullQueue:
    """
    Handle for one BullMQ queue.

    Handles are cheap; they share the registry's Redis client and hold no
    connection of their own.
    """

    def __init__(
        self,
        name: str,
        client: Any,  # redis.asyncio.Redis with decode_responses=True
        *,
        prefix: str = DEFAULT_PREFIX,
    ) -> None:
        self.name = name
        self._client = client
        self._prefix = prefix
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _key(self, suffix: str) -> str:
        return collection_key(self.name, suffix, prefix=self._prefix)

    def _job_key(self, job_id: str) -> str:
        return job_key(self.name, job_id, prefix=self._prefix)

    # =========================================================================
    # COUNTS
    # =========================================================================

    async def get_job_counts(self) -> dict[str, int]:
        """
        Count jobs per collection.

        Returns keys waiting, prioritized, active, completed, failed and
        delayed. Legacy paused-list jobs are counted as waiting.
        """
        async with self._client.pipeline(transaction=False) as pipe:
            pipe.llen(self._key("wait"))
            pipe.llen(self._key("paused"))
            pipe.zcard(self._key("prioritized"))
            pipe.llen(self._key("active"))
            pipe.zcard(self._key("completed"))
            pipe.zcard(self._key("failed"))
            pipe.zcard(self._key("delayed"))
            wait, paused, prioritized, active, completed, failed, delayed = (
                await pipe.execute()
            )
        return {
            "waiting": int(wait) + int(paused),
            "prioritized": int(prioritized),
            "active": int(active),
            "completed": int(completed),
            "failed": int(failed),
            "delayed": int(delayed),
        }

    async def is_paused(self) -> bool:
        return bool(
            await self._client.hexists(meta_key(self.name, prefix=self._prefix), "paused")
        )

    async def get_scheduler_count(self) -> int:
        return int(await self._client.zcard(schedulers_key(self.name, prefix=self._prefix)))

    # =========================================================================
    # JOBS
    # =========================================================================

    async def get_job_ids(self, collection: str, start: int, end: int) -> list[str]:
        """Job ids of a collection, newest first, inclusive range."""
        key = self._key(collection)
        if collection in LIST_SUFFIXES:
            return list(await self._client.lrange(key, start, end))
        return list(await self._client.zrevrange(key, start, end))

    async def get_jobs(
        self, collection: str, start: int, end: int
    ) -> list[JobRecord]:
        """Load the job hashes of a collection range; vanished jobs are skipped."""
        ids = await self.get_job_ids(collection, start, end)
        return await self._load_jobs(ids)

    async def _load_jobs(self, ids: list[str]) -> list[JobRecord]:
        if not ids:
            return []
        async with self._client.pipeline(transaction=False) as pipe:
            for job_id in ids:
                pipe.hgetall(self._job_key(job_id))
            rows = await pipe.execute()

        records: list[JobRecord] = []
        for job_id, row in zip(ids, rows, strict=True):
            record = self._parse_job(job_id, row)
            if record is not None:
                records.append(record)
        return records

    def _parse_job(self, job_id: str, row: dict[str, str] | None) -> JobRecord | None:
        if not row:
            return None
        try:
            return JobRecord.model_validate({**row, "id": job_id})
        except ValidationError as e:
            logger.debug("Skipping malformed job %s:%s: %s", self.name, job_id, e)
            return None

    async def get_job(self, job_id: str) -> JobRecord | None:
        row = await self._client.hgetall(self._job_key(job_id))
        return self._parse_job(job_id, row)

    async def get_job_state(self, job_id: str) -> JobState:
        """Find which collection currently holds a job."""
        async with self._client.pipeline(transaction=False) as pipe:
            for collection in _STATE_LOOKUP_ORDER:
                key = self._key(collection)
                if collection in LIST_SUFFIXES:
                    pipe.lpos(key, job_id)
                else:
                    pipe.zscore(key, job_id)
            hits = await pipe.execute()

        for collection, hit in zip(_STATE_LOOKUP_ORDER, hits, strict=True):
            if hit is not None:
                return COLLECTION_STATES[collection]
        return JobState.UNKNOWN

    async def get_job_detail(self, job_id: str) -> JobDetail | None:
        record = await self.get_job(job_id)
        if record is None:
            return None
        state = await self.get_job_state(job_id)
        return record.to_detail(state)

    async def remove_job(self, job_id: str) -> bool:
        """
        Remove a job from every collection and delete its data.

        Returns False when the job does not exist. Raises JobLockedError
        while a worker holds the job's lock; the lock key is watched, so a
        worker taking it before the delete commits aborts the transaction.
        """
        if not await self._client.exists(self._job_key(job_id)):
            return False

        lock_key = job_lock_key(self.name, job_id, prefix=self._prefix)
        async with self._client.pipeline(transaction=True) as pipe:
            await pipe.watch(lock_key)
            if await pipe.exists(lock_key):
                raise JobLockedError(job_id)

            pipe.multi()
            for collection in JOB_COLLECTIONS:
                key = self._key(collection)
                if collection in LIST_SUFFIXES:
                    pipe.lrem(key, 0, job_id)
                else:
                    pipe.zrem(key, job_id)
            pipe.delete(
                self._job_key(job_id),
                job_logs_key(self.name, job_id, prefix=self._prefix),
            )
            await pipe.execute()
        logger.info("Removed job %s from queue %s", job_id, self.name)
        return True

    # =========================================================================
    # JOB SCHEDULERS
    # =========================================================================

    async def get_schedulers(self, start: int = 0, end: int = -1) -> list[SchedulerRecord]:
        """Job schedulers ordered by next run, latest first, inclusive range."""
        entries = await self._client.zrevrange(
            schedulers_key(self.name, prefix=self._prefix), start, end, withscores=True
        )
        if not entries:
            return []

        async with self._client.pipeline(transaction=False) as pipe:
            for key, _ in entries:
                pipe.hgetall(scheduler_key(self.name, key, prefix=self._prefix))
            rows = await pipe.execute()

        records: list[SchedulerRecord] = []
        for (key, score), row in zip(entries, rows, strict=True):
            try:
                records.append(
                    SchedulerRecord.model_validate({**(row or {}), "key": key, "next": score})
                )
            except ValidationError as e:
                logger.debug("Skipping malformed scheduler %s:%s: %s", self.name, key, e)
        return records

    def close(self) -> None:
        """Mark the handle closed; the shared client is owned by the caller."""
        self._closed = True
