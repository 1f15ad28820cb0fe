from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import pytest_asyncio
from fakeredis.aioredis import FakeRedis

LIST_COLLECTIONS = {"wait", "paused", "active"}


@dataclass
class BullSeeder:
    """Writes BullMQ-shaped keys into a fake Redis."""

    client: FakeRedis
    prefix: str = "bull"

    async def add_queue(self, queue: str, *, paused: bool = False) -> None:
        mapping = {"opts.maxLenEvents": "10000"}
        if paused:
            mapping["paused"] = "1"
        await self.client.hset(f"{self.prefix}:{queue}:meta", mapping=mapping)

    async def add_job(
        self,
        queue: str,
        job_id: str,
        *,
        collection: str,
        timestamp: int,
        name: str = "task",
        score: float | None = None,
        data: Any = None,
        **fields: Any,
    ) -> None:
        mapping = {
            "name": name,
            "timestamp": str(timestamp),
            "data": json.dumps(data if data is not None else {}),
            "opts": json.dumps({}),
            **{key: str(value) for key, value in fields.items()},
        }
        await self.client.hset(f"{self.prefix}:{queue}:{job_id}", mapping=mapping)

        key = f"{self.prefix}:{queue}:{collection}"
        if collection in LIST_COLLECTIONS:
            await self.client.lpush(key, job_id)
        else:
            await self.client.zadd(key, {job_id: timestamp if score is None else score})

    async def add_scheduler(
        self,
        queue: str,
        key: str,
        *,
        next_run: int,
        **fields: Any,
    ) -> None:
        await self.client.zadd(f"{self.prefix}:{queue}:repeat", {key: next_run})
        if fields:
            await self.client.hset(
                f"{self.prefix}:{queue}:repeat:{key}",
                mapping={name: str(value) for name, value in fields.items()},
            )


@pytest_asyncio.fixture
async def fake_redis() -> AsyncIterator[FakeRedis]:
    client = FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.aclose()


@pytest_asyncio.fixture
async def bull(fake_redis: FakeRedis) -> BullSeeder:
    return BullSeeder(fake_redis)
