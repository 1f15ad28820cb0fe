from __future__ import annotations

import pytest
from conftest import BullSeeder
from fakeredis.aioredis import FakeRedis

from bullscope.broker.keys import (
    job_key,
    job_lock_key,
    job_logs_key,
    meta_pattern,
    queue_name_from_meta_key,
    scheduler_key,
)
from bullscope.broker.models import (
    CronSchedule,
    IntervalSchedule,
    JobRecord,
    JobState,
    SchedulerRecord,
)
from bullscope.broker.queue import BullQueue, JobLockedError


def test_key_helpers_follow_bullmq_layout() -> None:
    assert job_key("emails", "42") == "bull:emails:42"
    assert job_logs_key("emails", "42", prefix="acme") == "acme:emails:42:logs"
    assert job_lock_key("emails", "42") == "bull:emails:42:lock"
    assert scheduler_key("emails", "nightly") == "bull:emails:repeat:nightly"
    assert meta_pattern(prefix="acme") == "acme:*:meta"


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("bull:emails:meta", "emails"),
        ("bull::meta", None),
        ("bull:emails:repeat:meta", None),
        ("other:emails:meta", None),
        ("bull:emails:wait", None),
    ],
)
def test_queue_name_from_meta_key(key: str, expected: str | None) -> None:
    assert queue_name_from_meta_key(key) == expected


def test_job_record_parses_bullmq_hash_fields() -> None:
    record = JobRecord.model_validate(
        {
            "id": "7",
            "name": "send",
            "timestamp": "1700000000000",
            "data": '{"to": "a@b.c"}',
            "opts": '{"attempts": 3}',
            "atm": "2",
            "failedReason": "",
            "stacktrace": '["Error: boom", "  at handler"]',
            "returnvalue": "null",
            "processedOn": "1700000000500",
            "finishedOn": "",
            "rjk": "nightly",
            "delay": "0",
        }
    )

    assert record.timestamp == 1700000000000
    assert record.data == {"to": "a@b.c"}
    assert record.opts == {"attempts": 3}
    assert record.attempts_made == 2
    assert record.failed_reason is None
    assert record.stacktrace == ["Error: boom", "  at handler"]
    assert record.return_value is None
    assert record.processed_on == 1700000000500
    assert record.finished_on is None
    assert record.repeat_job_key == "nightly"

    detail = record.to_detail(JobState.FAILED)
    assert detail.state is JobState.FAILED
    assert detail.stacktrace == ("Error: boom", "  at handler")


def test_job_record_keeps_non_json_data_as_string() -> None:
    record = JobRecord.model_validate({"id": "1", "data": "plain text"})
    assert record.data == "plain text"
    assert record.timestamp == 0


def test_scheduler_record_prefers_pattern_over_interval() -> None:
    cron = SchedulerRecord.model_validate(
        {"key": "k", "pattern": "0 * * * *", "every": "60000", "next": 5.0}
    )
    interval = SchedulerRecord.model_validate({"key": "k2", "every": "60000"})
    bare = SchedulerRecord.model_validate({"key": "k3", "name": ""})

    assert cron.to_summary().schedule == CronSchedule("0 * * * *")
    assert cron.to_summary().next_run == 5
    assert interval.to_summary().schedule == IntervalSchedule(60000)
    assert bare.to_summary().schedule is None
    assert bare.to_summary().name == "k3"


@pytest.mark.asyncio
async def test_job_counts_fold_paused_into_waiting(
    fake_redis: FakeRedis, bull: BullSeeder
) -> None:
    await bull.add_job("q", "1", collection="wait", timestamp=1)
    await bull.add_job("q", "2", collection="paused", timestamp=2)
    await bull.add_job("q", "3", collection="prioritized", timestamp=3)
    await bull.add_job("q", "4", collection="active", timestamp=4)
    await bull.add_job("q", "5", collection="completed", timestamp=5)
    await bull.add_job("q", "6", collection="completed", timestamp=6)
    await bull.add_job("q", "7", collection="failed", timestamp=7)
    await bull.add_job("q", "8", collection="delayed", timestamp=8)

    counts = await BullQueue("q", fake_redis).get_job_counts()

    assert counts == {
        "waiting": 2,
        "prioritized": 1,
        "active": 1,
        "completed": 2,
        "failed": 1,
        "delayed": 1,
    }


@pytest.mark.asyncio
async def test_is_paused_reads_meta_flag(fake_redis: FakeRedis, bull: BullSeeder) -> None:
    await bull.add_queue("running")
    await bull.add_queue("stopped", paused=True)

    assert await BullQueue("running", fake_redis).is_paused() is False
    assert await BullQueue("stopped", fake_redis).is_paused() is True


@pytest.mark.asyncio
async def test_get_jobs_returns_newest_first_and_skips_vanished(
    fake_redis: FakeRedis, bull: BullSeeder
) -> None:
    await bull.add_job("q", "1", collection="completed", timestamp=100)
    await bull.add_job("q", "2", collection="completed", timestamp=200)
    await bull.add_job("q", "3", collection="completed", timestamp=300)
    # Id present in the set but its hash is gone
    await fake_redis.zadd("bull:q:completed", {"ghost": 400})

    jobs = await BullQueue("q", fake_redis).get_jobs("completed", 0, -1)

    assert [job.id for job in jobs] == ["3", "2", "1"]


@pytest.mark.asyncio
async def test_get_job_state_checks_collections(
    fake_redis: FakeRedis, bull: BullSeeder
) -> None:
    await bull.add_job("q", "w", collection="wait", timestamp=1)
    await bull.add_job("q", "p", collection="prioritized", timestamp=1)
    await bull.add_job("q", "f", collection="failed", timestamp=1)
    await bull.add_job("q", "d", collection="delayed", timestamp=1)
    queue = BullQueue("q", fake_redis)

    assert await queue.get_job_state("w") is JobState.WAITING
    assert await queue.get_job_state("p") is JobState.WAITING
    assert await queue.get_job_state("f") is JobState.FAILED
    assert await queue.get_job_state("d") is JobState.DELAYED
    assert await queue.get_job_state("nope") is JobState.UNKNOWN


@pytest.mark.asyncio
async def test_get_job_detail_includes_state_and_payload(
    fake_redis: FakeRedis, bull: BullSeeder
) -> None:
    await bull.add_job(
        "q",
        "9",
        collection="failed",
        timestamp=1000,
        name="resize",
        data={"size": 3},
        atm=3,
        failedReason="timeout",
    )
    queue = BullQueue("q", fake_redis)

    detail = await queue.get_job_detail("9")

    assert detail is not None
    assert detail.name == "resize"
    assert detail.state is JobState.FAILED
    assert detail.data == {"size": 3}
    assert detail.attempts_made == 3
    assert detail.failed_reason == "timeout"
    assert await queue.get_job_detail("missing") is None


@pytest.mark.asyncio
async def test_remove_job_clears_every_collection_and_logs(
    fake_redis: FakeRedis, bull: BullSeeder
) -> None:
    await bull.add_job("q", "1", collection="wait", timestamp=1)
    await bull.add_job("q", "2", collection="wait", timestamp=2)
    await fake_redis.rpush("bull:q:1:logs", "started")
    queue = BullQueue("q", fake_redis)

    assert await queue.remove_job("1") is True

    assert await fake_redis.lrange("bull:q:wait", 0, -1) == ["2"]
    assert await fake_redis.exists("bull:q:1", "bull:q:1:logs") == 0
    assert await queue.remove_job("1") is False


@pytest.mark.asyncio
async def test_remove_job_refuses_job_locked_by_worker(
    fake_redis: FakeRedis, bull: BullSeeder
) -> None:
    await bull.add_job("q", "7", collection="active", timestamp=1)
    await fake_redis.set("bull:q:7:lock", "worker-token", px=30000)
    queue = BullQueue("q", fake_redis)

    with pytest.raises(JobLockedError):
        await queue.remove_job("7")

    assert await fake_redis.lrange("bull:q:active", 0, -1) == ["7"]
    assert await fake_redis.exists("bull:q:7", "bull:q:7:lock") == 2

    # Once the worker releases the lock the job can go
    await fake_redis.delete("bull:q:7:lock")
    assert await queue.remove_job("7") is True
    assert await fake_redis.llen("bull:q:active") == 0


@pytest.mark.asyncio
async def test_get_schedulers_orders_by_next_run(
    fake_redis: FakeRedis, bull: BullSeeder
) -> None:
    await bull.add_scheduler("q", "early", next_run=1000, name="early", every=60000)
    await bull.add_scheduler("q", "late", next_run=5000, name="late", pattern="0 0 * * *")
    # Set entry without a definition hash still lists by key
    await bull.add_scheduler("q", "bare", next_run=3000)
    queue = BullQueue("q", fake_redis)

    schedulers = await queue.get_schedulers()

    assert [s.key for s in schedulers] == ["late", "bare", "early"]
    assert schedulers[0].next == 5000
    assert schedulers[0].pattern == "0 0 * * *"
    assert schedulers[2].every == 60000
    assert await queue.get_scheduler_count() == 3


def test_close_marks_handle_closed() -> None:
    queue = BullQueue("q", object())
    queue.close()
    assert queue.closed is True
