from __future__ import annotations

import dataclasses
import logging

import pytest

from bullscope.broker.models import (
    JobCounts,
    JobState,
    JobSummary,
    ListView,
    QueueStats,
    SchedulerSummary,
)
from bullscope.core.store import (
    JobListing,
    SchedulerListing,
    Snapshot,
    Store,
    clamp_index,
    empty_listing,
)


def _job(job_id: str) -> JobSummary:
    return JobSummary(id=job_id, name="task", state=JobState.WAITING, timestamp=1)


def test_set_partial_merges_and_notifies_once() -> None:
    store = Store()
    seen: list[Snapshot] = []
    store.subscribe(seen.append)

    store.set_partial(connected=True, error=None, is_loading=True)

    assert len(seen) == 1
    assert seen[0].connected is True
    assert seen[0].is_loading is True
    assert store.get_snapshot() is seen[0]


def test_successive_merges_keep_earlier_fields() -> None:
    store = Store()
    seen: list[Snapshot] = []
    store.subscribe(seen.append)

    store.set_partial(connected=True)
    store.set_partial(error="timeout")

    assert len(seen) == 2
    assert seen[0].connected is True
    assert seen[0].error is None
    assert seen[1].connected is True
    assert seen[1].error == "timeout"
    assert store.get_snapshot() is seen[1]


def test_unsubscribe_stops_notifications() -> None:
    store = Store()
    seen: list[Snapshot] = []
    unsubscribe = store.subscribe(seen.append)

    unsubscribe()
    unsubscribe()
    store.set_partial(connected=True)

    assert seen == []


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    store = Store()
    seen: list[Snapshot] = []

    def broken(_: Snapshot) -> None:
        raise RuntimeError("render failed")

    store.subscribe(broken)
    store.subscribe(seen.append)

    with caplog.at_level(logging.ERROR, logger="bullscope.core.store"):
        store.set_partial(connected=True)

    assert len(seen) == 1
    assert "State listener error" in caplog.text


def test_snapshot_cannot_be_mutated_in_place() -> None:
    snapshot = Store().get_snapshot()
    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.connected = True  # type: ignore[misc]


def test_listing_variants_are_exclusive() -> None:
    scheduler = SchedulerSummary(key="nightly", name="nightly")
    snapshot = Snapshot(listing=SchedulerListing(items=(scheduler,), total=1))

    assert snapshot.view is ListView.SCHEDULERS
    assert snapshot.selected_scheduler == scheduler
    assert snapshot.selected_job is None

    snapshot = Snapshot(listing=JobListing(view=ListView.FAILED, items=(_job("1"),), total=1))
    assert snapshot.view is ListView.FAILED
    assert snapshot.selected_job == _job("1")
    assert snapshot.selected_scheduler is None


def test_empty_listing_picks_variant_for_view() -> None:
    assert isinstance(empty_listing(ListView.SCHEDULERS), SchedulerListing)
    listing = empty_listing(ListView.COMPLETED, page_size=10)
    assert isinstance(listing, JobListing)
    assert listing.view is ListView.COMPLETED
    assert listing.page_size == 10
    assert listing.page == 1


def test_total_pages_rounds_up() -> None:
    assert JobListing(total=0).total_pages == 0
    assert JobListing(total=25, page_size=25).total_pages == 1
    assert JobListing(total=26, page_size=25).total_pages == 2


def test_selected_queue_follows_index() -> None:
    queues = (
        QueueStats(name="a", counts=JobCounts()),
        QueueStats(name="b", counts=JobCounts()),
    )
    assert Snapshot(queues=queues, selected_queue_index=1).selected_queue == queues[1]
    assert Snapshot(queues=(), selected_queue_index=0).selected_queue is None


@pytest.mark.parametrize(
    ("index", "length", "expected"),
    [(0, 0, 0), (5, 0, 0), (2, 3, 2), (3, 3, 2), (-1, 3, 0)],
)
def test_clamp_index(index: int, length: int, expected: int) -> None:
    assert clamp_index(index, length) == expected
