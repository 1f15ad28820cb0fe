"""Observable application state.

The Store holds one frozen Snapshot. Every change goes through
``Store.set_partial()``, which swaps in a new snapshot and notifies listeners
synchronously. There is no per-field locking: callers that change related
fields (e.g. the listing and its selection) pass them in one call so no
listener sees a half-applied change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Literal

from bullscope.broker.models import (
    GlobalMetrics,
    JobDetail,
    JobSummary,
    ListView,
    QueueStats,
    SchedulerDetail,
    SchedulerSummary,
)
from bullscope.core.paginate import DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)


class FocusedPane(StrEnum):
    QUEUES = "queues"
    JOBS = "jobs"


def clamp_index(index: int, length: int) -> int:
    """Clamp a selection into [0, length), or 0 for an empty list."""
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


def _total_pages(total: int, page_size: int) -> int:
    return -(-total // page_size) if page_size > 0 else 0


@dataclass(frozen=True)
class JobListing:
    """Job page for a status filter other than schedulers."""

    view: ListView = ListView.LATEST
    items: tuple[JobSummary, ...] = ()
    total: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    selected_index: int = 0
    kind: Literal["jobs"] = "jobs"

    @property
    def total_pages(self) -> int:
        return _total_pages(self.total, self.page_size)

    @property
    def selected(self) -> JobSummary | None:
        if 0 <= self.selected_index < len(self.items):
            return self.items[self.selected_index]
        return None


@dataclass(frozen=True)
class SchedulerListing:
    """Job scheduler page."""

    items: tuple[SchedulerSummary, ...] = ()
    total: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    selected_index: int = 0
    kind: Literal["schedulers"] = "schedulers"

    @property
    def view(self) -> ListView:
        return ListView.SCHEDULERS

    @property
    def total_pages(self) -> int:
        return _total_pages(self.total, self.page_size)

    @property
    def selected(self) -> SchedulerSummary | None:
        if 0 <= self.selected_index < len(self.items):
            return self.items[self.selected_index]
        return None


Listing = JobListing | SchedulerListing


def empty_listing(view: ListView, page_size: int = DEFAULT_PAGE_SIZE) -> Listing:
    """Fresh first-page listing for a status filter."""
    if view is ListView.SCHEDULERS:
        return SchedulerListing(page_size=page_size)
    return JobListing(view=view, page_size=page_size)


@dataclass(frozen=True)
class Snapshot:
    """Everything the dashboard renders."""

    # Connection
    connected: bool = False
    error: str | None = None
    is_loading: bool = False

    global_metrics: GlobalMetrics | None = None

    # Queues
    queues: tuple[QueueStats, ...] = ()
    selected_queue_index: int = 0

    # Job or scheduler page, never both
    listing: Listing = JobListing()

    # Detail overlays
    job_detail: JobDetail | None = None
    scheduler_detail: SchedulerDetail | None = None

    # UI state
    focused_pane: FocusedPane = FocusedPane.QUEUES
    show_confirm_delete: bool = False
    show_page_jump: bool = False
    page_jump_input: str = ""

    @property
    def view(self) -> ListView:
        return self.listing.view

    @property
    def selected_queue(self) -> QueueStats | None:
        if 0 <= self.selected_queue_index < len(self.queues):
            return self.queues[self.selected_queue_index]
        return None

    @property
    def selected_job(self) -> JobSummary | None:
        if isinstance(self.listing, JobListing):
            return self.listing.selected
        return None

    @property
    def selected_scheduler(self) -> SchedulerSummary | None:
        if isinstance(self.listing, SchedulerListing):
            return self.listing.selected
        return None

    @property
    def show_job_detail(self) -> bool:
        return self.job_detail is not None

    @property
    def show_scheduler_detail(self) -> bool:
        return self.scheduler_detail is not None


StateListener = Callable[[Snapshot], None]


class Store:
    """Single owner of the Snapshot with subscribe/notify."""

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._snapshot = initial or Snapshot()
        self._listeners: list[StateListener] = []

    def get_snapshot(self) -> Snapshot:
        """Current snapshot. It is frozen; change it with set_partial()."""
        return self._snapshot

    def set_partial(self, **fields: Any) -> Snapshot:
        """Merge fields into the snapshot and notify every listener once."""
        self._snapshot = replace(self._snapshot, **fields)
        self._notify(self._snapshot)
        return self._snapshot

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; the returned callable unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, snapshot: Snapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("State listener error")
