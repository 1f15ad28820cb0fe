"""Domain models for BullMQ queues, jobs and job schedulers."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


T = TypeVar("T")


class JobState(StrEnum):
    """Lifecycle state of a job as shown to the operator."""

    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    DELAYED = "delayed"
    UNKNOWN = "unknown"


class ListView(StrEnum):
    """Status filter for the job pane."""

    LATEST = "latest"
    WAIT = "wait"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    DELAYED = "delayed"
    SCHEDULERS = "schedulers"


# Broker collection suffix -> displayed state
COLLECTION_STATES: dict[str, JobState] = {
    "wait": JobState.WAITING,
    "paused": JobState.WAITING,
    "prioritized": JobState.WAITING,
    "active": JobState.ACTIVE,
    "completed": JobState.COMPLETED,
    "failed": JobState.FAILED,
    "delayed": JobState.DELAYED,
}


@dataclass(frozen=True)
class JobCounts:
    """Per-state job counts (prioritized folded into wait)."""

    wait: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0

    @property
    def total(self) -> int:
        return self.wait + self.active + self.completed + self.failed + self.delayed

    @classmethod
    def from_broker(cls, counts: dict[str, int]) -> JobCounts:
        """Build from raw broker counts, merging waiting and prioritized."""
        return cls(
            wait=counts.get("waiting", 0) + counts.get("prioritized", 0),
            active=counts.get("active", 0),
            completed=counts.get("completed", 0),
            failed=counts.get("failed", 0),
            delayed=counts.get("delayed", 0),
        )

    def __add__(self, other: JobCounts) -> JobCounts:
        return JobCounts(
            wait=self.wait + other.wait,
            active=self.active + other.active,
            completed=self.completed + other.completed,
            failed=self.failed + other.failed,
            delayed=self.delayed + other.delayed,
        )


@dataclass(frozen=True)
class QueueStats:
    """Summary of one queue, rebuilt every poll."""

    name: str
    counts: JobCounts
    schedulers: int = 0
    is_paused: bool = False

    @property
    def total(self) -> int:
        return self.counts.total


@dataclass(frozen=True)
class Rates:
    """Smoothed throughput in jobs per minute and per second."""

    enqueued_per_min: float = 0.0
    enqueued_per_sec: float = 0.0
    dequeued_per_min: float = 0.0
    dequeued_per_sec: float = 0.0


@dataclass(frozen=True)
class GlobalMetrics:
    """Counts and rates aggregated across every monitored queue."""

    queue_count: int
    counts: JobCounts
    rates: Rates


@dataclass(frozen=True)
class JobSummary:
    id: str
    name: str
    state: JobState
    timestamp: int


@dataclass(frozen=True)
class JobDetail(JobSummary):
    """Full job record, fetched lazily when the operator opens a job."""

    data: Any = None
    opts: Any = None
    attempts_made: int = 0
    failed_reason: str | None = None
    stacktrace: tuple[str, ...] = ()
    return_value: Any = None
    processed_on: int | None = None
    finished_on: int | None = None
    progress: Any = None
    repeat_job_key: str | None = None
    delay: int | None = None


@dataclass(frozen=True)
class CronSchedule:
    pattern: str
    kind: Literal["cron"] = "cron"


@dataclass(frozen=True)
class IntervalSchedule:
    every_ms: int
    kind: Literal["interval"] = "interval"


Schedule = CronSchedule | IntervalSchedule


def schedule_from(pattern: str | None, every: int | None) -> Schedule | None:
    """Pick the recurrence of a scheduler; a pattern wins over an interval."""
    if pattern:
        return CronSchedule(pattern=pattern)
    if every:
        return IntervalSchedule(every_ms=every)
    return None


@dataclass(frozen=True)
class SchedulerSummary:
    key: str
    name: str
    schedule: Schedule | None = None
    next_run: int | None = None
    iteration_count: int | None = None
    tz: str | None = None


@dataclass(frozen=True)
class NextJob:
    """The delayed job a scheduler will run next."""

    id: str
    state: JobState
    timestamp: int
    delay: int | None = None
    data: Any = None
    opts: Any = None


@dataclass(frozen=True)
class RecentJob:
    """A finished job from a scheduler's history."""

    id: str
    state: JobState
    timestamp: int
    processed_on: int | None = None
    finished_on: int | None = None
    failed_reason: str | None = None


@dataclass(frozen=True)
class SchedulerTemplate:
    data: Any = None
    opts: Any = None


@dataclass(frozen=True)
class SchedulerDetail(SchedulerSummary):
    id: str | None = None
    limit: int | None = None
    start_date: int | None = None
    end_date: int | None = None
    template: SchedulerTemplate | None = None
    next_job: NextJob | None = None
    recent_jobs: tuple[RecentJob, ...] = ()


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a remotely paginated list."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 25

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


# =============================================================================
# Raw Redis hash payloads
# =============================================================================


def _decode_json(value: Any) -> Any:
    """Decode a JSON-encoded hash field, keeping the raw string if it is not JSON."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


class JobRecord(BaseModel):
    """Typed subset of a BullMQ job hash."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = ""
    timestamp: int = 0
    data: Any = None
    opts: Any = None
    attempts_made: int = Field(
        default=0, validation_alias=AliasChoices("atm", "attemptsMade")
    )
    failed_reason: str | None = Field(default=None, validation_alias="failedReason")
    stacktrace: list[str] = Field(default_factory=list)
    return_value: Any = Field(default=None, validation_alias="returnvalue")
    processed_on: int | None = Field(default=None, validation_alias="processedOn")
    finished_on: int | None = Field(default=None, validation_alias="finishedOn")
    progress: Any = None
    repeat_job_key: str | None = Field(default=None, validation_alias="rjk")
    delay: int | None = None

    @field_validator("data", "opts", "return_value", "progress", mode="before")
    @classmethod
    def _json_fields(cls, value: Any) -> Any:
        return _decode_json(value)

    @field_validator("stacktrace", mode="before")
    @classmethod
    def _stacktrace(cls, value: Any) -> Any:
        decoded = _decode_json(value)
        if decoded is None:
            return []
        if isinstance(decoded, str):
            return [decoded]
        return [str(line) for line in decoded]

    @field_validator("failed_reason", "repeat_job_key", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        return value or None

    @field_validator("processed_on", "finished_on", "delay", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        return int(float(value))

    @field_validator("timestamp", "attempts_made", mode="before")
    @classmethod
    def _numeric_or_zero(cls, value: Any) -> Any:
        if value in (None, ""):
            return 0
        return int(float(value))

    def to_summary(self, state: JobState) -> JobSummary:
        return JobSummary(id=self.id, name=self.name, state=state, timestamp=self.timestamp)

    def to_detail(self, state: JobState) -> JobDetail:
        return JobDetail(
            id=self.id,
            name=self.name,
            state=state,
            timestamp=self.timestamp,
            data=self.data,
            opts=self.opts,
            attempts_made=self.attempts_made,
            failed_reason=self.failed_reason,
            stacktrace=tuple(self.stacktrace),
            return_value=self.return_value,
            processed_on=self.processed_on,
            finished_on=self.finished_on,
            progress=self.progress,
            repeat_job_key=self.repeat_job_key,
            delay=self.delay,
        )


class SchedulerRecord(BaseModel):
    """Typed subset of a BullMQ job scheduler hash plus its next-run score."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    key: str
    name: str = ""
    id: str | None = None
    pattern: str | None = None
    every: int | None = None
    next: int | None = None
    iteration_count: int | None = Field(default=None, validation_alias="ic")
    tz: str | None = None
    limit: int | None = None
    start_date: int | None = Field(default=None, validation_alias="startDate")
    end_date: int | None = Field(default=None, validation_alias="endDate")
    data: Any = None
    opts: Any = None

    @field_validator("data", "opts", mode="before")
    @classmethod
    def _json_fields(cls, value: Any) -> Any:
        return _decode_json(value)

    @field_validator(
        "every", "next", "iteration_count", "limit", "start_date", "end_date",
        mode="before",
    )
    @classmethod
    def _numeric(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        return int(float(value))

    @field_validator("pattern", "tz", "id", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        return value or None

    def to_summary(self) -> SchedulerSummary:
        return SchedulerSummary(
            key=self.key,
            name=self.name or self.key,
            schedule=schedule_from(self.pattern, self.every),
            next_run=self.next,
            iteration_count=self.iteration_count,
            tz=self.tz,
        )

    def to_detail(
        self,
        *,
        next_job: NextJob | None = None,
        recent_jobs: tuple[RecentJob, ...] = (),
    ) -> SchedulerDetail:
        template = None
        if self.data is not None or self.opts is not None:
            template = SchedulerTemplate(data=self.data, opts=self.opts)
        summary = self.to_summary()
        return SchedulerDetail(
            key=summary.key,
            name=summary.name,
            schedule=summary.schedule,
            next_run=summary.next_run,
            iteration_count=summary.iteration_count,
            tz=summary.tz,
            id=self.id,
            limit=self.limit,
            start_date=self.start_date,
            end_date=self.end_date,
            template=template,
            next_job=next_job,
            recent_jobs=recent_jobs,
        )
