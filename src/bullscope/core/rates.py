"""Enqueue/dequeue throughput estimation from successive job-count snapshots."""

import time

from bullscope.broker.models import JobCounts, Rates

DEFAULT_SMOOTHING_FACTOR = 0.3  # higher reacts faster, lower is steadier

# Below this gap a sample is ignored (0.001 min)
MIN_ELAPSED_SECONDS = 0.06


class ExponentialAverage:
    """Exponentially weighted moving average starting from zero."""

    def __init__(self, alpha: float = DEFAULT_SMOOTHING_FACTOR) -> None:
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        self.alpha = alpha
        self.value = 0.0

    def update(self, sample: float) -> float:
        self.value = self.alpha * sample + (1 - self.alpha) * self.value
        return self.value

    def reset(self) -> None:
        self.value = 0.0


class RateTracker:
    """
    Converts absolute job counts into smoothed per-minute throughput.

    BullMQ keeps no monotonic "jobs ever enqueued" counter, so the sum of all
    per-state counts stands in for it. That sum shrinks when jobs are deleted
    or trimmed; deltas are clamped at zero so deletions never read as
    negative throughput.
    """

    def __init__(
        self,
        smoothing_factor: float = DEFAULT_SMOOTHING_FACTOR,
        *,
        min_elapsed_seconds: float = MIN_ELAPSED_SECONDS,
    ) -> None:
        self._min_elapsed_seconds = min_elapsed_seconds
        self._enqueued = ExponentialAverage(smoothing_factor)
        self._dequeued = ExponentialAverage(smoothing_factor)
        self._last_poll_at: float | None = None
        self._last_total = 0
        self._last_processed = 0

    def update(self, counts: JobCounts) -> Rates:
        """Record a snapshot and return the current smoothed rates."""
        now = time.monotonic()
        total = counts.total
        processed = counts.completed + counts.failed

        if self._last_poll_at is None:
            self._remember(now, total, processed)
            return Rates()

        elapsed = now - self._last_poll_at
        if elapsed < self._min_elapsed_seconds:
            return self._current()

        elapsed_minutes = elapsed / 60
        enqueued = max(0, total - self._last_total)
        dequeued = max(0, processed - self._last_processed)
        self._enqueued.update(enqueued / elapsed_minutes)
        self._dequeued.update(dequeued / elapsed_minutes)

        self._remember(now, total, processed)
        return self._current()

    def reset(self) -> None:
        """Forget the baseline so the next update behaves like the first."""
        self._last_poll_at = None
        self._last_total = 0
        self._last_processed = 0
        self._enqueued.reset()
        self._dequeued.reset()

    def _remember(self, now: float, total: int, processed: int) -> None:
        self._last_poll_at = now
        self._last_total = total
        self._last_processed = processed

    def _current(self) -> Rates:
        enqueued = self._enqueued.value
        dequeued = self._dequeued.value
        return Rates(
            enqueued_per_min=round(enqueued, 1),
            enqueued_per_sec=round(enqueued / 60, 2),
            dequeued_per_min=round(dequeued, 1),
            dequeued_per_sec=round(dequeued / 60, 2),
        )
