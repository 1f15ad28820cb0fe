"""BullMQ broker access over Redis."""

from bullscope.broker.queue import BullQueue, JobLockedError
from bullscope.broker.registry import QueueRegistry

__all__ = ["BullQueue", "JobLockedError", "QueueRegistry"]
