"""BullMQ Redis key helpers.

BullMQ stores every queue under ``<prefix>:<queue>:<suffix>``:

    <prefix>:<queue>:meta          - HASH queue metadata ("paused" field when paused)
    <prefix>:<queue>:wait          - LIST waiting job ids (newest at the head)
    <prefix>:<queue>:paused        - LIST legacy paused job ids
    <prefix>:<queue>:active        - LIST active job ids
    <prefix>:<queue>:prioritized   - ZSET prioritized waiting job ids
    <prefix>:<queue>:completed     - ZSET completed job ids (score = finishedOn)
    <prefix>:<queue>:failed        - ZSET failed job ids (score = finishedOn)
    <prefix>:<queue>:delayed       - ZSET delayed job ids
    <prefix>:<queue>:repeat        - ZSET job scheduler keys (score = next run)
    <prefix>:<queue>:repeat:<key>  - HASH job scheduler definition
    <prefix>:<queue>:<job_id>      - HASH job payload
"""

DEFAULT_PREFIX = "bull"

META_SUFFIX = "meta"

# List-backed job collections; everything else is a sorted set.
LIST_SUFFIXES = frozenset({"wait", "paused", "active"})


def queue_key(queue: str, *parts: str, prefix: str = DEFAULT_PREFIX) -> str:
    """Build a BullMQ key for a queue."""
    return ":".join([prefix, queue, *parts])


def meta_key(queue: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Queue metadata hash."""
    return queue_key(queue, META_SUFFIX, prefix=prefix)


def collection_key(queue: str, suffix: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Job id list/zset for a lifecycle collection (wait, active, ...)."""
    return queue_key(queue, suffix, prefix=prefix)


def job_key(queue: str, job_id: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Job payload hash."""
    return queue_key(queue, job_id, prefix=prefix)


def job_logs_key(queue: str, job_id: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Job log list."""
    return queue_key(queue, job_id, "logs", prefix=prefix)


def job_lock_key(queue: str, job_id: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Worker lock held while a job is being processed."""
    return queue_key(queue, job_id, "lock", prefix=prefix)


def schedulers_key(queue: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Sorted set of job scheduler keys scored by next run time."""
    return queue_key(queue, "repeat", prefix=prefix)


def scheduler_key(queue: str, key: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Job scheduler definition hash."""
    return queue_key(queue, "repeat", key, prefix=prefix)


def meta_pattern(*, prefix: str = DEFAULT_PREFIX) -> str:
    """SCAN pattern matching every queue's metadata hash."""
    return f"{prefix}:*:{META_SUFFIX}"


def queue_name_from_meta_key(key: str, *, prefix: str = DEFAULT_PREFIX) -> str | None:
    """Extract a queue name from a metadata key, or None if it is not one."""
    head = f"{prefix}:"
    tail = f":{META_SUFFIX}"
    if not key.startswith(head) or not key.endswith(tail):
        return None
    name = key[len(head) : len(key) - len(tail)]
    if not name or ":" in name:
        return None
    return name
