"""Per-entity serialization for read-modify-write cycles.

Cart repricing (load → recompute → persist) and negotiation decisions
(load → check pending → append) are two-step sequences. Entry points run the
whole command under a lock keyed by the aggregate it mutates, so two requests
for the same cart or order in one process are applied one after the other.

Locks are created on first use and dropped once their last holder or waiter
leaves, so the registry only ever holds entities being worked on.
"""

import threading
from contextlib import contextmanager

from protean.utils.globals import current_domain


class _EntityLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


_registry_lock = threading.Lock()
_locks: dict[tuple[str, str], _EntityLock] = {}


def _checkout(key) -> _EntityLock:
    with _registry_lock:
        entry = _locks.get(key)
        if entry is None:
            entry = _locks[key] = _EntityLock()
        entry.users += 1
        return entry


def _checkin(key, entry: _EntityLock) -> None:
    with _registry_lock:
        entry.users -= 1
        if entry.users == 0:
            del _locks[key]


def active_locks() -> int:
    """Number of entities currently locked or waited on."""
    with _registry_lock:
        return len(_locks)


@contextmanager
def entity_lock(kind: str, entity_id: str):
    """Hold the lock for one aggregate instance for the duration of the block."""
    key = (kind, str(entity_id))
    entry = _checkout(key)
    try:
        with entry.lock:
            yield
    finally:
        _checkin(key, entry)


def process_exclusively(command, kind: str, entity_id: str):
    """Process a command synchronously while holding the aggregate's lock."""
    with entity_lock(kind, entity_id):
        return current_domain.process(command, asynchronous=False)
