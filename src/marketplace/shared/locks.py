"""Per-order-line and per-order mutual exclusion.

Every writer of an order line's status (carrier reconciliation, admin
override, customer actions) holds the line's lock for its whole
read-modify-write, so two writers never interleave on the same line.

Lines of one order are persisted together as the ``Order`` aggregate, so the
final re-read and save additionally runs under the order's lock. The order
lock is only ever taken while already holding a line lock, never the other
way round.

The locks are process-local; across processes the line revision check in
``Order.apply_carrier_update`` and the aggregate version check reject stale
writes. Registry entries are dropped as soon as nobody holds or waits for
them.
"""

import threading
from contextlib import contextmanager

from marketplace.shared.errors import LineBusyError

_registry_lock = threading.Lock()


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


_line_locks: dict[str, _LockEntry] = {}
_order_locks: dict[str, _LockEntry] = {}


def _checkout(registry: dict, key: str) -> _LockEntry:
    with _registry_lock:
        entry = registry.get(key)
        if entry is None:
            entry = registry[key] = _LockEntry()
        entry.users += 1
        return entry


def _checkin(registry: dict, key: str, entry: _LockEntry) -> None:
    with _registry_lock:
        entry.users -= 1
        if entry.users == 0:
            del registry[key]


@contextmanager
def _hold(registry: dict, key: str, timeout: float | None, blocking: bool):
    entry = _checkout(registry, key)
    try:
        if not blocking:
            acquired = entry.lock.acquire(blocking=False)
        else:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            raise LineBusyError(key)
        try:
            yield
        finally:
            entry.lock.release()
    finally:
        _checkin(registry, key, entry)


@contextmanager
def line_lock(secret_order_id: str, timeout: float | None = None, blocking: bool = True):
    """Hold the lock for one order line.

    Raises:
        LineBusyError: the lock could not be acquired (immediately when
            ``blocking`` is false, or within ``timeout`` seconds).
    """
    with _hold(_line_locks, secret_order_id, timeout, blocking):
        yield


@contextmanager
def order_lock(order_id: str, timeout: float | None = None):
    """Hold the write lock for a whole order, blocking up to ``timeout``."""
    with _hold(_order_locks, str(order_id), timeout, True):
        yield
