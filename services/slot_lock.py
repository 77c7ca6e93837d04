# services/slot_lock.py

import logging
import threading
from contextlib import contextmanager

import redis

from services.errors import Conflict

logger = logging.getLogger(__name__)


def slot_key(slot_id):
    return f"slot:{slot_id}"


def tag_key(rfid_tag_id):
    return f"tag:{rfid_tag_id}"


class SlotLockManager:
    """
    Named critical sections for state-changing operations.

    Every write to a slot's bookings or occupancy runs while holding
    ``slot:<id>``; booking creation additionally holds ``tag:<rfid>`` first.
    Keys are always taken in the order given and released in reverse.

    backend="local" keeps one threading.Lock per key in this process.
    backend="redis" uses redis-py Lock objects so several workers share them.
    """

    def __init__(self, backend='local', redis_client=None, timeout=30, wait=5,
                 prefix='parking:lock'):
        if backend not in ('local', 'redis'):
            raise ValueError(f"Unknown slot lock backend: {backend}")
        if backend == 'redis' and redis_client is None:
            raise ValueError("The redis lock backend needs a redis client")

        self.backend = backend
        self.timeout = timeout
        self.wait = wait
        self.prefix = prefix
        self.redis_client = redis_client
        self._local_locks = {}
        self._registry_lock = threading.Lock()

    def _local_lock(self, key):
        with self._registry_lock:
            lock = self._local_locks.get(key)
            if lock is None:
                lock = self._local_locks[key] = threading.Lock()
            return lock

    def _acquire(self, key):
        if self.backend == 'redis':
            lock = self.redis_client.lock(
                f"{self.prefix}:{key}",
                timeout=self.timeout,
                blocking_timeout=self.wait,
            )
            acquired = lock.acquire()
        else:
            lock = self._local_lock(key)
            acquired = lock.acquire(timeout=self.wait)

        if not acquired:
            logger.warning(f"⚠️  Could not acquire lock {key} within {self.wait}s")
            raise Conflict(f"{key} is busy, please retry")
        return lock

    def _release(self, key, lock):
        if self.backend == 'redis':
            try:
                lock.release()
            except redis.exceptions.LockError as e:
                # Lease ran out before the operation finished
                logger.warning(f"⚠️  Lock {key} expired before release: {str(e)}")
        else:
            lock.release()

    @contextmanager
    def hold(self, *keys):
        held = []
        try:
            for key in keys:
                held.append((key, self._acquire(key)))
            yield
        finally:
            for key, lock in reversed(held):
                self._release(key, lock)

    def hold_slot(self, slot_id):
        return self.hold(slot_key(slot_id))
