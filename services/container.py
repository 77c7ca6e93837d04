# services/container.py

from flask import current_app

from db.extensions import create_redis_client
from db.store import ParkingStore
from services.availability import AvailabilityService
from services.lifecycle import BookingLifecycle
from services.notification import BookingNotificationService
from services.rfid import RfidScanDispatcher
from services.slot_lock import SlotLockManager
from services.slot_registry import SlotRegistry
from services.sweeper import ExpirySweeper
from services.utils import utcnow


class ParkingServices:
    """One set of collaborating services, wired around a shared store and lock manager."""

    def __init__(self, store, locks, notifier=None, clock=utcnow):
        self.store = store
        self.locks = locks
        self.clock = clock
        self.slots = SlotRegistry(store, locks)
        self.availability = AvailabilityService(store)
        self.bookings = BookingLifecycle(store, self.slots, locks, notifier=notifier, clock=clock)
        self.rfid = RfidScanDispatcher(store, self.bookings, clock=clock)
        self.sweeper = ExpirySweeper(store, self.bookings, clock=clock)


def build_services(app, clock=utcnow):
    backend = app.config.get('SLOT_LOCK_BACKEND', 'local')
    redis_client = create_redis_client(app) if backend == 'redis' else None

    locks = SlotLockManager(
        backend=backend,
        redis_client=redis_client,
        timeout=app.config.get('SLOT_LOCK_TIMEOUT_SECONDS', 30),
        wait=app.config.get('SLOT_LOCK_WAIT_SECONDS', 5),
    )
    return ParkingServices(
        ParkingStore(),
        locks,
        notifier=BookingNotificationService(),
        clock=clock,
    )


def get_services():
    return current_app.extensions['parking']
