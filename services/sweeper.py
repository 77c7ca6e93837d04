# services/sweeper.py

import logging
import threading

from services.errors import ParkingError
from services.utils import utcnow

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Completes no-show bookings whose window elapsed without a check-in."""

    def __init__(self, store, lifecycle, clock=utcnow):
        self.store = store
        self.lifecycle = lifecycle
        self.clock = clock

    def sweep(self):
        """Expire every overdue active booking. Returns the expired ids."""
        candidates = [booking.id for booking in self.store.find_expired_active(self.clock())]
        expired = []

        for booking_id in candidates:
            try:
                self.lifecycle.expire(booking_id)
                expired.append(booking_id)
            except ParkingError as e:
                # Checked in, cancelled or expired by someone else since the scan
                logger.info(f"Skipping booking {booking_id} during sweep: {e.message}")

        if expired:
            logger.info(f"🧹 Expired {len(expired)} no-show booking(s): {expired}")
        else:
            logger.debug("Expiry sweep found nothing to do")
        return expired


def run_periodic_sweeps(app, interval, stop_event):
    """Run the sweeper every interval seconds in an app context until stopped."""
    while not stop_event.wait(interval):
        with app.app_context():
            try:
                app.extensions['parking'].sweeper.sweep()
            except Exception as e:
                app.logger.error(f"❌ Expiry sweep failed: {str(e)}", exc_info=True)


def start_background_sweeper(app):
    interval = app.config['EXPIRY_SWEEP_INTERVAL_SECONDS']
    stop_event = threading.Event()
    thread = threading.Thread(
        target=run_periodic_sweeps,
        args=(app, interval, stop_event),
        name='expiry-sweeper',
        daemon=True,
    )
    thread.start()
    app.logger.info(f"🔄 Expiry sweeper running every {interval}s")
    return thread, stop_event


def install_background_sweeper(app):
    """
    Start the periodic sweeper in the first process that serves a request.

    CLI commands and the reloader's watcher process never serve requests,
    so they never start a sweeper thread of their own.
    """
    start_lock = threading.Lock()
    started = []

    @app.before_request
    def ensure_sweeper_running():
        if started:
            return
        with start_lock:
            if not started:
                started.append(start_background_sweeper(app))
