# services/lifecycle.py

import enum
import logging

from models.booking import Booking, BookingStatus
from services.errors import NotFound, InvalidInput, Conflict
from services.slot_lock import slot_key, tag_key
from services.utils import utcnow, validate_email

logger = logging.getLogger(__name__)


class BookingEvent(enum.Enum):
    check_in = 'check_in'
    check_out = 'check_out'
    expire = 'expire'
    cancel = 'cancel'


# The only legal (state, event) pairs. Anything else is rejected.
TRANSITIONS = {
    (BookingStatus.active, BookingEvent.check_in): BookingStatus.checked_in,
    (BookingStatus.checked_in, BookingEvent.check_out): BookingStatus.completed,
    (BookingStatus.active, BookingEvent.expire): BookingStatus.completed,
    (BookingStatus.active, BookingEvent.cancel): BookingStatus.cancelled,
}


def next_status(current, event):
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise Conflict(f"Cannot {event.value.replace('_', ' ')} booking with status {current.value}")


class BookingLifecycle:
    """
    Creates bookings and drives them through their state machine.

    Every write happens while holding the booking's slot lock and the slot
    row lock, and re-reads the booking before applying the guard, so two
    workers racing on the same slot see each other's committed state.
    """

    def __init__(self, store, slots, locks, notifier=None, clock=utcnow):
        self.store = store
        self.slots = slots
        self.locks = locks
        self.notifier = notifier
        self.clock = clock

    # ---- create ----

    def create(self, name, email, rfid_tag_id, slot_id, start_time, end_time):
        if not isinstance(name, str) or not name.strip():
            raise InvalidInput("Name is required")
        if not validate_email(email):
            raise InvalidInput("A valid email is required")
        if not isinstance(rfid_tag_id, str) or not rfid_tag_id.strip():
            raise InvalidInput("RFID tag is required")
        rfid_tag_id = rfid_tag_id.strip()

        with self.locks.hold(tag_key(rfid_tag_id), slot_key(slot_id)):
            try:
                slot = self.store.lock_slot(slot_id)
                if not slot:
                    raise NotFound(f"Slot with ID {slot_id} not found")

                if slot.is_occupied:
                    raise Conflict(
                        f"Slot {slot_id} is physically occupied and not available for booking"
                    )

                if start_time >= end_time:
                    raise InvalidInput("Start time must be before end time")

                now = self.clock()
                if start_time < now:
                    raise InvalidInput("Cannot book a slot in the past")

                if self.store.find_overlapping(slot_id, start_time, end_time):
                    raise Conflict("Slot is already booked for the selected time period")

                if self.store.find_tag_overlapping(rfid_tag_id, start_time, end_time):
                    raise Conflict(
                        f"RFID tag {rfid_tag_id} is already bound to a booking in this time period"
                    )

                booking = Booking(
                    name=name.strip(),
                    email=email,
                    rfid_tag_id=rfid_tag_id,
                    slot_id=slot.id,
                    start_time=start_time,
                    end_time=end_time,
                    check_in_time=None,
                    check_out_time=None,
                    status=BookingStatus.active,
                    created_at=now,
                )
                self.store.add_booking(booking)
                self.store.commit()
            except Exception:
                self.store.rollback()
                raise

        logger.info(
            f"✅ Booking {booking.id} created for slot {slot.slot_number} "
            f"({start_time.isoformat()} - {end_time.isoformat()})"
        )
        self._notify(booking, slot)
        return booking

    def _notify(self, booking, slot):
        if self.notifier is None:
            return
        try:
            self.notifier.notify(booking, slot)
        except Exception as e:
            logger.error(f"❌ Confirmation for booking {booking.id} failed: {str(e)}")

    # ---- transitions ----

    def _transition(self, booking_id, event, guard=None):
        booking = self.get(booking_id)

        with self.locks.hold_slot(booking.slot_id):
            try:
                slot = self.store.lock_slot(booking.slot_id)
                booking = self.store.get_booking(booking_id, fresh=True)
                target = next_status(booking.status, event)
                now = self.clock()
                if guard:
                    guard(booking, now)

                booking.status = target
                if event == BookingEvent.check_in:
                    booking.check_in_time = now
                    self.slots.mark_occupied(slot, True)
                else:
                    if target == BookingStatus.completed:
                        booking.check_out_time = now
                    self._release(slot, booking)
                self.store.commit()
            except Exception:
                self.store.rollback()
                raise

        logger.info(f"Booking {booking_id} {event.value}: now {booking.status.value}")
        return booking

    def _release(self, slot, booking):
        # Another occupant may already be on the slot after an overstay
        if self.store.has_other_checked_in(slot.id, booking.id):
            logger.warning(
                f"⚠️  Slot {slot.id} still has a checked-in booking, keeping it occupied"
            )
            return
        self.slots.mark_occupied(slot, False)

    @staticmethod
    def _not_before_start(booking, now):
        if now < booking.start_time:
            raise InvalidInput("Cannot check in before booking start time")

    @staticmethod
    def _window_elapsed(booking, now):
        if not booking.end_time < now:
            raise Conflict(f"Booking {booking.id} has not reached the end of its window")

    def check_in(self, booking_id):
        return self._transition(booking_id, BookingEvent.check_in, self._not_before_start)

    def check_out(self, booking_id):
        return self._transition(booking_id, BookingEvent.check_out)

    def expire(self, booking_id):
        return self._transition(booking_id, BookingEvent.expire, self._window_elapsed)

    def cancel(self, booking_id):
        return self._transition(booking_id, BookingEvent.cancel)

    def complete(self, booking_id):
        """
        Finish a booking on request: checks out an occupant, or expires a
        no-show whose window has already elapsed.
        """
        booking = self.get(booking_id)
        if booking.status == BookingStatus.active:
            return self.expire(booking_id)
        return self.check_out(booking_id)

    # ---- queries ----

    def get(self, booking_id):
        booking = self.store.get_booking(booking_id)
        if not booking:
            raise NotFound(f"Booking with ID {booking_id} not found")
        return booking

    def list_by_email(self, email):
        return self.store.list_bookings(email=email)

    def list_all(self):
        return self.store.list_bookings()

    def list_active(self):
        return self.store.list_bookings(
            status=BookingStatus.active,
            ends_after=self.clock(),
            newest_first=False,
        )

    def find_active_by_email(self, email):
        bookings = self.store.list_bookings(
            email=email,
            status=BookingStatus.active,
            ends_after=self.clock(),
            newest_first=False,
        )
        return bookings[0] if bookings else None
