# db/store.py

from sqlalchemy import and_, or_
from sqlalchemy.orm import joinedload

from db.extensions import db
from models.booking import Booking, BookingStatus, BLOCKING_STATUSES
from models.slot import Slot


class ParkingStore:
    """
    Persistence collaborator for slots and bookings.

    Thin wrapper over the Flask-SQLAlchemy session. Reads that feed a guard
    inside a slot lock use populate_existing so a stale identity map never
    hides a write committed by another worker.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # ---- slots ----

    def add_slot(self, slot_number):
        slot = Slot(slot_number=slot_number, is_occupied=False)
        self.session.add(slot)
        self.session.flush()
        return slot

    def get_slot(self, slot_id):
        return self.session.get(Slot, slot_id)

    def get_slot_by_number(self, slot_number):
        return self.session.query(Slot).filter_by(slot_number=slot_number).first()

    def lock_slot(self, slot_id):
        """Read the slot row FOR UPDATE (no-op on backends without row locks)."""
        return (
            self.session.query(Slot)
            .filter(Slot.id == slot_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_slots(self, occupied=None):
        query = self.session.query(Slot)
        if occupied is not None:
            query = query.filter(Slot.is_occupied == occupied)
        return query.order_by(Slot.slot_number).all()

    # ---- bookings ----

    def add_booking(self, booking):
        self.session.add(booking)
        self.session.flush()
        return booking

    def get_booking(self, booking_id, fresh=False):
        query = self.session.query(Booking).options(joinedload(Booking.slot))
        if fresh:
            query = query.populate_existing()
        return query.filter(Booking.id == booking_id).first()

    def list_bookings(self, email=None, status=None, ends_after=None, newest_first=True):
        query = self.session.query(Booking).options(joinedload(Booking.slot))
        if email is not None:
            query = query.filter(Booking.email == email)
        if status is not None:
            query = query.filter(Booking.status == status)
        if ends_after is not None:
            query = query.filter(Booking.end_time > ends_after)
        order = Booking.start_time.desc() if newest_first else Booking.start_time.asc()
        return query.order_by(order, Booking.id).all()

    def find_overlapping(self, slot_id, start, end):
        """Blocking bookings on a slot whose window overlaps [start, end)."""
        return (
            self.session.query(Booking)
            .populate_existing()
            .filter(
                Booking.slot_id == slot_id,
                Booking.status.in_(BLOCKING_STATUSES),
                Booking.start_time < end,
                Booking.end_time > start,
            )
            .all()
        )

    def find_tag_overlapping(self, rfid_tag_id, start, end):
        """Blocking bookings bound to a tag whose window overlaps [start, end)."""
        return (
            self.session.query(Booking)
            .populate_existing()
            .filter(
                Booking.rfid_tag_id == rfid_tag_id,
                Booking.status.in_(BLOCKING_STATUSES),
                Booking.start_time < end,
                Booking.end_time > start,
            )
            .all()
        )

    def list_blocking_ending_after(self, moment):
        """Active or checked-in bookings whose window ends after moment."""
        return (
            self.session.query(Booking)
            .filter(
                Booking.status.in_(BLOCKING_STATUSES),
                Booking.end_time > moment,
            )
            .all()
        )

    def find_relevant_for_tag(self, rfid_tag_id, now):
        """
        Bookings a scan of this tag could refer to: checked_in ones regardless
        of window, and active ones whose window contains now. Checked-in
        bookings sort first, then earliest start.
        """
        bookings = (
            self.session.query(Booking)
            .options(joinedload(Booking.slot))
            .populate_existing()
            .filter(
                Booking.rfid_tag_id == rfid_tag_id,
                or_(
                    Booking.status == BookingStatus.checked_in,
                    and_(
                        Booking.status == BookingStatus.active,
                        Booking.start_time <= now,
                        Booking.end_time > now,
                    ),
                ),
            )
            .all()
        )
        return sorted(
            bookings,
            key=lambda b: (b.status != BookingStatus.checked_in, b.start_time, b.id),
        )

    def find_expired_active(self, now):
        return (
            self.session.query(Booking)
            .filter(Booking.status == BookingStatus.active, Booking.end_time < now)
            .order_by(Booking.end_time, Booking.id)
            .all()
        )

    def has_other_checked_in(self, slot_id, exclude_id):
        return (
            self.session.query(Booking.id)
            .filter(
                Booking.slot_id == slot_id,
                Booking.status == BookingStatus.checked_in,
                Booking.id != exclude_id,
            )
            .first()
            is not None
        )

    # ---- unit of work ----

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
