# services/availability.py

import logging

from models.booking import BookingStatus
from services.errors import InvalidInput

logger = logging.getLogger(__name__)


def conflicts_with_window(booking, start, end):
    """
    Whether a booking keeps its slot from being offered for [start, end).

    Active bookings conflict on half-open overlap. A checked-in occupant is
    already on the slot, so only the end of its window matters.
    """
    if booking.status == BookingStatus.active:
        return booking.start_time < end and booking.end_time > start
    if booking.status == BookingStatus.checked_in:
        return booking.end_time > start
    return False


class AvailabilityService:
    """Which slots can be reserved for a window."""

    def __init__(self, store):
        self.store = store

    def search(self, start, end):
        """
        Slots that are both physically free and free of conflicting bookings.
        """
        if start >= end:
            raise InvalidInput("Start time must be before end time")

        free_slots = self.store.list_slots(occupied=False)
        if not free_slots:
            logger.debug("No physically free slots, skipping booking lookup")
            return []

        conflicting = {
            booking.slot_id
            for booking in self.store.list_blocking_ending_after(start)
            if conflicts_with_window(booking, start, end)
        }
        available = [slot for slot in free_slots if slot.id not in conflicting]

        logger.debug(
            f"Search {start.isoformat()} - {end.isoformat()}: "
            f"{len(free_slots)} physically free, {len(conflicting)} reserved, "
            f"{len(available)} available"
        )
        return available
