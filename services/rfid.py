# services/rfid.py
"""
Translate RFID scans at the gate into booking transitions.

The reader sends only a tag UID, with no direction. The direction is derived
from the booking the tag is bound to:

    booking status    scan direction     transition      action
    active            awaiting_entry     check_in        checked_in
    checked_in        awaiting_exit      check_out       completed

A reader that could report a direction itself would only need to be checked
against this mapping; the state machine stays the same.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from models.booking import Booking, BookingStatus
from services.errors import NotFound, Conflict
from services.utils import utcnow, format_duration

logger = logging.getLogger(__name__)


class ScanDirection(enum.Enum):
    awaiting_entry = 'Entry'
    awaiting_exit = 'Exit'


class ScanAction(enum.Enum):
    checked_in = 'checked_in'
    completed = 'completed'


SCAN_DIRECTIONS = {
    BookingStatus.active: ScanDirection.awaiting_entry,
    BookingStatus.checked_in: ScanDirection.awaiting_exit,
}


def direction_for(status):
    direction = SCAN_DIRECTIONS.get(status)
    if direction is None:
        raise Conflict(f"Booking is already in {status.value} state")
    return direction


@dataclass
class ScanResult:
    booking: Booking
    action: ScanAction

    @property
    def direction(self) -> ScanDirection:
        if self.action == ScanAction.checked_in:
            return ScanDirection.awaiting_entry
        return ScanDirection.awaiting_exit

    @property
    def parking_duration(self) -> Optional[str]:
        if self.action != ScanAction.completed:
            return None
        return format_duration(self.booking.check_in_time, self.booking.check_out_time)

    def to_gate_response(self):
        booking = self.booking
        if self.action == ScanAction.checked_in:
            return {
                'action': self.direction.value,
                'message': f"Welcome, {booking.name}!",
                'slotNumber': booking.slot.slot_number if booking.slot else None,
                'checkInTime': booking.check_in_time.isoformat() if booking.check_in_time else None,
            }
        return {
            'action': self.direction.value,
            'message': f"Thank you, {booking.name}! Come again.",
            'parkingDuration': self.parking_duration,
            'checkOutTime': booking.check_out_time.isoformat() if booking.check_out_time else None,
        }


class RfidScanDispatcher:

    def __init__(self, store, lifecycle, clock=utcnow):
        self.store = store
        self.lifecycle = lifecycle
        self.clock = clock

    def find_relevant(self, rfid_tag_id):
        """The booking a scan of this tag refers to right now."""
        candidates = self.store.find_relevant_for_tag(rfid_tag_id, self.clock())
        if not candidates:
            raise NotFound(f"No active booking found for RFID tag {rfid_tag_id}")
        if len(candidates) > 1:
            logger.warning(
                f"⚠️  RFID tag {rfid_tag_id} matches {len(candidates)} bookings, "
                f"using booking {candidates[0].id}"
            )
        return candidates[0]

    def on_scan(self, rfid_tag_id):
        booking = self.find_relevant(rfid_tag_id)
        direction = direction_for(booking.status)
        logger.info(f"RFID {rfid_tag_id} scanned: booking {booking.id} {direction.name}")

        if direction == ScanDirection.awaiting_entry:
            booking = self.lifecycle.check_in(booking.id)
            return ScanResult(booking=booking, action=ScanAction.checked_in)

        booking = self.lifecycle.check_out(booking.id)
        return ScanResult(booking=booking, action=ScanAction.completed)
