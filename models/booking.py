# models/booking.py
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship
from db.extensions import db


class BookingStatus(enum.Enum):
    active = 'active'
    checked_in = 'checked_in'
    completed = 'completed'
    cancelled = 'cancelled'


# Statuses that hold a claim on a slot's time window
BLOCKING_STATUSES = (BookingStatus.active, BookingStatus.checked_in)


def _isoformat(value):
    return value.isoformat() if value else None


class Booking(db.Model):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_slot_status_window', 'slot_id', 'status', 'start_time', 'end_time'),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    rfid_tag_id = Column(String(64), nullable=False, index=True)
    slot_id = Column(Integer, ForeignKey('slots.id'), nullable=False)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    check_in_time = Column(DateTime, nullable=True)
    check_out_time = Column(DateTime, nullable=True)

    status = Column(
        Enum(BookingStatus, name='booking_status_enum'),
        default=BookingStatus.active,
        nullable=False,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    slot = relationship('Slot', back_populates='bookings')

    def __repr__(self):
        return f"<Booking id={self.id} slot_id={self.slot_id} status={self.status.value}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'rfid_tag_id': self.rfid_tag_id,
            'slot_id': self.slot_id,
            'slot': self.slot.to_dict() if self.slot else None,
            'start_time': _isoformat(self.start_time),
            'end_time': _isoformat(self.end_time),
            'check_in_time': _isoformat(self.check_in_time),
            'check_out_time': _isoformat(self.check_out_time),
            'status': self.status.value,
            'created_at': _isoformat(self.created_at),
        }
