# models/slot.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from db.extensions import db


class Slot(db.Model):
    __tablename__ = 'slots'

    id = Column(Integer, primary_key=True)
    slot_number = Column(String(10), unique=True, nullable=False)
    # Physical ground truth from the gate, independent of reservations
    is_occupied = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationship with Booking (one-to-many)
    bookings = relationship('Booking', back_populates='slot', lazy='dynamic')

    def __repr__(self):
        return f"<Slot id={self.id} number={self.slot_number} occupied={self.is_occupied}>"

    def to_dict(self):
        return {
            'id': self.id,
            'slot_number': self.slot_number,
            'is_occupied': self.is_occupied,
        }
