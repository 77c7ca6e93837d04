# services/slot_registry.py

import logging

from sqlalchemy.exc import IntegrityError

from services.errors import NotFound, InvalidInput, Conflict

logger = logging.getLogger(__name__)

MAX_SLOT_NUMBER_LENGTH = 10


class SlotRegistry:
    """The facility's fleet of slots and their physical occupancy flags."""

    def __init__(self, store, locks):
        self.store = store
        self.locks = locks

    def create(self, slot_number):
        if not isinstance(slot_number, str) or not slot_number.strip():
            raise InvalidInput("Slot number is required")
        slot_number = slot_number.strip()
        if len(slot_number) > MAX_SLOT_NUMBER_LENGTH:
            raise InvalidInput(f"Slot number must be at most {MAX_SLOT_NUMBER_LENGTH} characters")

        if self.store.get_slot_by_number(slot_number):
            raise Conflict(f"Slot {slot_number} already exists")

        try:
            slot = self.store.add_slot(slot_number)
            self.store.commit()
        except IntegrityError:
            self.store.rollback()
            raise Conflict(f"Slot {slot_number} already exists")
        except Exception:
            self.store.rollback()
            raise

        logger.info(f"Slot created with ID: {slot.id} ({slot.slot_number})")
        return slot

    def get(self, slot_id):
        slot = self.store.get_slot(slot_id)
        if not slot:
            raise NotFound(f"Slot with ID {slot_id} not found")
        return slot

    def get_by_number(self, slot_number):
        slot = self.store.get_slot_by_number(slot_number)
        if not slot:
            raise NotFound(f"Slot {slot_number} not found")
        return slot

    def list_all(self):
        return self.store.list_slots()

    def list_physically_free(self):
        return self.store.list_slots(occupied=False)

    def set_occupied(self, slot_id, occupied):
        """
        Admin override of the occupancy flag.

        Unconditional: it is not checked against reservations on the slot.
        The lifecycle writes the flag itself through mark_occupied while
        already holding the slot lock.
        """
        if not isinstance(occupied, bool):
            raise InvalidInput("Occupied status must be a boolean value")

        with self.locks.hold_slot(slot_id):
            try:
                slot = self.store.lock_slot(slot_id)
                if not slot:
                    raise NotFound(f"Slot with ID {slot_id} not found")
                self.mark_occupied(slot, occupied)
                self.store.commit()
            except Exception:
                self.store.rollback()
                raise

        logger.info(f"Slot {slot_id} occupancy overridden to {occupied}")
        return slot

    @staticmethod
    def mark_occupied(slot, occupied):
        if slot.is_occupied != occupied:
            logger.debug(f"Slot {slot.id} occupied: {slot.is_occupied} -> {occupied}")
        slot.is_occupied = occupied
