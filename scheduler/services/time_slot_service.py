"""
Schedule time slot configuration
"""

import logging
import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduler.models.time_slot import TimeSlot, DEFAULT_TIME_SLOTS
from scheduler.utils.error_handler import NotFoundError, ValidationError, translate_integrity_error
from scheduler.utils.time_utils import is_valid_time_format, normalize_time_format

logger = logging.getLogger(__name__)

def clean_slot_time(value: str) -> str:
    if not is_valid_time_format(value):
        raise ValidationError(f"Invalid time '{value}', expected a 12-hour time such as 9:00 AM")
    return normalize_time_format(re.sub(r"\s*(AM|PM)$", r" \1", value.strip().upper()))

class TimeSlotService:
    """Service for the configurable schedule slots"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def list_slots(self, active_only: bool = False) -> list[TimeSlot]:
        query = self.db.query(TimeSlot)
        if active_only:
            query = query.filter(TimeSlot.is_active == 1)
        return query.order_by(TimeSlot.sort_order, TimeSlot.id).all()
    
    def get_slot(self, slot_id: int) -> TimeSlot:
        slot = self.db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()
        if not slot:
            raise NotFoundError(f"Time slot {slot_id} not found")
        return slot
    
    def _commit(self, time: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise translate_integrity_error(e, f"Time slot {time} already exists")
    
    def create_slot(self, time: str, sort_order: int = None, is_active: int = 1) -> TimeSlot:
        time = clean_slot_time(time)
        if sort_order is None:
            sort_order = self.db.query(TimeSlot).count()
        slot = TimeSlot(time=time, sort_order=sort_order, is_active=is_active)
        self.db.add(slot)
        self._commit(time)
        self.db.refresh(slot)
        return slot
    
    def update_slot(self, slot_id: int, data: dict) -> TimeSlot:
        slot = self.get_slot(slot_id)
        if data.get("time") is not None:
            data["time"] = clean_slot_time(data["time"])
        for field, value in data.items():
            setattr(slot, field, value)
        self._commit(slot.time)
        self.db.refresh(slot)
        return slot
    
    def delete_slot(self, slot_id: int) -> None:
        slot = self.get_slot(slot_id)
        self.db.delete(slot)
        self.db.commit()
    
    def reorder(self, slot_ids: list[int]) -> list[TimeSlot]:
        """Set sort_order from the position of each id in the list"""
        slots = {s.id: s for s in self.db.query(TimeSlot).filter(TimeSlot.id.in_(slot_ids)).all()}
        missing = [slot_id for slot_id in slot_ids if slot_id not in slots]
        if missing:
            raise NotFoundError(f"Time slots not found: {missing}")
        for position, slot_id in enumerate(slot_ids):
            slots[slot_id].sort_order = position
        self.db.commit()
        return self.list_slots()
    
    def seed_defaults(self) -> int:
        """Insert the default slots once; returns how many were added"""
        if self.db.query(TimeSlot).first():
            return 0
        for position, time in enumerate(DEFAULT_TIME_SLOTS):
            self.db.add(TimeSlot(time=time, sort_order=position, is_active=1))
        self.db.commit()
        logger.info(f"Seeded {len(DEFAULT_TIME_SLOTS)} default time slots")
        return len(DEFAULT_TIME_SLOTS)
