"""
Daily notes: remarks, incidents, complaints and follow-ups
"""

import logging

from sqlalchemy.orm import Session

from scheduler.models.note import Note
from scheduler.utils.error_handler import NotFoundError

logger = logging.getLogger(__name__)

class NoteService:
    """Service for note CRUD; notes reference orders by value only"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_note(self, note_id: int) -> Note:
        note = self.db.query(Note).filter(Note.id == note_id).first()
        if not note:
            raise NotFoundError(f"Note {note_id} not found")
        return note
    
    def list_notes(self) -> list[Note]:
        return self.db.query(Note).order_by(Note.created_at, Note.id).all()
    
    def by_date(self, day: str) -> list[Note]:
        return self.db.query(Note).filter(Note.date == day).order_by(Note.created_at, Note.id).all()
    
    def by_service_number(self, service_number: str) -> list[Note]:
        return (
            self.db.query(Note)
            .filter(Note.service_number == service_number)
            .order_by(Note.created_at, Note.id)
            .all()
        )
    
    def by_date_range(self, start_date: str, end_date: str) -> list[Note]:
        return (
            self.db.query(Note)
            .filter(Note.date >= start_date, Note.date <= end_date)
            .order_by(Note.created_at, Note.id)
            .all()
        )
    
    def create_note(self, data: dict, created_by: str = None) -> Note:
        note = Note(**data)
        if created_by and not note.created_by:
            note.created_by = created_by
        self.db.add(note)
        self.db.commit()
        self.db.refresh(note)
        logger.info(f"Created {note.note_type} note {note.id} for {note.date}")
        return note
    
    def update_note(self, note_id: int, data: dict) -> Note:
        note = self.get_note(note_id)
        for field, value in data.items():
            setattr(note, field, value)
        self.db.commit()
        self.db.refresh(note)
        return note
    
    def delete_note(self, note_id: int) -> None:
        note = self.get_note(note_id)
        self.db.delete(note)
        self.db.commit()
        logger.info(f"Deleted note {note_id}")
