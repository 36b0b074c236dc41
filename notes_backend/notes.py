"""Note repository. Every lookup is scoped to the owner in a single query."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from notes_backend.errors import NotFound, ValidationError
from notes_database.models import Note

logger = logging.getLogger(__name__)


def _owned(db: Session, note_id: int, owner_id: int):
    return db.query(Note).filter(Note.id == note_id, Note.user_id == owner_id)


# PUBLIC_INTERFACE
def create_note(db: Session, owner_id: int, title: Optional[str], content: Optional[str], media: Optional[str] = None) -> Note:
    """Create a note for owner_id. Title and content must be non-blank."""
    if not title or not title.strip() or not content or not content.strip():
        raise ValidationError("Title and content are required")
    note = Note(title=title.strip(), content=content, media=media, user_id=owner_id)
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info("Created note id=%s for user id=%s", note.id, owner_id)
    return note


# PUBLIC_INTERFACE
def get_note(db: Session, note_id: int, owner_id: int) -> Note:
    note = _owned(db, note_id, owner_id).first()
    if note is None:
        raise NotFound("Note not found")
    return note


# PUBLIC_INTERFACE
def delete_note(db: Session, note_id: int, owner_id: int) -> Note:
    """Delete a note owned by owner_id and return it. Raises NotFound otherwise."""
    note = _owned(db, note_id, owner_id).first()
    if note is None:
        raise NotFound("Note not found")
    db.delete(note)
    db.commit()
    logger.info("Deleted note id=%s for user id=%s", note_id, owner_id)
    return note
