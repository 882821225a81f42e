"""Service layer for the Kxin Notes store."""

from kxin_notes.services.note_service import NoteService

__all__ = ["NoteService"]
