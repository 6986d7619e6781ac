"""Local note storage used alongside chat conversations."""

from application.services.notes.note_store import NoteInfo, NoteStore

__all__ = ["NoteInfo", "NoteStore"]
