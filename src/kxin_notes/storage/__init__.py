"""Storage layer for the Kxin Notes store."""

from kxin_notes.storage.base import NoteStore
from kxin_notes.storage.codec import DocumentCodec
from kxin_notes.storage.index_store import IndexStore, RebuildResult
from kxin_notes.storage.note_store import (
    PerFileNoteStore,
    SingleFileNoteStore,
    create_note_store,
)
from kxin_notes.storage.paths import StoragePaths

__all__ = [
    "NoteStore",
    "DocumentCodec",
    "IndexStore",
    "RebuildResult",
    "SingleFileNoteStore",
    "PerFileNoteStore",
    "create_note_store",
    "StoragePaths",
]
