"""The derived note index.

The index is a single JSON document listing one lightweight entry per note.
It is a cache over the note store: mutations write the note store first and
the index second, and a missing or unreadable index file is rebuilt from the
note store instead of being treated as an error.
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from kxin_notes.exceptions import CorruptDocumentError, StorageError
from kxin_notes.models.schema import IndexEntry, Note, NoteIndex, utc_now
from kxin_notes.storage.base import NoteStore
from kxin_notes.storage.codec import DocumentCodec, atomic_write

logger = logging.getLogger(__name__)


@dataclass
class RebuildResult:
    """Outcome of a full index rebuild.

    Attributes:
        indexed: Number of notes written to the new index.
        skipped: IDs of documents that could not be decoded. They stay in
            the note store untouched.
        index: The index that was written.
    """

    indexed: int
    skipped: List[str] = field(default_factory=list)
    index: Optional[NoteIndex] = None


class IndexStore:
    """Read, rewrite and repair the index file. Single writer per process."""

    def __init__(
        self,
        index_file: Path,
        note_store: NoteStore,
        codec: Optional[DocumentCodec] = None,
    ):
        self.index_file = Path(index_file)
        self.note_store = note_store
        self.codec = codec or note_store.codec or DocumentCodec()
        self._lock = threading.RLock()

    def entry_for(self, note: Note) -> IndexEntry:
        """Project a note into its index entry."""
        return IndexEntry.from_note(note, self.note_store.location_of(note.id))

    def read(self) -> NoteIndex:
        """Load the index.

        A missing index (first run, or deleted by hand) and an unreadable
        index are both rebuilt from the note store and persisted before
        returning.
        """
        with self._lock:
            if not self.index_file.exists():
                logger.info(f"Index not found at {self.index_file}, building it")
                return self.rebuild().index
            try:
                raw = self.index_file.read_bytes()
            except OSError as e:
                raise StorageError(
                    "Failed to read index file",
                    operation="read_index",
                    path=str(self.index_file),
                    original_error=e,
                ) from e
            try:
                return self.codec.decode_index(raw)
            except CorruptDocumentError as e:
                logger.warning(f"Index file is corrupted, rebuilding: {e}")
                return self.rebuild().index

    def write(self, index: NoteIndex) -> None:
        """Stamp and persist the whole index (no partial writes)."""
        with self._lock:
            index.last_updated = utc_now()
            index.total_notes = len(index.notes)
            atomic_write(self.index_file, self.codec.encode_index(index), operation="write_index")

    def upsert(self, entry: IndexEntry) -> None:
        """Replace the entry with the same ID, or append it."""
        with self._lock:
            index = self.read()
            for i, existing in enumerate(index.notes):
                if existing.id == entry.id:
                    index.notes[i] = entry
                    break
            else:
                index.notes.append(entry)
            self.write(index)

    def remove(self, note_id: str) -> None:
        """Drop the entry for ``note_id`` (if any) and persist."""
        with self._lock:
            index = self.read()
            index.notes = [e for e in index.notes if e.id != note_id]
            self.write(index)

    def rebuild(self) -> RebuildResult:
        """Re-derive the whole index from the note store.

        Documents that fail to decode are logged and skipped; the rebuild
        continues and the previous index content is discarded.
        """
        with self._lock:
            entries: Dict[str, IndexEntry] = {}
            skipped: List[str] = []

            for note_id, raw in self.note_store.scan():
                try:
                    note = self.codec.decode(raw, note_id=note_id)
                except CorruptDocumentError as e:
                    logger.warning(f"Skipping corrupt note document {note_id}: {e}")
                    skipped.append(note_id)
                    continue
                entry = self.entry_for(note)
                previous = entries.get(note.id)
                if previous is None or entry.updated_at >= previous.updated_at:
                    entries[note.id] = entry

            notes = sorted(entries.values(), key=lambda e: e.updated_at, reverse=True)
            index = NoteIndex(notes=notes)
            self.write(index)

            if skipped:
                logger.warning(
                    f"Skipped {len(skipped)} corrupt documents during rebuild: "
                    f"{skipped[:5]}{'...' if len(skipped) > 5 else ''}"
                )
            logger.info(f"Index rebuilt: {len(notes)} notes indexed, {len(skipped)} skipped")
            return RebuildResult(indexed=len(notes), skipped=skipped, index=index)
