"""Key-value contract implemented by every note store layout."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, Optional, Tuple

from kxin_notes.models.schema import Note
from kxin_notes.storage.codec import DocumentCodec


class NoteStore(ABC):
    """Whole-document store of notes keyed by note ID.

    The note store is the source of truth; the index is derived from it.
    """

    def __init__(self, codec: Optional[DocumentCodec] = None):
        self.codec = codec or DocumentCodec()

    @abstractmethod
    def get(self, note_id: str) -> Note:
        """Load one note.

        Raises:
            NoteNotFoundError: If no document exists for ``note_id``.
            CorruptDocumentError: If the document cannot be decoded.
        """

    @abstractmethod
    def put(self, note: Note) -> None:
        """Write (or overwrite) the full document of ``note.id``."""

    @abstractmethod
    def delete(self, note_id: str) -> None:
        """Remove a document. Deleting an absent ID is a no-op."""

    @abstractmethod
    def scan(self) -> Iterator[Tuple[str, bytes]]:
        """Yield ``(note_id, raw_bytes)`` for every stored document.

        Each call enumerates the current on-disk state from scratch.
        """

    @abstractmethod
    def exists(self, note_id: str) -> bool:
        """Whether a document is stored for ``note_id``."""

    @property
    @abstractmethod
    def directory(self) -> Path:
        """Directory holding the note documents."""

    def location_of(self, note_id: str) -> Optional[str]:
        """Human-browsable location of a document, recorded in index entries."""
        return None

    def close(self) -> None:
        """Release resources held by the store."""
