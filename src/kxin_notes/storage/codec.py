"""JSON codec for note documents and the index file."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from kxin_notes.exceptions import CorruptDocumentError, ErrorCode, StorageError
from kxin_notes.models.schema import Note, NoteIndex

logger = logging.getLogger(__name__)


class DocumentCodec:
    """Serializes notes to JSON text and back.

    JSON has no temporal type, so every datetime field is written as an
    ISO-8601 string and parsed back into an aware ``datetime`` on decode.
    """

    def __init__(self, indent: Optional[int] = 2):
        self.indent = indent

    def to_dict(self, note: Note) -> Dict[str, Any]:
        """JSON-ready dict of a note (camelCase keys, ISO-8601 timestamps)."""
        return note.model_dump(mode="json", by_alias=True)

    def from_dict(self, data: Any, note_id: Optional[str] = None) -> Note:
        """Validate a parsed JSON object into a Note."""
        if not isinstance(data, dict):
            raise CorruptDocumentError(
                "Note document is not a JSON object", note_id=note_id
            )
        try:
            note = Note.model_validate(data)
        except PydanticValidationError as e:
            raise CorruptDocumentError(
                "Note document is missing or has invalid fields",
                note_id=note_id or data.get("id"),
                original_error=e,
            ) from e
        if note_id is not None and note.id != note_id:
            raise CorruptDocumentError(
                f"Document stored under '{note_id}' carries ID '{note.id}'",
                note_id=note_id,
            )
        return note

    def encode(self, note: Note) -> bytes:
        """Serialize a note to UTF-8 JSON bytes."""
        text = json.dumps(self.to_dict(note), indent=self.indent, ensure_ascii=False)
        return text.encode("utf-8")

    def decode(self, raw: Union[bytes, str], note_id: Optional[str] = None) -> Note:
        """Parse JSON bytes into a Note.

        Raises:
            CorruptDocumentError: If the bytes are not valid JSON or required
                fields are missing.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptDocumentError(
                "Note document is not valid JSON", note_id=note_id, original_error=e
            ) from e
        return self.from_dict(data, note_id=note_id)

    def encode_index(self, index: NoteIndex) -> bytes:
        data = index.model_dump(mode="json", by_alias=True)
        return json.dumps(data, indent=self.indent, ensure_ascii=False).encode("utf-8")

    def decode_index(self, raw: Union[bytes, str]) -> NoteIndex:
        """Parse the index file.

        Raises:
            CorruptDocumentError: If the index is unreadable.
        """
        try:
            return NoteIndex.model_validate_json(raw)
        except (PydanticValidationError, UnicodeDecodeError) as e:
            raise CorruptDocumentError(
                "Index file is not a valid note index",
                original_error=e,
                code=ErrorCode.INDEX_CORRUPTED,
            ) from e


def atomic_write(path: Path, data: bytes, operation: str = "write") -> None:
    """Replace ``path`` with ``data`` via a temp file in the same directory.

    Readers see either the old or the new content, never a torn file.

    Raises:
        StorageError: If the directory or file cannot be written.
    """
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug(f"Could not remove temp file {tmp_name}")
        raise StorageError(
            f"Failed to write {path.name}",
            operation=operation,
            path=str(path),
            code=ErrorCode.STORAGE_WRITE_FAILED,
            original_error=e,
        ) from e
