"""Physical note store layouts.

Two layouts satisfy the same :class:`NoteStore` contract:

1. ``SingleFileNoteStore`` keeps every note in one ``{"notes": {id: note}}``
   JSON file. It is the default.
2. ``PerFileNoteStore`` keeps one JSON file per note named
   ``{id}_{updatedAtMillis}_{sanitizedTitle}.json`` for human browsability.
   Because the name embeds ``updatedAt``, every update renames the file
   (new file written first, old file removed afterwards).
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from kxin_notes.config import NotesConfig, config
from kxin_notes.exceptions import (
    ConfigurationError,
    ErrorCode,
    NoteNotFoundError,
    StorageError,
)
from kxin_notes.models.schema import INDEX_FORMAT_VERSION, Note
from kxin_notes.storage.base import NoteStore
from kxin_notes.storage.codec import DocumentCodec, atomic_write
from kxin_notes.storage.paths import StoragePaths
from kxin_notes.utils import sanitize_filename

logger = logging.getLogger(__name__)


class SingleFileNoteStore(NoteStore):
    """All notes in a single id-keyed JSON document.

    The file is re-read on every call so ``scan`` always reflects what is on
    disk; writes replace the whole file atomically.
    """

    def __init__(self, documents_file: Path, codec: Optional[DocumentCodec] = None):
        super().__init__(codec)
        self.documents_file = Path(documents_file)
        self._lock = threading.RLock()
        logger.info(f"SingleFileNoteStore initialized: {self.documents_file}")

    @property
    def directory(self) -> Path:
        return self.documents_file.parent

    def _load(self) -> Dict[str, Any]:
        if not self.documents_file.exists():
            return {"version": INDEX_FORMAT_VERSION, "notes": {}}
        try:
            raw = self.documents_file.read_bytes()
        except OSError as e:
            raise StorageError(
                "Failed to read notes file",
                operation="read",
                path=str(self.documents_file),
                original_error=e,
            ) from e
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StorageError(
                "Notes file is not valid JSON",
                operation="read",
                path=str(self.documents_file),
                original_error=e,
            ) from e
        if not isinstance(data, dict) or not isinstance(data.get("notes"), dict):
            raise StorageError(
                "Notes file has no 'notes' map",
                operation="read",
                path=str(self.documents_file),
            )
        return data

    def _save(self, data: Dict[str, Any], operation: str) -> None:
        text = json.dumps(data, indent=self.codec.indent, ensure_ascii=False)
        atomic_write(self.documents_file, text.encode("utf-8"), operation=operation)

    def get(self, note_id: str) -> Note:
        document = self._load()["notes"].get(note_id)
        if document is None:
            raise NoteNotFoundError(note_id)
        return self.codec.from_dict(document, note_id=note_id)

    def put(self, note: Note) -> None:
        with self._lock:
            data = self._load()
            data["notes"][note.id] = self.codec.to_dict(note)
            self._save(data, operation="put")

    def delete(self, note_id: str) -> None:
        with self._lock:
            data = self._load()
            if data["notes"].pop(note_id, None) is None:
                return
            self._save(data, operation="delete")

    def exists(self, note_id: str) -> bool:
        return note_id in self._load()["notes"]

    def scan(self) -> Iterator[Tuple[str, bytes]]:
        notes = self._load()["notes"]
        for note_id, document in notes.items():
            yield note_id, json.dumps(document, ensure_ascii=False).encode("utf-8")

    def location_of(self, note_id: str) -> Optional[str]:
        return str(self.documents_file)


class PerFileNoteStore(NoteStore):
    """One JSON file per note inside ``notes_dir``.

    IDs are resolved to files through an in-memory cache, falling back to a
    directory scan for ``{id}_`` prefixed names when the cached file is gone.
    """

    def __init__(self, notes_dir: Path, codec: Optional[DocumentCodec] = None):
        super().__init__(codec)
        self.notes_dir = Path(notes_dir)
        self.notes_dir.mkdir(parents=True, exist_ok=True)
        self.file_lock = threading.RLock()
        self._paths: Dict[str, Path] = {}
        logger.info(f"PerFileNoteStore initialized: {self.notes_dir}")

    @property
    def directory(self) -> Path:
        return self.notes_dir

    @staticmethod
    def file_name_for(note: Note) -> str:
        """``{id}_{updatedAtEpochMillis}_{sanitizedTitle}.json``"""
        millis = int(note.metadata.updated_at.timestamp() * 1000)
        title = sanitize_filename(note.metadata.title)
        return f"{note.id}_{millis}_{title}.json"

    @staticmethod
    def _parse_name(name: str) -> Optional[Tuple[str, int]]:
        """Return ``(id, millis)`` for a note file name, None for other files."""
        if not name.endswith(".json") or name.startswith("."):
            return None
        parts = name[: -len(".json")].split("_", 2)
        if len(parts) < 2 or not parts[0]:
            return None
        try:
            millis = int(parts[1])
        except ValueError:
            return None
        return parts[0], millis

    def _files_for(self, note_id: str) -> List[Path]:
        prefix = f"{note_id}_"
        found: List[Tuple[int, Path]] = []
        try:
            for path in self.notes_dir.iterdir():
                if not path.name.startswith(prefix):
                    continue
                parsed = self._parse_name(path.name)
                if parsed and parsed[0] == note_id:
                    found.append((parsed[1], path))
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(
                "Failed to list notes directory",
                operation="scan",
                path=str(self.notes_dir),
                original_error=e,
            ) from e
        # Newest first
        found.sort(key=lambda item: item[0], reverse=True)
        return [path for _, path in found]

    def _find(self, note_id: str) -> Optional[Path]:
        cached = self._paths.get(note_id)
        if cached is not None and cached.exists():
            return cached
        self._paths.pop(note_id, None)
        files = self._files_for(note_id)
        if not files:
            return None
        if len(files) > 1:
            logger.warning(
                f"Found {len(files)} files for note {note_id}; using newest {files[0].name}"
            )
        self._paths[note_id] = files[0]
        return files[0]

    def get(self, note_id: str) -> Note:
        path = self._find(note_id)
        if path is None:
            raise NoteNotFoundError(note_id)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as e:
            self._paths.pop(note_id, None)
            raise NoteNotFoundError(note_id) from e
        except OSError as e:
            raise StorageError(
                f"Failed to read note {note_id}",
                operation="read",
                path=str(path),
                original_error=e,
            ) from e
        return self.codec.decode(raw, note_id=note_id)

    def put(self, note: Note) -> None:
        new_path = self.notes_dir / self.file_name_for(note)
        with self.file_lock:
            old_path = self._find(note.id)
            atomic_write(new_path, self.codec.encode(note), operation="put")
            self._paths[note.id] = new_path
            if old_path is not None and old_path != new_path:
                try:
                    old_path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    # The newest file wins on lookup, so a leftover is harmless
                    logger.warning(f"Could not remove old note file {old_path.name}: {e}")

    def delete(self, note_id: str) -> None:
        with self.file_lock:
            self._paths.pop(note_id, None)
            for path in self._files_for(note_id):
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise StorageError(
                        f"Failed to delete note {note_id}",
                        operation="delete",
                        path=str(path),
                        code=ErrorCode.STORAGE_DELETE_FAILED,
                        original_error=e,
                    ) from e

    def exists(self, note_id: str) -> bool:
        return self._find(note_id) is not None

    def scan(self) -> Iterator[Tuple[str, bytes]]:
        try:
            paths = sorted(self.notes_dir.glob("*.json"))
        except OSError as e:
            raise StorageError(
                "Failed to list notes directory",
                operation="scan",
                path=str(self.notes_dir),
                original_error=e,
            ) from e
        newest: Dict[str, int] = {}
        for path in paths:
            parsed = self._parse_name(path.name)
            if parsed is None:
                logger.debug(f"Ignoring non-note file {path.name}")
                continue
            note_id, millis = parsed
            if millis >= newest.get(note_id, -1):
                newest[note_id] = millis
                self._paths[note_id] = path
            try:
                raw = path.read_bytes()
            except OSError as e:
                logger.error(f"Cannot read file {path.name}: {e}")
                continue
            yield note_id, raw

    def location_of(self, note_id: str) -> Optional[str]:
        path = self._find(note_id)
        return str(path) if path is not None else None


def create_note_store(
    paths: StoragePaths,
    layout: Optional[str] = None,
    codec: Optional[DocumentCodec] = None,
    cfg: Optional[NotesConfig] = None,
) -> NoteStore:
    """Build the note store for the configured layout."""
    layout = layout or (cfg or config).storage_layout
    if layout == "single_file":
        return SingleFileNoteStore(paths.documents_file, codec=codec)
    if layout == "per_file":
        return PerFileNoteStore(paths.notes_dir, codec=codec)
    raise ConfigurationError(
        f"Unknown storage layout: {layout}", config_key="storage_layout"
    )
