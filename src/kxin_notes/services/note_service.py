"""Service layer for note operations.

``NoteService`` composes a note store and the index store. Every mutation
writes the note store first and the index second. Every public operation
returns a :class:`NoteAPIResponse` envelope and never raises.
"""

import logging
import threading
import uuid
import weakref
from collections import Counter
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from kxin_notes.config import NotesConfig, config
from kxin_notes.exceptions import (
    BulkOperationError,
    CorruptDocumentError,
    ErrorCode,
    InvalidStateError,
    NoteNotFoundError,
    NotesError,
    StorageError,
    ValidationError,
)
from kxin_notes.models.schema import (
    CreateNoteRequest,
    IndexEntry,
    Note,
    NoteAPIResponse,
    NoteFilter,
    NoteMetadata,
    SearchIndex,
    UpdateNoteRequest,
    normalize_tags,
    utc_now,
)
from kxin_notes.observability import timed_operation
from kxin_notes.storage.base import NoteStore
from kxin_notes.storage.index_store import IndexStore
from kxin_notes.storage.note_store import create_note_store
from kxin_notes.storage.paths import StoragePaths
from kxin_notes.utils import count_words, extract_plain_text, reading_time

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

DEFAULT_PAGE_SIZE = 20

_STATUS_FILTERS = ("is_trashed", "is_favorite", "is_archived", "is_pinned")


def build_search_index(note: Note) -> SearchIndex:
    """Flatten the searchable metadata of a note into its search index."""
    meta = note.metadata
    content = extract_plain_text(meta.content)
    parts = [meta.title, content, meta.summary or "", " ".join(meta.tags)]
    return SearchIndex(
        id=note.id,
        title=meta.title,
        content=content,
        summary=meta.summary,
        tags=list(meta.tags),
        searchable_text=" ".join(part for part in parts if part),
    )


def apply_content_stats(metadata: NoteMetadata, words_per_minute: int) -> None:
    """Recompute word count and reading time from the current content."""
    words = count_words(extract_plain_text(metadata.content))
    metadata.word_count = words
    metadata.reading_time = reading_time(words, words_per_minute)


def build_filter_predicates(note_filter: NoteFilter) -> List[Callable[[IndexEntry], bool]]:
    """Translate a filter into a conjunctive chain of entry predicates.

    Status flags match exactly, tags match any-of, the keyword is a
    case-insensitive substring of title, summary or a tag, and date bounds
    are inclusive. Omitted fields (and an empty tag list or blank keyword)
    add no predicate.
    """
    predicates: List[Callable[[IndexEntry], bool]] = []

    for flag in _STATUS_FILTERS:
        wanted = getattr(note_filter, flag)
        if wanted is not None:
            predicates.append(
                lambda e, flag=flag, wanted=wanted: getattr(e.status, flag) == wanted
            )

    if note_filter.tags:
        wanted_tags = set(note_filter.tags)
        predicates.append(lambda e: not wanted_tags.isdisjoint(e.tags))

    keyword = (note_filter.search_keyword or "").strip().lower()
    if keyword:

        def _has_keyword(e: IndexEntry) -> bool:
            fields = [e.title, e.summary or "", *e.tags]
            return any(keyword in field.lower() for field in fields)

        predicates.append(_has_keyword)

    if note_filter.created_after is not None:
        predicates.append(lambda e: e.created_at >= note_filter.created_after)
    if note_filter.created_before is not None:
        predicates.append(lambda e: e.created_at <= note_filter.created_before)
    if note_filter.updated_after is not None:
        predicates.append(lambda e: e.updated_at >= note_filter.updated_after)
    if note_filter.updated_before is not None:
        predicates.append(lambda e: e.updated_at <= note_filter.updated_before)

    return predicates


def paginate(items: List[Any], page: Optional[int], page_size: Optional[int]) -> List[Any]:
    """Slice a list by 1-based page. Without page and page_size, return all."""
    if page is None and page_size is None:
        return items
    page = 1 if page is None else page
    page_size = DEFAULT_PAGE_SIZE if page_size is None else page_size
    if page < 1:
        raise ValidationError("page must be >= 1", field="page", value=page)
    if page_size < 1:
        raise ValidationError("pageSize must be >= 1", field="pageSize", value=page_size)
    start = (page - 1) * page_size
    return items[start:start + page_size]


class NoteService:
    """Public operation surface of the note store."""

    def __init__(
        self,
        note_store: NoteStore,
        index_store: Optional[IndexStore] = None,
        cfg: Optional[NotesConfig] = None,
        index_file: Optional[Path] = None,
    ):
        """Initialize the service.

        Args:
            note_store: Source of truth for note documents.
            index_store: Derived index. Built next to the note documents
                (``index_file``, or the configured index file name inside
                the store directory) if None.
            cfg: Configuration. The global config if None.
            index_file: Location of the index file when ``index_store`` is
                None. Defaults to the configured index file name inside the
                note store directory.
        """
        self.config = cfg or config
        self.note_store = note_store
        if index_store is None:
            if index_file is None:
                index_file = note_store.directory / self.config.index_file_name
            index_store = IndexStore(index_file, note_store)
        self.index_store = index_store

        # Per-note locks serialise read-modify-write cycles on one ID
        self._note_locks: weakref.WeakValueDictionary[str, threading.RLock] = (
            weakref.WeakValueDictionary()
        )
        self._note_locks_lock = threading.Lock()

    @classmethod
    def from_config(
        cls, cfg: Optional[NotesConfig] = None, layout: Optional[str] = None
    ) -> "NoteService":
        """Build the service and its stores from configuration."""
        cfg = cfg or config
        paths = StoragePaths.from_config(cfg)
        note_store = create_note_store(paths, layout=layout, cfg=cfg)
        index_store = IndexStore(paths.index_file, note_store)
        logger.info(
            f"Note service ready: layout={layout or cfg.storage_layout}, root={paths.root}"
        )
        return cls(note_store, index_store, cfg=cfg)

    def close(self) -> None:
        """Release the stores."""
        self.note_store.close()

    def __enter__(self) -> "NoteService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # Envelope helpers
    # =========================================================================

    @staticmethod
    def _ok(data: Any = None, message: Optional[str] = None, code: Optional[str] = None) -> NoteAPIResponse:
        return NoteAPIResponse(success=True, data=data, message=message, code=code)

    @staticmethod
    def _failure(error: Exception, message: str) -> NoteAPIResponse:
        """Map any exception to a failed envelope.

        Domain errors keep their message and code. Anything else is logged
        with a traceback and reported with a generic message and a short
        reference ID that can be found in the logs.
        """
        if isinstance(error, PydanticValidationError):
            details = error.errors()
            first = details[0] if details else {}
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            error = ValidationError(
                f"Invalid request: {first.get('msg', 'validation failed')}", field=field
            )

        if isinstance(error, NotesError):
            level = logging.ERROR if isinstance(error, StorageError) else logging.WARNING
            logger.log(level, f"{message}: {error}")
            data = None
            if isinstance(error, BulkOperationError):
                data = {"succeeded": [], "failed": error.failed_ids}
            return NoteAPIResponse(
                success=False,
                data=data,
                error=error.message,
                message=message,
                code=error.code.name,
            )

        error_id = str(uuid.uuid4())[:8]
        if isinstance(error, OSError):
            logger.error(f"File system error [{error_id}]: {error}", exc_info=error)
            return NoteAPIResponse(
                success=False,
                error=f"A file system error occurred (ref: {error_id})",
                message=message,
                code=ErrorCode.STORAGE_WRITE_FAILED.name,
            )
        logger.error(f"Unexpected error [{error_id}]: {error}", exc_info=error)
        return NoteAPIResponse(
            success=False,
            error=f"An unexpected error occurred (ref: {error_id})",
            message=message,
            code=ErrorCode.INTERNAL_ERROR.name,
        )

    @staticmethod
    def _coerce(model: Type[R], value: Union[R, Dict[str, Any], None]) -> R:
        """Accept a request model, a camelCase/snake_case dict or None."""
        if isinstance(value, model):
            return value
        if value is None:
            return model()
        return model.model_validate(value)

    @staticmethod
    def _require_id(note_id: Any) -> str:
        if not isinstance(note_id, str) or not note_id.strip():
            raise ValidationError("Note ID is required", field="id", value=note_id)
        return note_id

    # =========================================================================
    # Internal building blocks (these raise)
    # =========================================================================

    def _lock_for(self, note_id: str) -> threading.RLock:
        """Get the lock for one note ID, creating it on first use."""
        with self._note_locks_lock:
            lock = self._note_locks.get(note_id)
            if lock is None:
                lock = threading.RLock()
                self._note_locks[note_id] = lock
            return lock

    def _load(self, note_id: str) -> Note:
        """Read a note. Unreadable documents are reported as not found."""
        self._require_id(note_id)
        try:
            return self.note_store.get(note_id)
        except CorruptDocumentError as e:
            logger.warning(f"Note {note_id} is unreadable: {e}")
            raise NoteNotFoundError(
                note_id, message=f"Note with ID '{note_id}' is unreadable"
            ) from e

    def _persist(self, note: Note) -> None:
        """Write the document, then its index entry."""
        self.note_store.put(note)
        self.index_store.upsert(self.index_store.entry_for(note))

    @staticmethod
    def _bump(note: Note) -> None:
        """Record a metadata/status mutation: new updatedAt, next version."""
        now = utc_now()
        previous = note.metadata.updated_at
        note.metadata.updated_at = now if now >= previous else previous
        note.metadata.version += 1

    @staticmethod
    def _record_view(note: Note) -> bool:
        """Stamp lastViewedAt once per (UTC) day. Returns True if it changed."""
        now = utc_now()
        last = note.metadata.last_viewed_at
        if last is not None and last.astimezone(now.tzinfo).date() == now.date():
            return False
        note.metadata.last_viewed_at = now
        note.stats.edit_count += 1
        return True

    def _touch(self, note_id: str) -> Note:
        with self._lock_for(note_id):
            note = self._load(note_id)
            if self._record_view(note):
                self._persist(note)
            return note

    def _set_trashed(self, note_id: str, trashed: bool, operation: str) -> Note:
        with self._lock_for(note_id):
            note = self._load(note_id)
            if note.status.is_trashed == trashed:
                state = "already in trash" if trashed else "not in trash"
                raise InvalidStateError(
                    f"Note '{note_id}' is {state}", note_id=note_id, operation=operation
                )
            note.status.is_trashed = trashed
            self._bump(note)
            self._persist(note)
            return note

    def _toggle(self, note_id: str, flag: str) -> Note:
        with self._lock_for(note_id):
            note = self._load(note_id)
            setattr(note.status, flag, not getattr(note.status, flag))
            self._bump(note)
            self._persist(note)
            return note

    def _set_archived(self, note_id: str) -> Note:
        with self._lock_for(note_id):
            note = self._load(note_id)
            if note.status.is_archived:
                raise InvalidStateError(
                    f"Note '{note_id}' is already archived",
                    note_id=note_id,
                    operation="archive",
                )
            note.status.is_archived = True
            self._bump(note)
            self._persist(note)
            return note

    def _purge(self, note_id: str) -> None:
        with self._lock_for(note_id):
            note = self._load(note_id)
            if not note.status.is_trashed:
                raise InvalidStateError(
                    f"Note '{note_id}' must be moved to trash before it can be "
                    "permanently deleted",
                    note_id=note_id,
                    operation="permanently_delete",
                )
            self.note_store.delete(note_id)
            self.index_store.remove(note_id)

    def _sorted_entries(self) -> List[IndexEntry]:
        entries = self.index_store.read().notes
        return sorted(entries, key=lambda e: e.updated_at, reverse=True)

    # =========================================================================
    # Note CRUD
    # =========================================================================

    def create_note(
        self, request: Union[CreateNoteRequest, Dict[str, Any], None] = None
    ) -> NoteAPIResponse:
        """Create a note.

        Omitted fields get defaults: the configured placeholder title, empty
        content and the configured language. Word count, reading time and
        the search index are derived from the assembled metadata.
        """
        try:
            with timed_operation("create_note") as op:
                req = self._coerce(CreateNoteRequest, request)
                now = utc_now()
                title = req.title if req.title and req.title.strip() else self.config.default_title
                metadata = NoteMetadata(
                    title=title,
                    content=req.content if req.content is not None else "",
                    summary=req.summary,
                    tags=normalize_tags(req.tags),
                    icon=req.icon or "",
                    cover=req.cover or "",
                    attachments=list(req.attachments or []),
                    created_at=now,
                    updated_at=now,
                    language=req.language or self.config.default_language,
                )
                apply_content_stats(metadata, self.config.words_per_minute)
                note = Note(metadata=metadata, related_note_ids=list(req.related_note_ids or []))
                note.search_index = build_search_index(note)

                with self._lock_for(note.id):
                    self._persist(note)
                op["note_id"] = note.id
            logger.info(f"Created note {note.id}")
            return self._ok(note, "Note created")
        except Exception as e:
            return self._failure(e, "Failed to create note")

    def get_note_by_id(self, note_id: str) -> NoteAPIResponse:
        """Fetch a note and record the view.

        The first read of a note on a given day stamps ``lastViewedAt`` and
        increments ``editCount``, persisting both (note store, then index)
        before returning. Disabled when ``track_views`` is off.
        """
        try:
            with timed_operation("get_note", note_id=note_id):
                if self.config.track_views:
                    note = self._touch(note_id)
                else:
                    note = self._load(note_id)
            return self._ok(note, "Note loaded")
        except Exception as e:
            return self._failure(e, f"Failed to get note {note_id}")

    def peek_note(self, note_id: str) -> NoteAPIResponse:
        """Fetch a note without recording the view."""
        try:
            with timed_operation("peek_note", note_id=note_id):
                note = self._load(note_id)
            return self._ok(note, "Note loaded")
        except Exception as e:
            return self._failure(e, f"Failed to get note {note_id}")

    def touch_note(self, note_id: str) -> NoteAPIResponse:
        """Record a view of a note (at most once per day)."""
        try:
            with timed_operation("touch_note", note_id=note_id):
                note = self._touch(note_id)
            return self._ok(note, "View recorded")
        except Exception as e:
            return self._failure(e, f"Failed to record view of note {note_id}")

    def get_notes_by_ids(self, note_ids: Iterable[str]) -> NoteAPIResponse:
        """Fetch several notes without recording views; missing IDs are skipped."""
        try:
            with timed_operation("get_notes_by_ids") as op:
                notes: List[Note] = []
                missing: List[str] = []
                for note_id in dict.fromkeys(note_ids or []):
                    try:
                        notes.append(self._load(note_id))
                    except (NoteNotFoundError, ValidationError):
                        missing.append(note_id)
                op["found"] = len(notes)
            message = f"Loaded {len(notes)} notes"
            if missing:
                message += f"; not found: {', '.join(map(str, missing))}"
            return self._ok(notes, message)
        except Exception as e:
            return self._failure(e, "Failed to get notes")

    def update_note(
        self, request: Union[UpdateNoteRequest, Dict[str, Any]]
    ) -> NoteAPIResponse:
        """Apply a metadata/status patch.

        Provided metadata and status fields replace the stored ones. Every
        update bumps ``updatedAt``, ``version`` and ``editCount``; word count
        and reading time are recomputed when content is patched, and the
        search index is recomputed unless ``updateSearchIndex`` is false.
        """
        note_id = request.get("id") if isinstance(request, dict) else getattr(request, "id", None)
        try:
            with timed_operation("update_note", note_id=note_id):
                req = self._coerce(UpdateNoteRequest, request)
                self._require_id(req.id)
                with self._lock_for(req.id):
                    note = self._load(req.id)

                    content_changed = False
                    if req.metadata is not None:
                        patch = req.metadata.model_dump(exclude_none=True)
                        if "tags" in patch:
                            patch["tags"] = normalize_tags(patch["tags"])
                        if "title" in patch and not patch["title"].strip():
                            patch["title"] = self.config.default_title
                        for field, value in patch.items():
                            setattr(note.metadata, field, value)
                        content_changed = "content" in patch

                    if req.status is not None:
                        for flag, value in req.status.model_dump(exclude_none=True).items():
                            setattr(note.status, flag, value)

                    self._bump(note)
                    note.stats.edit_count += 1
                    if content_changed:
                        apply_content_stats(note.metadata, self.config.words_per_minute)
                    if req.update_search_index:
                        note.search_index = build_search_index(note)

                    self._persist(note)
            return self._ok(note, "Note updated")
        except Exception as e:
            return self._failure(e, f"Failed to update note {note_id}")

    # =========================================================================
    # Trash lifecycle
    # =========================================================================

    def move_to_trash(self, note_id: str) -> NoteAPIResponse:
        """Soft-delete a note. Fails with INVALID_STATE if already trashed."""
        try:
            with timed_operation("move_to_trash", note_id=note_id):
                note = self._set_trashed(note_id, True, "move_to_trash")
            return self._ok(note, "Note moved to trash")
        except Exception as e:
            return self._failure(e, f"Failed to move note {note_id} to trash")

    def delete_note(self, note_id: str) -> NoteAPIResponse:
        """Soft delete; same as :meth:`move_to_trash`."""
        return self.move_to_trash(note_id)

    def restore_from_trash(self, note_id: str) -> NoteAPIResponse:
        """Undo a soft delete. Fails with INVALID_STATE if not trashed."""
        try:
            with timed_operation("restore_from_trash", note_id=note_id):
                note = self._set_trashed(note_id, False, "restore_from_trash")
            return self._ok(note, "Note restored")
        except Exception as e:
            return self._failure(e, f"Failed to restore note {note_id}")

    def permanently_delete_note(self, note_id: str) -> NoteAPIResponse:
        """Remove a trashed note's document and index entry for good."""
        try:
            with timed_operation("permanently_delete_note", note_id=note_id):
                self._purge(note_id)
            logger.info(f"Permanently deleted note {note_id}")
            return self._ok(True, "Note permanently deleted")
        except Exception as e:
            return self._failure(e, f"Failed to permanently delete note {note_id}")

    # =========================================================================
    # Status toggles
    # =========================================================================

    def toggle_favorite(self, note_id: str) -> NoteAPIResponse:
        try:
            with timed_operation("toggle_favorite", note_id=note_id):
                note = self._toggle(note_id, "is_favorite")
            return self._ok(note, "Favorite updated")
        except Exception as e:
            return self._failure(e, f"Failed to toggle favorite on note {note_id}")

    def toggle_archive(self, note_id: str) -> NoteAPIResponse:
        try:
            with timed_operation("toggle_archive", note_id=note_id):
                note = self._toggle(note_id, "is_archived")
            return self._ok(note, "Archive state updated")
        except Exception as e:
            return self._failure(e, f"Failed to toggle archive on note {note_id}")

    def toggle_pin(self, note_id: str) -> NoteAPIResponse:
        try:
            with timed_operation("toggle_pin", note_id=note_id):
                note = self._toggle(note_id, "is_pinned")
            return self._ok(note, "Pin updated")
        except Exception as e:
            return self._failure(e, f"Failed to toggle pin on note {note_id}")

    # =========================================================================
    # Listing
    # =========================================================================

    def list_all(
        self, page: Optional[int] = None, page_size: Optional[int] = None
    ) -> NoteAPIResponse:
        """Every index entry, most recently updated first."""
        try:
            with timed_operation("list_all") as op:
                entries = self._sorted_entries()
                total = len(entries)
                entries = paginate(entries, page, page_size)
                op["count"] = len(entries)
            return self._ok(entries, f"Found {total} notes")
        except Exception as e:
            return self._failure(e, "Failed to list notes")

    def list_filtered(
        self,
        note_filter: Union[NoteFilter, Dict[str, Any], None] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> NoteAPIResponse:
        """Index entries matching every constraint of the filter."""
        try:
            with timed_operation("list_filtered") as op:
                criteria = self._coerce(NoteFilter, note_filter)
                predicates = build_filter_predicates(criteria)
                entries = [
                    e for e in self._sorted_entries() if all(p(e) for p in predicates)
                ]
                total = len(entries)
                entries = paginate(entries, page, page_size)
                op["count"] = len(entries)
            return self._ok(entries, f"Found {total} matching notes")
        except Exception as e:
            return self._failure(e, "Failed to filter notes")

    def get_note_stats(self) -> NoteAPIResponse:
        """Counts over the index. Tag counts exclude trashed notes."""
        try:
            with timed_operation("get_note_stats"):
                entries = self.index_store.read().notes
                active = [e for e in entries if not e.status.is_trashed]
                tag_counts = Counter(tag for e in active for tag in e.tags)
                stats = {
                    "total": len(entries),
                    "active": len(active),
                    "favorite": sum(1 for e in entries if e.status.is_favorite),
                    "archived": sum(1 for e in entries if e.status.is_archived),
                    "trashed": len(entries) - len(active),
                    "pinned": sum(1 for e in entries if e.status.is_pinned),
                    "totalWords": sum(e.word_count for e in active),
                    "tagCounts": dict(tag_counts.most_common()),
                }
            return self._ok(stats, "Statistics computed")
        except Exception as e:
            return self._failure(e, "Failed to compute note statistics")

    def get_all_tags(self) -> NoteAPIResponse:
        """Tags of non-trashed notes with usage counts, most used first."""
        try:
            with timed_operation("get_all_tags"):
                counts = Counter(
                    tag
                    for e in self.index_store.read().notes
                    if not e.status.is_trashed
                    for tag in e.tags
                )
                tags = [
                    {"name": name, "count": count}
                    for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
                ]
            return self._ok(tags, f"Found {len(tags)} tags")
        except Exception as e:
            return self._failure(e, "Failed to list tags")

    # =========================================================================
    # Batch operations
    # =========================================================================

    def _batch(
        self, operation: str, note_ids: Iterable[str], action: Callable[[str], Any]
    ) -> NoteAPIResponse:
        """Run ``action`` per ID; domain errors mark the ID as failed.

        Succeeds when at least one ID was processed. Unexpected errors
        abort the batch.
        """
        try:
            ids = list(dict.fromkeys(note_ids or []))
            with timed_operation(operation, count=len(ids)) as op:
                if not ids:
                    raise BulkOperationError(
                        "No note IDs provided",
                        operation=operation,
                        code=ErrorCode.BULK_OPERATION_EMPTY_INPUT,
                    )
                succeeded: List[str] = []
                failed: List[str] = []
                for note_id in ids:
                    try:
                        action(note_id)
                        succeeded.append(note_id)
                    except NotesError as e:
                        logger.warning(f"{operation}: note {note_id} failed: {e}")
                        failed.append(note_id)
                if not succeeded:
                    raise BulkOperationError(
                        f"All {len(ids)} notes failed",
                        operation=operation,
                        total_count=len(ids),
                        success_count=0,
                        failed_ids=failed,
                    )
                op["succeeded"] = len(succeeded)
                op["failed"] = len(failed)

            data = {"succeeded": succeeded, "failed": failed}
            if failed:
                return self._ok(
                    data,
                    f"Processed {len(succeeded)} of {len(ids)} notes",
                    code=ErrorCode.BULK_OPERATION_PARTIAL.name,
                )
            return self._ok(data, f"Processed {len(succeeded)} notes")
        except Exception as e:
            return self._failure(e, f"Batch operation {operation} failed")

    def batch_move_to_trash(self, note_ids: Iterable[str]) -> NoteAPIResponse:
        return self._batch(
            "batch_move_to_trash",
            note_ids,
            lambda note_id: self._set_trashed(note_id, True, "move_to_trash"),
        )

    def batch_restore_notes(self, note_ids: Iterable[str]) -> NoteAPIResponse:
        return self._batch(
            "batch_restore_notes",
            note_ids,
            lambda note_id: self._set_trashed(note_id, False, "restore_from_trash"),
        )

    def batch_archive_notes(self, note_ids: Iterable[str]) -> NoteAPIResponse:
        return self._batch("batch_archive_notes", note_ids, self._set_archived)

    def batch_permanently_delete(self, note_ids: Iterable[str]) -> NoteAPIResponse:
        return self._batch("batch_permanently_delete", note_ids, self._purge)

    # =========================================================================
    # Maintenance
    # =========================================================================

    def rebuild_index(self) -> NoteAPIResponse:
        """Re-derive the index from the note store, skipping corrupt documents."""
        try:
            with timed_operation("rebuild_index") as op:
                result = self.index_store.rebuild()
                op["indexed"] = result.indexed
                op["skipped"] = len(result.skipped)
            message = f"Index rebuilt with {result.indexed} notes"
            if result.skipped:
                message += f"; skipped {len(result.skipped)} unreadable documents"
            return self._ok({"indexed": result.indexed, "skipped": result.skipped}, message)
        except Exception as e:
            return self._failure(e, "Failed to rebuild index")

    def get_notes_directory(self) -> NoteAPIResponse:
        """Directory holding the note documents."""
        try:
            return self._ok(str(self.note_store.directory), "Notes directory")
        except Exception as e:
            return self._failure(e, "Failed to resolve notes directory")
