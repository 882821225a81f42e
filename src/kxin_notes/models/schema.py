"""Data models for the Kxin Notes store.

Field names are snake_case in Python and camelCase on the wire (JSON
documents, index file and RPC payloads). Stored documents tolerate unknown
keys so older documents stay readable; request payloads reject them.
"""

import datetime
import uuid
from datetime import timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

INDEX_FORMAT_VERSION = "1.0.0"

# Static per-field weights carried in every search index payload
TITLE_WEIGHT = 1.0
CONTENT_WEIGHT = 0.8
TAGS_WEIGHT = 0.9

T = TypeVar("T")

# Plain text, or an editor block document {"time", "version", "blocks"}
NoteContent = Union[str, Dict[str, Any]]


def utc_now() -> datetime.datetime:
    """Current UTC time, truncated to the millisecond precision of the wire format."""
    now = datetime.datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def ensure_timezone_aware(dt_value: datetime.datetime) -> datetime.datetime:
    """Treat naive datetimes as UTC; leave aware ones unchanged."""
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def generate_id() -> str:
    """Generate a new, never reused note identifier."""
    return str(uuid.uuid4())


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Strip tag names, drop empty ones and duplicates (first occurrence wins)."""
    result: List[str] = []
    seen = set()
    for tag in tags or []:
        name = tag.strip()
        if name and name not in seen:
            seen.add(name)
            result.append(name)
    return result


class WireModel(BaseModel):
    """Base for persisted models: camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )


class RequestModel(BaseModel):
    """Base for caller payloads: camelCase accepted, unknown keys rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class SearchIndex(WireModel):
    """Flattened projection of the searchable metadata of a note."""

    id: str
    title: str = ""
    content: str = ""
    summary: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    searchable_text: str = ""
    title_weight: float = TITLE_WEIGHT
    content_weight: float = CONTENT_WEIGHT
    tags_weight: float = TAGS_WEIGHT


class NoteMetadata(WireModel):
    """User-facing metadata and derived statistics of a note."""

    title: str
    content: NoteContent = ""
    summary: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    icon: str = ""
    cover: str = ""
    attachments: List[str] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime
    last_viewed_at: Optional[datetime.datetime] = None
    version: int = Field(default=1, ge=1)
    language: str = "en"
    word_count: int = Field(default=0, ge=0)
    reading_time: int = Field(default=0, ge=0)

    @field_validator("created_at", "updated_at", "last_viewed_at")
    @classmethod
    def _aware(cls, v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return ensure_timezone_aware(v) if v is not None else None


class NoteStatus(WireModel):
    """Independent boolean status flags (a note may be archived and favorite)."""

    is_favorite: bool = False
    is_archived: bool = False
    is_trashed: bool = False
    is_pinned: bool = False
    is_read_only: bool = False
    is_starred: bool = False


class NoteStats(WireModel):
    """Activity counters."""

    edit_count: int = Field(default=0, ge=0)
    relation_count: int = Field(default=0, ge=0)
    children_count: int = Field(default=0, ge=0)


class Note(WireModel):
    """A complete note document, the unit stored by the note store."""

    id: str = Field(default_factory=generate_id)
    metadata: NoteMetadata
    status: NoteStatus = Field(default_factory=NoteStatus)
    stats: NoteStats = Field(default_factory=NoteStats)
    related_note_ids: List[str] = Field(default_factory=list)
    search_index: Optional[SearchIndex] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """IDs end up in file names, so they must be a single safe path component."""
        if not v or not v.strip():
            raise ValueError("Note ID cannot be empty")
        if "/" in v or "\\" in v or ".." in v or "_" in v:
            raise ValueError("Note ID cannot contain path separators, '..' or '_'")
        return v


class IndexEntry(WireModel):
    """Lossy, rebuildable projection of a note kept in the index file."""

    id: str
    title: str
    summary: Optional[str] = None
    icon: str = ""
    cover: str = ""
    tags: List[str] = Field(default_factory=list)
    file_path: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
    word_count: int = 0
    status: NoteStatus = Field(default_factory=NoteStatus)
    search_index: Optional[SearchIndex] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)

    @classmethod
    def from_note(cls, note: Note, file_path: Optional[str] = None) -> "IndexEntry":
        """Project a full note into its index entry."""
        meta = note.metadata
        return cls(
            id=note.id,
            title=meta.title,
            summary=meta.summary,
            icon=meta.icon,
            cover=meta.cover,
            tags=list(meta.tags),
            file_path=file_path,
            created_at=meta.created_at,
            updated_at=meta.updated_at,
            word_count=meta.word_count,
            status=note.status.model_copy(),
            search_index=note.search_index,
        )


class NoteIndex(WireModel):
    """The whole index file."""

    version: str = INDEX_FORMAT_VERSION
    last_updated: datetime.datetime = Field(default_factory=utc_now)
    total_notes: int = 0
    notes: List[IndexEntry] = Field(default_factory=list)


# =============================================================================
# Request payloads
# =============================================================================


class CreateNoteRequest(RequestModel):
    """Payload of create_note; every field is optional."""

    title: Optional[str] = None
    content: Optional[NoteContent] = None
    summary: Optional[str] = None
    icon: Optional[str] = None
    cover: Optional[str] = None
    tags: Optional[List[str]] = None
    attachments: Optional[List[str]] = None
    language: Optional[str] = None
    related_note_ids: Optional[List[str]] = None


class MetadataPatch(RequestModel):
    """Mutable metadata fields of update_note.

    Every field present in the payload replaces the stored value. Timestamps,
    version, word count and reading time are not patchable; they are
    maintained by the service.
    """

    title: Optional[str] = None
    content: Optional[NoteContent] = None
    summary: Optional[str] = None
    tags: Optional[List[str]] = None
    icon: Optional[str] = None
    cover: Optional[str] = None
    attachments: Optional[List[str]] = None
    language: Optional[str] = None


class StatusPatch(RequestModel):
    """Status flags of update_note; omitted flags keep their value."""

    is_favorite: Optional[bool] = None
    is_archived: Optional[bool] = None
    is_trashed: Optional[bool] = None
    is_pinned: Optional[bool] = None
    is_read_only: Optional[bool] = None
    is_starred: Optional[bool] = None


class UpdateNoteRequest(RequestModel):
    """Payload of update_note."""

    id: str
    metadata: Optional[MetadataPatch] = None
    status: Optional[StatusPatch] = None
    update_search_index: bool = True


class NoteFilter(RequestModel):
    """Conjunctive filter over index entries; omitted fields impose nothing."""

    is_trashed: Optional[bool] = None
    is_favorite: Optional[bool] = None
    is_archived: Optional[bool] = None
    is_pinned: Optional[bool] = None
    tags: Optional[List[str]] = None
    search_keyword: Optional[str] = None
    created_after: Optional[datetime.datetime] = None
    created_before: Optional[datetime.datetime] = None
    updated_after: Optional[datetime.datetime] = None
    updated_before: Optional[datetime.datetime] = None

    @field_validator("created_after", "created_before", "updated_after", "updated_before")
    @classmethod
    def _aware(cls, v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return ensure_timezone_aware(v) if v is not None else None


# =============================================================================
# Response envelope
# =============================================================================


class NoteAPIResponse(BaseModel, Generic[T]):
    """Uniform result of every note service operation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None
    code: Optional[str] = None
    timestamp: datetime.datetime = Field(default_factory=utc_now)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys and omitted empty fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
