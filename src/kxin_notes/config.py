"""Configuration module for the Kxin Notes store."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from kxin_notes import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD
# (e.g. when launched by the desktop shell as a subprocess).
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: survives application updates, lives next to the data
_USER_ENV = Path.home() / ".kxin-notes" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

STORAGE_LAYOUTS = ("single_file", "per_file")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NotesConfig(BaseModel):
    """Configuration for the note store and its MCP server."""

    # Host-provided "user data" directory; the only external input the
    # storage core depends on.
    user_data_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("KXIN_NOTES_USER_DATA_DIR", str(Path.home() / ".kxin-notes"))
        )
    )
    # Project root, only consulted in dev mode
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("KXIN_NOTES_BASE_DIR", "."))
    )
    # Dev mode keeps notes inside the project (assets/<store_name>) instead of
    # the user data directory
    dev_mode: bool = Field(
        default_factory=lambda: _env_flag("KXIN_NOTES_DEV_MODE", "false")
    )
    store_name: str = Field(
        default_factory=lambda: os.getenv("KXIN_NOTES_STORE_NAME", "kxin-notes")
    )
    # Physical note layout: one consolidated JSON map, or one file per note
    storage_layout: str = Field(
        default_factory=lambda: os.getenv("KXIN_NOTES_STORAGE_LAYOUT", "single_file")
    )
    index_file_name: str = Field(
        default_factory=lambda: os.getenv("KXIN_NOTES_INDEX_FILE", "note-index.json")
    )
    documents_file_name: str = Field(
        default_factory=lambda: os.getenv("KXIN_NOTES_DOCUMENTS_FILE", "notes.json")
    )
    # Note defaults
    default_title: str = Field(
        default_factory=lambda: os.getenv("KXIN_NOTES_DEFAULT_TITLE", "Untitled Note")
    )
    default_language: str = Field(
        default_factory=lambda: os.getenv("KXIN_NOTES_DEFAULT_LANGUAGE", "en")
    )
    words_per_minute: int = Field(
        default_factory=lambda: int(os.getenv("KXIN_NOTES_WORDS_PER_MINUTE", "200"))
    )
    # When True, get_note records lastViewedAt/editCount once per day
    track_views: bool = Field(
        default_factory=lambda: _env_flag("KXIN_NOTES_TRACK_VIEWS", "true")
    )
    # Server configuration
    server_name: str = Field(
        default_factory=lambda: os.getenv("KXIN_NOTES_SERVER_NAME", "kxin-notes")
    )
    server_version: str = Field(default=__version__)
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("KXIN_NOTES_LOG_DIR"))
            if os.getenv("KXIN_NOTES_LOG_DIR")
            else None
        )
    )

    @model_validator(mode="after")
    def _validate_storage_config(self) -> "NotesConfig":
        """Reject settings the storage layer cannot work with."""
        if self.words_per_minute < 1:
            raise ValueError("words_per_minute must be >= 1")
        if self.storage_layout not in STORAGE_LAYOUTS:
            raise ValueError(
                f"storage_layout must be one of {', '.join(STORAGE_LAYOUTS)}, "
                f"got {self.storage_layout!r}"
            )
        name = self.store_name
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValueError("store_name must be a single directory name")
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir.resolve() / path

    def get_log_dir(self) -> Path:
        """Directory for rotating log files (defaults under the user data dir)."""
        if self.log_dir is not None:
            return self.get_absolute_path(self.log_dir)
        return self.get_absolute_path(self.user_data_dir) / "logs"


# Create a global config instance
config = NotesConfig()
