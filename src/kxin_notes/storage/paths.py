"""Resolution of the on-disk locations of the note store."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from kxin_notes.config import NotesConfig, config


@dataclass(frozen=True)
class StoragePaths:
    """Every location the store reads or writes.

    Attributes:
        root: Directory holding the whole store.
        documents_file: Consolidated ``{"notes": {id: note}}`` file
            (single_file layout).
        notes_dir: Directory of ``{id}_{updatedAtMillis}_{title}.json``
            files (per_file layout).
        index_file: The derived index.
    """

    root: Path
    documents_file: Path
    notes_dir: Path
    index_file: Path

    @classmethod
    def resolve(
        cls,
        user_data_dir: Path,
        store_name: str = "kxin-notes",
        dev_mode: bool = False,
        project_root: Optional[Path] = None,
        index_file_name: str = "note-index.json",
        documents_file_name: str = "notes.json",
    ) -> "StoragePaths":
        """Derive the store locations. Pure path arithmetic, no I/O.

        Packaged builds keep the store under the host's user data directory,
        dev mode under ``<project_root>/assets``.
        """
        if dev_mode:
            base = Path(project_root) if project_root is not None else Path(".")
            root = base.absolute() / "assets" / store_name
        else:
            root = Path(user_data_dir).expanduser().absolute() / store_name
        return cls(
            root=root,
            documents_file=root / documents_file_name,
            notes_dir=root / "notes",
            index_file=root / index_file_name,
        )

    @classmethod
    def from_config(cls, cfg: Optional[NotesConfig] = None) -> "StoragePaths":
        """Resolve paths from a NotesConfig (the global config by default)."""
        cfg = cfg or config
        return cls.resolve(
            user_data_dir=cfg.user_data_dir,
            store_name=cfg.store_name,
            dev_mode=cfg.dev_mode,
            project_root=cfg.base_dir,
            index_file_name=cfg.index_file_name,
            documents_file_name=cfg.documents_file_name,
        )
