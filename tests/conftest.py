"""Common test fixtures for the Kxin Notes store."""

import json

import pytest

from kxin_notes.config import NotesConfig, config
from kxin_notes.observability import metrics
from kxin_notes.services.note_service import NoteService
from kxin_notes.storage.codec import DocumentCodec
from kxin_notes.storage.index_store import IndexStore
from kxin_notes.storage.note_store import PerFileNoteStore, SingleFileNoteStore
from kxin_notes.storage.paths import StoragePaths


@pytest.fixture(autouse=True)
def _isolate_metrics(tmp_path, monkeypatch):
    """Keep the process-wide metrics collector away from the home directory."""
    monkeypatch.setattr(metrics, "_metrics_file", tmp_path / "metrics.json")
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at a temporary user data dir (auto-restored)."""
    monkeypatch.setattr(config, "user_data_dir", tmp_path / "userdata")
    monkeypatch.setattr(config, "dev_mode", False)
    monkeypatch.setattr(config, "storage_layout", "single_file")
    monkeypatch.setattr(config, "track_views", True)
    monkeypatch.setattr(config, "words_per_minute", 200)
    monkeypatch.setattr(config, "default_title", "Untitled Note")
    yield config


@pytest.fixture
def paths(test_config):
    return StoragePaths.from_config(test_config)


@pytest.fixture
def codec():
    return DocumentCodec()


@pytest.fixture
def single_file_store(paths, codec):
    return SingleFileNoteStore(paths.documents_file, codec=codec)


@pytest.fixture
def per_file_store(paths, codec):
    return PerFileNoteStore(paths.notes_dir, codec=codec)


@pytest.fixture(params=["single_file", "per_file"])
def note_store(request, paths, codec):
    """Each test using this fixture runs against both physical layouts."""
    if request.param == "single_file":
        return SingleFileNoteStore(paths.documents_file, codec=codec)
    return PerFileNoteStore(paths.notes_dir, codec=codec)


@pytest.fixture
def index_store(paths, note_store):
    return IndexStore(paths.index_file, note_store)


@pytest.fixture
def note_service(note_store, index_store, test_config):
    """NoteService over both layouts."""
    with NoteService(note_store, index_store, cfg=test_config) as service:
        yield service


def write_corrupt_document(note_store, note_id: str = "broken") -> None:
    """Plant an undecodable document in whichever layout ``note_store`` uses."""
    if isinstance(note_store, PerFileNoteStore):
        path = note_store.notes_dir / f"{note_id}_0_Broken.json"
        path.write_text("{ this is not json", encoding="utf-8")
        return
    path = note_store.documents_file
    data = {"version": "1.0.0", "notes": {}}
    if path.exists():
        data = json.loads(path.read_text(encoding="utf-8"))
    # Valid JSON, but not a note (required fields missing)
    data["notes"][note_id] = {"id": note_id, "metadata": {"title": 42}}
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


@pytest.fixture
def corrupt_document():
    return write_corrupt_document


@pytest.fixture
def fresh_config(tmp_path):
    """A standalone NotesConfig that does not touch the global instance."""
    return NotesConfig(user_data_dir=tmp_path / "data", base_dir=tmp_path / "project")
