"""Tests for the NoteService operation surface.

The ``note_service`` fixture is parametrized over both note store layouts.
"""
import datetime
import math
from unittest.mock import patch

import pytest

from kxin_notes.models.schema import (
    CreateNoteRequest,
    Note,
    NoteAPIResponse,
    UpdateNoteRequest,
)
from kxin_notes.services.note_service import NoteService


def create(service, **fields) -> Note:
    response = service.create_note(fields)
    assert response.success, response
    return response.data


class TestCreate:
    def test_create_then_fetch(self, note_service):
        response = note_service.create_note(CreateNoteRequest(title="Hello"))

        assert isinstance(response, NoteAPIResponse)
        assert response.success
        note = response.data
        assert note.metadata.title == "Hello"
        assert not any(note.status.model_dump().values())
        assert note.stats.edit_count == 0
        assert note.metadata.version == 1

        fetched = note_service.get_note_by_id(note.id)
        assert fetched.success
        assert fetched.data.id == note.id
        assert fetched.data.stats.edit_count == 1

    def test_defaults(self, note_service, test_config):
        note = create(note_service)
        assert note.metadata.title == test_config.default_title
        assert note.metadata.content == ""
        assert note.metadata.word_count == 0
        assert note.metadata.reading_time == 0
        assert note.metadata.language == "en"
        assert note.metadata.created_at == note.metadata.updated_at
        assert note.metadata.last_viewed_at is None

    def test_blank_title_uses_placeholder(self, note_service, test_config):
        assert create(note_service, title="   ").metadata.title == test_config.default_title

    def test_derived_fields(self, note_service):
        note = create(note_service, title="T", content="one two three", summary="S", tags=["x", "y", "x"])
        assert note.metadata.tags == ["x", "y"]
        assert note.metadata.word_count == 3
        assert note.metadata.reading_time == 1
        assert note.search_index.title == "T"
        assert note.search_index.searchable_text == "T one two three S x y"
        assert note.search_index.title_weight == 1.0

    def test_block_content_statistics(self, note_service):
        content = {
            "time": 1,
            "version": "2.30.8",
            "blocks": [
                {"type": "paragraph", "data": {"text": "alpha <i>beta</i>"}},
                {"type": "list", "data": {"items": ["gamma"]}},
            ],
        }
        note = create(note_service, content=content)
        assert note.metadata.content == content
        assert note.metadata.word_count == 3
        assert note.search_index.content == "alpha beta\ngamma"

    def test_nested_list_content_counts_every_item(self, note_service):
        content = {
            "blocks": [
                {
                    "type": "list",
                    "data": {
                        "items": [
                            {"content": "one", "items": [{"content": "two three", "items": []}]}
                        ]
                    },
                }
            ]
        }
        note = create(note_service, content=content)
        assert note.metadata.word_count == 3
        assert "two three" in note.search_index.content

    def test_block_with_non_object_data_is_stored_without_text(self, note_service):
        content = {"blocks": [{"type": "paragraph", "data": "hello world"}]}
        response = note_service.create_note({"content": content})
        assert response.success, response.error
        assert response.data.metadata.content == content
        assert response.data.metadata.word_count == 0

        updated = note_service.update_note(
            {"id": response.data.id, "metadata": {"content": {"blocks": "oops"}}}
        )
        assert updated.success, updated.error
        assert updated.data.metadata.reading_time == 0

    def test_camel_case_request_dict(self, note_service):
        note = create(note_service, title="x", relatedNoteIds=["a", "b"])
        assert note.related_note_ids == ["a", "b"]

    def test_writes_store_then_index(self, note_service):
        note = create(note_service, title="persisted")
        assert note_service.note_store.get(note.id) == note
        entries = note_service.index_store.read().notes
        assert [e.id for e in entries] == [note.id]
        assert entries[0].file_path == note_service.note_store.location_of(note.id)

    def test_unknown_request_field_is_validation_failure(self, note_service):
        response = note_service.create_note({"title": "x", "bogus": True})
        assert not response.success
        assert response.code == "VALIDATION_FAILED"
        assert "Invalid request" in response.error

    def test_ids_are_unique(self, note_service):
        ids = {create(note_service).id for _ in range(5)}
        assert len(ids) == 5


class TestGetById:
    def test_not_found(self, note_service):
        response = note_service.get_note_by_id("missing")
        assert not response.success
        assert response.code == "NOTE_NOT_FOUND"
        assert response.error
        assert response.message

    def test_empty_id_is_validation_failure(self, note_service):
        response = note_service.get_note_by_id("")
        assert not response.success
        assert response.code == "VALIDATION_FAILED"

    def test_view_recorded_once_per_day(self, note_service):
        note = create(note_service)
        first = note_service.get_note_by_id(note.id).data
        second = note_service.get_note_by_id(note.id).data
        assert first.stats.edit_count == 1
        assert second.stats.edit_count == 1
        assert second.metadata.last_viewed_at == first.metadata.last_viewed_at

    def test_view_on_a_new_day_counts_again(self, note_service):
        note = create(note_service)
        note_service.get_note_by_id(note.id)

        stored = note_service.note_store.get(note.id)
        stored.metadata.last_viewed_at = stored.metadata.last_viewed_at - datetime.timedelta(days=1)
        note_service.note_store.put(stored)

        again = note_service.get_note_by_id(note.id).data
        assert again.stats.edit_count == 2

    def test_view_is_persisted_without_bumping_version(self, note_service):
        note = create(note_service)
        note_service.get_note_by_id(note.id)
        stored = note_service.note_store.get(note.id)
        assert stored.stats.edit_count == 1
        assert stored.metadata.last_viewed_at is not None
        assert stored.metadata.version == 1
        assert stored.metadata.updated_at == note.metadata.updated_at

    def test_view_tracking_can_be_disabled(self, note_service, monkeypatch, test_config):
        monkeypatch.setattr(test_config, "track_views", False)
        note = create(note_service)
        assert note_service.get_note_by_id(note.id).data.stats.edit_count == 0
        assert note_service.note_store.get(note.id).metadata.last_viewed_at is None

    def test_peek_has_no_side_effect(self, note_service):
        note = create(note_service)
        peeked = note_service.peek_note(note.id)
        assert peeked.success
        assert peeked.data.stats.edit_count == 0
        assert note_service.note_store.get(note.id).stats.edit_count == 0

    def test_touch_records_view(self, note_service):
        note = create(note_service)
        assert note_service.touch_note(note.id).data.stats.edit_count == 1
        assert note_service.peek_note(note.id).data.stats.edit_count == 1

    def test_corrupt_document_reads_as_not_found(self, note_service, corrupt_document):
        corrupt_document(note_service.note_store, "broken")
        response = note_service.get_note_by_id("broken")
        assert not response.success
        assert response.code == "NOTE_NOT_FOUND"

    def test_get_notes_by_ids_skips_missing(self, note_service):
        a, b = create(note_service, title="a"), create(note_service, title="b")
        response = note_service.get_notes_by_ids([a.id, "missing", b.id, a.id])
        assert response.success
        assert [n.id for n in response.data] == [a.id, b.id]
        assert "missing" in response.message
        assert all(n.stats.edit_count == 0 for n in response.data)


class TestUpdate:
    def test_content_change_recomputes_statistics(self, note_service, test_config):
        note = create(note_service)
        response = note_service.update_note({"id": note.id, "metadata": {"content": "a b c"}})
        assert response.success
        meta = response.data.metadata
        assert meta.word_count == 3
        assert meta.reading_time == math.ceil(3 / test_config.words_per_minute)

    def test_long_content_reading_time(self, note_service):
        note = create(note_service)
        updated = note_service.update_note(
            {"id": note.id, "metadata": {"content": "word " * 450}}
        ).data
        assert updated.metadata.word_count == 450
        assert updated.metadata.reading_time == 3

    def test_version_monotonicity(self, note_service):
        note = create(note_service)
        previous = note.metadata.updated_at
        for i in range(5):
            updated = note_service.update_note(
                UpdateNoteRequest(id=note.id, metadata={"title": f"v{i}"})
            ).data
            assert updated.metadata.updated_at >= previous
            previous = updated.metadata.updated_at
        assert updated.metadata.version == note.metadata.version + 5
        assert updated.stats.edit_count == 5
        assert updated.metadata.created_at == note.metadata.created_at

    def test_shallow_merge_keeps_unpatched_fields(self, note_service):
        note = create(note_service, title="T", content="x y", summary="S", tags=["a"])
        updated = note_service.update_note({"id": note.id, "metadata": {"summary": "new"}}).data
        assert updated.metadata.title == "T"
        assert updated.metadata.tags == ["a"]
        assert updated.metadata.summary == "new"
        assert updated.metadata.word_count == 2

    def test_status_patch(self, note_service):
        note = create(note_service)
        updated = note_service.update_note(
            {"id": note.id, "status": {"isFavorite": True, "isStarred": True}}
        ).data
        assert updated.status.is_favorite
        assert updated.status.is_starred
        assert not updated.status.is_archived
        assert note_service.index_store.read().notes[0].status.is_favorite

    def test_search_index_recomputed(self, note_service):
        note = create(note_service, title="old title")
        updated = note_service.update_note({"id": note.id, "metadata": {"title": "new title"}}).data
        assert updated.search_index.title == "new title"
        entry = note_service.index_store.read().notes[0]
        assert entry.title == "new title"
        assert entry.search_index.title == "new title"

    def test_search_index_opt_out(self, note_service):
        note = create(note_service, title="old title")
        updated = note_service.update_note(
            {"id": note.id, "metadata": {"title": "new title"}, "updateSearchIndex": False}
        ).data
        assert updated.metadata.title == "new title"
        assert updated.search_index.title == "old title"

    def test_unknown_metadata_field_rejected(self, note_service):
        note = create(note_service)
        response = note_service.update_note(
            {"id": note.id, "metadata": {"version": 99}}
        )
        assert not response.success
        assert response.code == "VALIDATION_FAILED"
        assert note_service.peek_note(note.id).data.metadata.version == 1

    def test_update_missing_note(self, note_service):
        response = note_service.update_note({"id": "missing", "metadata": {"title": "x"}})
        assert not response.success
        assert response.code == "NOTE_NOT_FOUND"

    def test_tags_normalized(self, note_service):
        note = create(note_service)
        updated = note_service.update_note(
            {"id": note.id, "metadata": {"tags": [" a ", "a", "b"]}}
        ).data
        assert updated.metadata.tags == ["a", "b"]


class TestTrashLifecycle:
    def test_trash_and_restore(self, note_service):
        note = create(note_service)

        trashed = note_service.move_to_trash(note.id)
        assert trashed.success
        assert trashed.data.status.is_trashed
        assert trashed.data.metadata.version == 2

        restored = note_service.restore_from_trash(note.id)
        assert restored.success
        assert not restored.data.status.is_trashed
        assert restored.data.metadata.version == 3

        again = note_service.restore_from_trash(note.id)
        assert not again.success
        assert again.code == "INVALID_STATE"

    def test_trash_twice_is_invalid_state(self, note_service):
        note = create(note_service)
        note_service.move_to_trash(note.id)
        response = note_service.move_to_trash(note.id)
        assert not response.success
        assert response.code == "INVALID_STATE"

    def test_delete_note_is_soft_delete(self, note_service):
        note = create(note_service)
        response = note_service.delete_note(note.id)
        assert response.success
        assert note_service.note_store.exists(note.id)
        assert note_service.peek_note(note.id).data.status.is_trashed

    def test_trash_reflected_in_index(self, note_service):
        note = create(note_service)
        note_service.move_to_trash(note.id)
        entry = note_service.index_store.read().notes[0]
        assert entry.status.is_trashed

    def test_permanent_delete_requires_trash(self, note_service):
        note = create(note_service)
        response = note_service.permanently_delete_note(note.id)
        assert not response.success
        assert response.code == "INVALID_STATE"
        assert note_service.note_store.exists(note.id)

    def test_permanent_delete_removes_document_and_entry(self, note_service):
        note = create(note_service)
        note_service.move_to_trash(note.id)

        response = note_service.permanently_delete_note(note.id)

        assert response.success
        assert response.data is True
        assert not note_service.note_store.exists(note.id)
        assert note_service.index_store.read().notes == []

    def test_permanent_delete_of_missing_note(self, note_service):
        note = create(note_service)
        note_service.move_to_trash(note.id)
        note_service.permanently_delete_note(note.id)
        index_before = note_service.index_store.read().notes

        response = note_service.permanently_delete_note(note.id)

        assert not response.success
        assert response.code == "NOTE_NOT_FOUND"
        assert note_service.index_store.read().notes == index_before


class TestToggles:
    @pytest.mark.parametrize(
        "method,flag",
        [
            ("toggle_favorite", "is_favorite"),
            ("toggle_archive", "is_archived"),
            ("toggle_pin", "is_pinned"),
        ],
    )
    def test_toggle_flips_flag_and_bumps_version(self, note_service, method, flag):
        note = create(note_service)
        on = getattr(note_service, method)(note.id).data
        assert getattr(on.status, flag) is True
        assert on.metadata.version == 2
        off = getattr(note_service, method)(note.id).data
        assert getattr(off.status, flag) is False
        assert off.metadata.version == 3
        assert off.stats.edit_count == 0

    def test_flags_are_independent(self, note_service):
        note = create(note_service)
        note_service.toggle_archive(note.id)
        note_service.toggle_favorite(note.id)
        status = note_service.peek_note(note.id).data.status
        assert status.is_archived and status.is_favorite

    def test_toggle_missing(self, note_service):
        assert note_service.toggle_pin("missing").code == "NOTE_NOT_FOUND"


class TestBatch:
    def test_batch_trash_and_restore(self, note_service):
        ids = [create(note_service).id for _ in range(3)]
        response = note_service.batch_move_to_trash(ids)
        assert response.success
        assert response.data == {"succeeded": ids, "failed": []}
        assert response.code is None

        restored = note_service.batch_restore_notes(ids[:2])
        assert restored.data["succeeded"] == ids[:2]

    def test_partial_failure(self, note_service):
        note = create(note_service)
        response = note_service.batch_move_to_trash([note.id, "missing"])
        assert response.success
        assert response.code == "BULK_OPERATION_PARTIAL"
        assert response.data == {"succeeded": [note.id], "failed": ["missing"]}
        assert "1 of 2" in response.message

    def test_total_failure(self, note_service):
        response = note_service.batch_restore_notes(["missing-1", "missing-2"])
        assert not response.success
        assert response.code == "BULK_OPERATION_FAILED"
        assert response.data == {"succeeded": [], "failed": ["missing-1", "missing-2"]}

    def test_empty_input(self, note_service):
        response = note_service.batch_archive_notes([])
        assert not response.success
        assert response.code == "BULK_OPERATION_EMPTY_INPUT"

    def test_batch_archive(self, note_service):
        a, b = create(note_service), create(note_service)
        note_service.toggle_archive(b.id)
        response = note_service.batch_archive_notes([a.id, b.id])
        assert response.data == {"succeeded": [a.id], "failed": [b.id]}
        assert note_service.peek_note(a.id).data.status.is_archived

    def test_batch_permanent_delete_only_purges_trashed(self, note_service):
        trashed, live = create(note_service), create(note_service)
        note_service.move_to_trash(trashed.id)
        response = note_service.batch_permanently_delete([trashed.id, live.id])
        assert response.data == {"succeeded": [trashed.id], "failed": [live.id]}
        assert not note_service.note_store.exists(trashed.id)
        assert note_service.note_store.exists(live.id)


class TestStatsAndTags:
    def test_note_stats(self, note_service):
        a = create(note_service, content="one two", tags=["x", "y"])
        b = create(note_service, content="three", tags=["x"])
        c = create(note_service, content="four five six", tags=["z"])
        note_service.toggle_favorite(a.id)
        note_service.toggle_pin(b.id)
        note_service.move_to_trash(c.id)

        stats = note_service.get_note_stats().data
        assert stats["total"] == 3
        assert stats["active"] == 2
        assert stats["favorite"] == 1
        assert stats["pinned"] == 1
        assert stats["trashed"] == 1
        assert stats["archived"] == 0
        assert stats["totalWords"] == 3
        assert stats["tagCounts"] == {"x": 2, "y": 1}

    def test_all_tags(self, note_service):
        create(note_service, tags=["b", "a"])
        create(note_service, tags=["a"])
        response = note_service.get_all_tags()
        assert response.data == [{"name": "a", "count": 2}, {"name": "b", "count": 1}]


class TestRebuild:
    def test_rebuild_reports_counts(self, note_service):
        for _ in range(3):
            create(note_service)
        response = note_service.rebuild_index()
        assert response.success
        assert response.data == {"indexed": 3, "skipped": []}

    def test_corrupt_document_skipped(self, note_service, corrupt_document):
        good = create(note_service, title="good")
        corrupt_document(note_service.note_store, "broken")

        response = note_service.rebuild_index()

        assert response.success
        assert response.data == {"indexed": 1, "skipped": ["broken"]}
        listed = note_service.list_all().data
        assert [e.id for e in listed] == [good.id]

    def test_recovers_from_failed_index_write(self, note_service):
        """A crash between the two writes leaves a stale index until rebuild."""
        first = create(note_service, title="first")
        with patch.object(
            note_service.index_store, "write", side_effect=OSError("disk full")
        ):
            response = note_service.create_note({"title": "second"})
        assert not response.success
        assert "ref:" in response.error

        assert [e.id for e in note_service.list_all().data] == [first.id]
        assert len(list(note_service.note_store.scan())) == 2

        assert note_service.rebuild_index().data["indexed"] == 2
        assert {e.title for e in note_service.list_all().data} == {"first", "second"}

    def test_lost_index_file_is_rebuilt_lazily(self, note_service):
        note = create(note_service)
        note_service.index_store.index_file.unlink()
        assert [e.id for e in note_service.list_all().data] == [note.id]


class TestErrors:
    def test_storage_errors_become_envelopes(self, note_service):
        note = create(note_service)
        with patch.object(
            note_service.note_store, "put", side_effect=PermissionError("read-only")
        ):
            response = note_service.update_note({"id": note.id, "metadata": {"title": "x"}})
        assert not response.success
        assert response.code == "STORAGE_WRITE_FAILED"
        assert "file system error" in response.error

    def test_unexpected_errors_are_reported_generically(self, note_service):
        with patch.object(
            note_service.index_store, "read", side_effect=RuntimeError("kaboom")
        ):
            response = note_service.list_all()
        assert not response.success
        assert response.code == "INTERNAL_ERROR"
        assert "kaboom" not in response.error
        assert "ref:" in response.error

    def test_failures_are_recorded_in_metrics(self, note_service):
        from kxin_notes.observability import metrics

        note_service.get_note_by_id("missing")
        assert metrics.get_metrics()["get_note"]["error_count"] == 1


class TestLifecycle:
    def test_from_config(self, test_config):
        with NoteService.from_config(test_config) as service:
            note = create(service, title="configured")
            assert service.get_notes_directory().data == str(service.note_store.directory)
        assert note.metadata.title == "configured"

    def test_from_config_per_file(self, test_config):
        service = NoteService.from_config(test_config, layout="per_file")
        note = create(service)
        files = list(service.note_store.directory.glob(f"{note.id}_*.json"))
        assert len(files) == 1
        service.close()

    def test_default_index_next_to_documents(self, single_file_store, test_config):
        service = NoteService(single_file_store, cfg=test_config)
        create(service)
        assert (single_file_store.directory / test_config.index_file_name).exists()

    def test_explicit_index_file(self, per_file_store, test_config, tmp_path):
        index_file = tmp_path / "elsewhere" / "idx.json"
        service = NoteService(per_file_store, cfg=test_config, index_file=index_file)
        note = create(service)
        assert service.index_store.index_file == index_file
        assert note.id in index_file.read_text(encoding="utf-8")
