"""Tests for the exception hierarchy."""
import pytest

from kxin_notes.exceptions import (
    BulkOperationError,
    ConfigurationError,
    CorruptDocumentError,
    ErrorCode,
    InvalidStateError,
    NoteNotFoundError,
    NotesError,
    StorageError,
    ValidationError,
)


class TestErrorCodes:
    @pytest.mark.parametrize(
        "error,code",
        [
            (NoteNotFoundError("n1"), ErrorCode.NOTE_NOT_FOUND),
            (CorruptDocumentError("bad"), ErrorCode.CORRUPT_DOCUMENT),
            (InvalidStateError("nope"), ErrorCode.INVALID_STATE),
            (StorageError("io"), ErrorCode.STORAGE_READ_FAILED),
            (ValidationError("invalid"), ErrorCode.VALIDATION_FAILED),
            (ConfigurationError("cfg"), ErrorCode.CONFIG_INVALID),
            (BulkOperationError("all failed", operation="batch"), ErrorCode.BULK_OPERATION_FAILED),
        ],
    )
    def test_default_codes(self, error, code):
        assert isinstance(error, NotesError)
        assert error.code is code

    def test_codes_are_unique(self):
        values = [c.value for c in ErrorCode]
        assert len(values) == len(set(values))


class TestDetails:
    def test_to_dict(self):
        error = InvalidStateError("Note 'n1' is not in trash", note_id="n1", operation="restore")
        assert error.to_dict() == {
            "error": "InvalidStateError",
            "code": ErrorCode.INVALID_STATE.value,
            "code_name": "INVALID_STATE",
            "message": "Note 'n1' is not in trash",
            "details": {"note_id": "n1", "operation": "restore"},
        }

    def test_str_includes_code_and_details(self):
        assert str(NoteNotFoundError("n1")) == "[NOTE_NOT_FOUND] Note with ID 'n1' not found (note_id=n1)"

    def test_storage_error_hides_directories(self):
        error = StorageError("failed", path="/home/user/notes/abc.json", original_error=OSError("x"))
        assert error.details["path_hint"] == "abc.json"
        assert error.details["original_error"] == "x"

    def test_corrupt_document_truncates_original_error(self):
        error = CorruptDocumentError("bad", note_id="n1", original_error=ValueError("y" * 500))
        assert len(error.details["original_error"]) == 200


class TestBulkOperationError:
    def test_keeps_full_failed_list(self):
        ids = [f"n{i}" for i in range(15)]
        error = BulkOperationError("failed", operation="batch", total_count=15, failed_ids=ids)
        assert error.failed_ids == ids
        assert len(error.details["failed_ids"]) == 10
        assert error.details["failed_count"] == 15

    def test_rejects_inconsistent_counts(self):
        with pytest.raises(ValueError):
            BulkOperationError("x", operation="batch", total_count=1, success_count=2)
