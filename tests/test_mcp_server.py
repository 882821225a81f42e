"""Tests for the MCP server tools.

FastMCP is replaced by a mock whose ``tool`` decorator captures every
registered function by name, so tools can be called directly.
"""
import json
from unittest.mock import MagicMock, patch

import pytest

from kxin_notes.models.schema import NoteAPIResponse
from kxin_notes.server.mcp_server import NotesMcpServer

EXPECTED_TOOLS = {
    "createNote",
    "getNoteById",
    "peekNote",
    "touchNote",
    "getNotesByIds",
    "updateNote",
    "deleteNote",
    "moveToTrash",
    "restoreFromTrash",
    "permanentlyDeleteNote",
    "toggleFavorite",
    "toggleArchive",
    "togglePin",
    "getNotesList",
    "getNotesListByFilter",
    "getNoteStats",
    "getAllTags",
    "batchMoveToTrash",
    "batchRestoreNotes",
    "batchArchiveNotes",
    "batchPermanentlyDelete",
    "rebuildIndex",
    "getNotesDirectory",
}


def build_server(note_service):
    registered_tools = {}
    mock_mcp = MagicMock()

    def mock_tool_decorator(*args, **kwargs):
        def tool_wrapper(func):
            registered_tools[kwargs.get("name")] = func
            return func
        return tool_wrapper

    mock_mcp.tool = mock_tool_decorator

    with patch("kxin_notes.server.mcp_server.FastMCP", return_value=mock_mcp), patch(
        "kxin_notes.server.mcp_server.atexit.register"
    ) as mock_register:
        server = NotesMcpServer(note_service=note_service)
    return server, registered_tools, mock_register


@pytest.fixture
def mcp_tools(note_service):
    """Tools bound to a real NoteService on a temporary store."""
    _, tools, _ = build_server(note_service)
    return tools


@pytest.fixture
def mock_service():
    service = MagicMock()
    ok = NoteAPIResponse(success=True, data=None, message="ok")
    for name in (
        "create_note",
        "update_note",
        "list_all",
        "list_filtered",
        "get_note_by_id",
    ):
        getattr(service, name).return_value = ok
    return service


def call(tools, name, *args, **kwargs) -> dict:
    return json.loads(tools[name](*args, **kwargs))


class TestRegistration:
    def test_all_tools_registered(self, mock_service):
        _, tools, _ = build_server(mock_service)
        assert set(tools) == EXPECTED_TOOLS

    def test_shutdown_closes_service(self, mock_service):
        server, _, mock_register = build_server(mock_service)
        mock_register.assert_called_once_with(server._shutdown)
        server._shutdown()
        mock_service.close.assert_called_once()

    def test_default_service_built_from_config(self, test_config):
        with patch("kxin_notes.server.mcp_server.NoteService") as mock_cls:
            server, _, _ = build_server(None)
        mock_cls.from_config.assert_called_once_with()
        assert server.note_service is mock_cls.from_config.return_value


class TestArgumentMapping:
    def test_create_drops_omitted_arguments(self, mock_service):
        _, tools, _ = build_server(mock_service)
        tools["createNote"](title="T", tags=["a"])
        mock_service.create_note.assert_called_once_with({"title": "T", "tags": ["a"]})

    def test_update_builds_request(self, mock_service):
        _, tools, _ = build_server(mock_service)
        tools["updateNote"](note_id="n1", metadata={"title": "x"}, update_search_index=False)
        mock_service.update_note.assert_called_once_with(
            {"id": "n1", "metadata": {"title": "x"}, "update_search_index": False}
        )

    def test_listing_passes_pagination(self, mock_service):
        _, tools, _ = build_server(mock_service)
        tools["getNotesList"](page=2, page_size=5)
        mock_service.list_all.assert_called_once_with(page=2, page_size=5)
        tools["getNotesListByFilter"](filter={"isPinned": True})
        mock_service.list_filtered.assert_called_once_with(
            {"isPinned": True}, page=None, page_size=None
        )

    def test_envelope_is_camel_case_json(self, mock_service):
        _, tools, _ = build_server(mock_service)
        result = call(tools, "getNoteById", "n1")
        assert result["success"] is True
        assert result["message"] == "ok"
        assert "timestamp" in result
        assert "data" not in result


class TestToolsWithRealService:
    def test_create_get_and_list(self, mcp_tools):
        created = call(mcp_tools, "createNote", title="Via MCP", content="one two", tags=["t"])
        assert created["success"]
        note = created["data"]
        assert note["metadata"]["title"] == "Via MCP"
        assert note["metadata"]["wordCount"] == 2
        assert note["status"]["isTrashed"] is False

        fetched = call(mcp_tools, "getNoteById", note["id"])
        assert fetched["data"]["stats"]["editCount"] == 1

        listed = call(mcp_tools, "getNotesList")
        assert [e["id"] for e in listed["data"]] == [note["id"]]

    def test_update_and_filter(self, mcp_tools):
        note_id = call(mcp_tools, "createNote", title="Draft")["data"]["id"]
        updated = call(
            mcp_tools,
            "updateNote",
            note_id=note_id,
            metadata={"content": "a b c"},
            status={"isFavorite": True},
        )
        assert updated["data"]["metadata"]["readingTime"] == 1
        assert updated["data"]["metadata"]["version"] == 2

        favorites = call(mcp_tools, "getNotesListByFilter", filter={"isFavorite": True})
        assert [e["id"] for e in favorites["data"]] == [note_id]

    def test_trash_lifecycle(self, mcp_tools):
        note_id = call(mcp_tools, "createNote", title="Doomed")["data"]["id"]

        premature = call(mcp_tools, "permanentlyDeleteNote", note_id)
        assert premature["success"] is False
        assert premature["code"] == "INVALID_STATE"

        assert call(mcp_tools, "moveToTrash", note_id)["success"]
        assert call(mcp_tools, "restoreFromTrash", note_id)["success"]
        again = call(mcp_tools, "restoreFromTrash", note_id)
        assert again["success"] is False
        assert again["code"] == "INVALID_STATE"

        assert call(mcp_tools, "deleteNote", note_id)["success"]
        deleted = call(mcp_tools, "permanentlyDeleteNote", note_id)
        assert deleted["success"] is True
        assert deleted["data"] is True
        assert call(mcp_tools, "getNoteById", note_id)["code"] == "NOTE_NOT_FOUND"

    def test_batch_and_stats(self, mcp_tools):
        ids = [call(mcp_tools, "createNote", tags=["x"])["data"]["id"] for _ in range(2)]
        result = call(mcp_tools, "batchMoveToTrash", ids + ["missing"])
        assert result["code"] == "BULK_OPERATION_PARTIAL"
        assert result["data"]["failed"] == ["missing"]

        stats = call(mcp_tools, "getNoteStats")["data"]
        assert stats["trashed"] == 2
        assert call(mcp_tools, "getAllTags")["data"] == []

    def test_failure_envelope_has_error_and_message(self, mcp_tools):
        result = call(mcp_tools, "peekNote", "missing")
        assert result["success"] is False
        assert "not found" in result["error"]
        assert result["message"]

    def test_rebuild_and_directory(self, mcp_tools, note_service):
        call(mcp_tools, "createNote", title="kept")
        rebuilt = call(mcp_tools, "rebuildIndex")
        assert rebuilt["data"] == {"indexed": 1, "skipped": []}
        directory = call(mcp_tools, "getNotesDirectory")["data"]
        assert directory == str(note_service.note_store.directory)
