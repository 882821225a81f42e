"""MCP server exposing the note operations as tools.

Tool names follow the camelCase RPC surface (``createNote``,
``getNoteById``, ...). Every tool returns the JSON-encoded response
envelope ``{success, data, error, message, code, timestamp}``.
"""

import atexit
import logging
from typing import Any, Dict, List, Optional, Union

from mcp.server.fastmcp import FastMCP

from kxin_notes.config import config
from kxin_notes.models.schema import NoteAPIResponse
from kxin_notes.services.note_service import NoteService

logger = logging.getLogger(__name__)


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


class NotesMcpServer:
    """MCP server for the note store."""

    def __init__(self, note_service: Optional[NoteService] = None):
        """Initialize the MCP server.

        Args:
            note_service: Service to expose. Built from the global config
                when None.
        """
        self.mcp = FastMCP(config.server_name)
        self.note_service = note_service or NoteService.from_config()
        atexit.register(self._shutdown)
        self._register_tools()
        logger.info("Kxin Notes MCP server initialized")

    def _shutdown(self) -> None:
        """Clean up resources on server exit."""
        self.note_service.close()

    @staticmethod
    def _respond(response: NoteAPIResponse) -> str:
        return response.to_json()

    def _register_tools(self) -> None:
        """Register MCP tools."""
        service = self.note_service

        @self.mcp.tool(name="createNote")
        def create_note(
            title: Optional[str] = None,
            content: Optional[Union[str, Dict[str, Any]]] = None,
            summary: Optional[str] = None,
            tags: Optional[List[str]] = None,
            icon: Optional[str] = None,
            cover: Optional[str] = None,
            attachments: Optional[List[str]] = None,
            language: Optional[str] = None,
            related_note_ids: Optional[List[str]] = None,
        ) -> str:
            """Create a new note.
            Args:
                title: Note title (a placeholder title is used when omitted)
                content: Plain text, or an editor block document {time, version, blocks}
                summary: Short summary (optional)
                tags: List of tag names (optional)
                icon: Icon reference, e.g. an emoji (optional)
                cover: Cover image reference (optional)
                attachments: Attachment references (optional)
                language: Content language code (optional)
                related_note_ids: IDs of notes this note references (optional)
            """
            request = _drop_none(
                {
                    "title": title,
                    "content": content,
                    "summary": summary,
                    "tags": tags,
                    "icon": icon,
                    "cover": cover,
                    "attachments": attachments,
                    "language": language,
                    "related_note_ids": related_note_ids,
                }
            )
            return self._respond(service.create_note(request))

        @self.mcp.tool(name="getNoteById")
        def get_note_by_id(note_id: str) -> str:
            """Get a note by ID. The first read of the day records the view.
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.get_note_by_id(note_id))

        @self.mcp.tool(name="peekNote")
        def peek_note(note_id: str) -> str:
            """Get a note by ID without recording a view.
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.peek_note(note_id))

        @self.mcp.tool(name="touchNote")
        def touch_note(note_id: str) -> str:
            """Record a view of a note (at most once per day).
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.touch_note(note_id))

        @self.mcp.tool(name="getNotesByIds")
        def get_notes_by_ids(note_ids: List[str]) -> str:
            """Get several notes by ID without recording views.
            Args:
                note_ids: IDs of the notes; unknown IDs are skipped
            """
            return self._respond(service.get_notes_by_ids(note_ids))

        @self.mcp.tool(name="updateNote")
        def update_note(
            note_id: str,
            metadata: Optional[Dict[str, Any]] = None,
            status: Optional[Dict[str, Any]] = None,
            update_search_index: bool = True,
        ) -> str:
            """Update a note.
            Args:
                note_id: The ID of the note to update
                metadata: Fields to replace: title, content, summary, tags, icon,
                    cover, attachments, language
                status: Flags to set: isFavorite, isArchived, isTrashed, isPinned,
                    isReadOnly, isStarred
                update_search_index: Recompute the search index (default: true)
            """
            request = _drop_none(
                {
                    "id": note_id,
                    "metadata": metadata,
                    "status": status,
                    "update_search_index": update_search_index,
                }
            )
            return self._respond(service.update_note(request))

        @self.mcp.tool(name="deleteNote")
        def delete_note(note_id: str) -> str:
            """Delete a note (moves it to the trash).
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.delete_note(note_id))

        @self.mcp.tool(name="moveToTrash")
        def move_to_trash(note_id: str) -> str:
            """Move a note to the trash.
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.move_to_trash(note_id))

        @self.mcp.tool(name="restoreFromTrash")
        def restore_from_trash(note_id: str) -> str:
            """Restore a trashed note.
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.restore_from_trash(note_id))

        @self.mcp.tool(name="permanentlyDeleteNote")
        def permanently_delete_note(note_id: str) -> str:
            """Permanently delete a trashed note. This cannot be undone.
            Args:
                note_id: The ID of the note (must be in the trash)
            """
            return self._respond(service.permanently_delete_note(note_id))

        @self.mcp.tool(name="toggleFavorite")
        def toggle_favorite(note_id: str) -> str:
            """Flip the favorite flag of a note.
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.toggle_favorite(note_id))

        @self.mcp.tool(name="toggleArchive")
        def toggle_archive(note_id: str) -> str:
            """Flip the archived flag of a note.
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.toggle_archive(note_id))

        @self.mcp.tool(name="togglePin")
        def toggle_pin(note_id: str) -> str:
            """Flip the pinned flag of a note.
            Args:
                note_id: The ID of the note
            """
            return self._respond(service.toggle_pin(note_id))

        @self.mcp.tool(name="getNotesList")
        def get_notes_list(
            page: Optional[int] = None, page_size: Optional[int] = None
        ) -> str:
            """List all notes (index entries), most recently updated first.
            Args:
                page: 1-based page number (optional)
                page_size: Entries per page (optional, default 20 when page is given)
            """
            return self._respond(service.list_all(page=page, page_size=page_size))

        @self.mcp.tool(name="getNotesListByFilter")
        def get_notes_list_by_filter(
            filter: Optional[Dict[str, Any]] = None,
            page: Optional[int] = None,
            page_size: Optional[int] = None,
        ) -> str:
            """List notes matching every given constraint.
            Args:
                filter: Any of isTrashed, isFavorite, isArchived, isPinned, tags
                    (any-of), searchKeyword, createdAfter, createdBefore,
                    updatedAfter, updatedBefore (ISO-8601)
                page: 1-based page number (optional)
                page_size: Entries per page (optional)
            """
            return self._respond(
                service.list_filtered(filter, page=page, page_size=page_size)
            )

        @self.mcp.tool(name="getNoteStats")
        def get_note_stats() -> str:
            """Counts of notes by status, total words and tag usage."""
            return self._respond(service.get_note_stats())

        @self.mcp.tool(name="getAllTags")
        def get_all_tags() -> str:
            """All tags in use with their note counts, most used first."""
            return self._respond(service.get_all_tags())

        @self.mcp.tool(name="batchMoveToTrash")
        def batch_move_to_trash(note_ids: List[str]) -> str:
            """Move several notes to the trash.
            Args:
                note_ids: IDs of the notes
            """
            return self._respond(service.batch_move_to_trash(note_ids))

        @self.mcp.tool(name="batchRestoreNotes")
        def batch_restore_notes(note_ids: List[str]) -> str:
            """Restore several trashed notes.
            Args:
                note_ids: IDs of the notes
            """
            return self._respond(service.batch_restore_notes(note_ids))

        @self.mcp.tool(name="batchArchiveNotes")
        def batch_archive_notes(note_ids: List[str]) -> str:
            """Archive several notes.
            Args:
                note_ids: IDs of the notes
            """
            return self._respond(service.batch_archive_notes(note_ids))

        @self.mcp.tool(name="batchPermanentlyDelete")
        def batch_permanently_delete(note_ids: List[str]) -> str:
            """Permanently delete several trashed notes. This cannot be undone.
            Args:
                note_ids: IDs of the notes (each must be in the trash)
            """
            return self._respond(service.batch_permanently_delete(note_ids))

        @self.mcp.tool(name="rebuildIndex")
        def rebuild_index() -> str:
            """Rebuild the note index from the stored documents.

            Use after a crash or when the index looks out of date. Unreadable
            documents are skipped and reported.
            """
            return self._respond(service.rebuild_index())

        @self.mcp.tool(name="getNotesDirectory")
        def get_notes_directory() -> str:
            """Directory where note documents are stored."""
            return self._respond(service.get_notes_directory())

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
