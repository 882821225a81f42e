"""
Kxin Notes - the note storage and indexing core of the Kxin desktop notebook.

Notes are kept as JSON documents (the source of truth) next to a derived,
rebuildable index file that makes listing and filtering cheap. The
operations are exposed over the Model Context Protocol (MCP) so the desktop
shell, or any other MCP client, can drive them by name.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("kxin-notes")
except PackageNotFoundError:
    __version__ = "0.3.0"
