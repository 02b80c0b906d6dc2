"""MCP server exposing Gmail and Calendar tools over stdio.

Gmail tools (17):
- Search messages and read messages, threads and attachments
- Modify, archive and permanently delete messages
- Send, reply and draft (sending previews until confirmed)
- List, create, update and delete labels

Calendar tools (4):
- List calendars
- List, get and create events

Transport: Stdio
Authentication: OAuth 2.0 with automatic token refresh
"""

from gmcp.server.gmcp_server import GmcpServer, create_server, main

__all__ = ["GmcpServer", "create_server", "main"]
