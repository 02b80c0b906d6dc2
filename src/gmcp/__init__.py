"""gmcp-server.

MCP server exposing Gmail and Google Calendar as tools, with OAuth2
authentication and transparent token refresh.
"""

from gmcp.__version__ import __version__

__all__ = ["__version__"]
