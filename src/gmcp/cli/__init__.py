"""Command-line interface for gmcp-server."""
