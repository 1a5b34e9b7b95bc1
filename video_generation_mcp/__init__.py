"""MCP server for AI video generation and FFmpeg-based video editing."""

__version__ = "1.0.0"
