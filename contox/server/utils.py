"""Utility functions for contox server tools."""

from mcp.types import TextContent


def _text(text: str) -> TextContent:
    """Wrap text in TextContent for MCP response."""
    return TextContent(type="text", text=text)
