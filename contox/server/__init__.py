"""MCP Server package for contox.

Provides tools for loading project memory, searching it, and building
token-budgeted context packs.
"""

from .core import create_contox_server
from .instructions import SERVER_INSTRUCTIONS

__all__ = [
    "create_contox_server",
    "SERVER_INSTRUCTIONS",
]
