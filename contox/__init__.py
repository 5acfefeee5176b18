"""contox - project memory for AI coding assistants, as a CLI and MCP server."""

from contox.client import MemoryProvider, V2Client
from contox.context_pack import (
    ContextPack,
    assemble_context_pack,
    build_context_pack,
    estimate_tokens,
    format_section,
)
from contox.exceptions import ConfigurationError, ContoxError, TransportError
from contox.models import (
    BrainDocument,
    ContextPackRequest,
    ContoxConfig,
    MemoryItem,
    Scope,
    SearchResponse,
    SearchResult,
)

__all__ = [
    "BrainDocument",
    "ContextPack",
    "ConfigurationError",
    "ContextPackRequest",
    "ContoxConfig",
    "ContoxError",
    "MemoryItem",
    "MemoryProvider",
    "Scope",
    "SearchResponse",
    "SearchResult",
    "TransportError",
    "V2Client",
    "assemble_context_pack",
    "build_context_pack",
    "estimate_tokens",
    "format_section",
]
