"""Memory tools for the contox MCP server."""

# ruff: noqa: E501

from typing import Callable, Literal

from fastmcp import FastMCP
from mcp.types import TextContent
from pydantic import ValidationError

from contox.client import MemoryProvider
from contox.context_pack import assemble_context_pack, estimate_tokens, format_section
from contox.debug import timed_tool
from contox.exceptions import ContoxError
from contox.models import ContextPackRequest

from .utils import _text

SEARCH_LIMIT = 10
SEARCH_MIN_SIMILARITY = 0.65


def register_memory_tools(
    mcp: FastMCP, get_provider: Callable[[], MemoryProvider]
) -> None:
    """Register the memory tools with the MCP server.

    get_provider resolves the V2 client on first use and raises
    ConfigurationError when credentials or the project are missing.
    """

    @mcp.tool()
    @timed_tool
    async def contox_get_memory() -> TextContent:
        """Load the project memory overview. Call this at the START of every session to remember previous work. Returns the compact project brief with the number of items stored."""
        try:
            brain = await get_provider().get_brain()
        except ContoxError as e:
            return _text(f"Error loading memory: {e}")

        output = brain.summary or brain.document
        footer = "\n".join(
            [
                "---",
                f"_{brain.items_loaded} total items in memory | showing compact overview "
                f"(~{estimate_tokens(output)} tokens) | hash: {brain.brain_hash}_",
                "",
                '> **Tip:** Use `contox_search "your query"` to find specific memory items about what you\'re working on.',
                "> Use `contox_context_pack` with a task description for focused, task-relevant context.",
            ]
        )
        return _text(f"{output}\n{footer}\n")

    @mcp.tool()
    @timed_tool
    async def contox_search(query: str) -> TextContent:
        """Semantic search over project memory. Use to find specific code patterns, function signatures, API endpoints, or past decisions.

        Args:
            query: Natural language description of what you are looking for
        """
        try:
            response = await get_provider().search(
                query, limit=SEARCH_LIMIT, min_similarity=SEARCH_MIN_SIMILARITY
            )
        except ContoxError as e:
            return _text(f"Error: {e}")

        if not response.results:
            return _text(
                f'No results found for "{query}" '
                f"(semantic search, {response.total_candidates} candidates)"
            )

        lines = [
            f'Found {len(response.results)} result(s) for "{query}" '
            f"(semantic, {response.total_candidates} candidates):\n"
        ]
        lines.extend(format_section(result) for result in response.results)
        return _text("\n".join(lines))

    @mcp.tool()
    @timed_tool
    async def contox_context_pack(
        task: str,
        scope: Literal["full", "relevant", "minimal"] = "relevant",
        token_budget: int = 4000,
    ) -> TextContent:
        """Build a focused, token-budgeted context pack for the current task. "relevant" (default) finds task-related items by semantic search, "full" returns the whole brain truncated to budget, "minimal" returns the top 5 items. Falls back to the full brain if semantic search is unavailable.

        Args:
            task: Current task description, used for semantic search
            scope: How much context to include
            token_budget: Approximate token budget for the pack
        """
        try:
            request = ContextPackRequest(
                task=task, scope=scope, token_budget=token_budget
            )
        except ValidationError as e:
            return _text(f"Error building context pack: {e}")

        try:
            provider = get_provider()
        except ContoxError as e:
            return _text(f"Error building context pack: {e}")

        return _text(await assemble_context_pack(provider, request))
