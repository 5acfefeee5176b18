"""Core MCP server creation function for contox.

Provides the main entry point for creating an MCP server with memory tools.
"""

from contextlib import asynccontextmanager

from fastmcp import FastMCP

from contox.client import MemoryProvider, V2Client
from contox.config import load_config
from contox.models import ContoxConfig

from .instructions import SERVER_INSTRUCTIONS
from .memory_tools import register_memory_tools


class ProviderHolder:
    """Resolves the memory provider on first use and owns any V2Client it creates."""

    def __init__(
        self,
        config: ContoxConfig | None = None,
        provider: MemoryProvider | None = None,
    ):
        self.config = config
        self.provider = provider
        self._client: V2Client | None = None

    def get(self) -> MemoryProvider:
        if self.provider is None:
            self._client = V2Client(self.config or load_config())
            self.provider = self._client
        return self.provider

    async def aclose(self) -> None:
        """Close the V2Client created by get(). Injected providers are left alone."""
        if self._client is not None:
            client, self._client = self._client, None
            self.provider = None
            await client.aclose()


def create_contox_server(
    config: ContoxConfig | None = None,
    provider: MemoryProvider | None = None,
    name: str = "contox",
) -> FastMCP:
    """Create an MCP server with contox memory tools.

    Args:
        config: Optional ContoxConfig (resolved from the environment on first
            tool call if not provided)
        provider: Optional memory provider used instead of a V2Client (for testing)
        name: Name for the MCP server
    """
    holder = ProviderHolder(config=config, provider=provider)

    @asynccontextmanager
    async def contox_lifespan(mcp: FastMCP):
        """Close the V2 client on server shutdown."""
        try:
            yield
        finally:
            await holder.aclose()

    mcp = FastMCP(name, instructions=SERVER_INSTRUCTIONS, lifespan=contox_lifespan)
    register_memory_tools(mcp, holder.get)
    return mcp
