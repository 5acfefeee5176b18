"""CLI for contox."""

import asyncio

import click

from contox.exceptions import ConfigurationError, ContoxError


def run_async(coro):
    """Run an async coroutine from sync CLI code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def resolve_config():
    """Load configuration or exit with code 1 and a message on stderr."""
    from contox.config import load_config

    try:
        return load_config()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


def setup_debug():
    """Turn on debug instrumentation and log it to stderr."""
    from contox.debug import configure_debug_logging, enable_debug

    enable_debug()
    configure_debug_logging()


@click.group()
@click.option("--debug", is_flag=True, help="Log remote calls and timings to stderr")
def main(debug: bool):
    """contox - project memory for AI coding assistants."""
    if debug:
        setup_debug()


@main.command()
@click.option("--task", "-t", required=True, help="Task description for semantic search")
@click.option(
    "--scope",
    "-s",
    type=click.Choice(["relevant", "full", "minimal"]),
    default="relevant",
    help="How much memory to include (default: relevant)",
)
@click.option(
    "--budget",
    "-b",
    type=click.IntRange(min=1),
    default=4000,
    help="Token budget (default: 4000)",
)
@click.option("--no-cache", is_flag=True, help="Skip the local context cache")
@click.option("--debug", is_flag=True, help="Log remote calls and timings to stderr")
def context(task: str, scope: str, budget: int, no_cache: bool, debug: bool):
    """Build a context pack for a task and print it as markdown.

    Packs built from a fallback tier are printed but not cached.
    """
    from contox.cache import ContextCache, cache_key
    from contox.client import V2Client
    from contox.context_pack import build_context_pack
    from contox.models import ContextPackRequest

    if debug:
        setup_debug()

    cfg = resolve_config()
    cache = None if no_cache else ContextCache()
    key = cache_key(task, scope, budget)

    if cache:
        cached = cache.read(key)
        if cached:
            click.echo(cached, nl=False)
            return

    request = ContextPackRequest(task=task, scope=scope, token_budget=budget)

    async def build():
        async with V2Client(cfg) as client:
            return await build_context_pack(client, request)

    result = run_async(build())
    click.echo(result.text, nl=False)
    if cache and not result.degraded:
        cache.write(key, result.text)


@main.command()
def memory():
    """Print the project brief (or the full brain document)."""
    from contox.client import V2Client

    cfg = resolve_config()

    async def fetch():
        async with V2Client(cfg) as client:
            return await client.get_brain()

    try:
        brain = run_async(fetch())
    except ContoxError as e:
        click.echo(f"Error loading memory: {e}", err=True)
        raise SystemExit(1)

    click.echo(brain.summary or brain.document)
    click.echo(f"--- {brain.items_loaded} items, ~{brain.token_estimate} tokens ---", err=True)


@main.command()
@click.argument("query")
@click.option("--limit", "-n", default=10, help="Maximum number of results (default: 10)")
@click.option(
    "--min-similarity",
    type=click.FloatRange(0.0, 1.0),
    default=0.65,
    help="Minimum similarity (default: 0.65)",
)
def search(query: str, limit: int, min_similarity: float):
    """Semantic search over project memory."""
    from contox.client import V2Client
    from contox.context_pack import format_section

    cfg = resolve_config()

    async def fetch():
        async with V2Client(cfg) as client:
            return await client.search(query, limit=limit, min_similarity=min_similarity)

    try:
        response = run_async(fetch())
    except ContoxError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not response.results:
        click.echo(f'No results for "{query}" ({response.total_candidates} candidates)')
        return
    for result in response.results:
        click.echo(format_section(result))


@main.command()
def whoami():
    """Show the resolved API URL and project."""
    cfg = resolve_config()
    click.echo(f"API: {cfg.api_url}")
    click.echo(f"Project: {cfg.project_name or cfg.project_id} ({cfg.project_id})")
    if cfg.team_id:
        click.echo(f"Team: {cfg.team_id}")


@main.command()
@click.option(
    "--transport",
    "-t",
    type=click.Choice(["stdio", "http"]),
    default="stdio",
    help="Transport type (default: stdio)",
)
@click.option(
    "--port",
    default=8000,
    help="Port for HTTP transport (default: 8000)",
)
def serve(transport: str, port: int):
    """Start the contox MCP server."""
    from contox.server import create_contox_server

    server = create_contox_server(config=resolve_config())

    if transport == "stdio":
        server.run(transport="stdio")
    else:
        server.run(transport="sse", port=port)


if __name__ == "__main__":
    main()
