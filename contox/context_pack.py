"""Context pack assembly.

Builds a markdown document holding the project memory most useful for a
task, sized to a token budget. Three scopes are supported:

- ``full``: the brain document, truncated locally to the remaining budget
- ``minimal``: the top few memory items
- ``relevant``: the project brief plus semantic search results grouped by
  category, falling back to the brain document when search fails or finds
  nothing

Every remote call is made once, in order, and its failure only moves the
assembly to the next tier. The header, brief and footer are always
emitted; body sections are admitted whole or not at all.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

from pydantic import BaseModel

from contox.client import MemoryProvider
from contox.debug import DebugContext
from contox.models import (
    BrainDocument,
    ContextPackRequest,
    ItemsResponse,
    MemoryItem,
    Scope,
    SearchResponse,
    SearchResult,
)

logger = logging.getLogger("contox.context_pack")

CHARS_PER_TOKEN = 4
FOOTER_RESERVE_TOKENS = 50
MAX_SECTION_FILES = 5

MINIMAL_ITEM_LIMIT = 5
SEARCH_LIMIT = 15
SEARCH_MIN_SIMILARITY = 0.6
NO_MATCH_ITEM_LIMIT = 20

TRUNCATION_MARKER = "\n\n_[truncated to fit budget]_"
EMPTY_MARKER = "_No memory items yet._"
MEMORY_UNAVAILABLE = (
    "_Brain unavailable. Check your API key and project configuration._"
)
SEARCH_UNAVAILABLE = (
    "_Search and brain unavailable. Use `contox_get_memory` to load project memory._"
)

T = TypeVar("T", bound=BaseModel)


def estimate_tokens(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def format_section(item: MemoryItem) -> str:
    """Render one memory item as a self-contained markdown block."""
    meta = []
    if isinstance(item, SearchResult):
        meta.append(f"similarity: {item.similarity:.3f}")
    meta.append(f"confidence: {item.confidence:.2f}")
    category = item.type if isinstance(item, SearchResult) else item.schema_key
    if category:
        meta.append(category)

    lines = [f"### {item.title}", "> " + " | ".join(meta)]
    if item.files:
        lines.append(f"> files: {', '.join(item.files[:MAX_SECTION_FILES])}")
    lines.append("")
    lines.append(item.facts)
    lines.append("")
    return "\n".join(lines)


@dataclass
class PackBuffer:
    """Ordered sections of one context pack, joined by newlines."""

    sections: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.sections)

    def tokens(self) -> int:
        return estimate_tokens(self.text)

    def append(self, section: str) -> None:
        """Append a section without any budget check."""
        self.sections.append(section)

    def fits(self, candidate: str, budget: int) -> bool:
        # Re-estimates over the whole joined text, separators included, rather
        # than keeping a running total.
        return estimate_tokens("\n".join([*self.sections, candidate])) <= budget


def pack(buffer: PackBuffer, candidates: Iterable[str], budget: int) -> int:
    """Greedily commit candidates until the first one that would overflow.

    Candidates after the first overflow are dropped. Returns the number
    committed.
    """
    committed = 0
    for candidate in candidates:
        if not buffer.fits(candidate, budget):
            break
        buffer.append(candidate)
        committed += 1
    return committed


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Outcome of one collaborator call: a validated value or the error."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _call(
    label: str, fetch: Callable[[], Awaitable[Any]], model: type[T]
) -> CallResult[T]:
    try:
        value = await fetch()
        if not isinstance(value, model):
            value = model.model_validate(value)
    except Exception as e:
        logger.warning("%s failed: %s: %s", label, type(e).__name__, e)
        return CallResult(error=e)
    return CallResult(value=value)


def build_header(request: ContextPackRequest) -> list[str]:
    return [
        "# Context Pack\n",
        f"> Task: {request.task}",
        f"> Scope: {request.scope.value} | Budget: ~{request.token_budget} tokens\n",
    ]


def remaining_budget(request: ContextPackRequest) -> int:
    """Tokens left for a brain document after the header and footer reserve."""
    header_tokens = estimate_tokens("\n".join(build_header(request)))
    return max(request.token_budget - header_tokens - FOOTER_RESERVE_TOKENS, 0)


def group_by_category(results: Iterable[SearchResult]) -> dict[str, list[SearchResult]]:
    """Group results by the first two segments of their schemaKey.

    Groups keep first-seen order, members keep result order.
    """
    groups: dict[str, list[SearchResult]] = {}
    for result in results:
        prefix = "/".join(result.schema_key.split("/")[:2])
        groups.setdefault(prefix, []).append(result)
    return groups


def category_label(prefix: str) -> str:
    label = prefix.split("/")[-1] or prefix
    return label[:1].upper() + label[1:]


def _brain_label(brain: BrainDocument) -> str:
    label = f"{brain.items_loaded} items"
    if brain.layers:
        label += (
            f" | L1: {brain.layers.layer1}, L2: {brain.layers.layer2}, "
            f"archived: {brain.layers.archived}"
        )
    return label


def _append_brain(buffer: PackBuffer, brain: BrainDocument, remaining: int) -> None:
    """Append the brain document, truncated locally to the remaining budget.

    The service is asked for a budgeted document but may return more.
    """
    max_chars = remaining * CHARS_PER_TOKEN
    if len(brain.document) <= max_chars:
        buffer.append(brain.document)
    else:
        buffer.append(brain.document[:max_chars] + TRUNCATION_MARKER)


@dataclass(frozen=True)
class ContextPack:
    """An assembled pack. ``degraded`` is set when any fallback tier was used."""

    text: str
    degraded: bool = False


class ContextPackAssembler:
    """Runs one context pack assembly against a memory provider."""

    def __init__(self, provider: MemoryProvider, request: ContextPackRequest):
        self.provider = provider
        self.request = request
        self.buffer = PackBuffer()
        self.remaining = remaining_budget(request)
        self.degraded = False

    async def assemble(self) -> str:
        for line in build_header(self.request):
            self.buffer.append(line)

        if self.request.scope is Scope.FULL:
            footer = await self._full()
        elif self.request.scope is Scope.MINIMAL:
            footer = await self._minimal()
        else:
            footer = await self._relevant()

        self.buffer.append(f"\n---\n_{footer} | ~{self.buffer.tokens()} tokens_")
        return self.buffer.text

    async def _fetch_brain(self, label: str, **kwargs: Any) -> CallResult[BrainDocument]:
        return await _call(
            label, lambda: self.provider.get_brain(**kwargs), BrainDocument
        )

    async def _full(self) -> str:
        brain = await self._fetch_brain("get_brain", token_budget=self.remaining)
        if not brain.ok:
            self.degraded = True
            self.buffer.append(MEMORY_UNAVAILABLE)
            return "0 items"
        _append_brain(self.buffer, brain.value, self.remaining)
        return _brain_label(brain.value)

    async def _minimal(self) -> str:
        listed = await _call(
            "list_items",
            lambda: self.provider.list_items(limit=MINIMAL_ITEM_LIMIT),
            ItemsResponse,
        )
        if not listed.ok:
            self.degraded = True
            self.buffer.append(MEMORY_UNAVAILABLE)
            return "0 items (minimal)"

        items = listed.value.items
        if not items:
            self.buffer.append(EMPTY_MARKER)
            return "0 items (minimal)"

        sections = (format_section(item) for item in items)
        pack(self.buffer, sections, self.request.token_budget)
        return f"{len(items)} items (minimal)"

    async def _relevant(self) -> str:
        brief = await self._fetch_brain("get_brain (brief)")
        if not brief.ok:
            self.degraded = True
        elif brief.value.summary:
            self.buffer.append(brief.value.summary)
            self.buffer.append("")

        searched = await _call(
            "search",
            lambda: self.provider.search(
                self.request.task,
                limit=SEARCH_LIMIT,
                min_similarity=SEARCH_MIN_SIMILARITY,
            ),
            SearchResponse,
        )

        if not searched.ok:
            self.degraded = True
            logger.info("Search unavailable, falling back to full brain")
            brain = await self._fetch_brain("get_brain", token_budget=self.remaining)
            if not brain.ok:
                self.buffer.append(SEARCH_UNAVAILABLE)
                return "Fallback: search and brain unavailable"
            _append_brain(self.buffer, brain.value, self.remaining)
            return (
                "Fallback: full brain (search unavailable) | "
                f"{_brain_label(brain.value)}"
            )

        results = searched.value.results
        if not results:
            self.degraded = True
            logger.info("No semantic matches, falling back to top items")
            brain = await self._fetch_brain(
                "get_brain (top items)",
                limit=NO_MATCH_ITEM_LIMIT,
                token_budget=self.remaining,
            )
            if not brain.ok:
                self.buffer.append(SEARCH_UNAVAILABLE)
                return "Fallback: no semantic matches, brain unavailable"
            _append_brain(self.buffer, brain.value, self.remaining)
            return (
                "Fallback: no semantic matches, showing top items | "
                f"{_brain_label(brain.value)}"
            )

        candidates = []
        for prefix, members in group_by_category(results).items():
            candidates.append(f"## {category_label(prefix)}\n")
            candidates.extend(format_section(member) for member in members)
        pack(self.buffer, candidates, self.request.token_budget)

        return (
            f"{len(results)} relevant items "
            f"({searched.value.total_candidates} candidates)"
        )


async def build_context_pack(
    provider: MemoryProvider, request: ContextPackRequest
) -> ContextPack:
    """Assemble a context pack and report whether a fallback tier was used.

    Never raises for collaborator failures.
    """
    async with DebugContext():
        assembler = ContextPackAssembler(provider, request)
        text = await assembler.assemble()
    return ContextPack(text=text, degraded=assembler.degraded)


async def assemble_context_pack(
    provider: MemoryProvider, request: ContextPackRequest
) -> str:
    """Assemble a context pack. Never raises for collaborator failures."""
    return (await build_context_pack(provider, request)).text
