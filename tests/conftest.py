"""Shared test fixtures for contox."""

import pytest

from contox.models import (
    BrainDocument,
    BrainLayers,
    ItemsResponse,
    MemoryItem,
    SearchResponse,
    SearchResult,
)


def make_item(title: str, schema_key: str = "root/architecture/x", **kwargs) -> MemoryItem:
    data = {
        "title": title,
        "type": "architecture",
        "facts": f"Facts about {title}.",
        "schemaKey": schema_key,
        "confidence": 0.9,
        "files": [],
    }
    data.update(kwargs)
    return MemoryItem.model_validate(data)


def make_result(
    title: str, schema_key: str, similarity: float = 0.8, **kwargs
) -> SearchResult:
    data = {
        "title": title,
        "type": "bugs",
        "facts": f"Facts about {title}.",
        "schemaKey": schema_key,
        "confidence": 0.75,
        "files": [],
        "similarity": similarity,
    }
    data.update(kwargs)
    return SearchResult.model_validate(data)


class FakeProvider:
    """In-memory MemoryProvider with canned responses.

    Each response may be a model, a raw dict, or an exception to raise.
    ``brief`` answers get_brain() with no arguments, ``top_items`` answers
    get_brain(limit=...), ``brain`` answers everything else.
    """

    def __init__(self, brain=None, brief=None, top_items=None, search=None, items=None):
        self.brain = brain
        self.brief = brief
        self.top_items = top_items
        self.search_response = search
        self.items = items
        self.calls: list[tuple[str, dict]] = []

    @staticmethod
    def _answer(value):
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise RuntimeError("no canned response")
        return value

    async def get_brain(self, token_budget=None, limit=None):
        self.calls.append(("get_brain", {"token_budget": token_budget, "limit": limit}))
        if token_budget is None and limit is None:
            return self._answer(self.brief)
        if limit is not None:
            return self._answer(self.top_items)
        return self._answer(self.brain)

    async def search(self, query, limit=None, min_similarity=None):
        self.calls.append(
            ("search", {"query": query, "limit": limit, "min_similarity": min_similarity})
        )
        return self._answer(self.search_response)

    async def list_items(self, limit=None):
        self.calls.append(("list_items", {"limit": limit}))
        return self._answer(self.items)


@pytest.fixture
def brain():
    return BrainDocument(
        document="# Project Brain\n\nEverything we know.",
        summary="Project brief: a FastAPI service.",
        itemsLoaded=3,
        tokenEstimate=10,
        brainHash="abc123",
        layers=BrainLayers(layer1=2, layer2=1, archived=0),
    )


@pytest.fixture
def search_results():
    return SearchResponse(
        results=[
            make_result("Alpha token rotation", "root/security/a"),
            make_result("Beta session fixation", "root/security/b"),
            make_result("Gamma null pointer", "root/bugs/c"),
        ],
        totalCandidates=42,
    )


@pytest.fixture
def items():
    return ItemsResponse(
        items=[
            make_item("First convention", "root/conventions/one"),
            make_item("Second convention", "root/conventions/two"),
            make_item("Third decision", "root/decisions/three"),
        ]
    )
