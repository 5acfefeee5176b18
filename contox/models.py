"""Data models for contox.

Wire payloads from the V2 API use camelCase keys; models expose snake_case
attributes and accept either form.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _WireModel(BaseModel):
    """Base for models parsed from V2 API payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MemoryItem(_WireModel):
    """A single memory item stored in the project brain."""

    item_id: str | None = Field(default=None, alias="itemId")
    title: str
    type: str = ""
    facts: str = ""
    schema_key: str = Field(alias="schemaKey")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    files: list[str] = Field(default_factory=list)
    importance: float | None = Field(default=None, ge=0.0, le=1.0)


class SearchResult(MemoryItem):
    """A memory item scored against a search query."""

    similarity: float = Field(ge=0.0, le=1.0)


class SearchResponse(_WireModel):
    results: list[SearchResult] = Field(default_factory=list)
    total_candidates: int = Field(default=0, alias="totalCandidates")
    query: str | None = None


class ItemsResponse(_WireModel):
    items: list[MemoryItem] = Field(default_factory=list)
    total: int | None = None
    has_more: bool = Field(default=False, alias="hasMore")


class BrainLayers(_WireModel):
    """Item counts per brain layer (1 = active, 2 = reference)."""

    layer1: int = 0
    layer2: int = 0
    archived: int = 0


class BrainDocument(_WireModel):
    """The assembled brain document returned by the service."""

    document: str
    summary: str | None = None
    items_loaded: int = Field(default=0, alias="itemsLoaded")
    token_estimate: int = Field(default=0, alias="tokenEstimate")
    brain_hash: str = Field(default="", alias="brainHash")
    layers: BrainLayers | None = None


class Scope(str, Enum):
    """How much memory a context pack draws on."""

    FULL = "full"
    RELEVANT = "relevant"
    MINIMAL = "minimal"


class ContextPackRequest(BaseModel):
    """Arguments for a single context pack assembly."""

    task: str = Field(min_length=1)
    scope: Scope = Scope.RELEVANT
    token_budget: int = Field(default=4000, gt=0)


class ContoxConfig(BaseModel):
    """Resolved credentials and project for the V2 API."""

    model_config = ConfigDict(extra="forbid")

    api_key: str
    api_url: str = "https://contox.dev"
    project_id: str
    team_id: str | None = None
    project_name: str | None = None
    timeout: float = 30.0

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")
