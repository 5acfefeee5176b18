"""Async client for the Contox V2 API (brain, search, items)."""

import logging
from collections import OrderedDict
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from contox.debug import timed_remote_call
from contox.exceptions import TransportError
from contox.models import BrainDocument, ContoxConfig, ItemsResponse, SearchResponse

logger = logging.getLogger("contox.client")

M = TypeVar("M", bound=BaseModel)

MAX_BRAIN_CACHE_ENTRIES = 8


class MemoryProvider(Protocol):
    """The remote operations the context pack assembler consumes."""

    async def get_brain(
        self, token_budget: int | None = None, limit: int | None = None
    ) -> BrainDocument: ...

    async def search(
        self,
        query: str,
        limit: int | None = None,
        min_similarity: float | None = None,
    ) -> SearchResponse: ...

    async def list_items(self, limit: int | None = None) -> ItemsResponse: ...


def _error_message(response: httpx.Response) -> str:
    """Pull the service's error string out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return response.reason_phrase


class V2Client:
    """Bearer-authenticated JSON client for the V2 endpoints.

    Brain documents are cached by ETag per parameter set; a 304 answer
    returns the cached copy. At most MAX_BRAIN_CACHE_ENTRIES parameter
    sets are kept, least recently used first out.
    """

    def __init__(
        self,
        config: ContoxConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config
        self.project_id = config.project_id
        self._base_url = f"{config.api_url}/api"
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)
        self._brain_cache: OrderedDict[tuple, tuple[str, BrainDocument]] = (
            OrderedDict()
        )

    async def __aenter__(self) -> "V2Client":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    async def _get(
        self,
        path: str,
        params: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        query = {k: str(v) for k, v in params.items() if v is not None}
        try:
            response = await self._http.get(
                f"{self._base_url}{path}",
                params=query,
                headers={**self._headers(), **(headers or {})},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"V2 API request failed: {e}") from e

        if response.status_code == 304:
            return response
        if response.is_error:
            raise TransportError(
                f"V2 API error ({response.status_code}): {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _parse(response: httpx.Response, model: type[M]) -> M:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TransportError(
                f"Malformed {model.__name__} payload from V2 API: {e}"
            ) from e

    @timed_remote_call
    async def get_brain(
        self,
        token_budget: int | None = None,
        limit: int | None = None,
        min_confidence: float | None = None,
    ) -> BrainDocument:
        """Fetch the brain document, optionally pre-budgeted by the service."""
        params = {
            "projectId": self.project_id,
            "minConfidence": min_confidence,
            "limit": limit,
            "tokenBudget": token_budget,
        }
        cache_key = (min_confidence, limit, token_budget)
        cached = self._brain_cache.get(cache_key)
        headers = {"If-None-Match": cached[0]} if cached else None

        response = await self._get("/v2/brain", params, headers=headers)
        if response.status_code == 304:
            if cached:
                logger.debug("Brain not modified, using cached document")
                self._brain_cache.move_to_end(cache_key)
                return cached[1]
            raise TransportError("V2 API returned 304 without a cached brain")

        brain = self._parse(response, BrainDocument)
        etag = response.headers.get("etag")
        if etag:
            self._brain_cache[cache_key] = (etag, brain)
            self._brain_cache.move_to_end(cache_key)
            while len(self._brain_cache) > MAX_BRAIN_CACHE_ENTRIES:
                self._brain_cache.popitem(last=False)
        return brain

    @timed_remote_call
    async def search(
        self,
        query: str,
        limit: int | None = None,
        min_similarity: float | None = None,
    ) -> SearchResponse:
        """Semantic search over memory items."""
        params = {
            "projectId": self.project_id,
            "q": query,
            "limit": limit,
            "minSimilarity": min_similarity,
        }
        response = await self._get("/v2/search", params)
        return self._parse(response, SearchResponse)

    @timed_remote_call
    async def list_items(
        self,
        limit: int | None = None,
        type: str | None = None,
        schema_key: str | None = None,
        offset: int | None = None,
    ) -> ItemsResponse:
        """List memory items, highest confidence first."""
        params = {
            "projectId": self.project_id,
            "type": type,
            "schemaKey": schema_key,
            "limit": limit,
            "offset": offset,
        }
        response = await self._get("/v2/items", params)
        return self._parse(response, ItemsResponse)
