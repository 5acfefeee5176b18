"""Tests for contox data models."""

import pytest
from pydantic import ValidationError

from contox.models import (
    BrainDocument,
    ContextPackRequest,
    ContoxConfig,
    MemoryItem,
    Scope,
    SearchResult,
)


class TestMemoryItem:
    def test_parses_camel_case_payload(self):
        item = MemoryItem.model_validate(
            {
                "itemId": "i1",
                "title": "Auth",
                "type": "architecture",
                "facts": "JWT",
                "schemaKey": "root/security/auth",
                "confidence": 0.8,
                "files": ["a.py"],
                "tags": ["ignored"],
            }
        )

        assert item.schema_key == "root/security/auth"
        assert item.importance is None
        assert not hasattr(item, "tags")

    def test_accepts_field_names(self):
        item = MemoryItem(title="t", schema_key="root/x")
        assert item.files == []

    def test_confidence_out_of_range(self):
        with pytest.raises(ValidationError):
            MemoryItem(title="t", schema_key="root/x", confidence=1.5)

    def test_search_result_requires_similarity(self):
        with pytest.raises(ValidationError):
            SearchResult(title="t", schema_key="root/x")


class TestBrainDocument:
    def test_layers_optional(self):
        brain = BrainDocument.model_validate({"document": "d", "itemsLoaded": 2})

        assert brain.layers is None
        assert brain.summary is None
        assert brain.items_loaded == 2

    def test_document_required(self):
        with pytest.raises(ValidationError):
            BrainDocument.model_validate({"summary": "s"})


class TestContextPackRequest:
    def test_defaults(self):
        request = ContextPackRequest(task="t")

        assert request.scope is Scope.RELEVANT
        assert request.token_budget == 4000

    def test_scope_from_string(self):
        assert ContextPackRequest(task="t", scope="minimal").scope is Scope.MINIMAL

    @pytest.mark.parametrize(
        "kwargs",
        [{"task": ""}, {"task": "t", "token_budget": 0}, {"task": "t", "scope": "huge"}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            ContextPackRequest(**kwargs)


class TestContoxConfig:
    def test_strips_trailing_slash(self):
        config = ContoxConfig(api_key="k", api_url="https://x.dev///", project_id="p")
        assert config.api_url == "https://x.dev"

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            ContoxConfig(api_key="k", project_id="p", hmac="x")
