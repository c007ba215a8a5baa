"""
Tests for metadata aggregation.

Tests cover:
- Deterministic last-registered-wins merge
- Deep merge of nested mappings
- Provider error containment
- Stable key order and input immutability
"""

import pytest

from payhooks.exceptions import ProviderFailedError
from payhooks.metadata import MetadataAggregator, collect_metadata, deep_merge
from payhooks.tests.helpers import StaticProvider


class RaisingProvider:
    name = "raising_provider"

    def contribute(self, object_type, context):
        raise RuntimeError("lookup failed")


@pytest.fixture
def aggregator():
    return MetadataAggregator()


# =============================================================================
# deep_merge
# =============================================================================


class TestDeepMerge:
    """Tests for the merge helper."""

    def test_nested_siblings_coexist(self):
        """Should keep keys from both sides of a nested mapping."""
        merged = deep_merge({"metadata": {"a": "1"}}, {"metadata": {"b": "2"}})

        assert merged == {"metadata": {"a": "1", "b": "2"}}

    def test_leaf_collision_override_wins(self):
        """Should take the override value on a leaf collision."""
        assert deep_merge({"x": 1, "y": 2}, {"x": 3}) == {"x": 3, "y": 2}

    def test_mapping_replaces_scalar(self):
        """Should treat mapping-vs-scalar as a plain collision."""
        assert deep_merge({"x": "flat"}, {"x": {"k": 1}}) == {"x": {"k": 1}}
        assert deep_merge({"x": {"k": 1}}, {"x": "flat"}) == {"x": "flat"}

    def test_inputs_not_mutated(self):
        """Should leave both inputs untouched."""
        base = {"metadata": {"a": "1"}}
        override = {"metadata": {"b": "2"}}

        deep_merge(base, override)

        assert base == {"metadata": {"a": "1"}}
        assert override == {"metadata": {"b": "2"}}


# =============================================================================
# Aggregation
# =============================================================================


class TestAggregate:
    """Tests for MetadataAggregator.aggregate."""

    def test_last_registered_wins(self, aggregator, registry):
        """Should let the later provider win and keep first-seen key order."""
        registry.register_metadata_provider("customer", StaticProvider("p1", {"a": 1}))
        registry.register_metadata_provider(
            "customer", StaticProvider("p2", {"a": 2, "b": 3})
        )

        merged = aggregator.aggregate("customer", {}, registry)

        assert merged.attributes == {"a": 2, "b": 3}
        assert list(merged.attributes) == ["a", "b"]
        assert merged.object_type == "customer"

    def test_result_is_deterministic(self, aggregator, registry):
        """Should return identical results on repeated calls."""
        registry.register_metadata_provider("customer", StaticProvider("p1", {"z": 1}))
        registry.register_metadata_provider("*", StaticProvider("p2", {"a": {"k": 1}}))
        registry.freeze()

        first = aggregator.aggregate("customer", {}, registry)
        second = aggregator.aggregate("customer", {}, registry)

        assert first.attributes == second.attributes
        assert list(first.attributes) == list(second.attributes) == ["z", "a"]

    def test_nested_metadata_deep_merged(self, aggregator, registry):
        """Should merge nested maps from different providers."""
        registry.register_metadata_provider(
            "*", StaticProvider("global", {"metadata": {"source": "hub", "env": "dev"}})
        )
        registry.register_metadata_provider(
            "customer", StaticProvider("accounts", {"metadata": {"user_id": "42", "env": "prod"}})
        )

        merged = aggregator.aggregate("customer", {}, registry)

        assert merged.attributes == {
            "metadata": {"source": "hub", "env": "prod", "user_id": "42"}
        }

    def test_only_applicable_providers_run(self, aggregator, registry):
        """Should skip providers registered for other object types."""
        registry.register_metadata_provider("price", StaticProvider("price", {"p": 1}))
        registry.register_metadata_provider("customer", StaticProvider("cust", {"c": 1}))

        merged = aggregator.aggregate("customer", {}, registry)

        assert merged.attributes == {"c": 1}

    def test_contributions_recorded_in_order(self, aggregator, registry):
        """Should list each top-level contribution with its provider."""
        registry.register_metadata_provider("customer", StaticProvider("p1", {"a": 1}))
        registry.register_metadata_provider("customer", StaticProvider("p2", {"a": 2}))

        merged = aggregator.aggregate("customer", {}, registry)

        assert [(c.provider, c.key, c.value) for c in merged.contributions] == [
            ("p1", "a", 1),
            ("p2", "a", 2),
        ]

    def test_provider_output_not_mutated(self, aggregator, registry):
        """Should copy provider outputs instead of merging into them."""
        output = {"metadata": {"a": "1"}}
        registry.register_metadata_provider("customer", StaticProvider("p1", output))
        registry.register_metadata_provider(
            "customer", StaticProvider("p2", {"metadata": {"b": "2"}})
        )

        merged = aggregator.aggregate("customer", {}, registry)
        merged.attributes["metadata"]["c"] = "3"

        assert output == {"metadata": {"a": "1"}}

    def test_context_passed_to_providers(self, aggregator, registry):
        """Should hand object type and context to every provider."""
        seen = []

        def provider(object_type, context):
            seen.append((object_type, dict(context)))
            return {}

        registry.register_metadata_provider("customer", provider)

        aggregator.aggregate("customer", {"user_id": 7}, registry)

        assert seen == [("customer", {"user_id": 7})]

    def test_no_providers_returns_empty(self, aggregator, registry):
        """Should return empty attributes when nothing is registered."""
        merged = aggregator.aggregate("customer", {}, registry)

        assert merged.attributes == {}
        assert merged.errors == []


# =============================================================================
# Error Containment
# =============================================================================


class TestProviderErrors:
    """Tests for skipped providers."""

    def test_raising_provider_skipped(self, aggregator, registry):
        """Should skip a raising provider and keep the others."""
        registry.register_metadata_provider("customer", StaticProvider("p1", {"a": 1}))
        registry.register_metadata_provider("customer", RaisingProvider())
        registry.register_metadata_provider("customer", StaticProvider("p3", {"b": 2}))

        merged = aggregator.aggregate("customer", {}, registry)

        assert merged.attributes == {"a": 1, "b": 2}
        assert merged.has_errors
        assert len(merged.errors) == 1
        error = merged.errors[0]
        assert isinstance(error, ProviderFailedError)
        assert error.details["provider"] == "raising_provider"

    @pytest.mark.parametrize("bad_output", [None, ["a", 1], "metadata", 42])
    def test_non_mapping_output_skipped(self, aggregator, registry, bad_output):
        """Should skip providers that return something other than a mapping."""
        registry.register_metadata_provider("customer", StaticProvider("bad", bad_output))
        registry.register_metadata_provider("customer", StaticProvider("good", {"a": 1}))

        merged = aggregator.aggregate("customer", {}, registry)

        assert merged.attributes == {"a": 1}
        assert [e.details["provider"] for e in merged.errors] == ["bad"]


# =============================================================================
# collect_metadata
# =============================================================================


class TestCollectMetadata:
    """Tests for the synchronous entry point."""

    def test_uses_explicit_registry(self, registry):
        """Should aggregate against the given registry."""
        registry.register_metadata_provider("customer", StaticProvider("p", {"a": 1}))

        assert collect_metadata("customer", {}, registry=registry).attributes == {"a": 1}

    def test_defaults_to_startup_registry(self):
        """Should use the registry built from settings when none is given."""
        merged = collect_metadata("customer", {"user_id": 42})

        assert merged.attributes["metadata"]["source"] == "payhooks"
        assert merged.attributes["metadata"]["user_id"] == "42"
