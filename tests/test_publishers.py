"""
Publisher Registry Tests

Tests for catalog integrity, filtering and ranked queries.
"""

import dataclasses

import pytest

from verisource.registry import (
    PUBLISHERS,
    Publisher,
    PublisherRegistry,
    PublisherType,
    default_registry,
)


@pytest.fixture
def registry():
    return default_registry()


def ids(publishers):
    return [p.id for p in publishers]


# =============================================================================
# CATALOG TESTS
# =============================================================================

class TestCatalog:
    """Tests for the stock catalog."""

    def test_catalog_size(self, registry):
        assert len(registry) == 17
        assert len(PUBLISHERS) == 17

    def test_ids_are_unique(self, registry):
        catalog_ids = [p.id for p in registry]
        assert len(catalog_ids) == len(set(catalog_ids))

    def test_weights_in_range(self, registry):
        assert all(0.0 <= p.weight <= 1.0 for p in registry)

    def test_publishers_are_immutable(self, registry):
        snopes = registry.lookup("snopes")
        with pytest.raises(dataclasses.FrozenInstanceError):
            snopes.weight = 0.1

    def test_to_dict_serializes_type(self, registry):
        data = registry.lookup("bbs_gov_bd").to_dict()
        assert data["type"] == "government"
        assert data["region"] == "BD"
        assert data["url"] == "https://bbs.gov.bd/"


class TestRegistryConstruction:
    """Tests for registry validation on build."""

    def test_duplicate_id_rejected(self):
        publisher = Publisher("dup", "Dup", 0.5, "BD", "bn", PublisherType.NEWS)
        with pytest.raises(ValueError, match="Duplicate publisher id"):
            PublisherRegistry([publisher, publisher])

    def test_weight_out_of_range_rejected(self):
        publisher = Publisher("heavy", "Heavy", 1.5, "BD", "bn", PublisherType.NEWS)
        with pytest.raises(ValueError, match="expected"):
            PublisherRegistry([publisher])

    def test_empty_registry(self):
        registry = PublisherRegistry([])
        assert len(registry) == 0
        assert registry.fact_checkers() == []


# =============================================================================
# LOOKUP AND FILTER TESTS
# =============================================================================

class TestLookup:

    def test_lookup_known(self, registry):
        snopes = registry.lookup("snopes")
        assert snopes.name == "Snopes"
        assert snopes.weight == 0.95

    def test_lookup_unknown(self, registry):
        assert registry.lookup("nonexistent") is None
        assert "nonexistent" not in registry
        assert "snopes" in registry

    def test_by_region_includes_global(self, registry):
        """A region with no local entries still sees global publishers."""
        assert ids(registry.by_region("US")) == ["ifcn_generic", "snopes", "factcheck_org"]

    def test_by_language_includes_multi(self, registry):
        english = ids(registry.by_language("en"))
        assert "snopes" in english
        assert "bdnews24" in english
        assert "prothom_alo" not in english

    def test_by_type_accepts_string(self, registry):
        assert ids(registry.by_type("academic")) == ["transparency_bd", "cpd_bd"]
        assert ids(registry.by_type(PublisherType.ACADEMIC)) == ["transparency_bd", "cpd_bd"]


# =============================================================================
# RANKED QUERY TESTS
# =============================================================================

class TestRankedQueries:

    def test_fact_checkers_bangladesh_bengali(self, registry):
        """Fact-checkers and international outlets for BD/bn, highest weight first."""
        result = ids(registry.fact_checkers(region="BD", language="bn"))

        assert result == [
            "ifcn_generic",
            "bbc_bangla",
            "rumorscanner_bd",
            "dw_bangla",
            "voa_bangla",
            "factwatch_ulab",
            "boom_bangladesh",
        ]
        assert result.index("rumorscanner_bd") < result.index("factwatch_ulab")

    def test_fact_checkers_sorted_descending(self, registry):
        weights = [p.weight for p in registry.fact_checkers()]
        assert weights == sorted(weights, reverse=True)

    def test_news_sources_english(self, registry):
        result = ids(registry.news_sources(region="BD", language="en"))
        assert result == ["ifcn_generic", "daily_star", "dhaka_tribune", "bdnews24"]

    def test_government_sources_exact_region(self, registry):
        assert ids(registry.government_sources("BD")) == ["bbs_gov_bd", "mof_gov_bd"]
        assert registry.government_sources("US") == []
        assert registry.government_sources("global") == []

    def test_ties_keep_catalog_order(self, registry):
        """Equal weights keep catalog order, so rankings are deterministic."""
        result = ids(registry.all_publishers())

        assert result.index("snopes") < result.index("bbs_gov_bd")
        assert result.index("factcheck_org") < result.index("mof_gov_bd")
        assert result.index("prothom_alo") < result.index("transparency_bd")
        assert result.index("factwatch_ulab") < result.index("cpd_bd")

    def test_repeated_queries_identical(self, registry):
        assert ids(registry.all_publishers()) == ids(registry.all_publishers())


class TestSearch:

    def test_search_name_and_description(self, registry):
        result = ids(registry.search("fact"))
        assert result == [
            "ifcn_generic",
            "snopes",
            "factcheck_org",
            "rumorscanner_bd",
            "factwatch_ulab",
            "boom_bangladesh",
        ]

    def test_search_case_insensitive(self, registry):
        assert ids(registry.search("BBC")) == ids(registry.search("bbc")) == ["bbc_bangla"]

    def test_search_no_match(self, registry):
        assert registry.search("zzz-nothing") == []
