"""Tests for FieldCatalog."""

import pytest

from services.incident_enrichment.errors import ConfigurationError
from services.incident_enrichment.field_catalog import (
    DEFAULT_FIELD_MAP,
    DEFAULT_FIELD_SCORES,
    FieldCatalog,
    FieldSpec,
)


class TestFieldCatalogDefaults:
    """Built-in scores and categories apply when no overrides are given."""

    def setup_method(self):
        self.catalog = FieldCatalog.from_maps()

    def test_ip_fields_score_100(self):
        for name in ("lan_ip", "src_ip", "src", "wan_ip", "dst", "dst_ip"):
            assert self.catalog.score_of(name) == 100
            assert self.catalog.category_of(name) == "ip"

    def test_port_fields_score_30(self):
        for name in ("lan_port", "wan_port", "src_port", "dst_port"):
            assert self.catalog.score_of(name) == 30
            assert self.catalog.category_of(name) == "port"

    def test_unknown_field_scores_zero_without_category(self):
        assert self.catalog.score_of("hostname") == 0
        assert self.catalog.category_of("hostname") == ""
        assert self.catalog.spec_of("hostname") == FieldSpec()

    def test_empty_maps_keep_defaults(self):
        catalog = FieldCatalog.from_maps({}, {})
        assert len(catalog) == len(DEFAULT_FIELD_SCORES)
        assert catalog.category_of("dst_port") == DEFAULT_FIELD_MAP["dst_port"]


class TestFieldCatalogOverrides:
    """Non-empty overrides replace the defaults entirely."""

    def test_score_override_replaces_not_merges(self):
        catalog = FieldCatalog.from_maps(field_scores={"user": 100})
        assert catalog.score_of("user") == 100
        assert catalog.score_of("src_ip") == 0
        # categories still come from defaults
        assert catalog.category_of("src_ip") == "ip"

    def test_category_override_replaces_not_merges(self):
        catalog = FieldCatalog.from_maps(field_map={"user": "identity"})
        assert catalog.category_of("user") == "identity"
        assert catalog.category_of("src_ip") == ""
        assert catalog.score_of("src_ip") == 100

    def test_both_overrides(self):
        catalog = FieldCatalog.from_maps({"user": 60}, {"user": "identity"})
        assert catalog.spec_of("user") == FieldSpec(score=60, category="identity")
        assert "src" not in catalog

    @pytest.mark.parametrize("score", [-1, "100", 1.5, True])
    def test_invalid_scores_rejected(self, score):
        with pytest.raises(ConfigurationError):
            FieldCatalog.from_maps(field_scores={"user": score})
