"""Tests for the static section catalog."""

import dataclasses
from decimal import Decimal

import pytest

from storefront_sections.catalog import (
    BILLING_PLANS,
    SECTION_CATALOG,
    get_section_by_handle,
    get_section_by_plan,
    list_sections,
    read_section_liquid,
)
from storefront_sections.errors import SectionNotFoundError, SectionSourceMissingError


class TestLookup:

    def test_known_handle_returns_static_record(self):
        for handle, section in SECTION_CATALOG.items():
            assert get_section_by_handle(handle) is section

    def test_shipped_section(self):
        section = get_section_by_handle("p5-trust-builder-bar")
        assert section.title == "Highlights Bar"
        assert section.price_usd == Decimal("9.99")
        assert section.billing_plan == "TRUST_BAR_999"
        assert section.theme_filename == "sections/p5-trust-builder-bar.liquid"
        assert section.price_label == "$9.99 (one-time)"

    def test_unknown_handle_returns_none(self):
        assert get_section_by_handle("nope") is None
        assert get_section_by_handle("") is None

    def test_plan_lookup(self):
        section = get_section_by_plan("TRUST_BAR_999")
        assert section.handle == "p5-trust-builder-bar"
        assert get_section_by_plan("UNKNOWN") is None

    def test_plans_are_unique(self):
        assert len(BILLING_PLANS) == len(SECTION_CATALOG)

    def test_list_sections_in_order(self):
        assert [s.handle for s in list_sections()] == list(SECTION_CATALOG)


class TestImmutability:

    def test_catalog_mapping_is_read_only(self):
        with pytest.raises(TypeError):
            SECTION_CATALOG["new"] = None

    def test_section_is_frozen(self):
        section = get_section_by_handle("p5-trust-builder-bar")
        with pytest.raises(dataclasses.FrozenInstanceError):
            section.title = "Changed"


class TestReadSectionLiquid:

    def test_reads_template(self, section_library):
        body = read_section_liquid("p5-trust-builder-bar", library_root=str(section_library))
        assert "section.id" in body

    def test_unknown_handle(self, section_library):
        with pytest.raises(SectionNotFoundError):
            read_section_liquid("nope", library_root=str(section_library))

    def test_missing_source_file(self, tmp_path):
        with pytest.raises(SectionSourceMissingError) as exc_info:
            read_section_liquid("p5-trust-builder-bar", library_root=str(tmp_path))
        assert "p5-trust-builder-bar.liquid" in str(exc_info.value)

    def test_env_library_root(self, section_library, monkeypatch):
        monkeypatch.setenv("SECTION_LIBRARY_PATH", str(section_library))
        assert read_section_liquid("p5-trust-builder-bar")
