"""Pydantic response models for the sections API."""

from typing import List, Optional

from pydantic import BaseModel

from storefront_sections.catalog import Section
from storefront_sections.shopify_client import Theme


class SectionOut(BaseModel):
    handle: str
    title: str
    description: str
    priceUsd: str
    priceLabel: str
    billingPlan: str
    themeFilename: str

    @classmethod
    def from_section(cls, section: Section) -> "SectionOut":
        return cls(priceLabel=section.price_label, **section.to_dict())


class ThemeOut(BaseModel):
    id: str
    name: str
    role: str


class ThemeOption(BaseModel):
    label: str
    value: str


class SectionListResponse(BaseModel):
    sections: List[SectionOut]


class SectionDetailResponse(BaseModel):
    section: SectionOut
    themes: List[ThemeOut]
    themeOptions: List[ThemeOption]
    selectedTheme: Optional[str] = None


def theme_options(themes: List[Theme]) -> List[ThemeOption]:
    """Select options with the live theme first, otherwise in API order."""
    ordered = sorted(themes, key=lambda t: not t.is_live)
    return [ThemeOption(label=t.label, value=t.id) for t in ordered]
