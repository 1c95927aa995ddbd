# Storefront Section Catalog
# ==========================
#
# Static, read-only table of purchasable sections.
# Template bodies live in SECTION_LIBRARY/<handle>.liquid.

import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from storefront_sections.errors import SectionNotFoundError, SectionSourceMissingError

logger = logging.getLogger(__name__)

DEFAULT_LIBRARY_DIR = "SECTION_LIBRARY"


@dataclass(frozen=True)
class Section:
    """A purchasable, installable storefront template snippet."""
    handle: str
    title: str
    description: str
    price_usd: Decimal
    billing_plan: str  # Billing plan name, one per section
    theme_filename: str  # Destination path inside the theme

    @property
    def price_label(self) -> str:
        return f"${self.price_usd:.2f} (one-time)"

    def to_dict(self) -> Dict[str, str]:
        return {
            "handle": self.handle,
            "title": self.title,
            "description": self.description,
            "priceUsd": f"{self.price_usd:.2f}",
            "billingPlan": self.billing_plan,
            "themeFilename": self.theme_filename,
        }


_SECTIONS = (
    Section(
        handle="p5-trust-builder-bar",
        title="Highlights Bar",
        description=(
            "A clean highlights/trust bar (icons + text) to boost confidence "
            "near add-to-cart."
        ),
        price_usd=Decimal("9.99"),
        billing_plan="TRUST_BAR_999",
        theme_filename="sections/p5-trust-builder-bar.liquid",
    ),
)

SECTION_CATALOG: Mapping[str, Section] = MappingProxyType(
    {s.handle: s for s in _SECTIONS}
)

# Plan name -> section, used by billing backends to price a plan
BILLING_PLANS: Mapping[str, Section] = MappingProxyType(
    {s.billing_plan: s for s in _SECTIONS}
)


def list_sections() -> List[Section]:
    """All sections in catalog order."""
    return list(_SECTIONS)


def get_section_by_handle(handle: str) -> Optional[Section]:
    return SECTION_CATALOG.get(handle)


def get_section_by_plan(plan: str) -> Optional[Section]:
    return BILLING_PLANS.get(plan)


def _library_root(library_root: Optional[str] = None) -> Path:
    root = library_root or os.environ.get("SECTION_LIBRARY_PATH") or DEFAULT_LIBRARY_DIR
    path = Path(root)
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def read_section_liquid(handle: str, library_root: Optional[str] = None) -> str:
    """
    Load the Liquid template body for a section.

    Raises:
        SectionNotFoundError: handle is not in the catalog
        SectionSourceMissingError: the template file is not deployed
    """
    section = get_section_by_handle(handle)
    if section is None:
        raise SectionNotFoundError(handle)

    file_path = _library_root(library_root) / f"{section.handle}.liquid"
    if not file_path.is_file():
        logger.error(f"Section source missing: {file_path}", extra={"section": handle})
        raise SectionSourceMissingError(str(file_path))

    return file_path.read_text(encoding="utf-8")
