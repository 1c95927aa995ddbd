"""
Section Installer
=================

Writes a purchased section's Liquid template into a storefront theme.

The caller must have passed the entitlement gate first; nothing here looks
at billing. Each call is a fresh upsert, so re-installing overwrites the
file in place.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from storefront_sections.catalog import get_section_by_handle, read_section_liquid
from storefront_sections.errors import BadRequestError, SectionNotFoundError
from storefront_sections.shopify_client import ADMIN_BASE_URL, ShopifyAdminClient, admin_store_handle

logger = logging.getLogger(__name__)

_TRAILING_DIGITS = re.compile(r"(\d+)$")


@dataclass
class InstallResult:
    ok: bool
    installed_filename: Optional[str] = None
    theme_editor_url: Optional[str] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        if not self.ok:
            return {"ok": False, "errors": self.errors}
        result = {"ok": True, "installedFilename": self.installed_filename}
        if self.theme_editor_url:
            result["themeEditorUrl"] = self.theme_editor_url
        return result


def build_theme_editor_url(shop_domain: str, theme_id: str) -> Optional[str]:
    """
    Theme editor link for a shop and theme GID.

    ``gid://shopify/OnlineStoreTheme/123`` on ``my-shop.myshopify.com`` gives
    ``https://admin.shopify.com/store/my-shop/themes/123/editor``. Returns
    None when the id has no trailing number.
    """
    match = _TRAILING_DIGITS.search(theme_id or "")
    store = admin_store_handle(shop_domain)
    if not match or not store:
        return None
    return f"{ADMIN_BASE_URL}/store/{store}/themes/{match.group(1)}/editor"


class SectionInstaller:
    """Upserts section templates into a shop's themes."""

    def __init__(self, client: ShopifyAdminClient, library_root: Optional[str] = None):
        self.client = client
        self.library_root = library_root

    async def install_section(self, theme_id: str, section_handle: str) -> InstallResult:
        """
        Install one section into one theme.

        Raises:
            BadRequestError: theme_id is empty
            SectionNotFoundError: unknown section handle
            SectionSourceMissingError: template file not deployed
            ShopifyApiError: the upsert request itself failed
        """
        if not theme_id:
            raise BadRequestError("Missing theme")

        section = get_section_by_handle(section_handle)
        if section is None:
            raise SectionNotFoundError(section_handle)

        body = read_section_liquid(section.handle, library_root=self.library_root)
        log_extra = {
            "shop": self.client.shop_domain,
            "section": section.handle,
            "theme_id": theme_id,
        }

        _, user_errors = await self.client.upsert_theme_files(
            theme_id,
            [
                {
                    "filename": section.theme_filename,
                    "body": {"type": "TEXT", "value": body},
                }
            ],
        )

        if user_errors:
            logger.warning(
                f"Install of {section.handle} rejected: "
                + "; ".join(str(e.get("message")) for e in user_errors),
                extra=log_extra,
            )
            return InstallResult(ok=False, errors=list(user_errors))

        logger.info(f"Installed {section.theme_filename}", extra=log_extra)
        return InstallResult(
            ok=True,
            installed_filename=section.theme_filename,
            theme_editor_url=build_theme_editor_url(self.client.shop_domain, theme_id),
        )
