"""
Shopify Admin GraphQL Client
============================

Thin async client over the Admin GraphQL endpoint for one shop.

Handles:
- Theme listing
- Theme file upserts (returns per-field user errors)
- Shop plan lookup (partner development stores)
- App one-time purchases (billing)

Requires: pip install httpx
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import httpx

from storefront_sections.errors import ShopifyApiError

logger = logging.getLogger(__name__)


THEMES_QUERY = """
query Themes($first: Int!) {
  themes(first: $first) {
    nodes { id name role }
  }
}
"""

THEME_FILES_UPSERT = """
mutation Upsert($themeId: ID!, $files: [OnlineStoreThemeFilesUpsertFileInput!]!) {
  themeFilesUpsert(themeId: $themeId, files: $files) {
    upsertedThemeFiles { filename }
    userErrors { field message }
  }
}
"""

SHOP_PLAN_QUERY = """
query ShopPlan {
  shop {
    plan { partnerDevelopment }
  }
}
"""

ONE_TIME_PURCHASES_QUERY = """
query OneTimePurchases {
  currentAppInstallation {
    oneTimePurchases(first: 250, sortKey: CREATED_AT, reverse: true) {
      nodes { id name status test createdAt }
    }
  }
}
"""

APP_PURCHASE_ONE_TIME_CREATE = """
mutation AppPurchaseOneTimeCreate($name: String!, $price: MoneyInput!, $returnUrl: URL!, $test: Boolean) {
  appPurchaseOneTimeCreate(name: $name, price: $price, returnUrl: $returnUrl, test: $test) {
    appPurchaseOneTime { id status }
    confirmationUrl
    userErrors { field message }
  }
}
"""


def _object(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


ADMIN_BASE_URL = "https://admin.shopify.com"
MYSHOPIFY_SUFFIX = ".myshopify.com"


def admin_store_handle(shop_domain: str) -> str:
    """Store name used in admin.shopify.com paths: ``my-shop.myshopify.com`` -> ``my-shop``."""
    store = (shop_domain or "").strip().lower()
    if store.endswith(MYSHOPIFY_SUFFIX):
        store = store[: -len(MYSHOPIFY_SUFFIX)]
    return store


def build_embedded_app_url(shop_domain: str, api_key: str, path: str) -> Optional[str]:
    """
    Admin URL that opens ``path`` of this app inside the shop's admin.

    Used as the landing page for flows that leave the admin (billing
    confirmation, Stripe Checkout); Shopify reloads the app frame there with
    a fresh session token. None without a store or API key.
    """
    store = admin_store_handle(shop_domain)
    if not store or not api_key:
        return None
    return f"{ADMIN_BASE_URL}/store/{store}/apps/{api_key}/{path.lstrip('/')}"


@dataclass(frozen=True)
class Theme:
    """Read-only view of a storefront theme."""
    id: str
    name: str
    role: str

    @property
    def is_live(self) -> bool:
        return self.role == "MAIN"

    @property
    def label(self) -> str:
        return f"{self.name} (Live)" if self.is_live else self.name


class ShopifyAdminClient:
    """
    Admin GraphQL client bound to a single shop and access token.

    A fresh httpx.AsyncClient is opened per call; nothing is shared between
    requests.
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = "2025-07",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.shop_domain = shop_domain
        self.api_version = api_version
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}/graphql.json"

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a GraphQL document and return its ``data`` object.

        Raises:
            ShopifyApiError: on transport errors, non-2xx responses,
                undecodable bodies or top-level GraphQL errors
        """
        payload = {"query": query, "variables": variables or {}}
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self._access_token,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ShopifyApiError(f"Shopify request failed for {self.shop_domain}: {e}") from e

        if resp.status_code >= 400:
            raise ShopifyApiError(
                f"Shopify returned {resp.status_code} for {self.shop_domain}: {resp.text[:200]}",
                status_code=502,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise ShopifyApiError(f"Shopify returned a non-JSON body for {self.shop_domain}") from e

        if not isinstance(body, dict):
            raise ShopifyApiError(f"Shopify returned an unexpected body for {self.shop_domain}")

        if body.get("errors"):
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in (body["errors"] if isinstance(body["errors"], list) else [body["errors"]])
            )
            raise ShopifyApiError(f"GraphQL errors: {messages}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise ShopifyApiError("GraphQL response is missing data")
        return data

    # ============================================
    # THEMES
    # ============================================

    async def list_themes(self, first: int = 50) -> List[Theme]:
        data = await self.graphql(THEMES_QUERY, {"first": first})
        nodes = (data.get("themes") or {}).get("nodes") or []
        return [
            Theme(id=n["id"], name=n.get("name", ""), role=n.get("role", ""))
            for n in nodes
            if n.get("id")
        ]

    async def upsert_theme_files(
        self,
        theme_id: str,
        files: List[Dict[str, Any]],
    ) -> Tuple[List[str], List[Dict[str, Any]]]:
        """
        Create or overwrite files in a theme.

        Args:
            theme_id: Theme GID
            files: ``[{"filename": ..., "body": {"type": "TEXT", "value": ...}}]``

        Returns:
            (upserted filenames, user errors)
        """
        data = await self.graphql(THEME_FILES_UPSERT, {"themeId": theme_id, "files": files})
        result = data.get("themeFilesUpsert") or {}
        upserted = [f.get("filename") for f in (result.get("upsertedThemeFiles") or [])]
        user_errors = result.get("userErrors") or []
        return upserted, user_errors

    # ============================================
    # SHOP
    # ============================================

    async def is_partner_development_store(self) -> bool:
        data = await self.graphql(SHOP_PLAN_QUERY)
        plan = _object(_object(data.get("shop")).get("plan"))
        return bool(plan.get("partnerDevelopment"))

    # ============================================
    # APP BILLING
    # ============================================

    async def one_time_purchases(self) -> List[Dict[str, Any]]:
        data = await self.graphql(ONE_TIME_PURCHASES_QUERY)
        installation = _object(data.get("currentAppInstallation"))
        return _object(installation.get("oneTimePurchases")).get("nodes") or []

    async def create_one_time_purchase(
        self,
        name: str,
        amount: Decimal,
        currency: str,
        return_url: str,
        test: bool,
    ) -> Tuple[Optional[str], List[Dict[str, Any]]]:
        """
        Request a one-time app charge.

        Returns:
            (confirmation URL, user errors)
        """
        data = await self.graphql(
            APP_PURCHASE_ONE_TIME_CREATE,
            {
                "name": name,
                "price": {"amount": str(amount), "currencyCode": currency},
                "returnUrl": return_url,
                "test": test,
            },
        )
        result = _object(data.get("appPurchaseOneTimeCreate"))
        return result.get("confirmationUrl"), result.get("userErrors") or []
