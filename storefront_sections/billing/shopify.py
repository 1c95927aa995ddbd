"""Shopify app billing: one-time purchases through the Admin GraphQL API."""

import logging
from typing import Any, Dict, List

from storefront_sections.billing.base import BillingProvider, EntitlementState
from storefront_sections.catalog import get_section_by_plan
from storefront_sections.errors import BillingError, ShopifyApiError
from storefront_sections.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)


def _normalize_user_errors(user_errors: Any) -> List[Dict[str, Any]]:
    """Coerce GraphQL userErrors into ``{field, message}`` dicts."""
    if not isinstance(user_errors, list):
        user_errors = [user_errors]
    normalized = []
    for err in user_errors:
        if isinstance(err, dict):
            normalized.append({"field": err.get("field"), "message": str(err.get("message") or "")})
        else:
            normalized.append({"field": None, "message": str(err)})
    return normalized


class ShopifyBilling(BillingProvider):
    BACKEND_ID = "shopify"

    def __init__(self, client: ShopifyAdminClient, currency: str = "USD"):
        self.client = client
        self.currency = currency

    async def check(self, plans: List[str]) -> EntitlementState:
        try:
            purchases = await self.client.one_time_purchases()
        except ShopifyApiError as e:
            raise BillingError(f"Billing check failed: {e}") from e

        if not isinstance(purchases, list):
            raise BillingError("Billing check returned an unexpected purchases payload")

        active = [
            p for p in purchases
            if isinstance(p, dict) and p.get("name") in plans and p.get("status") == "ACTIVE"
        ]
        return EntitlementState(has_active_payment=bool(active), purchases=active)

    async def request(self, plan: str, is_test: bool, return_url: str) -> str:
        section = get_section_by_plan(plan)
        if section is None:
            raise BillingError(f"Unknown billing plan: {plan}")

        try:
            confirmation_url, user_errors = await self.client.create_one_time_purchase(
                name=plan,
                amount=section.price_usd,
                currency=self.currency,
                return_url=return_url,
                test=is_test,
            )
        except ShopifyApiError as e:
            raise BillingError(f"Billing request failed: {e}") from e

        if user_errors:
            errors = _normalize_user_errors(user_errors)
            messages = "; ".join(err["message"] for err in errors)
            raise BillingError(f"Billing request rejected: {messages}", errors=errors)
        if not confirmation_url or not isinstance(confirmation_url, str):
            raise BillingError("Billing response is missing confirmationUrl")

        logger.info(
            f"Requested one-time purchase {plan} (test={is_test})",
            extra={"shop": self.client.shop_domain, "plan": plan},
        )
        return confirmation_url
