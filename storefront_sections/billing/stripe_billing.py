"""
Stripe Checkout Billing
=======================

Alternate backend that sells sections through one-time Stripe Checkout
Sessions instead of Shopify app charges.

Flow:
1. Merchant hits purchase
2. Create a ``payment`` Checkout Session tagged with shop + plan metadata
3. Redirect merchant to the Stripe payment page
4. Stripe sends them back to the section page (success or cancel)
5. Next load searches succeeded PaymentIntents by metadata

Test vs live mode selects which secret key is used, so test purchases never
create real charges.

Requires: pip install stripe
"""

import asyncio
import logging
from typing import Any, Dict, List

import stripe

from storefront_sections.billing.base import BillingProvider, EntitlementState
from storefront_sections.catalog import get_section_by_plan
from storefront_sections.config import StripeConfig
from storefront_sections.errors import BillingError

logger = logging.getLogger(__name__)


def _search_query(shop: str, plan: str) -> str:
    return (
        f"status:'succeeded' AND metadata['shop']:'{shop}' "
        f"AND metadata['plan']:'{plan}'"
    )


class StripeBilling(BillingProvider):
    BACKEND_ID = "stripe"

    def __init__(self, stripe_config: StripeConfig, shop: str, currency: str = "USD"):
        self.stripe_config = stripe_config
        self.shop = shop
        self.currency = currency.lower()

    def _configured_modes(self) -> List[str]:
        modes = []
        if self.stripe_config.live_secret_key:
            modes.append("live")
        if self.stripe_config.test_secret_key:
            modes.append("test")
        return modes

    async def check(self, plans: List[str]) -> EntitlementState:
        modes = self._configured_modes()
        if not modes:
            raise BillingError("Stripe is not configured")

        def _search() -> List[Dict[str, Any]]:
            found = []
            for mode in modes:
                api_key = self.stripe_config.get_secret_key(mode)
                for plan in plans:
                    result = stripe.PaymentIntent.search(
                        query=_search_query(self.shop, plan),
                        limit=1,
                        api_key=api_key,
                    )
                    for intent in result.data:
                        found.append({
                            "id": intent.id,
                            "name": plan,
                            "status": "ACTIVE",
                            "test": mode == "test",
                        })
            return found

        try:
            purchases = await asyncio.to_thread(_search)
        except stripe.StripeError as e:
            raise BillingError(f"Stripe billing check failed: {e}") from e

        return EntitlementState(has_active_payment=bool(purchases), purchases=purchases)

    async def request(self, plan: str, is_test: bool, return_url: str) -> str:
        section = get_section_by_plan(plan)
        if section is None:
            raise BillingError(f"Unknown billing plan: {plan}")

        mode = "test" if is_test else "live"
        api_key = self.stripe_config.get_secret_key(mode)
        if not api_key:
            raise BillingError(f"Stripe {mode} key is not configured")

        metadata = {"shop": self.shop, "plan": plan, "section": section.handle}

        def _create():
            return stripe.checkout.Session.create(
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "unit_amount": int(section.price_usd * 100),
                            "product_data": {"name": section.title},
                        },
                        "quantity": 1,
                    }
                ],
                success_url=return_url,
                cancel_url=return_url,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
                api_key=api_key,
            )

        try:
            session = await asyncio.to_thread(_create)
        except stripe.StripeError as e:
            raise BillingError(f"Stripe checkout failed: {e}") from e

        if not session.url:
            raise BillingError("Stripe checkout session has no URL")

        logger.info(
            f"Created Stripe checkout {session.id} for {plan} (mode={mode})",
            extra={"shop": self.shop, "plan": plan},
        )
        return session.url
