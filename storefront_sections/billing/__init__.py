"""Billing backends for one-time section purchases."""

from storefront_sections.billing.base import BillingProvider, EntitlementState
from storefront_sections.billing.shopify import ShopifyBilling
from storefront_sections.billing.stripe_billing import StripeBilling

BACKENDS = {cls.BACKEND_ID: cls for cls in (ShopifyBilling, StripeBilling)}


def create_billing(config, admin) -> BillingProvider:
    """Build the configured billing backend for an authenticated shop."""
    backend = BACKENDS.get(config.billing.backend)
    if backend is None:
        raise ValueError(
            f"Unknown billing backend: {config.billing.backend} "
            f"(expected one of {', '.join(sorted(BACKENDS))})"
        )
    if backend is StripeBilling:
        return StripeBilling(config.stripe, shop=admin.shop, currency=config.billing.currency)
    return ShopifyBilling(admin.client, currency=config.billing.currency)


__all__ = [
    "BACKENDS",
    "BillingProvider",
    "EntitlementState",
    "ShopifyBilling",
    "StripeBilling",
    "create_billing",
]
