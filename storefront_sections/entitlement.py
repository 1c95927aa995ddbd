"""
Entitlement Gate
================

Decides whether a shop may use a section's protected actions.

Flow:
1. Check billing for an active one-time payment on the section's plan
2. Active -> granted, nothing else happens
3. Absent -> pick test or live mode, request a payment and hand the
   confirmation URL back to the caller instead of running the action

Billing mode is test when forced by config or when the shop is a partner
development store. The store lookup is best-effort; if it fails we bill live.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from storefront_sections.auth import ShopAdmin
from storefront_sections.billing.base import BillingProvider, EntitlementState
from storefront_sections.errors import BillingError, ShopifyApiError

logger = logging.getLogger(__name__)


class EntitlementStatus(Enum):
    GRANTED = "granted"
    REDIRECT = "redirect"
    FAILED = "failed"


@dataclass
class EntitlementResult:
    status: EntitlementStatus
    confirmation_url: Optional[str] = None
    is_test: Optional[bool] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def granted(self) -> bool:
        return self.status == EntitlementStatus.GRANTED

    def to_response(self) -> Dict[str, Any]:
        """JSON payload for a request that could not proceed."""
        if self.status == EntitlementStatus.REDIRECT:
            return {"ok": False, "redirect": True, "confirmationUrl": self.confirmation_url}
        if self.status == EntitlementStatus.FAILED:
            return {"ok": False, "errors": self.errors}
        return {"ok": True}


async def shop_is_partner_development(admin: ShopAdmin) -> bool:
    """Best-effort partner development store lookup. Any failure means live billing."""
    try:
        return await admin.client.is_partner_development_store()
    except (ShopifyApiError, KeyError, TypeError, AttributeError) as e:
        logger.warning(
            f"Shop plan lookup failed, defaulting to live billing: {e}",
            extra={"shop": admin.shop},
        )
        return False


class EntitlementGate:
    """Gate protected section actions behind an active one-time payment."""

    def __init__(self, billing: BillingProvider, force_test: bool = False):
        self.billing = billing
        self.force_test = force_test

    async def resolve_test_mode(self, admin: ShopAdmin) -> bool:
        if self.force_test:
            return True
        return await shop_is_partner_development(admin)

    async def ensure_entitlement(
        self,
        admin: ShopAdmin,
        required_plan: str,
        return_url: str,
    ) -> EntitlementResult:
        """
        Return GRANTED when the plan is paid for, otherwise start a payment.

        Billing failures never raise; they come back as FAILED with errors
        so the caller can render them and skip the protected action.
        """
        if not required_plan:
            raise ValueError("required_plan must be non-empty")

        log_extra = {"shop": admin.shop, "plan": required_plan}

        async def _request_payment() -> EntitlementResult:
            is_test = await self.resolve_test_mode(admin)
            confirmation_url = await self.billing.request(required_plan, is_test, return_url)
            logger.info(f"Payment required for {required_plan} (test={is_test})", extra=log_extra)
            return EntitlementResult(
                status=EntitlementStatus.REDIRECT,
                confirmation_url=confirmation_url,
                is_test=is_test,
            )

        try:
            outcome = await self.billing.require([required_plan], on_failure=_request_payment)
        except BillingError as e:
            logger.error(f"Billing failed for {required_plan}: {e}", extra=log_extra)
            return EntitlementResult(status=EntitlementStatus.FAILED, errors=e.errors)

        if isinstance(outcome, EntitlementState):
            return EntitlementResult(status=EntitlementStatus.GRANTED)
        return outcome
