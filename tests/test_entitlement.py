"""
Tests for the Entitlement Gate
==============================

Tests billing checks, test/live mode selection and failure handling.
"""

import pytest

from storefront_sections.billing.base import EntitlementState
from storefront_sections.entitlement import (
    EntitlementGate,
    EntitlementStatus,
    shop_is_partner_development,
)
from storefront_sections.errors import BillingError, ShopifyApiError

PLAN = "TRUST_BAR_999"
RETURN_URL = "https://sections.example.com/app/sections/p5-trust-builder-bar"


class TestActivePayment:

    @pytest.mark.asyncio
    async def test_active_payment_never_requests(self, mock_admin, mock_billing):
        mock_billing.check.return_value = EntitlementState(has_active_payment=True)
        gate = EntitlementGate(mock_billing)

        result = await gate.ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.granted
        assert result.to_response() == {"ok": True}
        mock_billing.check.assert_awaited_once_with([PLAN])
        mock_billing.request.assert_not_awaited()
        mock_admin.client.is_partner_development_store.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_plan_rejected(self, mock_admin, mock_billing):
        with pytest.raises(ValueError):
            await EntitlementGate(mock_billing).ensure_entitlement(mock_admin, "", RETURN_URL)


class TestBillingMode:

    @pytest.mark.asyncio
    async def test_partner_development_store_uses_test_mode(self, mock_admin, mock_billing):
        mock_admin.client.is_partner_development_store.return_value = True
        gate = EntitlementGate(mock_billing, force_test=False)

        result = await gate.ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.status == EntitlementStatus.REDIRECT
        assert result.is_test is True
        assert result.confirmation_url == "https://pay.example.com/confirm"
        mock_billing.request.assert_awaited_once_with(PLAN, True, RETURN_URL)

    @pytest.mark.asyncio
    async def test_regular_store_uses_live_mode(self, mock_admin, mock_billing):
        gate = EntitlementGate(mock_billing, force_test=False)

        result = await gate.ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.is_test is False
        mock_billing.request.assert_awaited_once_with(PLAN, False, RETURN_URL)
        assert result.to_response() == {
            "ok": False,
            "redirect": True,
            "confirmationUrl": "https://pay.example.com/confirm",
        }

    @pytest.mark.asyncio
    async def test_force_test_skips_lookup(self, mock_admin, mock_billing):
        gate = EntitlementGate(mock_billing, force_test=True)

        result = await gate.ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.is_test is True
        mock_admin.client.is_partner_development_store.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_failure_defaults_to_live(self, mock_admin, mock_billing):
        mock_admin.client.is_partner_development_store.side_effect = ShopifyApiError("down")
        gate = EntitlementGate(mock_billing)

        result = await gate.ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.status == EntitlementStatus.REDIRECT
        mock_billing.request.assert_awaited_once_with(PLAN, False, RETURN_URL)

    @pytest.mark.asyncio
    async def test_partner_lookup_helper(self, mock_admin):
        mock_admin.client.is_partner_development_store.side_effect = ShopifyApiError("down")
        assert await shop_is_partner_development(mock_admin) is False

    @pytest.mark.asyncio
    async def test_partner_lookup_malformed_payload(self, mock_admin):
        mock_admin.client.is_partner_development_store.side_effect = AttributeError("'list' object has no attribute 'get'")
        assert await shop_is_partner_development(mock_admin) is False


class TestBillingFailure:

    @pytest.mark.asyncio
    async def test_check_failure_is_structured(self, mock_admin, mock_billing):
        mock_billing.check.side_effect = BillingError("network down")

        result = await EntitlementGate(mock_billing).ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.status == EntitlementStatus.FAILED
        assert not result.granted
        assert result.errors == [{"field": None, "message": "network down"}]
        mock_billing.request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_request_failure_keeps_user_errors(self, mock_admin, mock_billing):
        user_errors = [{"field": ["price"], "message": "Price is too low"}]
        mock_billing.request.side_effect = BillingError("rejected", errors=user_errors)

        result = await EntitlementGate(mock_billing).ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.status == EntitlementStatus.FAILED
        assert result.to_response() == {"ok": False, "errors": user_errors}

    @pytest.mark.asyncio
    async def test_malformed_purchase_nodes_request_payment(self, mock_admin):
        from storefront_sections.billing import ShopifyBilling

        mock_admin.client.one_time_purchases.return_value = [None, {"name": PLAN}]
        gate = EntitlementGate(ShopifyBilling(mock_admin.client))

        result = await gate.ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.status == EntitlementStatus.REDIRECT
        assert result.confirmation_url == "https://my-shop.myshopify.com/admin/charges/confirm"

    @pytest.mark.asyncio
    async def test_malformed_user_errors_are_structured(self, mock_admin):
        from storefront_sections.billing import ShopifyBilling

        mock_admin.client.create_one_time_purchase.return_value = (None, ["Price is too low"])
        gate = EntitlementGate(ShopifyBilling(mock_admin.client))

        result = await gate.ensure_entitlement(mock_admin, PLAN, RETURN_URL)

        assert result.to_response() == {
            "ok": False,
            "errors": [{"field": None, "message": "Price is too low"}],
        }
