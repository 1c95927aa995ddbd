"""
Storefront Sections Test Fixtures
=================================

Shared fixtures for all test modules.
"""

import base64
import hashlib
import hmac
import json
import time
import pytest
from unittest.mock import AsyncMock, MagicMock


API_KEY = "test-api-key"
API_SECRET = "test-api-secret"
SHOP = "my-shop.myshopify.com"
THEME_ID = "gid://shopify/OnlineStoreTheme/123456789"


# ============================================
# CONFIG
# ============================================

@pytest.fixture
def section_library(tmp_path):
    """Library directory holding a template for the shipped section."""
    (tmp_path / "p5-trust-builder-bar.liquid").write_text("<div>{{ section.id }}</div>")
    return tmp_path


@pytest.fixture
def test_config(section_library):
    """Test configuration with dummy values."""
    from storefront_sections.config import AppConfig, BillingConfig, ShopifyConfig, StripeConfig

    return AppConfig(
        shopify=ShopifyConfig(
            api_key=API_KEY,
            api_secret=API_SECRET,
            app_url="https://sections.example.com",
        ),
        stripe=StripeConfig(
            test_secret_key="sk_test_fake",
            live_secret_key="sk_live_fake",
        ),
        billing=BillingConfig(backend="shopify", force_test=False),
        section_library_path=str(section_library),
        log_format="text",
    )


# ============================================
# SESSION TOKENS
# ============================================

def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def make_session_token(shop: str = SHOP, secret: str = API_SECRET, aud: str = API_KEY, **overrides) -> str:
    """Build an App Bridge style HS256 session token."""
    now = int(time.time())
    claims = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "aud": aud,
        "sub": "42",
        "exp": now + 60,
        "nbf": now - 1,
        "iat": now,
    }
    claims.update(overrides)
    header_b64 = _b64url(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
    payload_b64 = _b64url(json.dumps(claims).encode())
    signature = hmac.new(secret.encode(), f"{header_b64}.{payload_b64}".encode(), hashlib.sha256).digest()
    return f"{header_b64}.{payload_b64}.{_b64url(signature)}"


@pytest.fixture
def session_token():
    return make_session_token()


# ============================================
# MOCK SHOPIFY
# ============================================

@pytest.fixture
def mock_shopify_client():
    """Mock Admin GraphQL client."""
    from storefront_sections.shopify_client import Theme

    client = MagicMock()
    client.shop_domain = SHOP
    client.list_themes = AsyncMock(return_value=[
        Theme(id="gid://shopify/OnlineStoreTheme/111", name="Dawn copy", role="UNPUBLISHED"),
        Theme(id=THEME_ID, name="Dawn", role="MAIN"),
    ])
    client.upsert_theme_files = AsyncMock(
        return_value=(["sections/p5-trust-builder-bar.liquid"], [])
    )
    client.is_partner_development_store = AsyncMock(return_value=False)
    client.one_time_purchases = AsyncMock(return_value=[])
    client.create_one_time_purchase = AsyncMock(
        return_value=("https://my-shop.myshopify.com/admin/charges/confirm", [])
    )
    return client


@pytest.fixture
def mock_admin(mock_shopify_client):
    """Authenticated admin context backed by the mock client."""
    from storefront_sections.auth import ShopAdmin

    return ShopAdmin(shop=SHOP, access_token="shpat_fake", client=mock_shopify_client, user_id="42")


@pytest.fixture
def mock_billing():
    """Mock billing backend with no active purchase."""
    from storefront_sections.billing.base import BillingProvider, EntitlementState

    billing = MagicMock(spec=BillingProvider)
    billing.check = AsyncMock(return_value=EntitlementState(has_active_payment=False))
    billing.request = AsyncMock(return_value="https://pay.example.com/confirm")

    async def _require(plans, on_failure):
        state = await billing.check(plans)
        if state.has_active_payment:
            return state
        return await on_failure()

    billing.require = AsyncMock(side_effect=_require)
    return billing


# ============================================
# FASTAPI TEST CLIENT
# ============================================

@pytest.fixture
def app(test_config):
    """The FastAPI app wired to test config, with rate limiting off."""
    from main import app as fastapi_app
    from storefront_sections.auth import SessionStore
    from storefront_sections.ratelimit import limiter

    original_config = fastapi_app.state.config
    original_store = fastapi_app.state.session_store

    store = SessionStore()
    store.set(SHOP, "shpat_fake")
    fastapi_app.state.config = test_config
    fastapi_app.state.session_store = store
    limiter.enabled = False

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()
    fastapi_app.state.config = original_config
    fastapi_app.state.session_store = original_store
    limiter.enabled = True


@pytest.fixture
def test_client(app, mock_admin, mock_billing):
    """Client with auth and billing replaced by mocks."""
    from fastapi.testclient import TestClient
    from storefront_sections.auth import get_current_admin
    from storefront_sections.routes.sections import get_billing, get_page_admin

    app.dependency_overrides[get_current_admin] = lambda: mock_admin
    app.dependency_overrides[get_page_admin] = lambda: mock_admin
    app.dependency_overrides[get_billing] = lambda: mock_billing
    return TestClient(app)
