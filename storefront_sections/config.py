"""
Storefront Sections Configuration
=================================

Single source of truth for all configuration values.
Reads from environment variables with sensible defaults.
"""

import os
from typing import List
from dataclasses import dataclass, field

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in _TRUTHY


@dataclass
class ShopifyConfig:
    """Shopify app credentials and Admin API settings."""
    api_key: str = ""
    api_secret: str = ""
    api_version: str = "2025-07"
    app_url: str = "http://localhost:8000"
    request_timeout: float = 20.0
    # Optional single-shop seed for the session store (custom apps / dev)
    shop_domain: str = ""
    access_token: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_secret)


@dataclass
class StripeConfig:
    """Stripe configuration with both test and live keys for per-request mode switching."""
    test_secret_key: str = ""
    live_secret_key: str = ""
    default_mode: str = "live"

    def get_secret_key(self, mode: str = None) -> str:
        """Get secret key for specified mode (or default)."""
        effective_mode = mode or self.default_mode
        return self.live_secret_key if effective_mode == "live" else self.test_secret_key

    @property
    def is_configured(self) -> bool:
        """Check if at least one mode is configured."""
        return bool(self.test_secret_key or self.live_secret_key)


@dataclass
class BillingConfig:
    backend: str = "shopify"  # "shopify" or "stripe"
    force_test: bool = False
    currency: str = "USD"


@dataclass
class AppConfig:
    """Master configuration for the sections app."""

    # Sub-configs
    shopify: ShopifyConfig = field(default_factory=ShopifyConfig)
    stripe: StripeConfig = field(default_factory=StripeConfig)
    billing: BillingConfig = field(default_factory=BillingConfig)

    # Application settings
    section_library_path: str = "SECTION_LIBRARY"
    session_store_path: str = ""
    log_level: str = "INFO"
    log_format: str = "json"
    cors_origins: List[str] = field(
        default_factory=lambda: ["https://admin.shopify.com"]
    )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        return cls(
            shopify=ShopifyConfig(
                api_key=os.environ.get("SHOPIFY_API_KEY", ""),
                api_secret=os.environ.get("SHOPIFY_API_SECRET", ""),
                api_version=os.environ.get("SHOPIFY_API_VERSION", "2025-07"),
                app_url=os.environ.get("SHOPIFY_APP_URL", "http://localhost:8000").rstrip("/"),
                request_timeout=float(os.environ.get("SHOPIFY_REQUEST_TIMEOUT", "20")),
                shop_domain=os.environ.get("SHOPIFY_SHOP_DOMAIN", ""),
                access_token=os.environ.get("SHOPIFY_ACCESS_TOKEN", ""),
            ),
            stripe=StripeConfig(
                test_secret_key=os.environ.get("STRIPE_TEST_SECRET_KEY", os.environ.get("STRIPE_SECRET_KEY", "")),
                live_secret_key=os.environ.get("STRIPE_LIVE_SECRET_KEY", ""),
                default_mode=os.environ.get("STRIPE_DEFAULT_MODE", "live"),
            ),
            billing=BillingConfig(
                backend=os.environ.get("BILLING_BACKEND", "shopify").lower(),
                force_test=_env_flag("BILLING_FORCE_TEST"),
                currency=os.environ.get("BILLING_CURRENCY", "USD").upper(),
            ),
            section_library_path=os.environ.get("SECTION_LIBRARY_PATH", "SECTION_LIBRARY"),
            session_store_path=os.environ.get("SESSION_STORE_PATH", ""),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            log_format=os.environ.get("LOG_FORMAT", "json"),
            cors_origins=[
                o.strip()
                for o in os.environ.get("CORS_ORIGINS", "https://admin.shopify.com").split(",")
                if o.strip()
            ],
        )
