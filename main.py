"""
Storefront Sections API
=======================

Main entry point for the embedded sections app.

Endpoints:
- GET /api/health - Health check
- GET /api/sections - Catalog listing
- GET /api/sections/{handle} - Section detail + theme options
- POST /api/sections/{handle} - purchase / install actions (form: intent, themeId)
- GET /app/sections - Catalog page (session bounce page when no token is sent)
- GET /app/sections/{handle} - Section detail page
"""

import logging
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load .env file if present (dev mode)
load_dotenv()

from storefront_sections import __version__
from storefront_sections.auth import SessionStore
from storefront_sections.billing import BACKENDS
from storefront_sections.catalog import SECTION_CATALOG
from storefront_sections.config import AppConfig
from storefront_sections.errors import (
    AuthError,
    BadRequestError,
    BillingError,
    SectionNotFoundError,
    SectionsError,
    ShopifyApiError,
)
from storefront_sections.logging_config import configure_logging
from storefront_sections.ratelimit import limiter
from storefront_sections.routes import sections

logger = logging.getLogger(__name__)

# Load centralized config from environment
config = AppConfig.from_env()


def build_session_store(app_config: AppConfig) -> SessionStore:
    """Session store from the JSON file, plus the single-shop seed if configured."""
    store = SessionStore(app_config.session_store_path or None)
    if app_config.shopify.shop_domain and app_config.shopify.access_token:
        store.set(app_config.shopify.shop_domain, app_config.shopify.access_token)
    return store


app = FastAPI(
    title="Storefront Sections",
    description="Purchase and install theme sections",
    version=__version__,
)

app.state.config = config
app.state.session_store = build_session_store(config)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS from config
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


async def sections_error_handler(request: Request, exc: SectionsError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


# SectionSourceMissingError has no handler: a missing template surfaces
# as an unhandled 500.
for _error_cls in (SectionNotFoundError, BadRequestError, AuthError, ShopifyApiError, BillingError):
    app.add_exception_handler(_error_cls, sections_error_handler)


@app.on_event("startup")
async def startup_event():
    configure_logging(level=config.log_level, fmt=config.log_format)
    if not config.shopify.is_configured:
        logger.warning("SHOPIFY_API_KEY / SHOPIFY_API_SECRET not set, all admin requests will be rejected")
    if config.billing.backend not in BACKENDS:
        logger.error(
            f"Unknown BILLING_BACKEND {config.billing.backend!r}, expected one of {sorted(BACKENDS)}; "
            "section actions will fail"
        )
    logger.info(
        f"Storefront Sections started: {len(SECTION_CATALOG)} section(s), "
        f"billing={config.billing.backend}, sessions={len(app.state.session_store)}"
    )


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sections": len(SECTION_CATALOG),
        "shopify_configured": config.shopify.is_configured,
        "billing_backend": config.billing.backend,
        "billing_force_test": config.billing.force_test,
        "stripe_configured": config.stripe.is_configured,
        "sessions": len(app.state.session_store),
    }


app.include_router(sections.router)
app.include_router(sections.pages_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
