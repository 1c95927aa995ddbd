"""Section catalog, purchase and install endpoints."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from storefront_sections.auth import ShopAdmin, get_current_admin, has_session_token
from storefront_sections.billing import BillingProvider, create_billing
from storefront_sections.catalog import Section, get_section_by_handle, list_sections
from storefront_sections.entitlement import EntitlementGate
from storefront_sections.errors import BadRequestError, SectionNotFoundError, ShopifyApiError
from storefront_sections.installer import SectionInstaller
from storefront_sections.models import (
    SectionDetailResponse,
    SectionListResponse,
    SectionOut,
    ThemeOut,
    theme_options,
)
from storefront_sections.ratelimit import ACTION_RATE_LIMIT, limiter
from storefront_sections.shopify_client import build_embedded_app_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sections"])
pages_router = APIRouter(prefix="/app", tags=["pages"])

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

INTENT_PURCHASE = "purchase"
INTENT_INSTALL = "install"


# ============================================
# DEPENDENCIES
# ============================================

async def get_billing(request: Request, admin: ShopAdmin = Depends(get_current_admin)) -> BillingProvider:
    return create_billing(request.app.state.config, admin)


async def get_gate(request: Request, billing: BillingProvider = Depends(get_billing)) -> EntitlementGate:
    return EntitlementGate(billing, force_test=request.app.state.config.billing.force_test)


async def get_installer(request: Request, admin: ShopAdmin = Depends(get_current_admin)) -> SectionInstaller:
    return SectionInstaller(admin.client, library_root=request.app.state.config.section_library_path)


async def get_page_admin(request: Request) -> Optional[ShopAdmin]:
    """
    Admin context for HTML pages, or None when the request carries no token.

    Plain navigations inside the admin frame (links, the billing return) have
    no session token; those get the bounce page, which fetches one through
    App Bridge and reloads. A token that is present but invalid is still a 401.
    """
    if not has_session_token(request):
        return None
    return await get_current_admin(request)


def _require_section(handle: str) -> Section:
    section = get_section_by_handle(handle)
    if section is None:
        raise SectionNotFoundError(handle)
    return section


def _section_return_url(request: Request, admin: ShopAdmin, section: Section) -> str:
    shopify = request.app.state.config.shopify
    path = f"app/sections/{section.handle}"
    return build_embedded_app_url(admin.shop, shopify.api_key, path) or f"{shopify.app_url}/{path}"


def _session_bounce(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "session_bounce.html",
        {"api_key": request.app.state.config.shopify.api_key},
    )


async def _section_detail(handle: str, admin: ShopAdmin) -> SectionDetailResponse:
    section = _require_section(handle)
    themes = await admin.client.list_themes(first=50)
    options = theme_options(themes)
    return SectionDetailResponse(
        section=SectionOut.from_section(section),
        themes=[ThemeOut(id=t.id, name=t.name, role=t.role) for t in themes],
        themeOptions=options,
        selectedTheme=options[0].value if options else None,
    )


# ============================================
# JSON API
# ============================================

@router.get("/sections", response_model=SectionListResponse)
async def get_sections(admin: ShopAdmin = Depends(get_current_admin)):
    """Catalog listing."""
    return SectionListResponse(sections=[SectionOut.from_section(s) for s in list_sections()])


@router.get("/sections/{handle}", response_model=SectionDetailResponse)
async def get_section(handle: str, admin: ShopAdmin = Depends(get_current_admin)):
    """Section detail plus the shop's themes to install into."""
    return await _section_detail(handle, admin)


@router.post("/sections/{handle}")
@limiter.limit(ACTION_RATE_LIMIT)
async def section_action(
    handle: str,
    request: Request,
    admin: ShopAdmin = Depends(get_current_admin),
    gate: EntitlementGate = Depends(get_gate),
    installer: SectionInstaller = Depends(get_installer),
) -> Dict[str, Any]:
    """
    Run a section action.

    Form fields:
        intent: "purchase" or "install"
        themeId: theme GID (install only)
    """
    section = _require_section(handle)

    form = await request.form()
    intent = str(form.get("intent") or "")
    if intent not in (INTENT_PURCHASE, INTENT_INSTALL):
        raise BadRequestError("Bad request")

    theme_id = str(form.get("themeId") or "")
    if intent == INTENT_INSTALL and not theme_id:
        raise BadRequestError("Missing theme")

    entitlement = await gate.ensure_entitlement(
        admin, section.billing_plan, _section_return_url(request, admin, section)
    )
    if not entitlement.granted:
        return entitlement.to_response()

    if intent == INTENT_PURCHASE:
        return {"ok": True}

    try:
        result = await installer.install_section(theme_id, section.handle)
    except ShopifyApiError as e:
        logger.error(
            f"Theme file upsert failed: {e}",
            extra={"shop": admin.shop, "section": section.handle, "theme_id": theme_id},
        )
        return {"ok": False, "errors": [{"field": None, "message": str(e)}]}

    return result.to_dict()


# ============================================
# PAGES
# ============================================

@pages_router.get("/sections", response_class=HTMLResponse)
async def sections_page(request: Request, admin: Optional[ShopAdmin] = Depends(get_page_admin)):
    if admin is None:
        return _session_bounce(request)
    return templates.TemplateResponse(
        request,
        "sections.html",
        {"sections": list_sections(), "api_key": request.app.state.config.shopify.api_key},
    )


@pages_router.get("/sections/{handle}", response_class=HTMLResponse)
async def section_page(handle: str, request: Request, admin: Optional[ShopAdmin] = Depends(get_page_admin)):
    if admin is None:
        return _session_bounce(request)
    detail = await _section_detail(handle, admin)
    return templates.TemplateResponse(
        request,
        "section_detail.html",
        {
            "section": _require_section(handle),
            "options": detail.themeOptions,
            "selected_theme": detail.selectedTheme,
            "api_key": request.app.state.config.shopify.api_key,
        },
    )
