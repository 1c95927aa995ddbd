"""Authentication for embedded-admin requests.

Shopify App Bridge sends a short-lived session token (an HS256 JWT signed with
the app secret) as ``Authorization: Bearer <token>``, or as the ``id_token``
query parameter on the first document load. The token identifies the shop; the
shop's offline Admin API access token comes from the session store.
"""

import base64
import hashlib
import hmac
import json
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from fastapi import Request

from storefront_sections.errors import AuthError
from storefront_sections.logging_config import bind_shop
from storefront_sections.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)

CLOCK_LEEWAY_SECONDS = 5


@dataclass
class ShopAdmin:
    """Authenticated admin context for one request."""
    shop: str
    access_token: str
    client: ShopifyAdminClient
    user_id: str = ""


def _b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def verify_session_token(
    token: str,
    api_key: str,
    api_secret: str,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Verify an App Bridge session token and return its claims.

    Raises:
        AuthError: malformed token, bad signature, wrong audience or expired
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise AuthError("Malformed session token")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64url_decode(header_b64))
        claims = json.loads(_b64url_decode(payload_b64))
        signature = _b64url_decode(signature_b64)
    except (ValueError, json.JSONDecodeError) as e:
        raise AuthError("Malformed session token") from e

    if not isinstance(header, dict) or not isinstance(claims, dict):
        raise AuthError("Malformed session token")

    if header.get("alg") != "HS256":
        raise AuthError("Unsupported session token algorithm")

    expected = hmac.new(
        api_secret.encode(),
        f"{header_b64}.{payload_b64}".encode(),
        hashlib.sha256,
    ).digest()
    if not hmac.compare_digest(expected, signature):
        raise AuthError("Invalid session token signature")

    current = time.time() if now is None else now
    try:
        expires = float(claims["exp"]) if "exp" in claims else None
        not_before = float(claims["nbf"]) if "nbf" in claims else None
    except (TypeError, ValueError) as e:
        raise AuthError("Malformed session token claims") from e

    if expires is not None and current > expires + CLOCK_LEEWAY_SECONDS:
        raise AuthError("Session token expired")
    if not_before is not None and current < not_before - CLOCK_LEEWAY_SECONDS:
        raise AuthError("Session token not yet valid")
    if claims.get("aud") != api_key:
        raise AuthError("Session token audience mismatch")

    return claims


def shop_from_claims(claims: Dict[str, Any]) -> str:
    shop = urlparse(claims.get("dest", "")).hostname or ""
    if not shop:
        raise AuthError("Session token has no shop destination")
    return shop


class SessionStore:
    """
    Thread-safe map of shop domain -> offline access token.

    Loaded from a JSON file ``{"shop.myshopify.com": "shpat_..."}``; the
    OAuth install flow that writes it lives outside this app.
    """

    def __init__(self, path: Optional[str] = None):
        self._tokens: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._path = Path(path) if path else None
        if self._path:
            self.load()

    def load(self):
        if not self._path or not self._path.exists():
            logger.warning(f"Session store file not found: {self._path}")
            return
        data = json.loads(self._path.read_text())
        with self._lock:
            self._tokens.update({shop.lower(): token for shop, token in data.items()})
        logger.info(f"Loaded {len(data)} shop session(s) from {self._path}")

    def get(self, shop: str) -> Optional[str]:
        with self._lock:
            return self._tokens.get(shop.lower())

    def set(self, shop: str, access_token: str):
        with self._lock:
            self._tokens[shop.lower()] = access_token

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


def _extract_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return request.query_params.get("id_token", "")


def has_session_token(request: Request) -> bool:
    return bool(_extract_token(request))


async def get_current_admin(request: Request) -> ShopAdmin:
    """FastAPI dependency: authenticate the request and build the admin context."""
    config = request.app.state.config
    store: SessionStore = request.app.state.session_store

    if not config.shopify.is_configured:
        raise AuthError("App credentials are not configured")

    token = _extract_token(request)
    if not token:
        raise AuthError("Missing session token")

    claims = verify_session_token(token, config.shopify.api_key, config.shopify.api_secret)
    shop = shop_from_claims(claims)
    bind_shop(shop)

    access_token = store.get(shop)
    if not access_token:
        logger.warning("No offline session for shop", extra={"shop": shop})
        raise AuthError(f"App is not installed on {shop}")

    client = ShopifyAdminClient(
        shop_domain=shop,
        access_token=access_token,
        api_version=config.shopify.api_version,
        timeout=config.shopify.request_timeout,
    )
    return ShopAdmin(shop=shop, access_token=access_token, client=client, user_id=str(claims.get("sub", "")))
