"""
Shopify OAuth service - authorization-code flow bound to a one-time nonce.

UNAUTHENTICATED -> NONCE_ISSUED -> CALLBACK_RECEIVED -> AUTHENTICATED | REJECTED.
Both callback guards (nonce, then HMAC) run before the token exchange; no step is retried.
"""
import hashlib
import hmac
import logging
import re
import secrets
from typing import Mapping, Optional
from urllib.parse import urlencode, urlparse

import httpx

from stock_counter.config import settings
from stock_counter.errors import ConfigurationMissing, HandshakeRejected, InvalidRequest, UpstreamError
from stock_counter.models import Credential, HandshakeState
from stock_counter.services.http_client import post_no_retry

logger = logging.getLogger(__name__)

NONCE_BYTES = 16
SHOP_DOMAIN_RE = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")


def generate_nonce() -> str:
    """Cryptographically random nonce, hex encoded"""
    return secrets.token_hex(NONCE_BYTES)


class ShopifyOAuthService:
    """Handle Shopify OAuth flow. Uses provided api_key/api_secret or falls back to settings (env)."""

    def __init__(self, api_key: str | None = None, api_secret: str | None = None, scopes: str | None = None):
        self.api_key = (api_key or "").strip() or settings.SHOPIFY_API_KEY
        self.api_secret = (api_secret or "").strip() or settings.SHOPIFY_API_SECRET
        self.scopes = (scopes or "").strip() or settings.SHOPIFY_SCOPES
        self.state = HandshakeState.UNAUTHENTICATED

    def _transition(self, new_state: HandshakeState) -> None:
        logger.debug("OAuth handshake %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def _reject(self, message: str) -> HandshakeRejected:
        self._transition(HandshakeState.REJECTED)
        logger.warning("Shopify OAuth callback rejected: %s", message)
        return HandshakeRejected(message)

    def require_api_key(self) -> None:
        if not self.api_key:
            raise ConfigurationMissing("API key not configured")

    def require_credentials(self) -> None:
        if not self.api_key or not self.api_secret:
            raise ConfigurationMissing("API credentials not configured")

    def normalize_shop_domain(self, shop_domain: str) -> str:
        """Normalize and validate shop domain"""
        if not shop_domain:
            raise InvalidRequest("Shop domain is required")

        shop = shop_domain.lower().strip()
        shop = shop.replace("https://", "").replace("http://", "")
        shop = shop.rstrip("/")

        # Ensure .myshopify.com suffix
        if not shop.endswith(".myshopify.com"):
            if "." not in shop and shop:
                shop = f"{shop}.myshopify.com"
            else:
                raise InvalidRequest(
                    f"Invalid shop domain format: {shop_domain}. Must be 'shopname' or 'shopname.myshopify.com'"
                )

        if not SHOP_DOMAIN_RE.match(shop):
            raise InvalidRequest(f"Invalid shop domain: {shop_domain}")

        return shop

    def get_install_url(self, shop_domain: str, redirect_uri: str, state: str) -> str:
        """Consent screen URL: https://{shop}/admin/oauth/authorize"""
        self.require_api_key()
        shop = self.normalize_shop_domain(shop_domain)

        parsed_redirect = urlparse(redirect_uri)
        if not parsed_redirect.scheme or not parsed_redirect.netloc:
            raise ConfigurationMissing(f"Invalid redirect_uri: {redirect_uri}")

        params = {
            "client_id": self.api_key,
            "scope": self.scopes,
            "redirect_uri": redirect_uri,
            "state": state,
        }
        self._transition(HandshakeState.NONCE_ISSUED)
        logger.info("Generated OAuth install URL for shop: %s", shop)
        return f"https://{shop}/admin/oauth/authorize?{urlencode(params)}"

    def compute_hmac(self, params: Mapping[str, str]) -> str:
        """HMAC-SHA256 over sorted key=value pairs joined by '&', excluding hmac itself"""
        message = "&".join(
            f"{key}={params[key]}"
            for key in sorted(params)
            if key != "hmac"
        )
        return hmac.new(
            self.api_secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def verify_hmac(self, params: Mapping[str, str]) -> bool:
        """Verify the hmac query parameter. Constant-time comparison."""
        supplied = params.get("hmac")
        if not supplied or not self.api_secret:
            return False
        return hmac.compare_digest(self.compute_hmac(params).encode(), str(supplied).encode())

    async def exchange_code_for_token(self, client: httpx.AsyncClient, shop: str, code: str) -> dict:
        """Exchange authorization code for access token. One attempt."""
        url = f"https://{shop}/admin/oauth/access_token"
        logger.info("Exchanging code for token for shop: %s", shop)
        try:
            response = await post_no_retry(
                client,
                url,
                json={
                    "client_id": self.api_key,
                    "client_secret": self.api_secret,
                    "code": code,
                },
            )
        except httpx.HTTPError as e:
            logger.error("Token exchange error for shop %s: %s", shop, e)
            raise UpstreamError("Failed to get access token") from e

        if not response.is_success:
            logger.error("Token exchange failed for shop %s: HTTP %s - %s", shop, response.status_code, response.text[:200])
            raise UpstreamError("Failed to get access token")

        try:
            token_data = response.json()
        except ValueError as e:
            raise UpstreamError("Failed to get access token") from e

        # Log success (but not the token itself)
        logger.info("Successfully exchanged code for token for shop: %s", shop)
        return token_data

    async def complete_authorization(
        self,
        client: httpx.AsyncClient,
        params: Mapping[str, str],
        stored_nonce: Optional[str],
    ) -> Credential:
        """
        Handle the callback query. Raises InvalidRequest for missing parameters,
        HandshakeRejected for a bad nonce or HMAC, UpstreamError when the exchange fails.
        """
        code, shop, state = params.get("code"), params.get("shop"), params.get("state")
        if not code or not shop or not state:
            raise InvalidRequest("Missing required parameters")
        self.require_credentials()
        self._transition(HandshakeState.CALLBACK_RECEIVED)

        if not stored_nonce or not hmac.compare_digest(str(state).encode(), stored_nonce.encode()):
            raise self._reject("Invalid state parameter")

        if params.get("hmac") and not self.verify_hmac(params):
            raise self._reject("Invalid HMAC")

        normalized_shop = self.normalize_shop_domain(shop)
        try:
            token_data = await self.exchange_code_for_token(client, normalized_shop, code)
        except UpstreamError:
            self._transition(HandshakeState.REJECTED)
            raise

        access_token = str(token_data.get("access_token") or "").strip() if isinstance(token_data, dict) else ""
        if not access_token:
            self._transition(HandshakeState.REJECTED)
            logger.error("No access_token in Shopify response for shop: %s", normalized_shop)
            raise UpstreamError("Failed to get access token")

        self._transition(HandshakeState.AUTHENTICATED)
        return Credential(shop=normalized_shop, access_token=access_token)
