"""
Cookie sealing and credential resolution.
The access token and the OAuth nonce are stored in cookies encrypted with Fernet;
the shop domain is stored in clear and only trusted when it is a myshopify.com host.
"""
import base64
import logging
from typing import Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken
from fastapi import Request

from stock_counter.config import Settings, settings as default_settings
from stock_counter.errors import Unauthenticated
from stock_counter.models import Credential
from stock_counter.services.shopify_oauth import SHOP_DOMAIN_RE

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "shopify_access_token"
SHOP_COOKIE = "shopify_shop"
NONCE_COOKIE = "shopify_nonce"


def get_encryption_key(config: Settings = default_settings) -> bytes:
    """Derive the Fernet key from ENCRYPTION_KEY"""
    key_str = config.ENCRYPTION_KEY
    # Ensure key is 32 bytes for Fernet
    key_bytes = key_str.encode()[:32].ljust(32, b'0')
    return base64.urlsafe_b64encode(key_bytes)


def seal(value: str, config: Settings = default_settings) -> str:
    """Encrypt a cookie value"""
    f = Fernet(get_encryption_key(config))
    return f.encrypt(value.encode()).decode()


def unseal(sealed: Optional[str], config: Settings = default_settings) -> Optional[str]:
    """Decrypt a cookie value. Tampered, foreign or empty values come back as None."""
    if not sealed:
        return None
    f = Fernet(get_encryption_key(config))
    try:
        return f.decrypt(sealed.encode()).decode()
    except (InvalidToken, ValueError):
        logger.warning("Discarding cookie that could not be unsealed")
        return None


def trusted_shop(value: Optional[str]) -> Optional[str]:
    """The shop cookie value if it names a myshopify.com store, else None."""
    shop = (value or "").strip().lower()
    if shop and SHOP_DOMAIN_RE.match(shop):
        return shop
    if shop:
        logger.warning("Ignoring shop cookie that is not a myshopify.com domain")
    return None


def resolve_credential(cookies: Mapping[str, str], config: Settings = default_settings) -> Optional[Credential]:
    """
    Pure resolution of the shop and access token for a request.
    A sealed token cookie wins and goes with the shop cookie (or SHOP).
    SHOPIFY_ACCESS_TOKEN is only ever paired with SHOP. No token means no credential.
    """
    cookie_token = unseal(cookies.get(ACCESS_TOKEN_COOKIE), config)
    if cookie_token:
        shop = trusted_shop(cookies.get(SHOP_COOKIE)) or config.SHOP
        return Credential(shop=shop, access_token=cookie_token)
    if config.SHOPIFY_ACCESS_TOKEN:
        return Credential(shop=config.SHOP, access_token=config.SHOPIFY_ACCESS_TOKEN)
    return None


class CredentialProvider:
    """Resolves the credential for an incoming request. Injected into controllers."""

    def __init__(self, config: Settings = default_settings):
        self.config = config

    def resolve(self, request: Request) -> Optional[Credential]:
        return resolve_credential(request.cookies, self.config)

    def require(self, request: Request) -> Credential:
        credential = self.resolve(request)
        if credential is None:
            raise Unauthenticated()
        return credential
