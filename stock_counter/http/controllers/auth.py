"""
Shopify OAuth routes: authorize redirect, callback, logout.
"""
import logging

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from stock_counter.config import settings
from stock_counter.errors import StockCounterError
from stock_counter.services.credentials import (
    ACCESS_TOKEN_COOKIE,
    NONCE_COOKIE,
    SHOP_COOKIE,
    seal,
    unseal,
)
from stock_counter.services.http_client import get_http_client
from stock_counter.services.shopify_oauth import ShopifyOAuthService, generate_nonce

logger = logging.getLogger(__name__)

router = APIRouter()

ONE_YEAR_SECONDS = 60 * 60 * 24 * 365
NONCE_MAX_AGE_SECONDS = 600


def _cookie_kwargs() -> dict:
    return {
        "path": "/",
        "httponly": True,
        "secure": settings.COOKIE_SECURE,
        "samesite": "lax",
    }


@router.get("")
async def authorize(shop: str = Query(None)):
    """Issue a nonce and redirect to the Shopify consent screen."""
    oauth_service = ShopifyOAuthService()
    nonce = generate_nonce()
    install_url = oauth_service.get_install_url(
        shop or settings.SHOP,
        settings.OAUTH_REDIRECT_URI,
        state=nonce,
    )

    response = RedirectResponse(url=install_url, status_code=302)
    response.set_cookie(NONCE_COOKIE, seal(nonce), max_age=NONCE_MAX_AGE_SECONDS, **_cookie_kwargs())
    return response


@router.get(
    "/callback",
    summary="Shopify OAuth callback: nonce + HMAC verify, token exchange, cookies, redirect",
)
async def callback(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Receives code, shop, state (and usually hmac, timestamp, host) from Shopify.
    On success stores the token and shop for a year and redirects to the app root.
    The nonce cookie is cleared whatever the outcome.
    """
    params = dict(request.query_params)
    stored_nonce = unseal(request.cookies.get(NONCE_COOKIE))

    oauth_service = ShopifyOAuthService()
    try:
        credential = await oauth_service.complete_authorization(client, params, stored_nonce)
    except StockCounterError as e:
        logger.info("Shopify OAuth callback failed (%s): %s", e.status_code, e.message)
        # The nonce is single use, failed attempts consume it too
        response = JSONResponse(status_code=e.status_code, content=e.to_dict())
        response.delete_cookie(NONCE_COOKIE, **_cookie_kwargs())
        return response
    logger.info("Shopify OAuth completed for shop: %s", credential.shop)

    response = RedirectResponse(url="/", status_code=302)
    response.set_cookie(ACCESS_TOKEN_COOKIE, seal(credential.access_token), max_age=ONE_YEAR_SECONDS, **_cookie_kwargs())
    response.set_cookie(SHOP_COOKIE, credential.shop, max_age=ONE_YEAR_SECONDS, **_cookie_kwargs())
    response.delete_cookie(NONCE_COOKIE, **_cookie_kwargs())
    return response


@router.post("/logout")
async def logout():
    """Forget the stored credential. Environment fallbacks still apply afterwards."""
    response = JSONResponse(content={"success": True})
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **_cookie_kwargs())
    response.delete_cookie(SHOP_COOKIE, **_cookie_kwargs())
    return response
