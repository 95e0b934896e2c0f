"""
Shopify Admin GraphQL transport - authenticated requests.
Uses API version 2024-01 (stable) unless SHOPIFY_API_VERSION says otherwise.
Never expose access_token to the frontend or the logs.
"""
import logging
from typing import Any, Optional

import httpx

from stock_counter.config import settings
from stock_counter.models import Credential
from stock_counter.services.http_client import post_no_retry

logger = logging.getLogger(__name__)

LOCATION_GID_PREFIX = "gid://shopify/Location/"


def _log_shopify_response(method: str, url: str, status: int, body_preview: str = "") -> None:
    """Log every Shopify API call for debugging. No sensitive data."""
    if status >= 400:
        logger.warning("Shopify API %s %s -> %s %s", method, url, status, body_preview[:200] if body_preview else "")
    else:
        logger.info("Shopify API %s %s -> %s", method, url, status)


def _base_url(shop_domain: str) -> str:
    shop = shop_domain.lower().strip()
    if not shop.endswith(".myshopify.com"):
        shop = f"{shop}.myshopify.com" if "." not in shop else shop
    return f"https://{shop}/admin/api/{settings.SHOPIFY_API_VERSION}"


def _headers(access_token: str) -> dict:
    return {
        "X-Shopify-Access-Token": access_token,
        "Content-Type": "application/json",
    }


def graphql_url(shop_domain: str) -> str:
    return f"{_base_url(shop_domain)}/graphql.json"


def location_gid(location_id: str) -> str:
    """Numeric location id -> Shopify global id. Global ids pass through."""
    location_id = str(location_id).strip()
    if location_id.startswith("gid://"):
        return location_id
    return f"{LOCATION_GID_PREFIX}{location_id}"


def first_error_message(errors: Any, default: str = "GraphQL error") -> str:
    """
    First human-readable message from a Shopify error payload.
    Handles a list of {message} dicts, a list of strings, a {message} dict,
    a dict wrapping another `errors` value, or a bare string.
    """
    if not errors:
        return default
    if isinstance(errors, str):
        return errors
    if isinstance(errors, dict):
        if errors.get("message"):
            return str(errors["message"])
        if "errors" in errors:
            return first_error_message(errors["errors"], default)
        return default
    if isinstance(errors, (list, tuple)):
        return first_error_message(errors[0], default)
    return default


async def post_graphql(
    client: httpx.AsyncClient,
    credential: Credential,
    query: str,
    variables: Optional[dict] = None,
) -> httpx.Response:
    """Send one GraphQL document to the shop's Admin API. Single attempt; status is not checked here."""
    url = graphql_url(credential.shop)
    payload: dict = {"query": query}
    if variables is not None:
        payload["variables"] = variables
    response = await post_no_retry(client, url, json=payload, headers=_headers(credential.access_token))
    body = response.text[:300] if response.status_code >= 400 and response.text else ""
    _log_shopify_response("POST", url, response.status_code, body)
    return response
