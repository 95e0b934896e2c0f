"""
Shared HTTP client for Shopify calls.
Every outbound call is a single attempt with an explicit timeout; nothing here retries.
"""
import logging
from typing import AsyncIterator, Optional

import httpx

from stock_counter.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = settings.HTTP_TIMEOUT_SECONDS


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """FastAPI dependency: one AsyncClient per request, closed afterwards."""
    async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
        yield client


async def post_no_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    json: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> httpx.Response:
    """POST with no retries (non-idempotent). Uses single attempt with the client's timeout."""
    return await client.post(url, json=json or {}, headers=headers or {})
