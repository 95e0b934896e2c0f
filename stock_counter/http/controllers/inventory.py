"""
Inventory routes. Updates are pushed straight to Shopify; nothing is stored locally.
"""
import logging

import httpx
from fastapi import APIRouter, Depends

from stock_counter.http.dependencies import require_credential
from stock_counter.http.requests import UpdateInventoryRequest
from stock_counter.models import Credential
from stock_counter.services.http_client import get_http_client
from stock_counter.services.inventory_writer import apply_inventory_updates

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def update_inventory(
    request: UpdateInventoryRequest,
    credential: Credential = Depends(require_credential),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Set absolute quantities, one Shopify call per item. Partial failure is still a 200."""
    updates = [item.to_update() for item in request.updates]
    logger.info("Applying %s inventory update(s) for shop %s", len(updates), credential.shop)
    result = await apply_inventory_updates(client, credential, updates)
    return result.to_dict()
