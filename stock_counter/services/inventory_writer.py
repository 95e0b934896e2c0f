"""
Inventory writer: the batched reconciliation loop.

Updates are sent strictly one at a time, in input order, with a fixed pause
after every call to stay inside Shopify's per-second call budget. Each call
sets the absolute `available` quantity, so replaying an update is harmless.
Failures are counted per item and never stop the batch; nothing is retried
or rolled back. Callers re-fetch afterwards to see the new values.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Sequence

import httpx

from stock_counter.config import settings
from stock_counter.errors import NoUpdates
from stock_counter.models import BatchResult, Credential, InventoryUpdate
from stock_counter.services.shopify_service import first_error_message, location_gid, post_graphql

logger = logging.getLogger(__name__)

SET_QUANTITIES_MUTATION = """
mutation inventorySetQuantities($input: InventorySetQuantitiesInput!) {
  inventorySetQuantities(input: $input) {
    inventoryAdjustmentGroup {
      createdAt
      reason
    }
    userErrors {
      field
      message
    }
  }
}
"""


def build_set_quantity_variables(update: InventoryUpdate) -> dict:
    return {
        "input": {
            "name": "available",
            "reason": "correction",
            "quantities": [
                {
                    "inventoryItemId": update.inventory_item_id,
                    "locationId": location_gid(update.location_id),
                    "quantity": update.quantity,
                }
            ],
        }
    }


async def _apply_one(client: httpx.AsyncClient, credential: Credential, update: InventoryUpdate) -> str | None:
    """Send one mutation. Returns None on success, otherwise the error line for this item."""
    item = update.inventory_item_id
    try:
        response = await post_graphql(client, credential, SET_QUANTITIES_MUTATION, build_set_quantity_variables(update))
    except httpx.HTTPError as e:
        return f"API error for {item}: {e.__class__.__name__}"

    if not response.is_success:
        return f"API error for {item}: {response.status_code}"

    try:
        data = response.json()
    except ValueError:
        return f"Failed {item}: invalid JSON response"
    if not isinstance(data, dict):
        return f"Failed {item}: invalid JSON response"

    user_errors = ((data.get("data") or {}).get("inventorySetQuantities") or {}).get("userErrors") or []
    if data.get("errors") or user_errors:
        message = first_error_message(data.get("errors") or user_errors, "Unknown error")
        return f"Failed {item}: {message}"
    return None


async def apply_inventory_updates(
    client: httpx.AsyncClient,
    credential: Credential,
    updates: Sequence[InventoryUpdate],
    delay: float | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> BatchResult:
    """
    Apply `updates` one by one and report aggregate counts.
    Raises NoUpdates before any call when the list is empty.
    """
    if not updates:
        raise NoUpdates()
    pause = settings.INVENTORY_UPDATE_DELAY if delay is None else delay

    result = BatchResult()
    for index, update in enumerate(updates, start=1):
        error = await _apply_one(client, credential, update)
        if error is None:
            result.success += 1
        else:
            result.failed += 1
            result.errors.append(error)
            logger.warning("Inventory update %s/%s failed: %s", index, len(updates), error)
        # Pace every call, successful or not
        await sleep(pause)

    logger.info(
        "Inventory batch for %s: %s updated, %s failed",
        credential.shop, result.success, result.failed,
    )
    return result
