"""
Inventory reader: one GraphQL query per request, flattened to one record per
variant stocked at the requested location.
"""
import logging
import unicodedata
from typing import List

import httpx

from stock_counter.errors import UpstreamError
from stock_counter.models import NO_SKU, Credential, InventoryRecord
from stock_counter.services.shopify_service import first_error_message, location_gid, post_graphql

logger = logging.getLogger(__name__)

PRODUCTS_PAGE_SIZE = 250
VARIANTS_PAGE_SIZE = 100
DEFAULT_VARIANT_TITLE = "Default Title"

PRODUCTS_QUERY = """
query locationInventory($locationId: ID!) {
  products(first: %(products)d) {
    edges {
      node {
        id
        title
        featuredImage {
          url
        }
        variants(first: %(variants)d) {
          edges {
            node {
              id
              sku
              title
              inventoryItem {
                id
                inventoryLevel(locationId: $locationId) {
                  id
                  available
                }
              }
            }
          }
        }
      }
    }
  }
}
""" % {"products": PRODUCTS_PAGE_SIZE, "variants": VARIANTS_PAGE_SIZE}


def sku_sort_key(sku: str) -> tuple:
    """
    Locale-style ordering: accents and case are ignored first, and
    punctuation and spaces sort ahead of digits and letters. Then lowercase
    sorts before uppercase. Identical SKUs keep their input order.
    """
    decomposed = unicodedata.normalize("NFKD", sku or "")
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    primary = tuple((ch.isalnum(), ch) for ch in base.casefold())
    return (primary, base.swapcase(), sku or "")


def sort_by_sku(records: List[InventoryRecord]) -> List[InventoryRecord]:
    # sorted() is stable, so ties stay in original order
    return sorted(records, key=lambda r: sku_sort_key(r.sku))


def normalize_products(data: dict) -> List[InventoryRecord]:
    """Flatten products -> variants. Variants without a level at the location are left out."""
    records: List[InventoryRecord] = []
    product_edges = (((data or {}).get("products") or {}).get("edges")) or []
    for product_edge in product_edges:
        product = product_edge.get("node") or {}
        image = (product.get("featuredImage") or {}).get("url")
        for variant_edge in ((product.get("variants") or {}).get("edges")) or []:
            variant = variant_edge.get("node") or {}
            inventory_item = variant.get("inventoryItem") or {}
            level = inventory_item.get("inventoryLevel")
            if not level:
                continue
            title = variant.get("title")
            records.append(InventoryRecord(
                variant_id=variant.get("id"),
                product_id=product.get("id"),
                product_title=product.get("title") or "",
                variant_title=title if title and title != DEFAULT_VARIANT_TITLE else None,
                sku=variant.get("sku") or NO_SKU,
                image_url=image or None,
                inventory_item_id=inventory_item.get("id"),
                inventory_level_id=level.get("id"),
                current_stock=max(int(level.get("available") or 0), 0),
            ))
    return records


async def fetch_location_inventory(
    client: httpx.AsyncClient,
    credential: Credential,
    location_id: str,
) -> List[InventoryRecord]:
    """Variants stocked at `location_id`, sorted by SKU."""
    try:
        response = await post_graphql(
            client,
            credential,
            PRODUCTS_QUERY,
            {"locationId": location_gid(location_id)},
        )
    except httpx.HTTPError as e:
        logger.error("Shopify products query failed for location %s: %s", location_id, e)
        raise UpstreamError(f"Shopify API error: {e.__class__.__name__}") from e

    if not response.is_success:
        raise UpstreamError(f"Shopify API error: {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamError("Shopify API returned invalid JSON") from e
    if not isinstance(data, dict):
        raise UpstreamError("Shopify API returned invalid JSON")

    if data.get("errors"):
        logger.error("GraphQL errors: %s", data["errors"])
        raise UpstreamError(first_error_message(data["errors"]))

    records = normalize_products(data.get("data") or {})
    logger.info("Location %s: %s variant(s) stocked", location_id, len(records))
    return sort_by_sku(records)
