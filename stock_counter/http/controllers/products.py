"""
Product routes: stock of every variant carried at one location.
"""
import httpx
from fastapi import APIRouter, Depends, Query, Request

from stock_counter.errors import InvalidRequest
from stock_counter.http.dependencies import get_credential_provider
from stock_counter.services.credentials import CredentialProvider
from stock_counter.services.http_client import get_http_client
from stock_counter.services.inventory_reader import fetch_location_inventory

router = APIRouter()


@router.get("")
async def list_products(
    request: Request,
    locationId: str = Query(None),
    provider: CredentialProvider = Depends(get_credential_provider),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """List variants stocked at `locationId`, sorted by SKU."""
    if not locationId or not locationId.strip():
        raise InvalidRequest("Location ID is required")
    credential = provider.require(request)

    records = await fetch_location_inventory(client, credential, locationId.strip())
    return {"products": [r.to_dict() for r in records]}
