"""
Location routes
"""
from fastapi import APIRouter

from stock_counter.config import settings

router = APIRouter()


@router.get("")
async def list_locations():
    """Configured store locations in display order"""
    return {"locations": [loc.to_dict() for loc in settings.LOCATIONS]}
