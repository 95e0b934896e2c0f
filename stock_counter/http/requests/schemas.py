"""
Pydantic schemas for request validation (Http/Requests).
Field names follow the JSON the browser sends (camelCase).
"""
from pydantic import BaseModel, Field, validator
from typing import List

from stock_counter.models import InventoryUpdate


# Inventory Schemas
class InventoryUpdateItem(BaseModel):
    inventoryItemId: str = Field(..., min_length=1)
    locationId: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)

    @validator("locationId", pre=True)
    def coerce_location_id(cls, v):
        # Browsers send the numeric id either as a string or a number
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def to_update(self) -> InventoryUpdate:
        return InventoryUpdate(
            inventory_item_id=self.inventoryItemId,
            location_id=self.locationId.strip(),
            quantity=self.quantity,
        )


class UpdateInventoryRequest(BaseModel):
    updates: List[InventoryUpdateItem]
