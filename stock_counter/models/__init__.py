"""
Domain models for the stock counter.
Nothing here is persisted: Shopify is the only store. Records are rebuilt on every read.
"""
from typing import List, Optional
from pydantic import BaseModel, Field
import enum

NO_SKU = "No SKU"


# Enums
class HandshakeState(str, enum.Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    NONCE_ISSUED = "NONCE_ISSUED"
    CALLBACK_RECEIVED = "CALLBACK_RECEIVED"
    AUTHENTICATED = "AUTHENTICATED"
    REJECTED = "REJECTED"


class Location(BaseModel):
    """A physical stock-keeping site, identified in Shopify by a numeric id."""
    key: str
    external_id: str
    display_name: str

    def to_dict(self) -> dict:
        return {"key": self.key, "id": self.external_id, "name": self.display_name}


class Credential(BaseModel):
    shop: str
    access_token: str

    def __repr__(self) -> str:
        # Never print the token
        return f"Credential(shop={self.shop!r})"

    __str__ = __repr__


class InventoryRecord(BaseModel):
    """One variant's stock at one location."""
    variant_id: str
    product_id: str
    product_title: str
    variant_title: Optional[str] = None
    sku: str = NO_SKU
    image_url: Optional[str] = None
    inventory_item_id: str
    inventory_level_id: str
    current_stock: int = Field(0, ge=0)

    def to_dict(self) -> dict:
        return {
            "variantId": self.variant_id,
            "productId": self.product_id,
            "productTitle": self.product_title,
            "variantTitle": self.variant_title,
            "sku": self.sku,
            "imageUrl": self.image_url,
            "inventoryItemId": self.inventory_item_id,
            "inventoryLevelId": self.inventory_level_id,
            "currentStock": self.current_stock,
        }


class StockChange(BaseModel):
    inventory_item_id: str
    sku: str
    old_value: int
    new_value: int


class InventoryUpdate(BaseModel):
    """Absolute quantity for one inventory item at one location."""
    inventory_item_id: str
    location_id: str
    quantity: int = Field(..., ge=0)


class BatchResult(BaseModel):
    success: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success + self.failed

    def to_dict(self) -> dict:
        return {"success": self.success, "failed": self.failed, "errors": list(self.errors)}
