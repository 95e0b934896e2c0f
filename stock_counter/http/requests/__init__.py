from stock_counter.http.requests.schemas import InventoryUpdateItem, UpdateInventoryRequest

__all__ = ["InventoryUpdateItem", "UpdateInventoryRequest"]
