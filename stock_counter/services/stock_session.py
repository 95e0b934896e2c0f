"""
Client-side stock count state.

A session holds the last-fetched baseline for one location and the user's
pending edits (variant id -> digits-only text). The set of changes is always
derived from those two; there is no separate dirty flag.
"""
import logging
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from stock_counter.errors import InvalidRequest, NoUpdates
from stock_counter.models import BatchResult, InventoryRecord, InventoryUpdate, Location, StockChange

logger = logging.getLogger(__name__)

FetchInventory = Callable[[str], Awaitable[List[InventoryRecord]]]
SubmitUpdates = Callable[[List[InventoryUpdate]], Awaitable[BatchResult]]


def sanitize_edit(text: str) -> Optional[str]:
    """Accept empty text or ASCII digits only; anything else is refused (None)."""
    if text == "":
        return text
    if text.isascii() and text.isdigit():
        return text
    return None


def compute_stock_changes(
    baseline: Sequence[InventoryRecord],
    edits: Mapping[str, str],
) -> List[StockChange]:
    """Records whose edit exists, is non-empty and differs from the fetched stock. Pure."""
    changes = []
    for record in baseline:
        value = edits.get(record.variant_id)
        if value is None or value == "" or value == str(record.current_stock):
            continue
        new_value = int(value)
        if new_value == record.current_stock:
            # "007" vs 7: same number, nothing to send
            continue
        changes.append(StockChange(
            inventory_item_id=record.inventory_item_id,
            sku=record.sku,
            old_value=record.current_stock,
            new_value=new_value,
        ))
    return changes


def build_updates(changes: Sequence[StockChange], location_id: str) -> List[InventoryUpdate]:
    return [
        InventoryUpdate(
            inventory_item_id=change.inventory_item_id,
            location_id=location_id,
            quantity=change.new_value,
        )
        for change in changes
    ]


def filter_records(records: Sequence[InventoryRecord], query: str) -> List[InventoryRecord]:
    """Case-insensitive search on SKU, product title and variant title."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(records)
    return [
        r for r in records
        if needle in r.sku.lower()
        or needle in r.product_title.lower()
        or (r.variant_title and needle in r.variant_title.lower())
    ]


def summarize_result(result: BatchResult) -> str:
    if result.failed > 0:
        return f"Updated {result.success}, failed {result.failed}"
    return f"Successfully updated {result.success} items"


class StockCountSession:
    """Baseline + pending edits for the selected location."""

    def __init__(self, location: Location, fetch: FetchInventory, submit: SubmitUpdates):
        self.location = location
        self._fetch = fetch
        self._submit = submit
        self.records: List[InventoryRecord] = []
        self.edits: Dict[str, str] = {}

    async def load(self) -> List[InventoryRecord]:
        """Fetch the baseline and reset every edit to the fetched value."""
        self.records = await self._fetch(self.location.external_id)
        self.edits = {r.variant_id: str(r.current_stock) for r in self.records}
        logger.debug("Loaded %s record(s) for %s", len(self.records), self.location.display_name)
        return self.records

    def set_edit(self, variant_id: str, text: str) -> bool:
        """Store the edit if it is digits only. Returns False when the text was refused."""
        value = sanitize_edit(text)
        if value is None:
            return False
        self.edits[variant_id] = value
        return True

    def set_edit_by_sku(self, sku: str, text: str) -> int:
        """Apply an edit to every record carrying `sku`. Returns how many records matched."""
        matched = [r for r in self.records if r.sku == sku]
        if sanitize_edit(text) is None:
            raise InvalidRequest(f"Stock count for {sku} must be a whole number")
        for record in matched:
            self.set_edit(record.variant_id, text)
        return len(matched)

    @property
    def changes(self) -> List[StockChange]:
        return compute_stock_changes(self.records, self.edits)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def discard(self) -> None:
        self.edits = {r.variant_id: str(r.current_stock) for r in self.records}

    async def switch_location(self, location: Location, force: bool = False) -> bool:
        """Move to another location. Refused while unsaved changes exist unless forced."""
        if self.has_changes and not force:
            return False
        self.location = location
        await self.load()
        return True

    async def save(self) -> BatchResult:
        """Submit the current diff, then re-fetch so the baseline matches Shopify."""
        changes = self.changes
        if not changes:
            raise NoUpdates()
        result = await self._submit(build_updates(changes, self.location.external_id))
        await self.load()
        return result
