"""
Client state and diff tests
"""
import asyncio

import pytest

from stock_counter.errors import InvalidRequest, NoUpdates
from stock_counter.models import BatchResult, InventoryRecord, Location
from stock_counter.services.stock_session import (
    StockCountSession,
    build_updates,
    compute_stock_changes,
    filter_records,
    sanitize_edit,
    summarize_result,
)

BRISTOL = Location(key="bristol", external_id="62584946887", display_name="Bristol")
LONDON = Location(key="london", external_id="71658701033", display_name="London")


def record(variant_id, sku, stock, title="Oak Panel", variant_title=None):
    return InventoryRecord(
        variant_id=variant_id,
        product_id=f"product-{variant_id}",
        product_title=title,
        variant_title=variant_title,
        sku=sku,
        inventory_item_id=f"item-{variant_id}",
        inventory_level_id=f"level-{variant_id}",
        current_stock=stock,
    )


BASELINE = [record("v1", "OAK-1", 4), record("v2", "OAK-2", 0), record("v3", "ASH-1", 10, title="Ash Panel")]


class TestSanitizeEdit:
    @pytest.mark.parametrize("text", ["", "0", "12", "0007"])
    def test_accepts_digits(self, text):
        assert sanitize_edit(text) == text

    @pytest.mark.parametrize("text", ["-1", "1.5", "12a", " 3", "١٢"])
    def test_refuses_anything_else(self, text):
        assert sanitize_edit(text) is None


class TestComputeStockChanges:
    def test_changed_values_only(self):
        edits = {"v1": "4", "v2": "3", "v3": ""}

        changes = compute_stock_changes(BASELINE, edits)

        assert [(c.inventory_item_id, c.sku, c.old_value, c.new_value) for c in changes] == [
            ("item-v2", "OAK-2", 0, 3),
        ]

    def test_edit_back_to_baseline_is_no_change(self):
        assert compute_stock_changes(BASELINE, {"v1": "4"}) == []

    def test_leading_zeros_same_number(self):
        assert compute_stock_changes(BASELINE, {"v1": "004"}) == []

    def test_missing_edits_ignored(self):
        assert compute_stock_changes(BASELINE, {}) == []
        assert compute_stock_changes(BASELINE, {"unknown": "9"}) == []

    def test_idempotent(self):
        edits = {"v1": "5", "v3": "0"}
        assert compute_stock_changes(BASELINE, edits) == compute_stock_changes(BASELINE, edits)

    def test_build_updates(self):
        changes = compute_stock_changes(BASELINE, {"v3": "0"})

        updates = build_updates(changes, BRISTOL.external_id)

        assert [(u.inventory_item_id, u.location_id, u.quantity) for u in updates] == [
            ("item-v3", "62584946887", 0),
        ]


def test_filter_records():
    records = BASELINE + [record("v4", "BIR-1", 1, title="Birch", variant_title="Large")]

    assert [r.sku for r in filter_records(records, "oak")] == ["OAK-1", "OAK-2"]
    assert [r.sku for r in filter_records(records, "ash panel")] == ["ASH-1"]
    assert [r.sku for r in filter_records(records, "LARGE")] == ["BIR-1"]
    assert filter_records(records, "  ") == records


def test_summarize_result():
    assert summarize_result(BatchResult(success=3)) == "Successfully updated 3 items"
    assert summarize_result(BatchResult(success=1, failed=2, errors=["x", "y"])) == "Updated 1, failed 2"


class FakeBackend:
    def __init__(self, records_by_location):
        self.records_by_location = records_by_location
        self.fetches = []
        self.submitted = []

    async def fetch(self, location_id):
        self.fetches.append(location_id)
        return list(self.records_by_location.get(location_id, []))

    async def submit(self, updates):
        self.submitted.append(updates)
        return BatchResult(success=len(updates))


@pytest.fixture
def backend():
    return FakeBackend({BRISTOL.external_id: BASELINE, LONDON.external_id: [record("v9", "LON-1", 2)]})


@pytest.fixture
def session(backend):
    s = StockCountSession(BRISTOL, backend.fetch, backend.submit)
    asyncio.run(s.load())
    return s


class TestStockCountSession:
    def test_load_initialises_edits(self, session):
        assert session.edits == {"v1": "4", "v2": "0", "v3": "10"}
        assert session.changes == []

    def test_refused_edit_keeps_old_value(self, session):
        assert session.set_edit("v1", "7")
        assert not session.set_edit("v1", "7x")
        assert session.edits["v1"] == "7"

    def test_toggling_back_clears_change(self, session):
        session.set_edit("v1", "9")
        session.set_edit("v1", "4")
        assert not session.has_changes

    def test_discard(self, session):
        session.set_edit("v2", "5")
        session.discard()
        assert session.changes == []

    def test_save_submits_diff_and_refetches(self, session, backend):
        session.set_edit("v2", "5")

        result = asyncio.run(session.save())

        assert result.success == 1
        assert [(u.inventory_item_id, u.location_id, u.quantity) for u in backend.submitted[0]] == [
            ("item-v2", BRISTOL.external_id, 5),
        ]
        assert backend.fetches == [BRISTOL.external_id, BRISTOL.external_id]
        assert session.changes == []

    def test_save_without_changes(self, session):
        with pytest.raises(NoUpdates):
            asyncio.run(session.save())

    def test_switch_location_refused_with_unsaved_changes(self, session):
        session.set_edit("v1", "1")

        assert not asyncio.run(session.switch_location(LONDON))
        assert session.location == BRISTOL

        assert asyncio.run(session.switch_location(LONDON, force=True))
        assert session.location == LONDON
        assert [r.sku for r in session.records] == ["LON-1"]

    def test_set_edit_by_sku(self, session):
        assert session.set_edit_by_sku("ASH-1", "12") == 1
        assert session.set_edit_by_sku("NOPE", "1") == 0
        with pytest.raises(InvalidRequest):
            session.set_edit_by_sku("ASH-1", "twelve")
        assert [c.new_value for c in session.changes] == [12]
