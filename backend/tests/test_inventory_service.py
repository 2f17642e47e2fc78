"""
Inventory ledger tests.

Verifies:
- Every quantity change appends one movement with before/after figures
- Stock never goes negative
- Replaying the movement log reproduces stored quantities
- Low-stock alerts honor per-product thresholds
"""

import pytest

from aquadist.errors import NegativeStockError, NotFoundError, PersistenceError
from aquadist.models import InventoryItem, InventoryMovement, Product
from aquadist.services import inventory_service
from aquadist.services.datastore import DataStore
from aquadist.validation import ValidationError


class TestMovements:

    def test_movement_records_previous_and_new_quantity(self, db_session, admin, water):
        movement = inventory_service.record_inventory_movement(water.id, "out", 3, "Broken seal", admin.id)

        assert movement.quantity_delta == -3
        assert movement.previous_quantity == 10
        assert movement.new_quantity == 7
        assert movement.reason == "adjustment"
        assert movement.created_by_user_id == admin.id
        assert inventory_service.get_on_hand(water.id) == 7

    def test_adjustment_takes_signed_quantity(self, db_session, admin, water):
        inventory_service.record_inventory_movement(water.id, "adjustment", -4, None, admin.id)
        inventory_service.record_inventory_movement(water.id, "adjustment", 1, None, admin.id)
        assert inventory_service.get_on_hand(water.id) == 7

    def test_first_movement_creates_the_item(self, db_session, admin, make_product):
        product = make_product("NEW", 100)
        assert inventory_service.get_on_hand(product.id) == 0

        inventory_service.record_inventory_movement(product.id, "in", 12, "Delivery from plant", admin.id)
        assert db_session.query(InventoryItem).filter_by(product_id=product.id).count() == 1
        assert inventory_service.get_on_hand(product.id) == 12

    def test_negative_stock_is_rejected(self, db_session, admin, ice):
        with pytest.raises(NegativeStockError):
            inventory_service.record_inventory_movement(ice.id, "out", 6, None, admin.id)

        assert inventory_service.get_on_hand(ice.id) == 5
        item = db_session.query(InventoryItem).filter_by(product_id=ice.id).one()
        assert db_session.query(InventoryMovement).filter_by(inventory_item_id=item.id).count() == 1

    def test_unknown_direction_rejected(self, db_session, admin, water):
        with pytest.raises(ValidationError):
            inventory_service.record_inventory_movement(water.id, "sideways", 1, None, admin.id)

    def test_zero_quantity_rejected(self, db_session, admin, water):
        with pytest.raises(ValidationError):
            inventory_service.record_inventory_movement(water.id, "adjustment", 0, None, admin.id)

    def test_unknown_product(self, db_session, admin):
        with pytest.raises(NotFoundError):
            inventory_service.record_inventory_movement(999, "in", 1, None, admin.id)

    def test_list_movements_newest_first(self, db_session, admin, water):
        inventory_service.record_inventory_movement(water.id, "out", 1, None, admin.id)
        inventory_service.record_inventory_movement(water.id, "out", 2, None, admin.id)
        movements = inventory_service.list_movements(product_id=water.id)
        assert [m.quantity_delta for m in movements] == [-2, -1, 10]


class TestLedgerReplay:

    def test_replay_matches_stored_quantity(self, db_session, admin, water, ice):
        inventory_service.record_inventory_movement(water.id, "out", 4, None, admin.id)
        inventory_service.record_inventory_movement(ice.id, "in", 7, None, admin.id)
        assert inventory_service.verify_ledger() == []

        item = db_session.query(InventoryItem).filter_by(product_id=water.id).one()
        assert inventory_service.replay_quantity(item.id) == 6

    def test_drift_is_reported(self, db_session, water):
        item = db_session.query(InventoryItem).filter_by(product_id=water.id).one()
        item.quantity = 99
        db_session.commit()

        mismatches = inventory_service.verify_ledger()
        assert mismatches == [{
            "inventory_item_id": item.id,
            "product_id": water.id,
            "location": "warehouse",
            "stored_quantity": 99,
            "replayed_quantity": 10,
        }]


class TestLowStock:

    def test_default_threshold(self, db_session, water, ice):
        rows = inventory_service.low_stock_items(threshold=8)
        assert [r["product_id"] for r in rows] == [ice.id]

    def test_quantity_equal_to_threshold_is_not_low(self, db_session, ice):
        assert inventory_service.low_stock_items(threshold=5) == []

    def test_per_product_alert_overrides_default(self, db_session, water, ice):
        inventory_service.set_alert(water.id, 15)
        inventory_service.set_alert(ice.id, 0, enabled=False)
        rows = inventory_service.low_stock_items(threshold=1)
        assert [(r["product_id"], r["alert_quantity"]) for r in rows] == [(water.id, 15)]

    def test_never_stocked_products_count_as_zero(self, db_session, make_product):
        product = make_product("EMPTY", 100)
        rows = inventory_service.low_stock_items(threshold=1)
        assert rows[0]["product_id"] == product.id
        assert rows[0]["quantity"] == 0


class TestDataStoreTransaction:

    def test_exception_rolls_back_the_whole_unit(self, db_session):
        store = DataStore()
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.products.insert({"code": "TMP", "name": "Temp", "price": 1})
                with store.transaction():
                    store.products.insert({"code": "TMP2", "name": "Temp 2", "price": 1})
                raise RuntimeError("boom")

        assert db_session.query(Product).count() == 0
        assert not store.in_transaction

    def test_find_filters_and_ordering(self, db_session, make_product):
        make_product("B", 300)
        make_product("A", 100)
        make_product("C", 200)
        store = DataStore()
        cheap = store.products.find({"price__lte": 200}, order_by="-price")
        assert [p.code for p in cheap] == ["C", "A"]
        assert store.products.count({"code": ["A", "B"]}) == 2

    def test_unknown_column_is_a_persistence_error(self, db_session):
        with pytest.raises(PersistenceError):
            DataStore().products.find({"colour": "blue"})

    def test_update_inventory_never_goes_negative(self, db_session, ice):
        store = DataStore()
        with pytest.raises(NegativeStockError):
            store.update_inventory(ice.id, -6)
        item, previous, new = store.update_inventory(ice.id, -5)
        store.session.commit()
        assert (previous, new) == (5, 0)
        assert item.version_id > 1
