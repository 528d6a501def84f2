import pytest
from fastapi import HTTPException

from conftest import auth, reload
from models.order import Order, OrderItem
from models.product import ProductVariant
from models.stock import StockMovement, MOVEMENT_ADJUSTMENT, MOVEMENT_OUT
from utils import stock_ledger


@pytest.fixture
def ordered_variant(db, customer, address, make_variant):
    variant = make_variant(price=10.0, stock=5)
    order = Order(user_id=customer.id, status="pending", total=10.0, shipping_address_id=address.id)
    db.add(order)
    db.flush()
    db.add(OrderItem(order_id=order.id, product_variant_id=variant.id, quantity=1, price=10.0))
    db.commit()
    return variant


class TestLedger:
    def test_decrement(self, db, make_variant):
        variant = make_variant(stock=5)
        stock_ledger.decrement(db, variant.id, 3, order_id=None, user_id=None)
        db.commit()
        assert reload(db, ProductVariant, variant.id).stock == 2
        movement = db.query(StockMovement).one()
        assert movement.qty == -3
        assert movement.type == MOVEMENT_OUT

    def test_decrement_refuses_to_go_negative(self, db, make_variant):
        variant = make_variant(stock=2)
        with pytest.raises(stock_ledger.InsufficientStockError) as excinfo:
            stock_ledger.decrement(db, variant.id, 3)
        assert excinfo.value.available == 2
        assert str(excinfo.value) == f"Not enough stock for variant {variant.id}"
        db.rollback()
        assert reload(db, ProductVariant, variant.id).stock == 2

    def test_restore_missing_variant_is_skipped(self, db):
        stock_ledger.restore(db, 9999, 2, order_id=1)
        db.commit()
        assert db.query(StockMovement).count() == 0

    def test_has_been_ordered(self, db, make_variant, ordered_variant):
        assert stock_ledger.has_been_ordered(db, ordered_variant.id)
        assert not stock_ledger.has_been_ordered(db, make_variant().id)


class TestSetVariant:
    def test_stock_change_recorded_as_adjustment(self, db, admin, make_variant):
        variant = make_variant(stock=5)
        stock_ledger.set_variant(db, variant, stock=8, user_id=admin.id, reason="Recount")
        db.commit()
        movement = db.query(StockMovement).one()
        assert movement.qty == 3
        assert movement.type == MOVEMENT_ADJUSTMENT
        assert movement.reason == "Recount"

    def test_unordered_variant_attributes_editable(self, db, make_variant):
        variant = make_variant(color="Black", size="M")
        stock_ledger.set_variant(db, variant, color="Red", size="L")
        assert (variant.color, variant.size) == ("Red", "L")

    def test_ordered_variant_attributes_frozen(self, db, ordered_variant):
        with pytest.raises(HTTPException) as excinfo:
            stock_ledger.set_variant(db, ordered_variant, color="Pink")
        assert excinfo.value.status_code == 400

    def test_ordered_variant_price_and_stock_editable(self, db, ordered_variant):
        stock_ledger.set_variant(db, ordered_variant, price=12.5, stock=9, color=ordered_variant.color)
        db.commit()
        stored = reload(db, ProductVariant, ordered_variant.id)
        assert (stored.price, stored.stock) == (12.5, 9)


class TestStockRoutes:
    def test_patch_variant(self, client, db, admin, make_variant):
        variant = make_variant(price=10.0, stock=5)
        response = client.patch(f"/stock/variants/{variant.id}", headers=auth(admin),
                                json={"stock": 2, "price": 11.0, "reason": "Damaged"})
        assert response.status_code == 200
        assert response.json()["stock"] == 2
        assert reload(db, ProductVariant, variant.id).price == 11.0

    def test_patch_unknown_variant(self, client, admin):
        assert client.patch("/stock/variants/404", headers=auth(admin), json={"stock": 1}).status_code == 404

    def test_movements_listing(self, client, admin, customer, address, make_variant):
        variant = make_variant(stock=10)
        client.post("/orders", headers=auth(customer), json={
            "items": [{"product_variant_id": variant.id, "quantity": 2}], "shipping_address_id": address.id,
        })
        client.patch(f"/stock/variants/{variant.id}", headers=auth(admin), json={"stock": 20})

        page = client.get("/stock/movements", headers=auth(admin), params={"variant_id": variant.id}).json()
        assert page["total"] == 2
        assert {m["type"] for m in page["items"]} == {"OUT", "ADJUSTMENT"}

        page = client.get("/stock/movements", headers=auth(admin), params={"type": "out"}).json()
        assert page["total"] == 1
        assert page["items"][0]["qty"] == -2
        assert page["items"][0]["user_email"] == customer.email
        assert page["items"][0]["product_name"] == "Basic Tee"

    def test_movements_admin_only(self, client, customer):
        assert client.get("/stock/movements", headers=auth(customer)).status_code == 403


class TestLogRoutes:
    def test_filter_by_action(self, client, admin, make_coupon):
        coupon_id = make_coupon("TMP", 5).id
        client.delete(f"/coupons/{coupon_id}", headers=auth(admin))
        page = client.get("/logs", headers=auth(admin), params={"action": "COUPON_DELETE"}).json()
        assert page["total"] == 1
        assert page["items"][0]["resource_id"] == coupon_id

    def test_logs_admin_only(self, client, customer):
        assert client.get("/logs", headers=auth(customer)).status_code == 403


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
