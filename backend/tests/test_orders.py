import pytest

from conftest import auth, reload
from config import settings
from models.log import Log
from models.order import Order, ORDER_STATUSES
from models.product import ProductVariant
from models.stock import StockMovement, MOVEMENT_IN


@pytest.fixture
def place(client):
    def _place(user, address, variant, quantity=1):
        response = client.post("/orders", headers=auth(user), json={
            "items": [{"product_variant_id": variant.id, "quantity": quantity}],
            "shipping_address_id": address.id,
        })
        assert response.status_code == 201, response.text
        return response.json()
    return _place


class TestOrderQueries:
    def test_my_orders_newest_first(self, client, customer, address, make_variant, place):
        variant = make_variant()
        first = place(customer, address, variant)
        second = place(customer, address, variant)

        for path in ("/orders", "/orders/my-orders"):
            ids = [o["id"] for o in client.get(path, headers=auth(customer)).json()]
            assert ids == [second["id"], first["id"]]

    def test_orders_include_items_and_address(self, client, customer, address, make_variant, place):
        variant = make_variant(price=12.0, name="Linen Shirt")
        place(customer, address, variant, 2)
        order = client.get("/orders/my-orders", headers=auth(customer)).json()[0]
        item = order["items"][0]
        assert item["line_total"] == 24.0
        assert item["product_variant"]["product"]["name"] == "Linen Shirt"
        assert order["shipping_address"]["street"] == address.street

    def test_other_customers_orders_hidden(self, client, customer, address, make_user, make_variant, place):
        order = place(customer, address, make_variant())
        other = make_user()
        assert client.get("/orders/my-orders", headers=auth(other)).json() == []
        response = client.get(f"/orders/{order['id']}", headers=auth(other))
        assert response.status_code == 404
        assert response.json()["detail"] == "Order not found"

    def test_order_detail(self, client, customer, address, make_variant, place):
        order = place(customer, address, make_variant())
        response = client.get(f"/orders/{order['id']}", headers=auth(customer))
        assert response.status_code == 200
        assert response.json()["id"] == order["id"]

    def test_price_frozen_after_variant_change(self, client, db, customer, address, make_variant, place):
        variant = make_variant(price=20.0)
        order = place(customer, address, variant, 3)

        stored = reload(db, ProductVariant, variant.id)
        stored.price = 35.0
        db.commit()

        item = client.get(f"/orders/{order['id']}", headers=auth(customer)).json()["items"][0]
        assert item["price"] == 20.0
        assert item["line_total"] == 60.0
        assert item["product_variant"]["price"] == 35.0

    def test_admin_listing(self, client, customer, admin, address, make_variant, place):
        place(customer, address, make_variant())
        response = client.get("/orders/admin/all", headers=auth(admin))
        assert response.status_code == 200
        order = response.json()[0]
        assert order["user_email"] == customer.email
        assert order["user_first_name"] == "Jane"

    def test_admin_listing_forbidden_for_customers(self, client, customer):
        assert client.get("/orders/admin/all", headers=auth(customer)).status_code == 403


class TestStatusUpdate:
    def test_valid_status(self, client, db, customer, admin, address, make_variant, place):
        order = place(customer, address, make_variant())
        response = client.patch(f"/orders/{order['id']}/status", headers=auth(admin), json={"status": "shipped"})
        assert response.status_code == 200
        assert response.json()["status"] == "shipped"
        assert reload(db, Order, order["id"]).status == "shipped"

        log = db.query(Log).filter(Log.action == "ORDER_STATUS_CHANGE").one()
        assert log.meta == {"old": "pending", "new": "shipped"}

    def test_any_transition_allowed(self, client, customer, admin, address, make_variant, place):
        order = place(customer, address, make_variant())
        for status in ("completed", "pending", "cancelled", "processing"):
            response = client.patch(f"/orders/{order['id']}/status", headers=auth(admin), json={"status": status})
            assert response.status_code == 200

    def test_invalid_status(self, client, customer, admin, address, make_variant, place):
        order = place(customer, address, make_variant())
        response = client.patch(f"/orders/{order['id']}/status", headers=auth(admin), json={"status": "lost"})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["message"] == "Invalid status"
        assert detail["valid_statuses"] == ORDER_STATUSES

    def test_unknown_order(self, client, admin):
        response = client.patch("/orders/999/status", headers=auth(admin), json={"status": "shipped"})
        assert response.status_code == 404

    def test_customer_forbidden(self, client, customer, address, make_variant, place):
        order = place(customer, address, make_variant())
        response = client.patch(f"/orders/{order['id']}/status", headers=auth(customer), json={"status": "shipped"})
        assert response.status_code == 403


class TestCancel:
    def test_cancel_restores_stock(self, client, db, customer, address, make_variant, place):
        variant = make_variant(stock=10)
        order = place(customer, address, variant, 4)
        assert reload(db, ProductVariant, variant.id).stock == 6

        response = client.post(f"/orders/{order['id']}/cancel", headers=auth(customer))
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Order cancelled successfully"
        assert body["order"]["status"] == "cancelled"
        assert reload(db, ProductVariant, variant.id).stock == 10

        restored = db.query(StockMovement).filter(StockMovement.type == MOVEMENT_IN).one()
        assert restored.qty == 4
        assert restored.order_id == order["id"]

    def test_cancel_voids_invoice_payment(self, client, customer, address, make_variant, place):
        order = place(customer, address, make_variant())
        client.post(f"/orders/{order['id']}/cancel", headers=auth(customer))
        invoice = client.get(f"/orders/{order['id']}/invoice", headers=auth(customer)).json()
        assert invoice["payment_status"] == "cancelled"
        assert invoice["order_status"] == "cancelled"

    def test_cancel_twice(self, client, db, customer, address, make_variant, place):
        variant = make_variant(stock=10)
        order = place(customer, address, variant, 4)
        client.post(f"/orders/{order['id']}/cancel", headers=auth(customer))

        response = client.post(f"/orders/{order['id']}/cancel", headers=auth(customer))
        assert response.status_code == 400
        assert response.json()["detail"]["current_status"] == "cancelled"
        assert reload(db, ProductVariant, variant.id).stock == 10

    def test_processing_order_cannot_be_cancelled(self, client, db, customer, admin, address, make_variant, place):
        variant = make_variant(stock=10)
        order = place(customer, address, variant, 3)
        client.patch(f"/orders/{order['id']}/status", headers=auth(admin), json={"status": "processing"})

        response = client.post(f"/orders/{order['id']}/cancel", headers=auth(customer))
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Only pending orders can be cancelled"
        assert reload(db, ProductVariant, variant.id).stock == 7

    def test_only_owner_can_cancel(self, client, customer, make_user, address, make_variant, place):
        order = place(customer, address, make_variant())
        response = client.post(f"/orders/{order['id']}/cancel", headers=auth(make_user()))
        assert response.status_code == 404

    def test_admin_cancel_status_keeps_stock(self, client, db, customer, admin, address, make_variant, place):
        variant = make_variant(stock=10)
        order = place(customer, address, variant, 2)
        client.patch(f"/orders/{order['id']}/status", headers=auth(admin), json={"status": "cancelled"})
        assert reload(db, ProductVariant, variant.id).stock == 8


class TestInvoice:
    def test_owner_reads_invoice(self, client, customer, address, make_variant, place):
        order = place(customer, address, make_variant(price=20.0), 2)
        response = client.get(f"/orders/{order['id']}/invoice", headers=auth(customer))
        assert response.status_code == 200
        body = response.json()
        assert body["order_id"] == order["id"]
        assert body["invoice_number"].startswith("INV-")
        assert body["invoice_amount"] == 45.99
        assert body["subtotal"] == 40.0
        assert body["shipping_cost"] == 5.99
        assert body["payment_status"] == "paid"
        assert body["customer"]["email"] == customer.email
        assert body["billing_address"]["id"] == address.id

    def test_admin_reads_any_invoice(self, client, customer, admin, address, make_variant, place):
        order = place(customer, address, make_variant())
        assert client.get(f"/orders/{order['id']}/invoice", headers=auth(admin)).status_code == 200

    def test_other_customer_forbidden(self, client, customer, make_user, address, make_variant, place):
        order = place(customer, address, make_variant())
        response = client.get(f"/orders/{order['id']}/invoice", headers=auth(make_user()))
        assert response.status_code == 403

    def test_missing_invoice(self, client, customer):
        response = client.get("/orders/321/invoice", headers=auth(customer))
        assert response.status_code == 404
        assert response.json()["detail"] == "Invoice not found"

    def test_pdf_download(self, client, monkeypatch, tmp_path, customer, address, make_variant, place):
        monkeypatch.setattr(settings, "INVOICE_STORAGE_DIR", str(tmp_path / "invoices"))
        order = place(customer, address, make_variant())

        response = client.get(f"/orders/{order['id']}/invoice/pdf", headers=auth(customer))
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
        assert len(list((tmp_path / "invoices").glob("INV-*.pdf"))) == 1

    def test_pdf_from_earlier_database_not_served(self, client, monkeypatch, tmp_path, customer, address,
                                                  make_variant, place):
        storage = tmp_path / "invoices"
        monkeypatch.setattr(settings, "INVOICE_STORAGE_DIR", str(storage))
        order = place(customer, address, make_variant())
        number = client.get(f"/orders/{order['id']}/invoice", headers=auth(customer)).json()["invoice_number"]

        storage.mkdir()
        (storage / f"{number}.pdf").write_bytes(b"stale")
        (storage / f"{number}-O{order['id'] + 1}-20200101000000-paid.pdf").write_bytes(b"stale")

        response = client.get(f"/orders/{order['id']}/invoice/pdf", headers=auth(customer))
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")
        assert response.headers["content-disposition"].endswith(f'filename="{number}.pdf"')

    def test_pdf_rerendered_after_cancel(self, client, monkeypatch, tmp_path, customer, address, make_variant, place):
        storage = tmp_path / "invoices"
        monkeypatch.setattr(settings, "INVOICE_STORAGE_DIR", str(storage))
        order = place(customer, address, make_variant())

        client.get(f"/orders/{order['id']}/invoice/pdf", headers=auth(customer))
        client.post(f"/orders/{order['id']}/cancel", headers=auth(customer))
        response = client.get(f"/orders/{order['id']}/invoice/pdf", headers=auth(customer))

        assert response.status_code == 200
        names = sorted(p.name for p in storage.glob("INV-*.pdf"))
        assert len(names) == 2
        assert names[0].endswith("-cancelled.pdf")
        assert names[1].endswith("-paid.pdf")
