from conftest import auth


def _add(client, user, variant, quantity=1):
    return client.post("/cart/items", headers=auth(user), json={"productVariantId": variant.id, "quantity": quantity})


class TestCart:
    def test_empty_cart_created_on_first_read(self, client, customer):
        response = client.get("/cart", headers=auth(customer))
        assert response.status_code == 200
        body = response.json()
        assert body["items"] == []
        assert body["total"] == 0.0

    def test_add_and_totals(self, client, customer, make_variant):
        variant = make_variant(price=15.0, name="Polo")
        response = _add(client, customer, variant, 2)
        assert response.status_code == 201
        body = response.json()
        assert body["items"][0]["name"] == "Polo"
        assert body["items"][0]["line_total"] == 30.0
        assert body["subtotal"] == 30.0
        assert body["shipping_cost"] == 5.99
        assert body["total"] == 35.99

    def test_adding_same_variant_merges(self, client, customer, make_variant):
        variant = make_variant(stock=5)
        _add(client, customer, variant, 2)
        body = _add(client, customer, variant, 1).json()
        assert len(body["items"]) == 1
        assert body["items"][0]["quantity"] == 3

    def test_merged_quantity_checked_against_stock(self, client, customer, make_variant):
        variant = make_variant(stock=3)
        _add(client, customer, variant, 2)
        response = _add(client, customer, variant, 2)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["message"] == "Not enough stock available"
        assert detail["available"] == 3
        assert detail["in_cart"] == 2

    def test_unknown_variant(self, client, customer):
        response = client.post("/cart/items", headers=auth(customer), json={"product_variant_id": 777})
        assert response.status_code == 404

    def test_update_quantity(self, client, customer, make_variant):
        variant = make_variant(stock=10)
        item_id = _add(client, customer, variant, 1).json()["items"][0]["id"]

        response = client.patch(f"/cart/items/{item_id}", headers=auth(customer), json={"quantity": 4})
        assert response.status_code == 200
        assert response.json()["items"][0]["quantity"] == 4

        response = client.patch(f"/cart/items/{item_id}", headers=auth(customer), json={"quantity": 11})
        assert response.status_code == 400

    def test_delete_item(self, client, customer, make_variant):
        item_id = _add(client, customer, make_variant()).json()["items"][0]["id"]
        response = client.delete(f"/cart/items/{item_id}", headers=auth(customer))
        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_items_of_other_carts_not_reachable(self, client, customer, make_user, make_variant):
        item_id = _add(client, customer, make_variant()).json()["items"][0]["id"]
        other = make_user()
        response = client.delete(f"/cart/items/{item_id}", headers=auth(other))
        assert response.status_code == 404
        assert response.json()["detail"] == "Cart item not found"
