def add(client, product_id, quantity=1, **extra):
    return client.post("/api/cart/add", json={"product_id": product_id, "quantity": quantity, **extra})


def test_add_new_item(customer_client, make_product):
    p = make_product("Shoes", "1000.00", stock=5)
    resp = add(customer_client, p.id, 2, size="42")
    assert resp.status_code == 201
    item = resp.json()["data"]["cart_item"]
    assert item["item_total"] == 2000.0
    assert item["in_stock"] is True


def test_same_variant_is_merged(customer_client, make_product):
    p = make_product(stock=5)
    add(customer_client, p.id, 1, size="42")
    resp = add(customer_client, p.id, 2, size="42")
    assert resp.status_code == 200
    assert resp.json()["data"]["cart_item"]["quantity"] == 3

    other_size = add(customer_client, p.id, 1, size="43")
    assert other_size.status_code == 201
    assert customer_client.get("/api/cart/count").json()["data"]["total_items"] == 4


def test_add_over_stock(customer_client, make_product):
    p = make_product(stock=2)
    add(customer_client, p.id, 2)
    resp = add(customer_client, p.id, 1)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Insufficient stock"


def test_add_unknown_and_inactive(customer_client, make_product):
    assert add(customer_client, 999).status_code == 404
    p = make_product(is_active=False)
    assert add(customer_client, p.id).status_code == 400


def test_view_totals(customer_client, make_product):
    a = make_product("Shoes", "1000.00")
    b = make_product("Socks", "100.00")
    add(customer_client, a.id, 1)
    add(customer_client, b.id, 3)

    cart = customer_client.get("/api/cart").json()["data"]["cart"]
    assert cart["total_items"] == 4
    assert cart["total_amount"] == 1300.0


def test_update_and_remove(customer_client, make_product):
    p = make_product(stock=5)
    item_id = add(customer_client, p.id).json()["data"]["cart_item"]["id"]

    assert customer_client.put(f"/api/cart/item/{item_id}", json={"quantity": 4}).status_code == 200
    assert customer_client.put(f"/api/cart/item/{item_id}", json={"quantity": 9}).status_code == 400
    assert customer_client.put(f"/api/cart/item/{item_id}", json={"quantity": 0}).status_code == 400

    assert customer_client.delete(f"/api/cart/item/{item_id}").status_code == 200
    assert customer_client.get("/api/cart/count").json()["data"]["total_items"] == 0


def test_cannot_touch_someone_elses_item(customer_client, other_client, make_product):
    p = make_product()
    item_id = add(customer_client, p.id).json()["data"]["cart_item"]["id"]
    assert other_client.delete(f"/api/cart/item/{item_id}").status_code == 404


def test_clear(customer_client, make_product):
    add(customer_client, make_product("A").id)
    add(customer_client, make_product("B").id)
    assert customer_client.delete("/api/cart/clear").status_code == 200
    assert customer_client.get("/api/cart").json()["data"]["cart"]["items"] == []


def test_cart_requires_login(client):
    resp = client.get("/api/cart")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Authentication required"


def test_summary(customer_client, make_product):
    a = make_product("Shoes", "1000.00", stock=5)
    b = make_product("Socks", "100.50", stock=1)
    add(customer_client, a.id, 2)
    add(customer_client, b.id, 1)

    summary = customer_client.get("/api/cart/summary").json()["data"]["summary"]

    assert summary["total_items"] == 3
    assert summary["unique_items"] == 2
    assert summary["subtotal"] == 2100.5
    assert summary["out_of_stock_items"] == []
    assert "shipping_amount" not in summary


def test_summary_with_pickup_point(customer_client, location, inactive_location, make_product):
    add(customer_client, make_product("Shoes", "1000.00").id, 1)

    summary = customer_client.get("/api/cart/summary", params={"delivery_location_id": location.id}).json()
    assert summary["data"]["summary"]["shipping_amount"] == 500.0
    assert summary["data"]["summary"]["total_amount"] == 1500.0

    resp = customer_client.get("/api/cart/summary", params={"delivery_location_id": inactive_location.id})
    assert resp.status_code == 400


def test_summary_flags_items_over_stock(customer_client, db, make_product):
    p = make_product(stock=3)
    add(customer_client, p.id, 3)
    p.stock_quantity = 1
    db.commit()
    summary = customer_client.get("/api/cart/summary").json()["data"]["summary"]
    assert summary["out_of_stock_items"] == [p.id]
