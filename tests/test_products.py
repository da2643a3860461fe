from sqlalchemy import select

from storefront.models import StockAudit

NEW_PRODUCT = {"name": "Runner", "brand": "Nike", "category": "shoes", "price": 4990, "stock_quantity": 3}


def test_public_list_filters(client, make_product):
    make_product("Air Max", brand="Nike", category="shoes")
    make_product("Gel Kayano", brand="Asics", category="shoes")
    make_product("Hidden", is_active=False)

    data = client.get("/api/products").json()["data"]
    assert {p["name"] for p in data["products"]} == {"Air Max", "Gel Kayano"}
    assert data["pagination"]["total_products"] == 2

    nike = client.get("/api/products", params={"brand": "Nike"}).json()["data"]["products"]
    assert [p["name"] for p in nike] == ["Air Max"]

    found = client.get("/api/products", params={"search": "kay"}).json()["data"]["products"]
    assert [p["name"] for p in found] == ["Gel Kayano"]


def test_get_inactive_is_404(client, make_product):
    p = make_product(is_active=False)
    assert client.get(f"/api/products/{p.id}").status_code == 404


def test_admin_crud(admin_client, client, db):
    resp = admin_client.post("/api/products", json=NEW_PRODUCT)
    assert resp.status_code == 201
    pid = resp.json()["data"]["product"]["id"]

    upd = admin_client.put(f"/api/products/{pid}", json={"price": 5990, "stock_quantity": 10})
    assert upd.status_code == 200
    assert upd.json()["data"]["product"]["price"] == 5990.0
    assert upd.json()["data"]["product"]["stock_quantity"] == 10

    audit = db.scalars(select(StockAudit)).one()
    assert (audit.change_type, audit.old_stock, audit.new_stock, audit.user) == ("SET", 3, 10, "admin@test.com")

    assert admin_client.delete(f"/api/products/{pid}").status_code == 200
    assert client.get(f"/api/products/{pid}").status_code == 404


def test_negative_price_rejected(admin_client):
    resp = admin_client.post("/api/products", json={**NEW_PRODUCT, "price": -1})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation failed"


def test_customer_cannot_create(customer_client):
    assert customer_client.post("/api/products", json=NEW_PRODUCT).status_code == 403


def test_categories(client, make_product):
    make_product("A", category="shoes")
    make_product("B", category="shoes")
    make_product("C", category="bags")
    make_product("D", category="hats", is_active=False)
    make_product("E")

    cats = client.get("/api/products/categories").json()["data"]["categories"]
    assert cats == [{"name": "bags", "product_count": 1}, {"name": "shoes", "product_count": 2}]


def test_featured_and_new_arrivals(client, make_product):
    old = make_product("Old", is_featured=True)
    make_product("Plain")
    make_product("Gone", is_featured=True, is_active=False)
    newest = make_product("Newest")

    featured = client.get("/api/products/featured").json()["data"]["products"]
    assert [p["id"] for p in featured] == [old.id]

    arrivals = client.get("/api/products/new-arrivals", params={"limit": 2}).json()["data"]["products"]
    assert arrivals[0]["id"] == newest.id
    assert len(arrivals) == 2


def test_update_can_clear_optional_fields(admin_client, make_product):
    p = make_product(description="Old text", brand="Nike", image="/img/1.png")
    resp = admin_client.put(f"/api/products/{p.id}", json={"description": None, "brand": None, "image": None})
    assert resp.status_code == 200
    data = resp.json()["data"]["product"]
    assert (data["description"], data["brand"], data["image"]) == (None, None, None)


def test_update_cannot_null_required_fields(admin_client, make_product):
    p = make_product()
    resp = admin_client.put(f"/api/products/{p.id}", json={"name": None, "price": None})
    assert resp.status_code == 400
    assert resp.json()["details"] == {"fields": ["name", "price"]}
