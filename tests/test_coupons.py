from datetime import timedelta
from decimal import Decimal

import pytest

from storefront.errors import CouponError
from storefront.models import Coupon
from storefront.services.coupons import compute_discount
from storefront.utils.dates import utcnow


def coupon(**kw):
    values = dict(code="X", discount_type="percentage", discount_value=Decimal("10"),
                  minimum_amount=None, max_discount_amount=None)
    values.update(kw)
    return Coupon(**values)


class TestComputeDiscount:
    def test_percentage(self):
        assert compute_discount(coupon(), Decimal("1999.99")) == Decimal("200.00")

    def test_fixed(self):
        assert compute_discount(coupon(discount_type="fixed", discount_value=Decimal("150")), Decimal("1000")) == 150

    def test_max_cap(self):
        c = coupon(discount_value=Decimal("50"), max_discount_amount=Decimal("300"))
        assert compute_discount(c, Decimal("1000")) == Decimal("300")

    def test_never_more_than_subtotal(self):
        c = coupon(discount_type="fixed", discount_value=Decimal("5000"))
        assert compute_discount(c, Decimal("1200")) == Decimal("1200")

    def test_minimum_amount(self):
        with pytest.raises(CouponError):
            compute_discount(coupon(minimum_amount=Decimal("5000")), Decimal("1000"))


NEW_COUPON = {
    "code": "spring25",
    "description": "Spring sale for everyone",
    "discount_type": "percentage",
    "discount_value": 25,
    "valid_until": (utcnow() + timedelta(days=10)).isoformat(),
}


def test_validate_public(client, make_coupon):
    make_coupon("SAVE10")
    resp = client.get("/api/coupons/validate/save10")
    assert resp.status_code == 200
    data = resp.json()["data"]["coupon"]
    assert data["code"] == "SAVE10"
    assert "used_count" not in data


def test_validate_expired(client, make_coupon):
    make_coupon("OLD", valid_until=utcnow() - timedelta(days=1))
    resp = client.get("/api/coupons/validate/OLD")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Invalid coupon"


def test_validate_used_up(client, make_coupon):
    make_coupon("USED", usage_limit=2, used_count=2)
    assert client.get("/api/coupons/validate/USED").status_code == 400


def test_admin_create_list_and_deactivate(admin_client, client):
    resp = admin_client.post("/api/coupons", json=NEW_COUPON)
    assert resp.status_code == 201
    created = resp.json()["data"]["coupon"]
    assert created["code"] == "SPRING25"

    assert admin_client.post("/api/coupons", json=NEW_COUPON).status_code == 409

    codes = [c["code"] for c in admin_client.get("/api/coupons").json()["data"]["coupons"]]
    assert codes == ["SPRING25"]

    assert admin_client.delete(f"/api/coupons/{created['id']}").status_code == 200
    assert client.get("/api/coupons/validate/SPRING25").status_code == 404


def test_customer_cannot_manage(customer_client):
    assert customer_client.get("/api/coupons").status_code == 403
    assert customer_client.post("/api/coupons", json=NEW_COUPON).status_code == 403


def test_deactivate_unknown(admin_client):
    assert admin_client.delete("/api/coupons/999").status_code == 404


def test_admin_update_coupon(admin_client, make_coupon):
    c = make_coupon("SAVE10", minimum_amount=Decimal("500"), used_count=3)

    resp = admin_client.put(f"/api/coupons/{c.id}", json={
        "code": "save15", "discount_value": 15, "minimum_amount": None, "used_count": 0,
    })

    assert resp.status_code == 200
    data = resp.json()["data"]["coupon"]
    assert data["code"] == "SAVE15"
    assert data["discount_value"] == 15.0
    assert data["minimum_amount"] is None
    assert data["used_count"] == 3


def test_update_coupon_code_clash(admin_client, make_coupon):
    make_coupon("TAKEN")
    c = make_coupon("MINE")
    resp = admin_client.put(f"/api/coupons/{c.id}", json={"code": "taken"})
    assert resp.status_code == 409


def test_update_unknown_coupon(admin_client):
    assert admin_client.put("/api/coupons/999", json={"is_active": False}).status_code == 404


def test_customer_cannot_update(customer_client, make_coupon):
    c = make_coupon()
    assert customer_client.put(f"/api/coupons/{c.id}", json={"is_active": False}).status_code == 403
