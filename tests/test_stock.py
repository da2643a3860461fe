import pytest
from sqlalchemy import select

from conftest import stock_of
from storefront.errors import InsufficientStockError, InvalidProductError, NotFoundError
from storefront.models import StockAudit
from storefront.services.stock import release_stock, reserve_stock, set_stock


def test_reserve_decrements_and_audits(db, make_product):
    p = make_product(stock=5)

    new_stock = reserve_stock(db, p.id, 3, user="buyer@test.com")
    db.commit()

    assert new_stock == 2
    assert stock_of(p.id) == 2
    audit = db.scalars(select(StockAudit)).one()
    assert (audit.change_type, audit.old_stock, audit.new_stock) == ("DECREASE", 5, 2)
    assert audit.user == "buyer@test.com"


def test_reserve_exact_stock(db, make_product):
    p = make_product(stock=2)
    assert reserve_stock(db, p.id, 2) == 0


def test_reserve_more_than_available(db, make_product):
    p = make_product("Cap", stock=2)

    with pytest.raises(InsufficientStockError) as exc_info:
        reserve_stock(db, p.id, 3)

    assert exc_info.value.available == 2
    assert exc_info.value.requested == 3
    assert "Cap" in exc_info.value.message
    db.rollback()
    assert stock_of(p.id) == 2


def test_reserve_missing_product(db):
    with pytest.raises(InvalidProductError):
        reserve_stock(db, 404, 1)


def test_reserve_inactive_product(db, make_product):
    p = make_product(is_active=False)
    with pytest.raises(InvalidProductError):
        reserve_stock(db, p.id, 1)


def test_release_increments(db, make_product):
    p = make_product(stock=1)
    assert release_stock(db, p.id, 4, order_id=None) == 5
    db.commit()
    audit = db.scalars(select(StockAudit)).one()
    assert audit.change_type == "INCREASE"
    assert audit.old_stock == 1


def test_release_missing_product(db):
    with pytest.raises(NotFoundError):
        release_stock(db, 404, 1)


def test_set_stock_audits_only_changes(db, make_product):
    p = make_product(stock=7)

    set_stock(db, p, 7)
    set_stock(db, p, 12, user="admin@test.com")
    db.commit()

    audits = db.scalars(select(StockAudit)).all()
    assert len(audits) == 1
    assert (audits[0].change_type, audits[0].old_stock, audits[0].new_stock) == ("SET", 7, 12)
    assert stock_of(p.id) == 12
