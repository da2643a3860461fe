"""Two buyers racing for the last unit of a product."""

from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import func, select

from conftest import stock_of
from storefront.db import SessionLocal
from storefront.errors import InsufficientStockError, StoreError
from storefront.models import Order, User
from storefront.services.orders import LineItem, place_order


def _buy(user_id, location_id, product_id):
    db = SessionLocal()
    try:
        user = db.get(User, user_id)
        place_order(db, user, location_id, [LineItem(product_id=product_id, quantity=1)])
        return "ok"
    except InsufficientStockError:
        return "sold out"
    except StoreError:
        # sqlite может ответить "database is locked"
        return "rejected"
    finally:
        db.close()


def test_last_unit_sold_at_most_once(customer, other_customer, location, make_product):
    p = make_product(stock=1)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(
            lambda uid: _buy(uid, location.id, p.id),
            [customer.id, other_customer.id],
        ))

    successes = results.count("ok")
    assert successes <= 1
    remaining = stock_of(p.id)
    assert remaining >= 0
    assert remaining == 1 - successes

    db = SessionLocal()
    try:
        assert db.scalar(select(func.count(Order.id))) == successes
    finally:
        db.close()


def test_sequential_orders_never_oversell(customer, location, make_product):
    p = make_product(stock=3)
    results = [_buy(customer.id, location.id, p.id) for _ in range(5)]
    assert results == ["ok", "ok", "ok", "sold out", "sold out"]
    assert stock_of(p.id) == 0
