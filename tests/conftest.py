"""Pytest fixtures for storefront tests."""

import os
import tempfile
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

# БД для тестов задаём до импорта storefront
_TMP_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_TMP_DIR) / 'test.db'}"
os.environ["TELEGRAM_TOKEN"] = ""
os.environ["AUTO_CREATE_TABLES"] = "0"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

import storefront.models  # noqa: F401
from storefront.db import Base, SessionLocal, engine
from storefront.main import app
from storefront.models import Coupon, DeliveryLocation, Product, User
from storefront.routers import auth as auth_router
from storefront.utils.enums import UserRole
from storefront.utils.dates import utcnow
from storefront.utils.security import hash_password

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def schema():
    """Fresh schema for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    auth_router.login_attempts.clear()
    yield
    auth_router.login_attempts.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, email, role):
    user = User(email=email, password_hash=hash_password(PASSWORD), role=role, first_name="Test", last_name="User")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db):
    return _make_user(db, "buyer@test.com", UserRole.CUSTOMER.value)


@pytest.fixture
def other_customer(db):
    return _make_user(db, "other@test.com", UserRole.CUSTOMER.value)


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@test.com", UserRole.ADMIN.value)


@pytest.fixture
def location(db):
    loc = DeliveryLocation(
        city_name="Almaty",
        shipping_amount=Decimal("500.00"),
        pickup_location="Abay Ave 10",
        pickup_phone="+7 727 000 0001",
        pickup_status="active",
    )
    db.add(loc)
    db.commit()
    db.refresh(loc)
    return loc


@pytest.fixture
def inactive_location(db):
    loc = DeliveryLocation(
        city_name="Taraz",
        shipping_amount=Decimal("700.00"),
        pickup_location="Tole Bi 1",
        pickup_phone="+7 726 000 0002",
        pickup_status="inactive",
    )
    db.add(loc)
    db.commit()
    db.refresh(loc)
    return loc


@pytest.fixture
def make_product(db):
    def _make(name="Sneakers", price="1000.00", stock=10, is_active=True, **extra):
        p = Product(name=name, price=Decimal(price), stock_quantity=stock, is_active=is_active, **extra)
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(code="SAVE10", discount_type="percentage", discount_value="10", **extra):
        values = dict(
            code=code,
            description="Test coupon description",
            discount_type=discount_type,
            discount_value=Decimal(discount_value),
            valid_until=utcnow() + timedelta(days=30),
        )
        values.update(extra)
        c = Coupon(**values)
        db.add(c)
        db.commit()
        db.refresh(c)
        return c

    return _make


@pytest.fixture
def client():
    # без context manager: startup (create_all, polling) не запускается
    return TestClient(app)


def login(client, email):
    resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return client


@pytest.fixture
def customer_client(client, customer):
    return login(client, customer.email)


@pytest.fixture
def admin_client(admin):
    return login(TestClient(app), admin.email)


@pytest.fixture
def other_client(other_customer):
    return login(TestClient(app), other_customer.email)


def stock_of(product_id):
    """Остаток, прочитанный отдельной сессией."""
    session = SessionLocal()
    try:
        return session.get(Product, product_id).stock_quantity
    finally:
        session.close()
