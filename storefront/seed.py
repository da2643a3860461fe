# storefront/seed.py: демо-данные (python -m storefront.seed)
import logging
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.db import SessionLocal, init_db
from storefront.models import Coupon, DeliveryLocation, Product, User
from storefront.utils.enums import UserRole
from storefront.utils.dates import utcnow
from storefront.utils.security import hash_password

logger = logging.getLogger(__name__)

LOCATIONS = [
    ("Almaty", Decimal("1500.00"), "Abay Ave 10, pickup point #1", "+7 727 000 0001"),
    ("Astana", Decimal("2000.00"), "Kabanbay Batyr 53, pickup point #2", "+7 717 000 0002"),
    ("Shymkent", Decimal("2500.00"), "Tauke Khan 5, pickup point #3", "+7 725 000 0003"),
]

PRODUCTS = [
    ("Air Runner 2", "Nike", "shoes", Decimal("54990.00"), 25),
    ("Trail Master GTX", "Salomon", "shoes", Decimal("72990.00"), 12),
    ("Classic Leather", "Reebok", "shoes", Decimal("38990.00"), 40),
    ("Galaxy Buds Pro", "Samsung", "electronics", Decimal("69990.00"), 15),
    ("Smart Watch SE", "Apple", "electronics", Decimal("129990.00"), 8),
]

USERS = [
    ("admin@storefront.local", "admin123", UserRole.ADMIN.value, "Store", "Admin"),
    ("customer@storefront.local", "customer123", UserRole.CUSTOMER.value, "Demo", "Customer"),
]


def run_seed(db: Session) -> dict:
    """Добавляет недостающие демо-данные. Возвращает, сколько чего создано."""
    created = {"locations": 0, "products": 0, "users": 0, "coupons": 0}

    for city, cost, place, phone in LOCATIONS:
        if not db.scalars(select(DeliveryLocation).where(DeliveryLocation.city_name == city)).first():
            db.add(DeliveryLocation(
                city_name=city, shipping_amount=cost, pickup_location=place,
                pickup_phone=phone, pickup_status="active",
            ))
            created["locations"] += 1

    for i, (name, brand, category, price, stock) in enumerate(PRODUCTS):
        if not db.scalars(select(Product).where(Product.name == name)).first():
            db.add(Product(
                name=name, brand=brand, category=category, price=price,
                stock_quantity=stock, is_active=True, is_featured=i < 2,
            ))
            created["products"] += 1

    for email, raw_password, role, first, last in USERS:
        if not db.scalars(select(User).where(User.email == email)).first():
            db.add(User(
                email=email, password_hash=hash_password(raw_password), role=role,
                first_name=first, last_name=last,
            ))
            created["users"] += 1
            logger.info("User created (email='%s', role='%s')", email, role)

    if not db.scalars(select(Coupon).where(Coupon.code == "WELCOME10")).first():
        db.add(Coupon(
            code="WELCOME10",
            description="10% off the first order",
            discount_type="percentage",
            discount_value=Decimal("10"),
            max_discount_amount=Decimal("10000"),
            valid_until=utcnow() + timedelta(days=365),
            is_single_use=True,
        ))
        created["coupons"] += 1

    db.commit()
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    session = SessionLocal()
    try:
        logger.info("✅ Seed: %s", run_seed(session))
    finally:
        session.close()
