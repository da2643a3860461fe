from decimal import Decimal
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from storefront.errors import ConflictError, CouponError, NotFoundError
from storefront.models import Coupon
from storefront.utils.dates import utcnow

CENT = Decimal("0.01")


def find_valid_coupon(db: Session, code: str) -> Coupon:
    """Активный и не просроченный купон; лимит использований проверяется отдельно."""
    coupon = db.scalars(
        select(Coupon).where(
            Coupon.code == code.strip().upper(),
            Coupon.is_active.is_(True),
            Coupon.valid_until >= utcnow(),
        )
    ).first()
    if not coupon:
        raise NotFoundError("Coupon code is invalid or has expired", error="Invalid coupon")
    return coupon


def check_usage(coupon: Coupon) -> None:
    if coupon.usage_limit and coupon.used_count >= coupon.usage_limit:
        raise CouponError("This coupon has reached its usage limit", error="Coupon expired")


def compute_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    if coupon.minimum_amount is not None and subtotal < coupon.minimum_amount:
        raise CouponError(
            f"Order subtotal must be at least {coupon.minimum_amount} to use this coupon",
            details={"minimum_amount": float(coupon.minimum_amount), "subtotal": float(subtotal)},
        )

    if coupon.discount_type == "percentage":
        discount = (subtotal * Decimal(coupon.discount_value) / Decimal(100)).quantize(CENT)
    else:
        discount = Decimal(coupon.discount_value)

    if coupon.max_discount_amount is not None:
        discount = min(discount, Decimal(coupon.max_discount_amount))
    return min(discount, subtotal)


def resolve_for_order(db: Session, code: str, subtotal: Decimal) -> tuple:
    """Купон для оформления заказа: ошибки отдаются как 400."""
    try:
        coupon = find_valid_coupon(db, code)
    except NotFoundError as e:
        raise CouponError(e.message, details={"coupon_code": code})
    check_usage(coupon)
    return coupon, compute_discount(coupon, subtotal)


def consume(db: Session, coupon: Coupon) -> None:
    """Атомарно увеличивает used_count, не выходя за usage_limit."""
    result = db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise CouponError("This coupon has reached its usage limit", error="Coupon expired")


def create_coupon(db: Session, data: dict) -> Coupon:
    code = data["code"].strip().upper()
    if db.scalars(select(Coupon).where(Coupon.code == code)).first():
        raise ConflictError("A coupon with this code already exists", error="Coupon code exists")
    coupon = Coupon(**{**data, "code": code, "used_count": 0})
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def update_coupon(db: Session, coupon_id: int, changes: dict) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundError("The requested coupon was not found", error="Coupon not found")

    # nullable только лимиты, остальное null = "не менять"
    nullable = {"minimum_amount", "max_discount_amount", "usage_limit"}
    changes = {k: v for k, v in changes.items() if v is not None or k in nullable}
    if "code" in changes:
        changes["code"] = changes["code"].strip().upper()
        clash = db.scalars(select(Coupon).where(Coupon.code == changes["code"], Coupon.id != coupon.id)).first()
        if clash:
            raise ConflictError("A coupon with this code already exists", error="Coupon code exists")

    for field, value in changes.items():
        setattr(coupon, field, value)
    db.commit()
    db.refresh(coupon)
    return coupon


def deactivate_coupon(db: Session, coupon_id: int) -> Optional[Coupon]:
    coupon = db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundError("The requested coupon was not found", error="Coupon not found")
    coupon.is_active = False
    db.commit()
    return coupon
