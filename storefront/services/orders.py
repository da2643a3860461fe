"""Оформление заказа, чтение, смена статуса и отмена.

Заказ создаётся в одной транзакции: шапка, позиции, списание остатков и
купон либо записываются все вместе, либо не записывается ничего.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from storefront.errors import (
    CannotCancelError,
    CouponError,
    InsufficientStockError,
    InvalidProductError,
    InvalidStatusError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
    translate_db_error,
)
from storefront.models import Coupon, DeliveryLocation, Order, OrderItem, OrderStatusLog, Product, User
from storefront.services import coupons as coupon_service
from storefront.services.cart import clear_cart_quietly
from storefront.services.delivery import get_active_location
from storefront.services.stock import release_stock, reserve_stock
from storefront.utils.enums import OrderStatus, PaymentStatus
from storefront.utils.dates import utcnow
from storefront.utils.tokens import make_order_number

logger = logging.getLogger(__name__)

# --------- ДОПУСТИМЫЕ СТАТУСЫ ----------
ORDER_STATUSES: List[str] = [s.value for s in OrderStatus]

# 🔹 Разрешённые переходы
VALID_NEXT: Dict[str, Set[str]] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}

# покупатель может отменить заказ только до начала сборки
CUSTOMER_CANCELLABLE = {"pending", "confirmed"}


@dataclass
class LineItem:
    product_id: int
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None


@dataclass
class ValidatedLine:
    product: Product
    quantity: int
    price: Decimal
    size: Optional[str] = None
    color: Optional[str] = None

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


def _actor(user: User) -> str:
    return user.email or f"user #{user.id}"


def _log_status(db: Session, order: Order, old: Optional[str], new: str, user: str, note: Optional[str] = None):
    db.add(OrderStatusLog(order_id=order.id, old_status=old, new_status=new, user=user, note=note))


def _address_from_location(loc: DeliveryLocation) -> dict:
    return {
        "delivery_location_id": loc.id,
        "city": loc.city_name,
        "pickup_location": loc.pickup_location,
        "phone": loc.pickup_phone,
    }


# ---------- ПРОВЕРКА ПОЗИЦИЙ ----------
def validate_lines(db: Session, items: List[LineItem]) -> List[ValidatedLine]:
    """Проверяет позиции по порядку; первая же ошибка прерывает заказ."""
    validated: List[ValidatedLine] = []
    for item in items:
        product = db.scalars(
            select(Product).where(Product.id == item.product_id, Product.is_active.is_(True))
        ).first()
        if not product:
            raise InvalidProductError(item.product_id)
        if item.quantity > product.stock_quantity:
            raise InsufficientStockError(product.id, product.name, product.stock_quantity, item.quantity)
        validated.append(ValidatedLine(
            product=product,
            quantity=item.quantity,
            price=Decimal(str(product.price)),
            size=item.size,
            color=item.color,
        ))
    return validated


def _check_single_use(db: Session, coupon: Coupon, user_id: int) -> None:
    if not coupon.is_single_use:
        return
    used = db.scalar(
        select(func.count(Order.id)).where(
            Order.coupon_id == coupon.id,
            Order.user_id == user_id,
            Order.status != OrderStatus.CANCELLED.value,
        )
    )
    if used:
        raise CouponError("You have already used this coupon", details={"coupon_code": coupon.code})


# ---------- ОФОРМЛЕНИЕ ----------
def place_order(
    db: Session,
    user: User,
    delivery_location_id: int,
    items: List[LineItem],
    payment_method: str = "cash_on_delivery",
    coupon_code: Optional[str] = None,
    notes: Optional[str] = None,
) -> Order:
    """Создаёт заказ с доставкой в точку самовывоза.

    Порядок: точка самовывоза → позиции → купон → шапка + позиции + списание
    (одна транзакция) → очистка корзины (best effort).
    """
    try:
        location = get_active_location(db, delivery_location_id)
        lines = validate_lines(db, items)

        subtotal = sum((l.total for l in lines), Decimal("0"))
        shipping = Decimal(str(location.shipping_amount or 0))

        coupon, discount = None, Decimal("0")
        if coupon_code:
            coupon, discount = coupon_service.resolve_for_order(db, coupon_code, subtotal)
            _check_single_use(db, coupon, user.id)

        total = max(subtotal + shipping - discount, Decimal("0"))
        address = _address_from_location(location)

        order = Order(
            user_id=user.id,
            order_number=make_order_number(),
            status=OrderStatus.PENDING.value,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            subtotal_amount=subtotal,
            shipping_amount=shipping,
            discount_amount=discount,
            total_amount=total,
            coupon_id=coupon.id if coupon else None,
            delivery_location_id=location.id,
            shipping_address=address,
            billing_address=dict(address),
            notes=notes,
        )
        db.add(order)
        db.flush()

        # позиции + списание остатков
        for l in lines:
            db.add(OrderItem(
                order_id=order.id,
                product_id=l.product.id,
                quantity=l.quantity,
                price=l.price,
                size=l.size,
                color=l.color,
            ))
            reserve_stock(db, l.product.id, l.quantity, order_id=order.id, user=_actor(user))

        if coupon:
            coupon_service.consume(db, coupon)

        _log_status(db, order, None, order.status, _actor(user), "order placed")
        db.commit()
    except StoreError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Ошибка БД при создании заказа пользователем %s", user.id)
        raise translate_db_error(e)

    logger.info(
        "Заказ %s создан: пользователь %s, позиций %s, сумма %s",
        order.order_number, user.id, len(lines), total,
    )

    clear_cart_quietly(db, user.id)
    return load_order(db, order.id)


# ---------- ЧТЕНИЕ ----------
def load_order(db: Session, order_id: int) -> Optional[Order]:
    return db.scalars(
        select(Order)
        .where(Order.id == order_id)
        .options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.user),
            selectinload(Order.delivery_location),
        )
        .execution_options(populate_existing=True)
    ).first()


def get_order_for(db: Session, order_id: int, user: User) -> Order:
    """Админ видит любой заказ, покупатель только свой (чужой = 404)."""
    order = load_order(db, order_id)
    if not order or (not user.is_admin and order.user_id != user.id):
        raise NotFoundError("The requested order was not found", error="Order not found")
    return order


def _pagination(page: int, limit: int, total: int) -> dict:
    return {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total_orders": total,
        "per_page": limit,
    }


def list_orders(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    user_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> tuple:
    """Список заказов (новые сверху) + пагинация."""
    conditions = []
    if status:
        if status not in ORDER_STATUSES:
            raise InvalidStatusError(status, ORDER_STATUSES)
        conditions.append(Order.status == status)
    if user_id:
        conditions.append(Order.user_id == user_id)
    if start_date:
        conditions.append(Order.created_at >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        # включительно до конца дня
        conditions.append(Order.created_at < datetime.combine(end_date + timedelta(days=1), datetime.min.time()))

    total = db.scalar(select(func.count(Order.id)).where(*conditions))
    orders = list(db.scalars(
        select(Order)
        .where(*conditions)
        .options(selectinload(Order.items), selectinload(Order.user))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    ))
    return orders, _pagination(page, limit, total or 0)


# ---------- ОТМЕНА ----------
def _restore_and_cancel(db: Session, order: Order, actor: str, note: Optional[str]) -> None:
    for item in order.items:
        release_stock(db, item.product_id, item.quantity, order_id=order.id, user=actor)

    old = order.status
    order.status = OrderStatus.CANCELLED.value
    order.status_changed_at = utcnow()
    if order.payment_status == PaymentStatus.PAID.value:
        order.payment_status = PaymentStatus.REFUNDED.value
    if note:
        order.notes = note
    _log_status(db, order, old, order.status, actor, note)


def cancel_order(db: Session, order_id: int, user: User, note: Optional[str] = None) -> tuple:
    """Отмена с возвратом остатков. Возвращает (заказ, старый статус)."""
    order = get_order_for(db, order_id, user)
    old_status = order.status

    if order.status == OrderStatus.CANCELLED.value:
        raise CannotCancelError("Order is already cancelled")
    if not user.is_admin and order.status not in CUSTOMER_CANCELLABLE:
        raise CannotCancelError("Order cannot be cancelled at this stage")
    if OrderStatus.CANCELLED.value not in VALID_NEXT[order.status]:
        raise CannotCancelError(f"Order in status '{order.status}' cannot be cancelled")

    try:
        _restore_and_cancel(db, order, _actor(user), note)
        db.commit()
    except StoreError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Ошибка БД при отмене заказа %s", order_id)
        raise translate_db_error(e)

    logger.info("Заказ %s отменён (%s)", order.order_number, _actor(user))
    return load_order(db, order.id), old_status


# ---------- СМЕНА СТАТУСА ----------
def change_status(
    db: Session,
    order_id: int,
    new_status: str,
    admin: User,
    notes: Optional[str] = None,
    tracking_number: Optional[str] = None,
) -> tuple:
    """Меняет статус по таблице переходов. Возвращает (заказ, старый статус)."""
    if new_status not in ORDER_STATUSES:
        raise InvalidStatusError(new_status, ORDER_STATUSES)

    order = load_order(db, order_id)
    if not order:
        raise NotFoundError("The requested order was not found", error="Order not found")

    cur = order.status or OrderStatus.PENDING.value
    if new_status != cur and new_status not in VALID_NEXT.get(cur, set()):
        raise InvalidTransitionError(cur, new_status, VALID_NEXT.get(cur, set()))

    try:
        if new_status == cur:
            # тот же статус: только заметка / трек-номер
            if notes:
                order.notes = notes
        elif new_status == OrderStatus.CANCELLED.value:
            _restore_and_cancel(db, order, _actor(admin), notes)
        else:
            order.status = new_status
            order.status_changed_at = utcnow()
            if notes:
                order.notes = notes
            _log_status(db, order, cur, new_status, _actor(admin), notes)
        if tracking_number:
            order.tracking_number = tracking_number
        db.commit()
    except StoreError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Ошибка БД при смене статуса заказа %s", order_id)
        raise translate_db_error(e)

    logger.info("Заказ %s: %s → %s (%s)", order.order_number, cur, new_status, _actor(admin))
    return load_order(db, order.id), cur
