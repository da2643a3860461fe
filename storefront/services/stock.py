"""Изменение остатков.

Списание и возврат делаются одним условным UPDATE, без чтения перед записью:
конкурирующие заказы сериализуются на строке товара в самой БД.
Коммит делает вызывающий код.
"""
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.errors import InsufficientStockError, InvalidProductError, NotFoundError
from storefront.models import Product, StockAudit

logger = logging.getLogger(__name__)


def _audit(
    db: Session,
    product_id: int,
    change_type: str,
    delta: int,
    new_stock: int,
    old_stock: int,
    order_id: Optional[int],
    user: str,
    note: Optional[str],
) -> None:
    db.add(StockAudit(
        product_id=product_id,
        order_id=order_id,
        change_type=change_type,
        delta_units=delta,
        old_stock=old_stock,
        new_stock=new_stock,
        user=user,
        note=note,
    ))


def _current_stock(db: Session, product_id: int) -> Optional[int]:
    return db.scalar(select(Product.stock_quantity).where(Product.id == product_id))


def reserve_stock(
    db: Session,
    product_id: int,
    quantity: int,
    order_id: Optional[int] = None,
    user: str = "system",
) -> int:
    """Списывает quantity штук, только если их хватает. Возвращает новый остаток."""
    result = db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.is_active.is_(True),
            Product.stock_quantity >= quantity,
        )
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        row = db.execute(
            select(Product.name, Product.stock_quantity, Product.is_active).where(Product.id == product_id)
        ).first()
        if row is None or not row.is_active:
            raise InvalidProductError(product_id)
        logger.info("Недостаточно товара %s: есть %s, нужно %s", product_id, row.stock_quantity, quantity)
        raise InsufficientStockError(product_id, row.name, row.stock_quantity, quantity)

    new_stock = _current_stock(db, product_id)
    _audit(db, product_id, "DECREASE", quantity, new_stock, new_stock + quantity, order_id, user,
           f"order #{order_id}" if order_id else None)
    return new_stock


def release_stock(
    db: Session,
    product_id: int,
    quantity: int,
    order_id: Optional[int] = None,
    user: str = "system",
) -> int:
    """Возвращает quantity штук на склад (отмена заказа)."""
    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=Product.stock_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError(f"Product with ID {product_id} not found", error="Product not found")

    new_stock = _current_stock(db, product_id)
    _audit(db, product_id, "INCREASE", quantity, new_stock, new_stock - quantity, order_id, user,
           f"cancel order #{order_id}" if order_id else None)
    return new_stock


def set_stock(db: Session, product: Product, new_stock: int, user: str = "admin") -> None:
    """Ручная установка остатка из админки."""
    old_stock = product.stock_quantity
    if old_stock == new_stock:
        return
    product.stock_quantity = new_stock
    _audit(db, product.id, "SET", new_stock, new_stock, old_stock, None, user, "manual update")
