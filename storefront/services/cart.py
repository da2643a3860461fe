import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.errors import BusinessRuleError, InvalidRequestError, NotFoundError
from storefront.models import CartItem, Product

logger = logging.getLogger(__name__)


def cart_lines(db: Session, user_id: int) -> list:
    return list(db.scalars(
        select(CartItem)
        .join(Product, Product.id == CartItem.product_id)
        .where(CartItem.user_id == user_id, Product.is_active.is_(True))
        .order_by(CartItem.created_at.desc(), CartItem.id.desc())
    ))


def add_item(
    db: Session,
    user_id: int,
    product_id: int,
    quantity: int = 1,
    size: Optional[str] = None,
    color: Optional[str] = None,
) -> tuple:
    """Добавляет товар в корзину. Возвращает (позиция, создана_ли)."""
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("The requested product was not found", error="Product not found")
    if not product.is_active:
        raise BusinessRuleError("This product is currently unavailable", error="Product unavailable")

    existing = db.scalars(
        select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
            CartItem.size == size,
            CartItem.color == color,
        )
    ).first()

    if existing:
        want = existing.quantity + quantity
        if want > product.stock_quantity:
            raise BusinessRuleError(
                f"Only {product.stock_quantity} items available. "
                f"You already have {existing.quantity} in your cart.",
                error="Insufficient stock",
            )
        existing.quantity = want
        db.commit()
        db.refresh(existing)
        return existing, False

    if quantity > product.stock_quantity:
        raise BusinessRuleError(f"Only {product.stock_quantity} items available", error="Insufficient stock")

    item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity, size=size, color=color)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item, True


def _own_item(db: Session, user_id: int, item_id: int) -> CartItem:
    item = db.get(CartItem, item_id)
    if not item or item.user_id != user_id:
        raise NotFoundError("The requested cart item was not found", error="Cart item not found")
    return item


def update_item(db: Session, user_id: int, item_id: int, quantity: int) -> CartItem:
    if quantity <= 0:
        raise InvalidRequestError("Quantity must be greater than 0", error="Invalid quantity")
    item = _own_item(db, user_id, item_id)
    if quantity > item.product.stock_quantity:
        raise BusinessRuleError(
            f"Only {item.product.stock_quantity} items available for {item.product.name}",
            error="Insufficient stock",
        )
    item.quantity = quantity
    db.commit()
    db.refresh(item)
    return item


def remove_item(db: Session, user_id: int, item_id: int) -> None:
    item = _own_item(db, user_id, item_id)
    db.delete(item)
    db.commit()


def clear_cart(db: Session, user_id: int) -> int:
    result = db.execute(delete(CartItem).where(CartItem.user_id == user_id))
    db.commit()
    return result.rowcount


def clear_cart_quietly(db: Session, user_id: int) -> None:
    """Очистка корзины после заказа: ошибка только логируется."""
    try:
        removed = clear_cart(db, user_id)
        logger.info("Корзина пользователя %s очищена (%s поз.)", user_id, removed)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Не удалось очистить корзину пользователя %s", user_id, exc_info=True)
