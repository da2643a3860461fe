from typing import Any, Dict, Optional

from storefront.models import CartItem, Coupon, DeliveryLocation, Order, OrderItem, Product, User


def _money(value) -> float:
    return float(value or 0)


def _dt(value) -> Optional[str]:
    return value.isoformat() if value else None


def product_to_dict(p: Product) -> Dict[str, Any]:
    """Конвертирует объект Product в словарь для API"""
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "brand": p.brand,
        "category": p.category,
        "image": p.image,
        "price": _money(p.price),
        "stock_quantity": p.stock_quantity,
        "is_active": p.is_active,
        "is_featured": p.is_featured,
        "created_at": _dt(p.created_at),
    }


def location_to_dict(loc: DeliveryLocation) -> Dict[str, Any]:
    return {
        "id": loc.id,
        "city_name": loc.city_name,
        "shipping_amount": _money(loc.shipping_amount),
        "pickup_location": loc.pickup_location,
        "pickup_phone": loc.pickup_phone,
        "pickup_status": loc.pickup_status,
    }


def user_to_dict(u: User) -> Dict[str, Any]:
    return {
        "id": u.id,
        "email": u.email,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "role": u.role,
        "phone": u.phone,
        "date_of_birth": _dt(u.date_of_birth),
        "gender": u.gender,
        "is_active": u.is_active,
        "created_at": _dt(u.created_at),
    }


def coupon_to_dict(c: Coupon) -> Dict[str, Any]:
    return {
        "id": c.id,
        "code": c.code,
        "description": c.description,
        "discount_type": c.discount_type,
        "discount_value": _money(c.discount_value),
        "minimum_amount": _money(c.minimum_amount) if c.minimum_amount is not None else None,
        "max_discount_amount": _money(c.max_discount_amount) if c.max_discount_amount is not None else None,
        "valid_until": _dt(c.valid_until),
        "usage_limit": c.usage_limit,
        "used_count": c.used_count,
        "is_active": c.is_active,
    }


def order_item_to_dict(it: OrderItem) -> Dict[str, Any]:
    product = it.product
    return {
        "id": it.id,
        "product_id": it.product_id,
        "product_name": product.name if product else None,
        "product_image": product.image if product else None,
        "quantity": it.quantity,
        "price": _money(it.price),
        "total": _money(it.price) * it.quantity,
        "size": it.size,
        "color": it.color,
    }


def order_to_dict(o: Order, with_items: bool = True, with_user: bool = False) -> Dict[str, Any]:
    data = {
        "id": o.id,
        "user_id": o.user_id,
        "order_number": o.order_number,
        "status": o.status,
        "payment_method": o.payment_method,
        "payment_status": o.payment_status,
        "subtotal_amount": _money(o.subtotal_amount),
        "shipping_amount": _money(o.shipping_amount),
        "discount_amount": _money(o.discount_amount),
        "total_amount": _money(o.total_amount),
        "coupon_id": o.coupon_id,
        "delivery_location_id": o.delivery_location_id,
        "shipping_address": o.shipping_address,
        "billing_address": o.billing_address,
        "notes": o.notes,
        "tracking_number": o.tracking_number,
        "created_at": _dt(o.created_at),
        "updated_at": _dt(o.updated_at),
    }
    if with_items:
        data["items"] = [order_item_to_dict(it) for it in o.items]
    else:
        data["item_count"] = len(o.items)
    if with_user and o.user is not None:
        data["user"] = user_to_dict(o.user)
    return data


def cart_item_to_dict(ci: CartItem) -> Dict[str, Any]:
    p = ci.product
    price = _money(p.price)
    return {
        "id": ci.id,
        "product_id": ci.product_id,
        "product_name": p.name,
        "image": p.image,
        "brand": p.brand,
        "price": price,
        "quantity": ci.quantity,
        "size": ci.size,
        "color": ci.color,
        "stock_quantity": p.stock_quantity,
        "item_total": price * ci.quantity,
        "in_stock": p.stock_quantity >= ci.quantity,
    }
