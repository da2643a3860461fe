from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.middleware.rbac import get_current_user
from storefront.models.user import User
from storefront.schemas import CartAddRequest, CartUpdateRequest
from storefront.services import cart as cart_service
from storefront.services.delivery import get_active_location
from storefront.utils.serializers import cart_item_to_dict

router = APIRouter(prefix="/cart", tags=["cart"])


# ----------------------- VIEW -----------------------
@router.get("")
def cart_view(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    lines = [cart_item_to_dict(ci) for ci in cart_service.cart_lines(db, user.id)]
    return {
        "message": "Cart retrieved successfully",
        "data": {
            "cart": {
                "items": lines,
                "total_items": sum(l["quantity"] for l in lines),
                "total_amount": sum(l["item_total"] for l in lines),
            }
        },
    }


@router.get("/count")
def cart_count(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    lines = cart_service.cart_lines(db, user.id)
    return {
        "message": "Cart count retrieved successfully",
        "data": {"total_items": sum(ci.quantity for ci in lines)},
    }


@router.get("/summary")
def cart_summary(
    delivery_location_id: Optional[int] = Query(None, ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Итоги корзины; с точкой самовывоза ещё и доставка + к оплате."""
    lines = [cart_item_to_dict(ci) for ci in cart_service.cart_lines(db, user.id)]
    subtotal = round(sum(l["item_total"] for l in lines), 2)
    summary = {
        "total_items": sum(l["quantity"] for l in lines),
        "unique_items": len(lines),
        "subtotal": subtotal,
        "out_of_stock_items": [l["product_id"] for l in lines if not l["in_stock"]],
    }
    if delivery_location_id:
        loc = get_active_location(db, delivery_location_id)
        shipping = float(loc.shipping_amount or 0)
        summary.update(shipping_amount=shipping, total_amount=round(subtotal + shipping, 2))
    return {"message": "Cart summary retrieved successfully", "data": {"summary": summary}}


# ----------------------- ADD -----------------------
@router.post("/add")
def cart_add(payload: CartAddRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    item, created = cart_service.add_item(
        db, user.id, payload.product_id, payload.quantity, size=payload.size, color=payload.color
    )
    body = {
        "message": "Item added to cart successfully" if created else "Cart item updated successfully",
        "data": {"cart_item": cart_item_to_dict(item)},
    }
    return JSONResponse(body, status_code=201 if created else 200)


# ----------------------- UPDATE -----------------------
@router.put("/item/{item_id}")
def cart_update(
    item_id: int,
    payload: CartUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = cart_service.update_item(db, user.id, item_id, payload.quantity)
    return {"message": "Cart item updated successfully", "data": {"cart_item": cart_item_to_dict(item)}}


# ----------------------- REMOVE -----------------------
@router.delete("/item/{item_id}")
def cart_remove(item_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    cart_service.remove_item(db, user.id, item_id)
    return {"message": "Item removed from cart successfully"}


@router.delete("/clear")
def cart_clear(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    cart_service.clear_cart(db, user.id)
    return {"message": "Cart cleared successfully"}
