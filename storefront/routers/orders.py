from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from storefront import config
from storefront.db import get_db
from storefront.middleware.rbac import get_current_user, require_admin
from storefront.models.user import User
from storefront.schemas import OrderCreateRequest, OrderStatusUpdateRequest
from storefront.services import orders as order_service
from storefront.services.orders import LineItem
from storefront.telegram.notify import notifier
from storefront.utils.serializers import location_to_dict, order_to_dict

router = APIRouter(prefix="/orders", tags=["orders"])


# ---------- ОФОРМЛЕНИЕ ----------
@router.post("", status_code=201)
def create_order(
    payload: OrderCreateRequest,
    background: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = order_service.place_order(
        db,
        user,
        delivery_location_id=payload.delivery_location_id,
        items=[
            LineItem(product_id=i.product_id, quantity=i.quantity, size=i.size, color=i.color)
            for i in payload.order_items
        ],
        payment_method=payload.payment_method,
        coupon_code=payload.coupon_code,
        notes=payload.notes,
    )
    data = order_to_dict(order)
    background.add_task(notifier.notify_order_created, data)

    return {
        "message": "Order created successfully",
        "data": {
            "order": data,
            "delivery_location": location_to_dict(order.delivery_location),
        },
    }


# ---------- МОИ ЗАКАЗЫ ----------
@router.get("/my-orders")
def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    status: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    orders, pagination = order_service.list_orders(db, page=page, limit=limit, status=status, user_id=user.id)
    return {
        "message": "Orders retrieved successfully",
        "data": {
            "orders": [order_to_dict(o, with_items=False) for o in orders],
            "pagination": pagination,
        },
    }


# ---------- ВСЕ ЗАКАЗЫ (админ) ----------
@router.get("")
def all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    status: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None, ge=1),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    orders, pagination = order_service.list_orders(
        db, page=page, limit=limit, status=status,
        user_id=user_id, start_date=start_date, end_date=end_date,
    )
    return {
        "message": "Orders retrieved successfully",
        "data": {
            "orders": [order_to_dict(o, with_items=False, with_user=True) for o in orders],
            "pagination": pagination,
        },
    }


# ---------- ДЕТАЛИ ЗАКАЗА ----------
@router.get("/{order_id}")
def order_detail(
    order_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = order_service.get_order_for(db, order_id, user)
    return {
        "message": "Order retrieved successfully",
        "data": {"order": order_to_dict(order, with_user=True)},
    }


# ---------- СМЕНА СТАТУСА ----------
@router.put("/{order_id}/status")
def change_status(
    order_id: int,
    payload: OrderStatusUpdateRequest,
    background: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    order, old_status = order_service.change_status(
        db, order_id, payload.status, admin,
        notes=payload.notes, tracking_number=payload.tracking_number,
    )
    data = order_to_dict(order)
    if old_status != order.status:
        background.add_task(notifier.notify_order_status_changed, data, old_status)

    return {
        "message": "Order status updated successfully",
        "data": {"order": data},
    }


# ---------- ОТМЕНА ----------
@router.post("/{order_id}/cancel")
def cancel(
    order_id: int,
    background: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order, old_status = order_service.cancel_order(db, order_id, user)
    background.add_task(notifier.notify_order_status_changed, order_to_dict(order), old_status)
    return {"message": "Order cancelled successfully"}
