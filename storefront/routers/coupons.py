from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.middleware.rbac import require_admin
from storefront.models import Coupon, User
from storefront.schemas import CouponCreate, CouponUpdate
from storefront.services import coupons as coupon_service
from storefront.utils.serializers import coupon_to_dict

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.get("/validate/{code}")
def validate_coupon(code: str, db: Session = Depends(get_db)):
    coupon = coupon_service.find_valid_coupon(db, code)
    coupon_service.check_usage(coupon)
    data = coupon_to_dict(coupon)
    # счётчики наружу не отдаём
    data.pop("used_count")
    data.pop("usage_limit")
    return {"message": "Coupon is valid", "data": {"coupon": data}}


@router.get("")
def list_coupons(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    coupons = db.scalars(select(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc())).all()
    return {
        "message": "Coupons retrieved successfully",
        "data": {"coupons": [coupon_to_dict(c) for c in coupons]},
    }


@router.post("", status_code=201)
def create_coupon(payload: CouponCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    coupon = coupon_service.create_coupon(db, payload.model_dump())
    return {"message": "Coupon created successfully", "data": {"coupon": coupon_to_dict(coupon)}}


@router.put("/{coupon_id}")
def update_coupon(
    coupon_id: int,
    payload: CouponUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    coupon = coupon_service.update_coupon(db, coupon_id, payload.model_dump(exclude_unset=True))
    return {"message": "Coupon updated successfully", "data": {"coupon": coupon_to_dict(coupon)}}


@router.delete("/{coupon_id}")
def deactivate_coupon(coupon_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    coupon_service.deactivate_coupon(db, coupon_id)
    return {"message": "Coupon deactivated successfully"}
