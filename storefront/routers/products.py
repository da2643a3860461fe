import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from storefront import config
from storefront.db import get_db
from storefront.errors import InvalidRequestError, NotFoundError
from storefront.middleware.rbac import require_admin
from storefront.models import Product, User
from storefront.schemas import ProductCreate, ProductUpdate
from storefront.services.stock import set_stock
from storefront.utils.serializers import product_to_dict

router = APIRouter(prefix="/products", tags=["products"])

REQUIRED_FIELDS = ("name", "price", "stock_quantity", "is_active", "is_featured")


def _get_product(db: Session, product_id: int, active_only: bool = False) -> Product:
    p = db.get(Product, product_id)
    if not p or (active_only and not p.is_active):
        raise NotFoundError("The requested product was not found", error="Product not found")
    return p


# 📦 список товаров
@router.get("")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=config.MAX_PAGE_SIZE),
    category: Optional[str] = Query(None),
    brand: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    conditions = [Product.is_active.is_(True)]
    if category:
        conditions.append(Product.category == category)
    if brand:
        conditions.append(Product.brand == brand)
    q = (search or "").strip()
    if q:
        conditions.append(or_(Product.name.ilike(f"%{q}%"), Product.brand.ilike(f"%{q}%")))

    total = db.scalar(select(func.count(Product.id)).where(*conditions)) or 0
    products = db.scalars(
        select(Product).where(*conditions).order_by(Product.created_at.desc(), Product.id.desc())
        .limit(limit).offset((page - 1) * limit)
    ).all()
    return {
        "message": "Products retrieved successfully",
        "data": {
            "products": [product_to_dict(p) for p in products],
            "pagination": {
                "current_page": page,
                "total_pages": math.ceil(total / limit),
                "total_products": total,
                "per_page": limit,
            },
        },
    }


@router.get("/categories")
def list_categories(db: Session = Depends(get_db)):
    rows = db.execute(
        select(Product.category, func.count(Product.id))
        .where(Product.is_active.is_(True), Product.category.is_not(None))
        .group_by(Product.category)
        .order_by(Product.category)
    ).all()
    return {
        "message": "Categories retrieved successfully",
        "data": {"categories": [{"name": name, "product_count": count} for name, count in rows]},
    }


# ⭐ витрина
@router.get("/featured")
def featured_products(limit: int = Query(8, ge=1, le=50), db: Session = Depends(get_db)):
    products = db.scalars(
        select(Product).where(Product.is_active.is_(True), Product.is_featured.is_(True))
        .order_by(Product.created_at.desc(), Product.id.desc()).limit(limit)
    ).all()
    return {
        "message": "Featured products retrieved successfully",
        "data": {"products": [product_to_dict(p) for p in products]},
    }


@router.get("/new-arrivals")
def new_arrivals(limit: int = Query(8, ge=1, le=50), db: Session = Depends(get_db)):
    products = db.scalars(
        select(Product).where(Product.is_active.is_(True))
        .order_by(Product.created_at.desc(), Product.id.desc()).limit(limit)
    ).all()
    return {
        "message": "New arrivals retrieved successfully",
        "data": {"products": [product_to_dict(p) for p in products]},
    }


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    p = _get_product(db, product_id, active_only=True)
    return {"message": "Product retrieved successfully", "data": {"product": product_to_dict(p)}}


# 💾 создание
@router.post("", status_code=201)
def create_product(
    payload: ProductCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    p = Product(**payload.model_dump())
    db.add(p)
    db.commit()
    db.refresh(p)
    return {"message": "Product created successfully", "data": {"product": product_to_dict(p)}}


# 🔄 обновление товара
@router.put("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    p = _get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    # описательные поля можно обнулить, обязательные нет
    cleared = [f for f in REQUIRED_FIELDS if f in changes and changes[f] is None]
    if cleared:
        raise InvalidRequestError(
            f"These fields cannot be null: {', '.join(sorted(cleared))}",
            details={"fields": sorted(cleared)},
        )

    new_stock = changes.pop("stock_quantity", None)
    if new_stock is not None:
        set_stock(db, p, new_stock, user=admin.email)
    for field, value in changes.items():
        setattr(p, field, value)

    db.commit()
    db.refresh(p)
    return {"message": "Product updated successfully", "data": {"product": product_to_dict(p)}}


@router.delete("/{product_id}")
def deactivate_product(
    product_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    p = _get_product(db, product_id)
    p.is_active = False
    db.commit()
    return {"message": "Product deactivated successfully"}
