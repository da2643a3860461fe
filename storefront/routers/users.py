from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront import config
from storefront.db import get_db
from storefront.middleware.rbac import require_admin
from storefront.models.user import User
from storefront.schemas import UserCreate, UserStatusRequest, UserUpdate
from storefront.services import users as user_service
from storefront.utils.serializers import user_to_dict

# 🔹 все маршруты только для админа
router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    role: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    users, pagination = user_service.list_users(
        db, page=page, limit=limit, role=role, is_active=is_active, search=search
    )
    return {
        "message": "Users retrieved successfully",
        "data": {"users": [user_to_dict(u) for u in users], "pagination": pagination},
    }


@router.get("/stats")
def user_stats(db: Session = Depends(get_db)):
    return {"message": "User statistics retrieved successfully", "data": user_service.user_stats(db)}


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = user_service.get_user(db, user_id)
    return {"message": "User retrieved successfully", "data": {"user": user_to_dict(user)}}


@router.post("", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    user = user_service.create_user(db, payload.model_dump())
    return {"message": "User created successfully", "data": {"user": user_to_dict(user)}}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = user_service.update_user(db, user_id, payload.model_dump(exclude_unset=True), admin)
    return {"message": "User updated successfully", "data": {"user": user_to_dict(user)}}


@router.patch("/{user_id}/status")
def toggle_status(
    user_id: int,
    payload: UserStatusRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = user_service.set_active(db, user_id, payload.is_active, admin)
    action = "activated" if user.is_active else "deactivated"
    return {"message": f"User {action} successfully", "data": {"user": user_to_dict(user)}}


@router.delete("/{user_id}")
def delete_user(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    user_service.deactivate_user(db, user_id, admin)
    return {"message": "User deleted successfully"}
