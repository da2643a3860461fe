"""Профиль покупателя и управление пользователями из админки."""
import logging
import math
from datetime import timedelta
from typing import Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from storefront.errors import BusinessRuleError, ConflictError, InvalidRequestError, NotFoundError
from storefront.models import User
from storefront.utils.dates import utcnow
from storefront.utils.enums import UserRole
from storefront.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

RECENT_DAYS = 30

# эти поля нельзя обнулить, null в запросе = "не менять"
REQUIRED_FIELDS = {"email", "role", "is_active", "first_name", "last_name"}


def _clean(changes: dict) -> dict:
    return {k: v for k, v in changes.items() if v is not None or k not in REQUIRED_FIELDS}


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    conditions = [func.lower(User.email) == email]
    if exclude_id is not None:
        conditions.append(User.id != exclude_id)
    return db.scalars(select(User.id).where(*conditions)).first() is not None


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("The requested user was not found", error="User not found")
    return user


# ---------- ПРОФИЛЬ ----------
def update_profile(db: Session, user: User, changes: dict) -> User:
    for field, value in _clean(changes).items():
        setattr(user, field, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise InvalidRequestError("Current password is incorrect", error="Invalid password")
    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Пароль изменён: %s", user.email)


# ---------- АДМИНКА ----------
def list_users(
    db: Session,
    page: int = 1,
    limit: int = 10,
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> tuple:
    conditions = []
    if role:
        conditions.append(User.role == role)
    if is_active is not None:
        conditions.append(User.is_active.is_(is_active))
    q = (search or "").strip()
    if q:
        like = f"%{q}%"
        conditions.append(or_(User.email.ilike(like), User.first_name.ilike(like), User.last_name.ilike(like)))

    total = db.scalar(select(func.count(User.id)).where(*conditions)) or 0
    users = list(db.scalars(
        select(User).where(*conditions)
        .order_by(User.created_at.desc(), User.id.desc())
        .limit(limit).offset((page - 1) * limit)
    ))
    return users, {
        "current_page": page,
        "total_pages": math.ceil(total / limit),
        "total_users": total,
        "per_page": limit,
    }


def user_stats(db: Session) -> dict:
    since = utcnow() - timedelta(days=RECENT_DAYS)
    active = case((User.is_active.is_(True), 1))

    role_stats = [
        {"role": role, "count": count, "active_count": active_count}
        for role, count, active_count in db.execute(
            select(User.role, func.count(User.id), func.count(active)).group_by(User.role).order_by(User.role)
        )
    ]
    reg_day = func.date(User.created_at)
    recent = [
        {"registration_date": str(day), "count": count}
        for day, count in db.execute(
            select(reg_day, func.count(User.id))
            .where(User.created_at >= since)
            .group_by(reg_day)
            .order_by(reg_day.desc())
        )
    ]
    total_users, active_users, admin_users, recent_count = db.execute(
        select(
            func.count(User.id),
            func.count(active),
            func.count(case((User.role == UserRole.ADMIN.value, 1))),
            func.count(case((User.created_at >= since, 1))),
        )
    ).one()
    return {
        "role_stats": role_stats,
        "recent_registrations": recent,
        "total_stats": {
            "total_users": total_users,
            "active_users": active_users,
            "admin_users": admin_users,
            "recent_registrations": recent_count,
        },
    }


def create_user(db: Session, data: dict) -> User:
    email = data.pop("email").strip().lower()
    if _email_taken(db, email):
        raise ConflictError("A user with this email already exists", error="User already exists")
    user = User(email=email, password_hash=hash_password(data.pop("password")), **data)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Пользователь %s создан админом (role=%s)", email, user.role)
    return user


def update_user(db: Session, user_id: int, changes: dict, admin: User) -> User:
    user = get_user(db, user_id)
    changes = _clean(changes)
    if "email" in changes:
        changes["email"] = changes["email"].strip().lower()
        if _email_taken(db, changes["email"], exclude_id=user.id):
            raise ConflictError("Another user already has this email address", error="Email already taken")
    if user.id == admin.id and changes.get("is_active") is False:
        raise BusinessRuleError("You cannot deactivate your own account", error="Cannot deactivate own account")
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def set_active(db: Session, user_id: int, is_active: bool, admin: User) -> User:
    if user_id == admin.id and not is_active:
        raise BusinessRuleError("You cannot deactivate your own account", error="Cannot deactivate own account")
    user = get_user(db, user_id)
    user.is_active = is_active
    db.commit()
    db.refresh(user)
    logger.info("Пользователь %s %s (%s)", user.email, "активирован" if is_active else "деактивирован", admin.email)
    return user


def deactivate_user(db: Session, user_id: int, admin: User) -> None:
    # мягкое удаление
    if user_id == admin.id:
        raise BusinessRuleError("You cannot delete your own account", error="Cannot delete own account")
    set_active(db, user_id, False, admin)
