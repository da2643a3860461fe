from fastapi import Depends, Request
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.errors import AuthRequiredError, ForbiddenError
from storefront.models.user import User
from storefront.utils.enums import UserRole


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Пользователь из сессии (после /auth/login)."""
    user_id = request.session.get("user_id")
    if not user_id:
        raise AuthRequiredError("Please log in first")

    user = db.get(User, int(user_id))
    if not user or not user.is_active:
        request.session.clear()
        raise AuthRequiredError("User not found or deactivated", error="Invalid session")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    # 🔹 только админ
    if (user.role or "").strip().lower() != UserRole.ADMIN.value:
        raise ForbiddenError("Admin privileges required")
    return user
