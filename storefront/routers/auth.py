import logging
import time

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.errors import AuthRequiredError, ConflictError, TooManyAttemptsError
from storefront.middleware.rbac import get_current_user
from storefront.models.user import User
from storefront.schemas import ChangePasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest
from storefront.services import users as user_service
from storefront.utils.enums import UserRole
from storefront.utils.security import hash_password, verify_password
from storefront.utils.serializers import user_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# 🔹 Rate limit config
MAX_ATTEMPTS = 5          # максимум попыток
BLOCK_TIME = 60           # блокировка на 60 секунд
login_attempts = {}       # { "ip": {"count": int, "last": timestamp} }


def check_rate_limit(ip: str) -> bool:
    """Проверка лимита по IP"""
    now = time.time()
    data = login_attempts.get(ip)

    if not data:
        return True

    # если ещё идёт блокировка
    if data["count"] >= MAX_ATTEMPTS and now - data["last"] < BLOCK_TIME:
        return False

    return True


def add_attempt(ip: str):
    """Запись неудачной попытки входа"""
    now = time.time()
    if ip not in login_attempts:
        login_attempts[ip] = {"count": 1, "last": now}
    else:
        attempts = login_attempts[ip]
        if now - attempts["last"] > BLOCK_TIME:
            # сбрасываем после блокировки
            login_attempts[ip] = {"count": 1, "last": now}
        else:
            attempts["count"] += 1
            attempts["last"] = now


def reset_attempts(ip: str):
    """Сброс после успешного логина"""
    login_attempts.pop(ip, None)


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    exists = db.scalars(select(User).where(func.lower(User.email) == email)).first()
    if exists:
        raise ConflictError("A user with this email already exists", error="User already exists")

    user = User(
        email=email,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        password_hash=hash_password(payload.password),
        role=UserRole.CUSTOMER.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"message": "User registered successfully", "data": {"user": user_to_dict(user)}}


# обработка логина
@router.post("/login")
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    client_ip = request.client.host if request.client else "unknown"

    # Проверка rate limit
    if not check_rate_limit(client_ip):
        raise TooManyAttemptsError("Too many login attempts. Please wait a minute.")

    email = payload.email.strip().lower()
    user = db.scalars(select(User).where(func.lower(User.email) == email)).first()
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        add_attempt(client_ip)  # фиксируем неудачную попытку
        raise AuthRequiredError("Invalid email or password", error="Invalid credentials")

    # Успешный вход: сброс счётчика
    reset_attempts(client_ip)

    # сохраняем в сессии
    request.session["user_id"] = user.id
    role_clean = (user.role or "").strip().lower()
    request.session["role"] = role_clean
    logger.info("Вход: %s (role=%s)", user.email, role_clean)

    return {"message": "Login successful", "data": {"user": user_to_dict(user)}}


# выход
@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"message": "Logged out"}


@router.get("/me")
def whoami(user: User = Depends(get_current_user)):
    return {"message": "User retrieved successfully", "data": {"user": user_to_dict(user)}}


# ---------- ПРОФИЛЬ ----------
@router.get("/profile")
def profile(user: User = Depends(get_current_user)):
    return {"message": "Profile retrieved successfully", "data": {"user": user_to_dict(user)}}


@router.put("/profile")
def update_profile(payload: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user = user_service.update_profile(db, user, payload.model_dump(exclude_unset=True))
    return {"message": "Profile updated successfully", "data": {"user": user_to_dict(user)}}


@router.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_service.change_password(db, user, payload.current_password, payload.new_password)
    return {"message": "Password changed successfully"}
