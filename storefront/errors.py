"""Типизированные ошибки магазина.

Сервисы бросают наследников StoreError, обработчики в main.py превращают их
в JSON вида {"error": ..., "message": ..., "details": ...}.
"""
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    CONSTRAINT = "constraint"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.BUSINESS_RULE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.CONSTRAINT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.UNAVAILABLE: 500,
}


class StoreError(Exception):
    """Base exception for all storefront errors."""

    kind = ErrorKind.VALIDATION
    error = "Request failed"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, error: Optional[str] = None):
        self.message = message
        self.details = details
        if error:
            self.error = error
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# ---------- 400: запрос ----------
class InvalidRequestError(StoreError):
    kind = ErrorKind.VALIDATION
    error = "Validation failed"


class InvalidStatusError(StoreError):
    kind = ErrorKind.VALIDATION
    error = "Invalid status"

    def __init__(self, status: str, allowed: Iterable[str]):
        self.status = status
        allowed = list(allowed)
        super().__init__(
            f"Status must be one of: {', '.join(allowed)}",
            details={"status": status, "allowed": allowed},
        )


# ---------- 400: бизнес-правила ----------
class BusinessRuleError(StoreError):
    kind = ErrorKind.BUSINESS_RULE
    error = "Order creation failed"


class InvalidDeliveryLocationError(BusinessRuleError):
    error = "Invalid delivery location"

    def __init__(self, location_id: int):
        self.location_id = location_id
        super().__init__(
            f"Delivery location {location_id} does not exist or is not active",
            details={"delivery_location_id": location_id},
        )


class InvalidProductError(BusinessRuleError):
    error = "Invalid product"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(
            f"Product with ID {product_id} not found",
            details={"product_id": product_id},
        )


class InsufficientStockError(BusinessRuleError):
    error = "Insufficient stock"

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_name}. "
            f"Available: {available}, Requested: {requested}",
            details={"product_id": product_id, "available": available, "requested": requested},
        )


class InvalidTransitionError(BusinessRuleError):
    error = "Invalid status transition"

    def __init__(self, current: str, target: str, allowed: Iterable[str]):
        allowed = sorted(allowed)
        super().__init__(
            f"Order cannot move from '{current}' to '{target}'",
            details={"current": current, "requested": target, "allowed": allowed},
        )


class CannotCancelError(BusinessRuleError):
    error = "Cannot cancel order"


class CouponError(BusinessRuleError):
    error = "Invalid coupon"


# ---------- 401 / 403 / 404 / 409 ----------
class AuthRequiredError(StoreError):
    kind = ErrorKind.UNAUTHORIZED
    error = "Authentication required"


class ForbiddenError(StoreError):
    kind = ErrorKind.FORBIDDEN
    error = "Access denied"


class TooManyAttemptsError(StoreError):
    kind = ErrorKind.RATE_LIMITED
    error = "Too many attempts"


class NotFoundError(StoreError):
    kind = ErrorKind.NOT_FOUND
    error = "Not found"


class ConflictError(StoreError):
    kind = ErrorKind.CONFLICT
    error = "Conflict"


# ---------- ошибки БД ----------
class ConstraintError(StoreError):
    kind = ErrorKind.CONSTRAINT
    error = "Constraint violation"


class UnavailableError(StoreError):
    kind = ErrorKind.UNAVAILABLE
    error = "Database unavailable"


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # psycopg2 отдаёт SQLSTATE, sqlite только текст
    if getattr(orig, "pgcode", None) == "23505":
        return True
    return "UNIQUE constraint failed" in str(orig)


def translate_db_error(exc: SQLAlchemyError) -> StoreError:
    """Переводит исключение SQLAlchemy в типизированную ошибку."""
    if isinstance(exc, IntegrityError):
        if _is_unique_violation(exc):
            return ConflictError("A record with the same unique value already exists")
        return ConstraintError("The change violates a database constraint")
    if isinstance(exc, OperationalError) or (isinstance(exc, DBAPIError) and exc.connection_invalidated):
        return UnavailableError("The database is not reachable")
    return UnavailableError("An unexpected database error occurred")
