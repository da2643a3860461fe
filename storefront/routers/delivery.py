import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.errors import ConflictError, InvalidRequestError
from storefront.middleware.rbac import require_admin
from storefront.models import DeliveryLocation, User
from storefront.schemas import DeliveryLocationCreate, DeliveryLocationUpdate
from storefront.services import delivery as delivery_service
from storefront.utils.serializers import location_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/delivery", tags=["delivery"])


def _city_conflict() -> ConflictError:
    return ConflictError("A delivery location for this city already exists", error="City already exists")


# ---------- ПУБЛИЧНЫЕ ----------
@router.get("")
def list_locations(db: Session = Depends(get_db)):
    locations = delivery_service.list_active_locations(db)
    return {
        "message": "Delivery locations retrieved successfully",
        "data": {"locations": [location_to_dict(l) for l in locations]},
    }


@router.get("/cost/{city_name}")
def delivery_cost(city_name: str, db: Session = Depends(get_db)):
    loc = delivery_service.find_by_city(db, city_name)
    return {
        "message": "Delivery cost retrieved successfully",
        "data": {"location": location_to_dict(loc)},
    }


@router.get("/{location_id}")
def get_location(location_id: int, db: Session = Depends(get_db)):
    loc = delivery_service.get_location(db, location_id)
    return {
        "message": "Delivery location retrieved successfully",
        "data": {"location": location_to_dict(loc)},
    }


# ---------- АДМИН ----------
@router.post("", status_code=201)
def create_location(
    payload: DeliveryLocationCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    loc = DeliveryLocation(**payload.model_dump())
    loc.city_name = loc.city_name.strip()
    db.add(loc)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _city_conflict()
    db.refresh(loc)
    logger.info("Точка самовывоза %s создана (%s)", loc.city_name, admin.email)
    return {
        "message": "Delivery location created successfully",
        "data": {"location": location_to_dict(loc)},
    }


@router.put("/{location_id}")
def update_location(
    location_id: int,
    payload: DeliveryLocationUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise InvalidRequestError("Please provide at least one field to update", error="No fields to update")

    loc = delivery_service.get_location(db, location_id)
    for field, value in changes.items():
        setattr(loc, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _city_conflict()
    db.refresh(loc)
    return {
        "message": "Delivery location updated successfully",
        "data": {"location": location_to_dict(loc)},
    }


@router.delete("/{location_id}")
def deactivate_location(
    location_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    # мягкое удаление: точка просто перестаёт быть active
    loc = delivery_service.get_location(db, location_id)
    loc.pickup_status = "inactive"
    db.commit()
    logger.info("Точка самовывоза %s деактивирована (%s)", loc.city_name, admin.email)
    return {
        "message": "Delivery location deactivated successfully",
        "data": {"location": {"id": loc.id, "city_name": loc.city_name}},
    }
