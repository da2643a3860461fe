from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.errors import InvalidDeliveryLocationError, NotFoundError
from storefront.models import DeliveryLocation


def list_active_locations(db: Session) -> List[DeliveryLocation]:
    return list(db.scalars(
        select(DeliveryLocation)
        .where(DeliveryLocation.pickup_status == "active")
        .order_by(DeliveryLocation.city_name)
    ))


def get_location(db: Session, location_id: int) -> DeliveryLocation:
    loc = db.get(DeliveryLocation, location_id)
    if not loc:
        raise NotFoundError("The requested delivery location was not found", error="Delivery location not found")
    return loc


def get_active_location(db: Session, location_id: int) -> DeliveryLocation:
    """Точка самовывоза для заказа: должна существовать и быть active."""
    loc = db.get(DeliveryLocation, location_id)
    if not loc or loc.pickup_status != "active":
        raise InvalidDeliveryLocationError(location_id)
    return loc


def find_by_city(db: Session, city_name: str) -> DeliveryLocation:
    loc = db.scalars(
        select(DeliveryLocation).where(
            func.lower(DeliveryLocation.city_name) == city_name.strip().lower(),
            DeliveryLocation.pickup_status == "active",
        )
    ).first()
    if not loc:
        raise NotFoundError("Delivery is not available for this city", error="City not found")
    return loc
