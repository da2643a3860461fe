from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db import Base
from storefront.utils.dates import utcnow

# допустимые значения pickup_status
LOCATION_STATUSES = ("active", "inactive", "maintenance")


class DeliveryLocation(Base):
    __tablename__ = "delivery_locations"

    id: Mapped[int] = mapped_column(primary_key=True)
    city_name: Mapped[str] = mapped_column(String(100), unique=True)
    shipping_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    pickup_location: Mapped[str] = mapped_column(String(255))
    pickup_phone: Mapped[str] = mapped_column(String(32))
    pickup_status: Mapped[str] = mapped_column(String(16), default="active", index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
