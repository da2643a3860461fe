# storefront/models/order_status_log.py
from typing import Optional
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db import Base
from storefront.utils.dates import utcnow


class OrderStatusLog(Base):
    __tablename__ = "order_status_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)

    old_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # None для нового заказа
    new_status: Mapped[str] = mapped_column(String(20))
    user: Mapped[str] = mapped_column(String(255), default="system")
    note: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    order = relationship("Order")
