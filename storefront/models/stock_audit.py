# storefront/models/stock_audit.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from storefront.db import Base
from storefront.utils.dates import utcnow


class StockAudit(Base):
    __tablename__ = "stock_audit"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)

    # INCREASE | DECREASE | SET
    change_type = Column(String(16), nullable=False)

    delta_units = Column(Integer, nullable=False)       # на сколько изменили (в штуках) или значение (для SET)
    old_stock   = Column(Integer, nullable=False)
    new_stock   = Column(Integer, nullable=False)
    note        = Column(String(500), nullable=True)    # причина/комментарий

    user       = Column(String(255), nullable=False, default="system")
    created_at = Column(DateTime, default=utcnow, nullable=False)

    product = relationship("Product")
