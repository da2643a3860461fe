from sqlalchemy import Column, Integer, String, DateTime, func
from storefront.db import Base


class Subscriber(Base):
    __tablename__ = "subscribers"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(64), unique=True, nullable=False)
    username = Column(String(120), nullable=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now())
