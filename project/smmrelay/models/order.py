# smmrelay/models/order.py

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from smmrelay.utils.database import Base

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id  = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    panel_id = Column(Integer, ForeignKey("panels.id", ondelete="CASCADE"), index=True, nullable=False)

    external_order_id = Column(String, index=True, nullable=True)   # ID заказа на панели
    provider_order_id = Column(String, nullable=True)               # ID заказа у провайдера
    provider_name     = Column(String, nullable=True)               # NULL = ручная услуга

    service_id   = Column(String, nullable=True)
    service_name = Column(String, nullable=True)
    link         = Column(String, nullable=True)
    quantity     = Column(Integer, nullable=True)
    remains      = Column(Integer, nullable=True)
    start_count  = Column(Integer, nullable=True)
    status       = Column(String, nullable=True)
    charge       = Column(Float, nullable=True)

    can_refill    = Column(Boolean, default=False)
    can_cancel    = Column(Boolean, default=False)
    has_guarantee = Column(Boolean, nullable=True)

    customer_username = Column(String, nullable=True)
    customer_email    = Column(String, nullable=True)
    customer_phone    = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    panel = relationship("Panel", lazy="joined")
