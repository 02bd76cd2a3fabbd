# smmrelay/models/device.py

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from smmrelay.utils.database import Base

DEVICE_CONNECTED = "connected"
DEVICE_DISCONNECTED = "disconnected"

class Device(Base):
    """Аккаунт WhatsApp, через который отправляются сообщения."""
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    name   = Column(String, nullable=True)
    phone  = Column(String, nullable=True)
    status = Column(String, nullable=False, default=DEVICE_DISCONNECTED)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
