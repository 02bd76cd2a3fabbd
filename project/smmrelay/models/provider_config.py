# smmrelay/models/provider_config.py

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from smmrelay.utils.database import Base

MANUAL_PROVIDER_NAME = "MANUAL"

class ProviderConfig(Base):
    """Псевдоним провайдера с собственными получателями (резервный путь пересылки)."""
    __tablename__ = "provider_configs"
    __table_args__ = (UniqueConstraint("user_id", "provider_name", name="uq_provider_config_user_provider"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id   = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True)

    provider_name = Column(String, nullable=False)
    alias         = Column(String, nullable=True)
    priority      = Column(Integer, nullable=False, default=0)

    forward_refill  = Column(Boolean, nullable=False, default=True)
    forward_cancel  = Column(Boolean, nullable=False, default=True)
    forward_speedup = Column(Boolean, nullable=False, default=True)

    whatsapp_group_jid = Column(String, nullable=True)
    whatsapp_number    = Column(String, nullable=True)
    telegram_chat_id   = Column(String, nullable=True)

    refill_template  = Column(Text, nullable=True)
    cancel_template  = Column(Text, nullable=True)
    speedup_template = Column(Text, nullable=True)

    is_active  = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
