# smmrelay/models/provider_group.py

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from smmrelay.utils.database import Base
from smmrelay.models.types import ServiceIdRulesType

GROUP_TYPE_GROUP = "GROUP"
GROUP_TYPE_DIRECT = "DIRECT"

class ProviderGroup(Base):
    """
    Правило маршрутизации команд панели: куда пересылать команды
    по заказам конкретного провайдера (или всех, если provider_name = NULL).
    """
    __tablename__ = "provider_groups"

    id = Column(Integer, primary_key=True, index=True)
    panel_id  = Column(Integer, ForeignKey("panels.id", ondelete="CASCADE"), index=True, nullable=False)
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True)

    provider_name = Column(String, nullable=True)               # NULL = группа по умолчанию
    group_type    = Column(String, nullable=False, default=GROUP_TYPE_GROUP)
    group_id      = Column(String, nullable=True)               # JID группы или номер телефона
    group_name    = Column(String, nullable=False)

    message_template   = Column(Text, nullable=True)            # общий шаблон для всех команд
    new_order_template = Column(Text, nullable=True)
    refill_template    = Column(Text, nullable=True)
    cancel_template    = Column(Text, nullable=True)
    speed_up_template  = Column(Text, nullable=True)

    use_simple_format       = Column(Boolean, nullable=False, default=False)
    is_manual_service_group = Column(Boolean, nullable=False, default=False)
    service_id_rules        = Column(ServiceIdRulesType, nullable=True)

    is_active  = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
