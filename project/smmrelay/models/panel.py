# smmrelay/models/panel.py

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from smmrelay.utils.database import Base

class Panel(Base):
    """SMM-панель реселлера, к которой привязаны заказы и группы провайдеров."""
    __tablename__ = "panels"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    name  = Column(String, nullable=False)      # Название панели
    alias = Column(String, nullable=True)       # Короткое имя для сообщений
    url   = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def display_name(self) -> str:
        return self.alias or self.name or "Unknown"
