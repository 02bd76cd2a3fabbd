# smmrelay/models/order_command.py

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from smmrelay.utils.database import Base
from smmrelay.models.types import JSONText

COMMAND_STATUS_SUCCESS = "SUCCESS"

class OrderCommand(Base):
    """Журнал команд по заказу: одна строка на попытку команды."""
    __tablename__ = "order_commands"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)

    command      = Column(String, nullable=False)     # REFILL, CANCEL, SPEED_UP, NEW_ORDER
    status       = Column(String, nullable=False)     # SUCCESS, FAILED, ...
    forwarded_to = Column(String, nullable=True)      # куда переслано
    response     = Column(JSONText, nullable=True)    # ForwardLogEntry.to_record()

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
