# smmrelay/schemas/order.py

from datetime import datetime
from typing import Optional, Any

from pydantic import BaseModel, Field

from smmrelay.schemas.forwarding import Command

class OrderBase(BaseModel):
    panel_id: int
    external_order_id: Optional[str] = None
    provider_order_id: Optional[str] = None
    provider_name: Optional[str] = None
    service_id: Optional[str] = None
    service_name: Optional[str] = None
    link: Optional[str] = None
    quantity: Optional[int] = None
    remains: Optional[int] = None
    start_count: Optional[int] = None
    status: Optional[str] = None
    charge: Optional[float] = None
    can_refill: bool = False
    can_cancel: bool = False
    has_guarantee: Optional[bool] = None
    customer_username: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None

class OrderCreate(OrderBase):
    pass

class Order(OrderBase):
    id: int
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }

# ────────────── Журнал команд ──────────────
class OrderCommandCreate(BaseModel):
    command: Command
    status: str = Field("SUCCESS", min_length=1)

class OrderCommand(BaseModel):
    id: int
    order_id: int
    command: str
    status: str
    forwarded_to: Optional[str] = None
    response: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }
