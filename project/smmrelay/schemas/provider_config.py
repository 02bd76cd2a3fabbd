# smmrelay/schemas/provider_config.py

from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel, Field

class ProviderConfigBase(BaseModel):
    alias: Optional[str] = None
    priority: int = 0
    device_id: Optional[int] = None
    forward_refill: bool = True
    forward_cancel: bool = True
    forward_speedup: bool = True
    whatsapp_group_jid: Optional[str] = None
    whatsapp_number: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    refill_template: Optional[str] = None
    cancel_template: Optional[str] = None
    speedup_template: Optional[str] = None
    is_active: bool = True

class ProviderConfigCreate(ProviderConfigBase):
    provider_name: str = Field(..., min_length=1)

class ProviderConfigUpdate(BaseModel):
    alias: Optional[str] = None
    priority: Optional[int] = None
    device_id: Optional[int] = None
    forward_refill: Optional[bool] = None
    forward_cancel: Optional[bool] = None
    forward_speedup: Optional[bool] = None
    whatsapp_group_jid: Optional[str] = None
    whatsapp_number: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    refill_template: Optional[str] = None
    cancel_template: Optional[str] = None
    speedup_template: Optional[str] = None
    is_active: Optional[bool] = None

class ProviderConfig(ProviderConfigBase):
    id: int
    provider_name: str
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }

class ManualDestination(BaseModel):
    whatsapp_group_jid: Optional[str] = None
    whatsapp_number: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    device_id: Optional[int] = None

class ConfigTestRequest(BaseModel):
    platform: Literal["whatsapp_group", "whatsapp_number", "telegram"]
    device_id: Optional[int] = None
