# smmrelay/schemas/provider_group.py

from datetime import datetime
from typing import Optional, Dict, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

class ProviderGroupBase(BaseModel):
    provider_name: Optional[str] = None
    device_id: Optional[int] = None
    group_type: Literal["GROUP", "DIRECT"] = "GROUP"
    group_id: Optional[str] = None
    group_name: str = Field(..., min_length=1)
    message_template: Optional[str] = None
    new_order_template: Optional[str] = None
    refill_template: Optional[str] = None
    cancel_template: Optional[str] = None
    speed_up_template: Optional[str] = None
    use_simple_format: bool = False
    is_manual_service_group: bool = False
    service_id_rules: Optional[Dict[str, str]] = None
    is_active: bool = True

    @field_validator("provider_name")
    @classmethod
    def blank_provider_is_default(cls, v):
        # пустое имя провайдера = группа по умолчанию
        if v is not None and not v.strip():
            return None
        return v

class ProviderGroupCreate(ProviderGroupBase):
    panel_id: int

    @model_validator(mode="after")
    def destination_required(self):
        if not self.group_id:
            if self.group_type == "DIRECT":
                raise ValueError("Target number is required for direct type")
            if not self.service_id_rules:
                raise ValueError("Group JID is required for group type")
        return self

class ProviderGroupUpdate(BaseModel):
    """Передаются только изменяемые поля."""
    provider_name: Optional[str] = None
    device_id: Optional[int] = None
    group_type: Optional[Literal["GROUP", "DIRECT"]] = None
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    message_template: Optional[str] = None
    new_order_template: Optional[str] = None
    refill_template: Optional[str] = None
    cancel_template: Optional[str] = None
    speed_up_template: Optional[str] = None
    use_simple_format: Optional[bool] = None
    is_manual_service_group: Optional[bool] = None
    service_id_rules: Optional[Dict[str, str]] = None
    is_active: Optional[bool] = None

class ProviderGroup(ProviderGroupBase):
    id: int
    panel_id: int
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }

    @field_validator("service_id_rules", mode="before")
    @classmethod
    def rules_to_dict(cls, v):
        # ServiceIdRules → обычный dict для ответа
        if v is None:
            return None
        return dict(v)

class GroupTestRequest(BaseModel):
    device_id: Optional[int] = None
