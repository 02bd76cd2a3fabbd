# smmrelay/schemas/forwarding.py

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Command(str, Enum):
    NEW_ORDER = "NEW_ORDER"
    REFILL = "REFILL"
    CANCEL = "CANCEL"
    SPEED_UP = "SPEED_UP"


class ForwardReason(str, Enum):
    NO_GROUP = "no_group"
    NO_DEVICE = "no_device"
    NO_TARGET = "no_target"
    DISABLED = "disabled"
    SEND_FAILED = "send_failed"
    NO_DESTINATION = "no_destination"
    UNSUPPORTED = "unsupported"
    NO_ORDER = "no_order"
    NO_PROVIDER = "no_provider"
    ERROR = "error"


# ────────────── Результат пересылки ──────────────
class ForwardResult(BaseModel):
    """Тегированный результат: ошибки пересылки возвращаются, а не выбрасываются."""
    success: bool
    message: str
    reason: Optional[ForwardReason] = None

    group_id: Optional[int] = None
    group_name: Optional[str] = None
    panel_name: Optional[str] = None
    used_provider_order_id: Optional[bool] = None
    used_service_id_routing: Optional[bool] = None
    service_id: Optional[str] = None

    source: Optional[str] = None                # "ProviderGroup" / "ProviderConfig"
    target: Optional[str] = None                # адрес, на который ушло сообщение
    forwarded_to: Optional[List[str]] = None
    errors: Optional[List[str]] = None

    @classmethod
    def failure(cls, reason: ForwardReason, message: str, **extra) -> "ForwardResult":
        return cls(success=False, reason=reason, message=message, **extra)


class BulkForwardItem(ForwardResult):
    order_id: int


class BulkForwardResult(BaseModel):
    total: int
    successful: int
    failed: int
    results: List[BulkForwardItem]


# ────────────── Запись в OrderCommand.response ──────────────
class ForwardLogEntry(BaseModel):
    """Структура, которая сохраняется в OrderCommand.response (ключи в camelCase)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    forwarded: bool = True
    source: Optional[str] = None
    group_id: Optional[int] = None
    group_name: Optional[str] = None
    provider_name: Optional[str] = None
    provider_order_id: Optional[str] = None
    used_service_id_routing: Optional[bool] = None
    service_id: Optional[str] = None
    target_jid: Optional[str] = None

    config_id: Optional[int] = None
    provider_alias: Optional[str] = None
    destinations: Optional[List[str]] = None
    errors: Optional[List[str]] = None

    timestamp: datetime

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, data: dict | None) -> "ForwardLogEntry | None":
        if not data:
            return None
        return cls.model_validate(data)


# ────────────── Запросы API ──────────────
class ForwardRequest(BaseModel):
    order_id: int
    command: Command
    device_id: Optional[int] = None


class BulkForwardRequest(BaseModel):
    order_ids: List[int] = Field(..., min_length=1, max_length=500)
    command: Command
    device_id: Optional[int] = None


class DirectMessageRequest(BaseModel):
    target_number: str = Field(..., min_length=3)
    message: str = Field(..., min_length=1)
    device_id: int


class GroupInfo(BaseModel):
    """Группа WhatsApp, как её отдаёт шлюз."""
    id: str
    subject: Optional[str] = None
    participants: Optional[int] = None
