# smmrelay/schemas/device.py

from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel

class DeviceBase(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    status: Literal["connected", "disconnected"] = "disconnected"

class DeviceCreate(DeviceBase):
    pass

class DeviceStatusUpdate(BaseModel):
    status: Literal["connected", "disconnected"]

class Device(DeviceBase):
    id: int
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }
