# smmrelay/schemas/panel.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

class PanelBase(BaseModel):
    name: str = Field(..., min_length=1)
    alias: Optional[str] = None
    url: Optional[str] = None

class PanelCreate(PanelBase):
    pass

class Panel(PanelBase):
    id: int
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }
