# smmrelay/schemas/user.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class UserResponse(BaseModel):
    """Данные пользователя в ответах API (без пароля)."""
    id: int
    name: Optional[str] = None
    login: str
    is_admin: bool = False
    timestamp: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }
