# smmrelay/models/user.py

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from smmrelay.utils.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    login = Column(String, unique=True, nullable=False)
    password = Column(String, nullable=True)            # хэш passlib
    is_admin = Column(Boolean, default=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())
