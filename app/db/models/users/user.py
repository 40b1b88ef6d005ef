# app/db/models/users/user.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    phone: str = Field(max_length=20, unique=True, index=True)
    email: Optional[str] = Field(max_length=100, default=None)
    role: str = Field(max_length=20, default="individual")
    full_name: Optional[str] = Field(max_length=100, default=None)
    company_name_ar: Optional[str] = Field(max_length=200, default=None)
    is_verified: bool = Field(default=False)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
