# app/db/models/auth/otp.py
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

from ....utils import utcnow


class OTPSession(SQLModel, table=True):
    __tablename__ = "otp_sessions"
    session_id: str = Field(primary_key=True, max_length=36)
    phone: str = Field(max_length=20, index=True)
    code_hash: str = Field(max_length=64)
    attempts: int = Field(default=0)
    verified: bool = Field(default=False)
    version: int = Field(default=0)
    # Timestamps are naive UTC (see utils.utcnow)
    expires_at: datetime = Field(index=True, sa_type=DateTime)
    last_sent_at: datetime = Field(sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
