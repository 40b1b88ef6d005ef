from enum import Enum
from typing import Protocol, Optional
from datetime import datetime


class UserRole(str, Enum):
    INDIVIDUAL = "individual"
    COMPANY = "company"
    ADMIN = "admin"
    MODERATOR = "moderator"


class UserDto:
    def __init__(self, id: str, phone: str, role: str, is_verified: bool, is_active: bool,
                 full_name: Optional[str], company_name_ar: Optional[str],
                 created_at: datetime, updated_at: datetime):
        self.id = id
        self.phone = phone
        self.role = role
        self.is_verified = is_verified
        self.is_active = is_active
        self.full_name = full_name
        self.company_name_ar = company_name_ar
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def is_profile_complete(self) -> bool:
        if self.role == UserRole.INDIVIDUAL.value:
            return bool(self.full_name)
        return bool(self.company_name_ar)


class UserRepository(Protocol):
    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        ...

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def create(self, phone: str, role: str) -> UserDto:
        """Create a verified, active user; return the existing one if the phone is taken."""
        ...
