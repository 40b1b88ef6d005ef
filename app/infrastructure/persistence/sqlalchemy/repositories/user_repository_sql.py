from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto

class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            phone=user.phone,
            role=user.role,
            is_verified=bool(user.is_verified),
            is_active=bool(user.is_active),
            full_name=user.full_name,
            company_name_ar=user.company_name_ar,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.phone == phone)).first()
        return self._to_dto(user) if user else None

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.id == user_id)).first()
        return self._to_dto(user) if user else None

    def create(self, phone: str, role: str) -> UserDto:
        user = User(phone=phone, role=role, is_verified=True, is_active=True)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            # Another request created the same phone first
            self.session.rollback()
            existing = self.get_by_phone(phone)
            if existing is None:
                raise
            return existing
        self.session.refresh(user)
        return self._to_dto(user)
