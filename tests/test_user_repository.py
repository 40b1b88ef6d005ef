import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from app.db.models import User
from app.infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository


@pytest.fixture
def session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


def test_create_and_lookup(session):
    repo = SqlUserRepository(session)
    user = repo.create("+966501234567", "individual")

    assert user.id
    assert user.role == "individual"
    assert user.is_verified is True
    assert user.is_active is True
    assert user.is_profile_complete is False
    assert repo.get_by_phone("+966501234567").id == user.id
    assert repo.get_by_id(user.id).phone == "+966501234567"
    assert repo.get_by_phone("+966500000000") is None
    assert repo.get_by_id("missing") is None


def test_create_returns_existing_user_when_phone_already_taken(session):
    existing = User(phone="+966501234567", role="company", company_name_ar="شركة", is_verified=True)
    session.add(existing)
    session.commit()
    session.refresh(existing)

    user = SqlUserRepository(session).create("+966501234567", "individual")
    assert user.id == existing.id
    assert user.role == "company"
    assert user.is_profile_complete is True
    assert len(session.exec(select(User)).all()) == 1
