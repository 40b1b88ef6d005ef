import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .....db.models import OTPSession
from .....application.ports.otp_session_repo import OTPSessionRecord, OTPSessionRepository
from .....exceptions import SessionStoreError

logger = logging.getLogger(__name__)


class SqlOTPSessionRepository(OTPSessionRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_record(self, row: OTPSession) -> OTPSessionRecord:
        return OTPSessionRecord(
            session_id=row.session_id,
            phone=row.phone,
            code_hash=row.code_hash,
            expires_at=row.expires_at,
            created_at=row.created_at,
            last_sent_at=row.last_sent_at,
            attempts=row.attempts,
            verified=row.verified,
            version=row.version,
        )

    def create(self, record: OTPSessionRecord) -> str:
        row = OTPSession(
            session_id=record.session_id,
            phone=record.phone,
            code_hash=record.code_hash,
            attempts=record.attempts,
            verified=record.verified,
            version=record.version,
            expires_at=record.expires_at,
            last_sent_at=record.last_sent_at,
            created_at=record.created_at,
        )
        self.session.add(row)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SessionStoreError(reason=f"could not create OTP session: {e}")
        return record.session_id

    def find_by_session_id(self, session_id: str, now: datetime) -> Optional[OTPSessionRecord]:
        stmt = (
            select(OTPSession)
            .where(OTPSession.session_id == session_id, OTPSession.expires_at > now)
            .execution_options(populate_existing=True)
        )
        row = self.session.exec(stmt).first()
        return self._to_record(row) if row else None

    def update(self, record: OTPSessionRecord) -> bool:
        stmt = (
            update(OTPSession)
            .where(OTPSession.session_id == record.session_id, OTPSession.version == record.version)
            .values(
                code_hash=record.code_hash,
                attempts=record.attempts,
                verified=record.verified,
                expires_at=record.expires_at,
                last_sent_at=record.last_sent_at,
                version=record.version + 1,
            )
        )
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SessionStoreError(reason=f"could not update OTP session: {e}")
        if result.rowcount != 1:
            logger.info(f"OTP session {record.session_id} changed underneath version {record.version}")
            return False
        record.version += 1
        return True

    def delete(self, session_id: str) -> None:
        try:
            self.session.execute(delete(OTPSession).where(OTPSession.session_id == session_id))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SessionStoreError(reason=f"could not delete OTP session: {e}")

    def delete_expired(self, now: datetime) -> int:
        try:
            result = self.session.execute(delete(OTPSession).where(OTPSession.expires_at <= now))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SessionStoreError(reason=f"could not sweep OTP sessions: {e}")
        return result.rowcount or 0
