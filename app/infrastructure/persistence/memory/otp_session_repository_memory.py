import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from ....application.ports.otp_session_repo import OTPSessionRecord, OTPSessionRepository
from ....exceptions import SessionStoreError


class InMemoryOTPSessionRepository(OTPSessionRepository):
    """Process-local store; only safe with a single worker process."""

    def __init__(self) -> None:
        self._records: Dict[str, OTPSessionRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: OTPSessionRecord) -> str:
        with self._lock:
            if record.session_id in self._records:
                raise SessionStoreError(reason=f"duplicate session id {record.session_id}")
            self._records[record.session_id] = replace(record)
        return record.session_id

    def find_by_session_id(self, session_id: str, now: datetime) -> Optional[OTPSessionRecord]:
        with self._lock:
            rec = self._records.get(session_id)
            if rec is None or now >= rec.expires_at:
                return None
            return replace(rec)

    def update(self, record: OTPSessionRecord) -> bool:
        with self._lock:
            current = self._records.get(record.session_id)
            if current is None or current.version != record.version:
                return False
            record.version += 1
            self._records[record.session_id] = replace(record)
            return True

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [sid for sid, rec in self._records.items() if now >= rec.expires_at]
            for sid in expired:
                del self._records[sid]
            return len(expired)
