from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass
class OTPSessionRecord:
    session_id: str
    phone: str
    code_hash: str
    expires_at: datetime
    created_at: datetime
    last_sent_at: datetime
    attempts: int = 0
    verified: bool = False
    version: int = 0


class OTPSessionRepository(Protocol):
    def create(self, record: OTPSessionRecord) -> str:
        ...

    def find_by_session_id(self, session_id: str, now: datetime) -> Optional[OTPSessionRecord]:
        """Return the live record, or None if absent or expired at ``now``."""
        ...

    def update(self, record: OTPSessionRecord) -> bool:
        """Persist ``record`` if the stored version still equals ``record.version``.

        On success the stored and in-memory versions are both bumped. Returns
        False when another writer got there first or the record is gone.
        """
        ...

    def delete(self, session_id: str) -> None:
        ...

    def delete_expired(self, now: datetime) -> int:
        ...
