import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from ...exceptions import Conflict, InvalidCredential, NotFoundOrExpired, ResendCooldown
from ...utils import mask_phone, utcnow
from ..ports.code_sender import CodeSender
from ..ports.otp_session_repo import OTPSessionRecord, OTPSessionRepository
from .code_generator import codes_match, generate_code, hash_code, new_session_id

logger = logging.getLogger(__name__)

# Re-reads allowed when a compare-and-swap loses to a concurrent writer
MAX_UPDATE_RETRIES = 5


class OTPState(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    LOCKED = "locked"
    EXPIRED = "expired"


@dataclass(frozen=True)
class OTPPolicy:
    hash_secret: str
    ttl_seconds: int = 300
    max_attempts: int = 5
    code_length: int = 6
    resend_cooldown_seconds: int = 60

    @classmethod
    def from_settings(cls, settings) -> "OTPPolicy":
        return cls(
            hash_secret=settings.OTP_HASH_SECRET,
            ttl_seconds=settings.OTP_TTL_SECONDS,
            max_attempts=settings.OTP_MAX_ATTEMPTS,
            code_length=settings.OTP_CODE_LENGTH,
            resend_cooldown_seconds=settings.OTP_RESEND_COOLDOWN_SECONDS,
        )

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)


@dataclass
class IssuedCode:
    session_id: str
    code: str
    expires_at: datetime


def session_state(record: OTPSessionRecord, now: datetime, max_attempts: int) -> OTPState:
    if now >= record.expires_at:
        return OTPState.EXPIRED
    if record.verified:
        return OTPState.VERIFIED
    if record.attempts >= max_attempts:
        return OTPState.LOCKED
    return OTPState.PENDING


@dataclass
class OTPSessionManager:
    """Creates, verifies and resends one-time codes.

    Each public operation reads the clock once and uses that instant for every
    expiry comparison it makes. Writes go through the repository's
    compare-and-swap ``update``; a lost race re-reads the session and
    re-evaluates it, so every wrong guess is eventually counted.
    """
    repo: OTPSessionRepository
    sender: CodeSender
    policy: OTPPolicy
    clock: Callable[[], datetime] = utcnow

    def create_session(self, phone: str) -> IssuedCode:
        now = self.clock()
        session_id = new_session_id()
        code = generate_code(self.policy.code_length)
        record = OTPSessionRecord(
            session_id=session_id,
            phone=phone,
            code_hash=hash_code(code, session_id, self.policy.hash_secret),
            expires_at=now + self.policy.ttl,
            created_at=now,
            last_sent_at=now,
        )
        self.repo.create(record)
        try:
            self.sender.send(phone, code)
        except Exception:
            # Undelivered codes must not leave a usable session behind
            self.discard(session_id)
            raise
        logger.info(f"OTP session {session_id} created for {mask_phone(phone)}")
        return IssuedCode(session_id=session_id, code=code, expires_at=record.expires_at)

    def verify_code(self, phone: str, code: str, session_id: str) -> OTPSessionRecord:
        now = self.clock()
        for _ in range(MAX_UPDATE_RETRIES):
            record = self._load(phone, session_id, now)
            state = session_state(record, now, self.policy.max_attempts)
            if state is not OTPState.PENDING:
                raise NotFoundOrExpired(reason=f"session {session_id} is {state.value}")

            if not codes_match(code, record.session_id, self.policy.hash_secret, record.code_hash):
                record.attempts += 1
                if self.repo.update(record):
                    raise InvalidCredential(reason=f"wrong code for session {session_id}")
                continue

            record.verified = True
            if self.repo.update(record):
                logger.info(f"OTP session {session_id} verified")
                return record
        raise Conflict(reason=f"session {session_id} kept changing during verification")

    def resend_code(self, phone: str, session_id: str, min_interval_seconds: int = 0) -> IssuedCode:
        """Replace the code and restart the expiry window.

        ``attempts`` is carried over. With ``min_interval_seconds`` the
        cooldown is checked against ``last_sent_at`` inside the same
        compare-and-swap as the update.
        """
        now = self.clock()
        for _ in range(MAX_UPDATE_RETRIES):
            record = self._load(phone, session_id, now)
            if record.verified:
                raise NotFoundOrExpired(reason=f"session {session_id} already verified")
            wait = self._seconds_until_resend(record, now, min_interval_seconds)
            if wait > 0:
                raise ResendCooldown(retry_after=wait)

            previous = (record.code_hash, record.expires_at, record.last_sent_at)
            code = generate_code(self.policy.code_length)
            record.code_hash = hash_code(code, record.session_id, self.policy.hash_secret)
            record.expires_at = now + self.policy.ttl
            record.last_sent_at = now
            if not self.repo.update(record):
                continue
            try:
                self.sender.send(phone, code)
            except Exception:
                self._restore(record, previous)
                raise
            logger.info(f"OTP session {session_id} resent to {mask_phone(phone)}")
            return IssuedCode(session_id=session_id, code=code, expires_at=record.expires_at)
        raise Conflict(reason=f"session {session_id} kept changing during resend")

    def _restore(self, record: OTPSessionRecord, previous) -> None:
        # The last delivered code stays usable and the cooldown is not consumed
        record.code_hash, record.expires_at, record.last_sent_at = previous
        if not self.repo.update(record):
            logger.warning(f"OTP session {record.session_id} changed before a failed resend could be undone")

    def discard(self, session_id: str) -> None:
        self.repo.delete(session_id)

    def sweep_expired(self) -> int:
        removed = self.repo.delete_expired(self.clock())
        if removed:
            logger.info(f"Removed {removed} expired OTP sessions")
        return removed

    def _load(self, phone: str, session_id: str, now: datetime) -> OTPSessionRecord:
        record = self.repo.find_by_session_id(session_id, now)
        if record is None:
            raise NotFoundOrExpired(reason=f"session {session_id} not found or expired")
        if record.phone != phone:
            raise NotFoundOrExpired(reason=f"session {session_id} belongs to another phone")
        return record

    @staticmethod
    def _seconds_until_resend(record: OTPSessionRecord, now: datetime, min_interval_seconds: int) -> int:
        if min_interval_seconds <= 0:
            return 0
        elapsed = (now - record.last_sent_at).total_seconds()
        remaining = min_interval_seconds - elapsed
        if remaining <= 0:
            return 0
        return int(remaining) if remaining == int(remaining) else int(remaining) + 1
