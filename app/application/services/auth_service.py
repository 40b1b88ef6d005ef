import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...exceptions import Conflict, InvalidCredential, InvalidToken, NotFoundOrExpired, ValidationError
from ...utils import DEFAULT_COUNTRY_CODE, normalize_phone
from ..ports.audit_logger import AuditLogger
from ..ports.user_repo import UserDto, UserRepository, UserRole
from .otp_session_manager import OTPSessionManager
from .token_issuer import TokenClaims, TokenIssuer, TokenPair

logger = logging.getLogger(__name__)


@dataclass
class OTPRequestResult:
    session_id: str
    code: Optional[str] = None


@dataclass
class LoginResult:
    user: UserDto
    tokens: TokenPair


@dataclass
class ResendResult:
    session_id: str
    retry_after: int
    code: Optional[str] = None


@dataclass
class AuthService:
    """Request-facing side of phone login.

    Turns send/verify/resend/refresh into calls on the OTP manager, the user
    store and the token issuer. OTP failures all leave here as the same
    ``NotFoundOrExpired`` so clients cannot tell which check tripped.
    """
    otp_manager: OTPSessionManager
    token_issuer: TokenIssuer
    user_repo: UserRepository
    audit_logger: Optional[AuditLogger] = None
    expose_codes: bool = False
    default_country_code: str = DEFAULT_COUNTRY_CODE

    def request_code(self, phone: Optional[str], country_code: Optional[str] = None) -> OTPRequestResult:
        self._require("Phone number is required", phone)
        full_phone = self._phone(phone, country_code)
        issued = self.otp_manager.create_session(full_phone)
        self._audit("otp_sent", full_phone, details={"session_id": issued.session_id})
        return OTPRequestResult(
            session_id=issued.session_id,
            code=issued.code if self.expose_codes else None,
        )

    def submit_code(self, phone: Optional[str], otp: Optional[str], session_id: Optional[str],
                    country_code: Optional[str] = None) -> LoginResult:
        self._require("Phone, OTP, and sessionId are required", phone, otp, session_id)
        full_phone = self._phone(phone, country_code)
        try:
            self.otp_manager.verify_code(full_phone, otp, session_id)
        except (NotFoundOrExpired, InvalidCredential, Conflict) as e:
            self._audit("otp_failed", full_phone, success=False, details={"reason": e.reason})
            raise NotFoundOrExpired(reason=e.reason)

        user = self.user_repo.get_by_phone(full_phone)
        if user is None:
            user = self.user_repo.create(full_phone, UserRole.INDIVIDUAL.value)
            logger.info(f"Created user {user.id} on first login")
        if not user.is_active:
            self._audit("otp_failed", full_phone, user_id=user.id, success=False, details={"reason": "user inactive"})
            raise NotFoundOrExpired(reason=f"user {user.id} is inactive")

        tokens = self.token_issuer.issue_token_pair(self._claims_for(user))
        self._audit("otp_verified", full_phone, user_id=user.id)
        return LoginResult(user=user, tokens=tokens)

    def resend(self, phone: Optional[str], session_id: Optional[str], country_code: Optional[str] = None) -> ResendResult:
        self._require("Phone and sessionId are required", phone, session_id)
        full_phone = self._phone(phone, country_code)
        cooldown = self.otp_manager.policy.resend_cooldown_seconds
        try:
            issued = self.otp_manager.resend_code(full_phone, session_id, min_interval_seconds=cooldown)
        except (NotFoundOrExpired, Conflict) as e:
            self._audit("otp_resent", full_phone, success=False, details={"reason": e.reason})
            raise NotFoundOrExpired("Failed to resend OTP. Session may have expired.", reason=e.reason)
        self._audit("otp_resent", full_phone, details={"session_id": session_id})
        return ResendResult(
            session_id=issued.session_id,
            retry_after=cooldown,
            code=issued.code if self.expose_codes else None,
        )

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise InvalidToken("Refresh token required")
        try:
            claims = self.token_issuer.verify_refresh_token(refresh_token)
        except InvalidToken as e:
            raise InvalidToken("Invalid or expired refresh token", reason=e.reason)

        # Re-load so deactivation and role changes since issuance take effect
        user = self.user_repo.get_by_id(claims.user_id)
        if user is None or not user.is_active:
            raise InvalidToken("Invalid refresh token", reason=f"user {claims.user_id} missing or inactive")

        tokens = self.token_issuer.issue_token_pair(self._claims_for(user))
        self._audit("token_refreshed", user.phone, user_id=user.id)
        return tokens

    def logout(self, claims: TokenClaims) -> None:
        # Tokens are stateless; there is nothing to revoke server side yet.
        self._audit("logout", claims.phone, user_id=claims.user_id)

    def _phone(self, phone: str, country_code: Optional[str]) -> str:
        return normalize_phone(phone, country_code, self.default_country_code)

    @staticmethod
    def _require(message: str, *values: Optional[str]) -> None:
        if any(not v for v in values):
            raise ValidationError(message)

    @staticmethod
    def _claims_for(user: UserDto) -> TokenClaims:
        return TokenClaims(user_id=user.id, phone=user.phone, role=user.role, permissions=[])

    def _audit(self, action: str, phone: str, user_id: Optional[str] = None, success: bool = True,
               details: Optional[Dict[str, Any]] = None) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log(action, phone, user_id=user_id, success=success, details=details)
