# app/dependencies.py
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from .application.ports.code_sender import CodeSender
from .application.ports.otp_session_repo import OTPSessionRepository
from .application.ports.rate_limiter import RateLimiter
from .application.ports.user_repo import UserRepository
from .application.services.auth_service import AuthService
from .application.services.otp_session_manager import OTPPolicy, OTPSessionManager
from .application.services.token_issuer import TokenClaims, TokenConfig, TokenIssuer
from .config import settings
from .database import engine, get_session
from .exceptions import InvalidToken
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.otp.twilio_provider import LoggingCodeSender, TwilioCodeSender
from .infrastructure.persistence.memory.otp_session_repository_memory import InMemoryOTPSessionRepository
from .infrastructure.persistence.sqlalchemy.repositories.otp_session_repository_sql import SqlOTPSessionRepository
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_otp_policy() -> OTPPolicy:
    return OTPPolicy.from_settings(settings)


@lru_cache()
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(config=TokenConfig.from_settings(settings))


@lru_cache()
def get_code_sender() -> CodeSender:
    if settings.twilio_configured or not settings.is_development:
        return TwilioCodeSender(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            settings.TWILIO_PHONE_NUMBER,
            ttl_minutes=max(1, settings.OTP_TTL_SECONDS // 60),
        )
    logger.warning("Twilio not configured; OTP codes will only be logged")
    return LoggingCodeSender()


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    if settings.REDIS_URL:
        return RedisRateLimiter(settings.REDIS_URL)
    return InMemoryRateLimiter()


@lru_cache()
def get_memory_otp_repo() -> InMemoryOTPSessionRepository:
    return InMemoryOTPSessionRepository()


@lru_cache()
def get_audit_logger() -> StdAuditLogger:
    return StdAuditLogger()


def get_otp_session_repo(session: Session = Depends(get_session)) -> OTPSessionRepository:
    if settings.OTP_SESSION_BACKEND == "memory":
        return get_memory_otp_repo()
    return SqlOTPSessionRepository(session)


def get_user_repo(session: Session = Depends(get_session)) -> UserRepository:
    return SqlUserRepository(session)


def get_otp_manager(
    repo: OTPSessionRepository = Depends(get_otp_session_repo),
    sender: CodeSender = Depends(get_code_sender),
    policy: OTPPolicy = Depends(get_otp_policy),
) -> OTPSessionManager:
    return OTPSessionManager(repo=repo, sender=sender, policy=policy)


def get_auth_service(
    otp_manager: OTPSessionManager = Depends(get_otp_manager),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    user_repo: UserRepository = Depends(get_user_repo),
) -> AuthService:
    return AuthService(
        otp_manager=otp_manager,
        token_issuer=token_issuer,
        user_repo=user_repo,
        audit_logger=get_audit_logger(),
        expose_codes=settings.is_development,
        default_country_code=settings.DEFAULT_COUNTRY_CODE,
    )


def auth_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    client_ip = request.client.host if request.client else "unknown"
    allowed = limiter.allow(
        f"auth:{client_ip}",
        max_requests=settings.AUTH_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        logger.warning(f"Auth rate limit exceeded for IP: {client_ip}")
        raise HTTPException(status_code=429, detail="Too many authentication attempts. Please try again later.")


def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


def get_current_claims(
    token: Optional[str] = Depends(get_bearer_token),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    if not token:
        raise InvalidToken("Authentication required")
    try:
        return token_issuer.verify_access_token(token)
    except InvalidToken as e:
        raise InvalidToken("Invalid or expired token", reason=e.reason)


def sweep_expired_otp_sessions() -> int:
    """Run one sweep outside a request, with its own database session."""
    if settings.OTP_SESSION_BACKEND == "memory":
        repo = get_memory_otp_repo()
        return OTPSessionManager(repo=repo, sender=get_code_sender(), policy=get_otp_policy()).sweep_expired()
    with Session(engine) as session:
        repo = SqlOTPSessionRepository(session)
        return OTPSessionManager(repo=repo, sender=get_code_sender(), policy=get_otp_policy()).sweep_expired()
