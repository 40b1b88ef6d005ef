import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List

import jwt

from ...exceptions import InvalidToken, TokenExpired
from ...utils import utcnow

logger = logging.getLogger(__name__)

CLAIMS_VERSION = 1
ACCESS = "access"
REFRESH = "refresh"


@dataclass
class TokenClaims:
    user_id: str
    phone: str
    role: str
    permissions: List[str] = field(default_factory=list)
    version: int = CLAIMS_VERSION


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str

    def to_dict(self) -> Dict[str, str]:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl_minutes: int = 15
    refresh_ttl_days: int = 7

    @classmethod
    def from_settings(cls, settings) -> "TokenConfig":
        return cls(
            access_secret=settings.JWT_ACCESS_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            access_ttl_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            refresh_ttl_days=settings.REFRESH_TOKEN_EXPIRE_DAYS,
        )


@dataclass
class TokenIssuer:
    """Signs and verifies self-contained JWTs.

    Access and refresh tokens use different secrets and carry a ``type``
    claim, so neither can stand in for the other. Nothing is stored server
    side: validity is signature, expiry and claim shape.
    """
    config: TokenConfig
    clock: Callable[[], datetime] = utcnow

    def issue_access_token(self, claims: TokenClaims) -> str:
        return self._encode(claims, ACCESS, self.config.access_secret, timedelta(minutes=self.config.access_ttl_minutes))

    def issue_refresh_token(self, claims: TokenClaims) -> str:
        return self._encode(claims, REFRESH, self.config.refresh_secret, timedelta(days=self.config.refresh_ttl_days))

    def issue_token_pair(self, claims: TokenClaims) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(claims),
            refresh_token=self.issue_refresh_token(claims),
        )

    def verify_access_token(self, token: str) -> TokenClaims:
        return self._decode(token, ACCESS, self.config.access_secret)

    def verify_refresh_token(self, token: str) -> TokenClaims:
        return self._decode(token, REFRESH, self.config.refresh_secret)

    def _encode(self, claims: TokenClaims, token_type: str, secret: str, lifetime: timedelta) -> str:
        now = self.clock()
        payload = {
            "sub": claims.user_id,
            "phone": claims.phone,
            "role": claims.role,
            "permissions": list(claims.permissions),
            "ver": claims.version,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, secret, algorithm=self.config.algorithm)

    def _decode(self, token: str, token_type: str, secret: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.config.algorithm],
                options={"require": ["exp", "iat", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info(f"Rejected expired {token_type} token")
            raise TokenExpired(reason=f"{token_type} token expired")
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected {token_type} token: {e}")
            raise InvalidToken(reason=f"invalid {token_type} token: {e}")

        if payload.get("type") != token_type:
            raise InvalidToken(reason=f"expected {token_type} token, got {payload.get('type')}")
        return self._claims_from_payload(payload)

    @staticmethod
    def _claims_from_payload(payload: Dict[str, Any]) -> TokenClaims:
        user_id = payload.get("sub")
        phone = payload.get("phone")
        role = payload.get("role")
        permissions = payload.get("permissions", [])
        version = payload.get("ver")
        if not isinstance(user_id, str) or not isinstance(phone, str) or not isinstance(role, str):
            raise InvalidToken(reason="token claims missing identity fields")
        if not isinstance(permissions, list) or not all(isinstance(p, str) for p in permissions):
            raise InvalidToken(reason="token permissions malformed")
        if version != CLAIMS_VERSION:
            raise InvalidToken(reason=f"unsupported claims version {version!r}")
        return TokenClaims(user_id=user_id, phone=phone, role=role, permissions=permissions, version=version)
