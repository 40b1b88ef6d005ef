#config.py
import os
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")
    # Application Settings
    APP_NAME: str = "Directory Auth API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "production"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database Settings
    DATABASE_URL: str = "sqlite:///./auth.db"

    # Token Settings (separate secrets so one cannot forge the other)
    JWT_ACCESS_SECRET: str = "change-me-access"
    JWT_REFRESH_SECRET: str = "change-me-refresh"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # OTP Settings
    OTP_TTL_SECONDS: int = 300
    OTP_MAX_ATTEMPTS: int = 5
    OTP_CODE_LENGTH: int = 6
    OTP_RESEND_COOLDOWN_SECONDS: int = 60
    OTP_HASH_SECRET: str = "change-me-otp"
    OTP_SESSION_BACKEND: str = "database"  # database | memory
    OTP_SWEEP_INTERVAL_SECONDS: int = 300
    DEFAULT_COUNTRY_CODE: str = "+966"

    # Twilio Settings
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""

    # CORS Settings (comma-separated to avoid JSON parsing in env)
    ALLOWED_ORIGINS: str = "*"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    AUTH_RATE_LIMIT_MAX_REQUESTS: int = 5
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = 3600
    REDIS_URL: Optional[str] = None

    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_PHONE_NUMBER)


@lru_cache()
def get_settings() -> Settings:
    s = Settings()
    # Accept the deployment-wide CORS_ORIGINS name as well
    cors_env = os.environ.get("CORS_ORIGINS")
    if cors_env:
        s.ALLOWED_ORIGINS = cors_env
    return s

settings: Settings = get_settings()
