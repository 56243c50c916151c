import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings:
    @staticmethod
    def _get_int(name: str, default: int) -> int:
        return int(os.getenv(name, str(default)))

    @staticmethod
    def _get_bool(name: str, default: bool) -> bool:
        raw = os.getenv(name)
        if raw is None:
            return default
        return raw.strip().lower() in {"1", "true", "yes", "on"}

    @property
    def DATABASE_URL(self) -> str:
        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL is required")
        return database_url

    @property
    def DB_POOL_SIZE(self) -> int:
        return self._get_int("DB_POOL_SIZE", 10)

    @property
    def DB_MAX_OVERFLOW(self) -> int:
        return self._get_int("DB_MAX_OVERFLOW", 5)

    @property
    def DB_POOL_TIMEOUT_SECONDS(self) -> int:
        return self._get_int("DB_POOL_TIMEOUT_SECONDS", 10)

    @property
    def DB_STATEMENT_TIMEOUT_SECONDS(self) -> int:
        return self._get_int("DB_STATEMENT_TIMEOUT_SECONDS", 15)

    @property
    def DB_CONNECT_RETRIES(self) -> int:
        return self._get_int("DB_CONNECT_RETRIES", 10)

    @property
    def DB_CONNECT_RETRY_DELAY_SECONDS(self) -> int:
        return self._get_int("DB_CONNECT_RETRY_DELAY_SECONDS", 2)

    @property
    def JWT_SECRET(self) -> str:
        return os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)

    @property
    def JWT_ALGORITHM(self) -> str:
        return os.getenv("JWT_ALGORITHM", "HS256")

    @property
    def SESSION_EXPIRE_DAYS(self) -> int:
        return self._get_int("SESSION_EXPIRE_DAYS", 7)

    @property
    def VERIFICATION_CODE_EXPIRE_MINUTES(self) -> int:
        return self._get_int("VERIFICATION_CODE_EXPIRE_MINUTES", 15)

    @property
    def BCRYPT_ROUNDS(self) -> int:
        return self._get_int("BCRYPT_ROUNDS", 12)

    @property
    def SESSION_COOKIE_NAME(self) -> str:
        return os.getenv("SESSION_COOKIE_NAME", "auth-token")

    @property
    def COOKIE_SECURE(self) -> bool:
        return self._get_bool("COOKIE_SECURE", True)

    @property
    def EMAIL_BACKEND(self) -> str:
        return os.getenv("EMAIL_BACKEND", "console").strip().lower()

    @property
    def SMTP_HOST(self) -> str:
        return os.getenv("SMTP_HOST", "")

    @property
    def SMTP_PORT(self) -> int:
        return self._get_int("SMTP_PORT", 587)

    @property
    def SMTP_USER(self) -> str:
        return os.getenv("SMTP_USER", "")

    @property
    def SMTP_PASSWORD(self) -> str:
        return os.getenv("SMTP_PASSWORD", "")

    @property
    def SMTP_USE_TLS(self) -> bool:
        return self._get_bool("SMTP_USE_TLS", True)

    @property
    def SMTP_FROM_EMAIL(self) -> str:
        return os.getenv("SMTP_FROM_EMAIL", "")

    @property
    def SMTP_FROM_NAME(self) -> str:
        return os.getenv("SMTP_FROM_NAME", "EventRSVP")

    @property
    def CORS_ORIGINS(self) -> str:
        return os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001")


settings = Settings()

# Validate critical settings
if settings.JWT_SECRET == DEFAULT_JWT_SECRET:
    import warnings
    warnings.warn("JWT_SECRET is using default value. Change it in production!", UserWarning)
