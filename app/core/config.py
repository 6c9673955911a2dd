from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database
    DATABASE_USER: str = "cashback"
    DATABASE_PASSWORD: str = "cashback"
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "cashback"

    # JWT
    SECRET_KEY: str = "dev-secret-key-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # Payment collaborator
    PAYMENT_API_URL: str = "https://api.stripe.com"
    PAYMENT_SECRET_KEY: str = ""
    PAYMENT_WEBHOOK_SECRET: str = ""
    PAYMENT_CURRENCY: str = "usd"
    PAYMENT_WEBHOOK_TOLERANCE_SECONDS: int = 300
    PAYMENT_LINK_TTL_HOURS: int = 24

    # Ledger
    LEDGER_MAX_RETRIES: int = 3
    DEFAULT_TIER: str = "SILVER"
    PENDING_SWEEP_INTERVAL_MINUTES: int = 15

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS_STR: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(',') if origin.strip()]

    @field_validator("DEFAULT_TIER")
    @classmethod
    def validate_default_tier(cls, v: str) -> str:
        v = v.upper()
        if v not in ("SILVER", "GOLD", "PLATINUM"):
            raise ValueError(f"Unknown tier {v!r}")
        return v

    @field_validator("LEDGER_MAX_RETRIES")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("LEDGER_MAX_RETRIES must be at least 1")
        return v

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True, extra="ignore")

settings = Settings()
