from typing import List
from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = "WinWin"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",  # Frontend development
        "https://app.winwin.community",  # Production frontend
    ]

    # PostgreSQL Settings
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "winwin"
    POSTGRES_PASSWORD: str = "winwin"
    POSTGRES_DB: str = "winwin"
    POSTGRES_MIN_POOL_SIZE: int = 5
    POSTGRES_MAX_POOL_SIZE: int = 20
    DB_LOGGING_ENABLED: bool = False
    DB_CREATE_TABLES: bool = False  # Run metadata.create_all on startup

    # Referral Settings
    # Reward per ancestor level: index 0 is the direct referrer.
    # The length of the list is the propagation depth.
    REFERRAL_LEVEL_REWARDS: List[int] = [100, 20, 10]

    # Rate Limiting (requests per minute)
    RATE_LIMIT_SIGNUP: int = 10
    RATE_LIMIT_DEFAULT: int = 60

    @field_validator("REFERRAL_LEVEL_REWARDS")
    @classmethod
    def validate_level_rewards(cls, v: List[int]) -> List[int]:
        if not 1 <= len(v) <= 3:
            raise ValueError("REFERRAL_LEVEL_REWARDS must define between 1 and 3 levels")
        if any(amount < 0 for amount in v):
            raise ValueError("Referral rewards cannot be negative")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
