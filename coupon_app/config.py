"""
Runtime settings for the coupon service.

Values come from the environment (a local .env file is loaded first).
"""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

# Load .env (VS Code terminals sometimes don't inject env vars)
load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    """Service configuration."""

    database_url: str = "sqlite:///./coupons.db"
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL") or cls.database_url,
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")) or ["*"],
            host=os.getenv("APP_HOST", cls.host),
            port=int(os.getenv("APP_PORT", cls.port)),
        )


settings = Settings.from_env()
