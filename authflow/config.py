"""Configuration module for the authentication client."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


@dataclass
class ApiConfig:
    """Remote authentication service settings."""
    base_url: str = field(default_factory=lambda: os.getenv("AUTH_API_BASE_URL", "http://localhost:4000"))
    timeout_seconds: float = field(default_factory=lambda: float(os.getenv("AUTH_API_TIMEOUT", "30")))


@dataclass
class OtpConfig:
    """OTP resend throttle and countdown settings."""
    resend_cooldown_seconds: int = field(default_factory=lambda: int(os.getenv("OTP_RESEND_COOLDOWN_SECONDS", "60")))

    # Interval between countdown ticks shown to the user
    countdown_tick_seconds: float = field(default_factory=lambda: float(os.getenv("OTP_COUNTDOWN_TICK_SECONDS", "1.0")))


@dataclass
class StorageConfig:
    """Durable token storage settings."""
    token_file: Path = field(default_factory=lambda: Path(os.getenv("AUTH_TOKEN_FILE", "data/.auth_token.json")))
    token_key: str = "token"


@dataclass
class Config:
    """Main configuration container."""
    api: ApiConfig = field(default_factory=ApiConfig)
    otp: OtpConfig = field(default_factory=OtpConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_config() -> Config:
    """Load configuration from environment variables."""
    return Config()
