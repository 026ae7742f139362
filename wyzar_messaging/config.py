import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


@dataclass
class Settings:

    mongodb_url: str = field(default_factory=lambda: os.getenv("MONGODB_URL", "mongodb://localhost:27017"))
    mongodb_db: str = field(default_factory=lambda: os.getenv("MONGODB_DB", "wyzar"))
    redis_url: str | None = field(default_factory=lambda: os.getenv("REDIS_URL") or None)
    jwt_secret: str = field(default_factory=lambda: os.getenv("JWT_SECRET", "change-me"))
    jwt_algorithm: str = field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    message_max_length: int = field(default_factory=lambda: _env_int("MESSAGE_MAX_LENGTH", 2000))
    message_max_attachments: int = field(default_factory=lambda: _env_int("MESSAGE_MAX_ATTACHMENTS", 5))
    typing_timeout_seconds: float = field(default_factory=lambda: _env_float("TYPING_TIMEOUT_SECONDS", 5.0))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
