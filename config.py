# config.py
import logging
import os
from dataclasses import dataclass
from typing import List


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    timeout_ms: int = 3000
    memory_limit: str = "256MB"
    threads: int = 1
    max_mismatches: int = 50
    log_level: str = "INFO"
    cors_origins: str = "*"

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def load_settings() -> Settings:
    return Settings(
        timeout_ms=_int_env("SQLHUB_TIMEOUT_MS", 3000),
        memory_limit=os.getenv("SQLHUB_MEMORY_LIMIT", "256MB"),
        threads=_int_env("SQLHUB_THREADS", 1),
        max_mismatches=_int_env("SQLHUB_MAX_MISMATCHES", 50),
        log_level=os.getenv("SQLHUB_LOG_LEVEL", "INFO").upper(),
        cors_origins=os.getenv("SQLHUB_CORS_ORIGINS", "*"),
    )


SETTINGS = load_settings()


def configure_logging(level: str = None) -> None:
    logging.basicConfig(
        level=level or SETTINGS.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
