from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str
    store_backend: str
    redis_url: Optional[str]

    bucket_minutes: int

    max_visible_alerts: int
    max_pending_alerts: int
    alert_cooldown_seconds: float
    achievement_probability: float
    achievement_seed: Optional[int]
    classifier_strategy: str

    simulator_enabled: bool
    simulator_interval_seconds: float
    evaluation_interval_seconds: float

    display_timezone: str
    log_level: str
    api_host: str
    api_port: int

    @property
    def bucket_ms(self) -> int:
        return self.bucket_minutes * 60 * 1000


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("CAMPUS_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    seed = os.getenv("ACHIEVEMENT_SEED", "").strip()

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./campus_monitor.db"),
        store_backend=os.getenv("STORE_BACKEND", "memory").strip().lower(),
        redis_url=os.getenv("REDIS_URL") or None,
        bucket_minutes=int(os.getenv("BUCKET_MINUTES", "5")),
        max_visible_alerts=int(os.getenv("MAX_VISIBLE_ALERTS", "3")),
        max_pending_alerts=int(os.getenv("MAX_PENDING_ALERTS", "20")),
        alert_cooldown_seconds=float(os.getenv("ALERT_COOLDOWN_SECONDS", "300")),
        achievement_probability=float(os.getenv("ACHIEVEMENT_PROBABILITY", "0.2")),
        achievement_seed=int(seed) if seed else None,
        classifier_strategy=os.getenv("CLASSIFIER_STRATEGY", "delta").strip().lower(),
        simulator_enabled=_env_bool("SIMULATOR_ENABLED"),
        # 10 minutos entre lecturas simuladas
        simulator_interval_seconds=float(os.getenv("SIMULATOR_INTERVAL_SECONDS", "600")),
        evaluation_interval_seconds=float(os.getenv("EVALUATION_INTERVAL_SECONDS", "30")),
        display_timezone=os.getenv("DISPLAY_TIMEZONE", "UTC"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=int(os.getenv("API_PORT", "8000")),
    )
