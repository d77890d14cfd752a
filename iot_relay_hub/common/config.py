from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv


PERSIST_MODES = ("background", "await")
STORE_BACKENDS = ("sql", "memory")


def _default_env_file() -> str:
    # .env at the repository root, next to the package.
    repo_root = Path(__file__).resolve().parents[2]
    return str(repo_root / ".env")


def _split_csv(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    app_env: str = "production"

    database_url: str = "sqlite:///./relay_hub.db"
    store_backend: str = "sql"
    store_timeout_seconds: float = 5.0
    persist_mode: str = "background"

    broadcast_send_timeout_seconds: float = 2.0
    event_query_default_limit: int = 10
    event_query_max_limit: int = 500

    # Unset disables forwarding of face-recognition commands.
    actuator_url: str | None = None
    actuator_timeout_seconds: float = 3.0

    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("http://localhost",))
    log_level: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("RELAY_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    persist_mode = os.getenv("PERSIST_MODE", "background").strip().lower()
    if persist_mode not in PERSIST_MODES:
        raise ValueError(f"PERSIST_MODE must be one of {PERSIST_MODES}, got {persist_mode!r}")

    store_backend = os.getenv("STORE_BACKEND", "sql").strip().lower()
    if store_backend not in STORE_BACKENDS:
        raise ValueError(f"STORE_BACKEND must be one of {STORE_BACKENDS}, got {store_backend!r}")

    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        app_env=os.getenv("APP_ENV", "production"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./relay_hub.db"),
        store_backend=store_backend,
        store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "5.0")),
        persist_mode=persist_mode,
        broadcast_send_timeout_seconds=float(os.getenv("BROADCAST_SEND_TIMEOUT_SECONDS", "2.0")),
        event_query_default_limit=int(os.getenv("EVENT_QUERY_DEFAULT_LIMIT", "10")),
        event_query_max_limit=int(os.getenv("EVENT_QUERY_MAX_LIMIT", "500")),
        actuator_url=os.getenv("ACTUATOR_URL") or None,
        actuator_timeout_seconds=float(os.getenv("ACTUATOR_TIMEOUT_SECONDS", "3.0")),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "http://localhost")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
