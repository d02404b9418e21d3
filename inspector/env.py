import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _resolve_env_file() -> Path | None:
    current_dir = Path(__file__).resolve().parent
    candidates = [
        current_dir / ".env",
        current_dir.parent / ".env",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


@dataclass(frozen=True)
class InspectorEnv:
    env_file: Path | None
    log_level: str
    database_url: str
    db_fallback_sqlite: bool
    provider_connect_timeout_sec: float
    provider_list_timeout_sec: float
    host: str
    port: int
    auto_connect_providers: bool


def load_inspector_env() -> InspectorEnv:
    env_file = _resolve_env_file()
    if env_file is not None:
        load_dotenv(env_file, override=False)

    return InspectorEnv(
        env_file=env_file,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./inspector.db").strip(),
        db_fallback_sqlite=_env_flag("DB_FALLBACK_SQLITE", "true"),
        provider_connect_timeout_sec=float(os.getenv("PROVIDER_CONNECT_TIMEOUT_SEC", "10").strip()),
        provider_list_timeout_sec=float(os.getenv("PROVIDER_LIST_TIMEOUT_SEC", "10").strip()),
        host=os.getenv("INSPECTOR_HOST", "0.0.0.0").strip(),
        port=int(os.getenv("INSPECTOR_PORT", "8092").strip()),
        auto_connect_providers=_env_flag("AUTO_CONNECT_PROVIDERS", "false"),
    )


ENV = load_inspector_env()
