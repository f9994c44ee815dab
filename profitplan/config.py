import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PREFIX = "PROFIT_PLAN_"
STORAGE_BACKENDS = ("json", "memory")


@dataclass(frozen=True)
class Settings:
    storage: str = "json"
    data_dir: Path = PROJECT_ROOT / "data"
    code_ttl_minutes: int = 15
    max_code_attempts: int = 0  # 0 = unlimited retries
    base_url: str = "http://localhost:8501"
    log_level: str = "INFO"
    default_memo: str = "Profit allocation transfer"


def _int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value >= 0 else default


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``PROFIT_PLAN_*`` variables; bad values keep defaults."""
    env = os.environ if env is None else env
    defaults = Settings()

    def get(key: str) -> Optional[str]:
        value = env.get(ENV_PREFIX + key)
        return value.strip() if value and value.strip() else None

    storage = (get("STORAGE") or defaults.storage).lower()
    if storage not in STORAGE_BACKENDS:
        storage = defaults.storage

    ttl = _int(get("CODE_TTL_MINUTES"), defaults.code_ttl_minutes)
    return Settings(
        storage=storage,
        data_dir=Path(get("DATA_DIR") or defaults.data_dir),
        code_ttl_minutes=ttl or defaults.code_ttl_minutes,
        max_code_attempts=_int(get("MAX_CODE_ATTEMPTS"), defaults.max_code_attempts),
        base_url=get("BASE_URL") or defaults.base_url,
        log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
        default_memo=get("DEFAULT_MEMO") or defaults.default_memo,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv(dotenv_path=PROJECT_ROOT / ".env", override=False)
    return load_settings()
