from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_env: str = os.getenv("APP_ENV", "dev")
    app_host: str = os.getenv("APP_HOST", "0.0.0.0")
    app_port: int = int(os.getenv("APP_PORT", "8000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    dhis2_base_url: str = os.getenv("DHIS2_BASE_URL", "")
    dhis2_username: str = os.getenv("DHIS2_USERNAME", "")
    dhis2_password: str = os.getenv("DHIS2_PASSWORD", "")
    dhis2_token: str = os.getenv("DHIS2_TOKEN", "")
    dhis2_timeout: float = float(os.getenv("DHIS2_TIMEOUT", "60"))

    excerpt_sample_rows: int = int(os.getenv("EXCERPT_SAMPLE_ROWS", "5"))
    allow_period_passthrough: bool = _env_flag("ALLOW_PERIOD_PASSTHROUGH")


settings = Settings()
