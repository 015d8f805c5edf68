"""
LTC888 Configuration
====================
Centralised settings for the FHIR endpoints, SMART client registration,
dashboard links and logging. Loads overrides from a project-level .env file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# ── Paths ───────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")

# ── Defaults ────────────────────────────────────────────────────────────
DEFAULT_FHIR_SERVER_URL = "https://emr-smart.appx.com.tw/v/r4/fhir"   # THAS sandbox
DEFAULT_CLIENT_ID = "ltc-888-sdk"
DEFAULT_SCOPE = "launch/patient openid fhiruser patient/*.read"
DEFAULT_BASE_URL = "http://localhost:3000"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


@dataclass
class Settings:
    """Runtime configuration, read from the environment at construction."""
    base_url: str = field(default_factory=lambda: os.getenv("LTC888_BASE_URL", DEFAULT_BASE_URL))
    fhir_server_url: str = field(
        default_factory=lambda: os.getenv("LTC888_FHIR_SERVER_URL", DEFAULT_FHIR_SERVER_URL)
    )
    client_id: str = field(default_factory=lambda: os.getenv("LTC888_CLIENT_ID", DEFAULT_CLIENT_ID))
    scope: str = field(default_factory=lambda: os.getenv("LTC888_SCOPE", DEFAULT_SCOPE))

    # Used only to render dates/times inside card copy
    timezone: str = field(default_factory=lambda: os.getenv("LTC888_TIMEZONE", "Asia/Taipei"))

    request_timeout_seconds: int = field(
        default_factory=lambda: _env_int("LTC888_REQUEST_TIMEOUT", 30)
    )

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE") or None)

    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 3000))


settings = Settings()
