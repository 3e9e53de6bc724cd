from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    service_name: str = os.getenv("SERVICE_NAME", "inventory-command-service")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = _int("PORT", 3000)

    conversation_ttl_seconds: int = _int("CONVERSATION_TTL_SECONDS", 60 * 60)
    conversation_sweep_interval_seconds: int = _int("CONVERSATION_SWEEP_INTERVAL_SECONDS", 10 * 60)
    conversation_reaper_enabled: bool = _bool("CONVERSATION_REAPER_ENABLED", True)

    customer_store_path: str = os.getenv("CUSTOMER_STORE_PATH", "./data/customers.json")
    seed_demo_customers: bool = _bool("SEED_DEMO_CUSTOMERS", False)
    audit_log_path: str = os.getenv("AUDIT_LOG_PATH", "./data/audit.log.jsonl")

    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:8080")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    debug: bool = _bool("DEBUG", False)

    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


SETTINGS = Settings()
