# change_audit/config/settings.py

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class AuditSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHANGE_AUDIT_",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    database_url: Optional[str] = None

    # --- Messaging ---
    rabbitmq_url: Optional[str] = None
    domain_events_exchange: str = "domain_events"

    # --- Stamping ---
    # False: setter failures on audit/tenant stamp fields are logged and skipped.
    strict_stamping: bool = False

    # --- Observability ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> AuditSettings:
    return AuditSettings()
