"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Resolve config: prefer system config (installed), fall back to repo .env (dev)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SYSTEM_CONF = Path("/etc/orchid-climate/orchid-climate.conf")
_ENV_FILE = _SYSTEM_CONF if _SYSTEM_CONF.exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Database
    db_path: str = "orchid_climate.db"

    @model_validator(mode="after")
    def _resolve_db_path(self) -> "Settings":
        """Make db_path absolute: relative to /var/lib/orchid-climate if installed, else project root."""
        p = Path(self.db_path)
        if not p.is_absolute():
            if _ENV_FILE == _SYSTEM_CONF:
                self.db_path = str(Path("/var/lib/orchid-climate") / p)
            else:
                self.db_path = str(_PROJECT_ROOT / p)
        return self

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    # Vendor HTTP
    http_timeout_sec: float = 15.0

    # Zone polling
    reading_retention_days: int = 30
    chain_alert_check: bool = True  # run the alert check after each zone poll

    # Habitat polling
    habitat_request_delay_ms: int = 500

    # Compaction age thresholds
    compact_daily_after_days: int = 7
    compact_weekly_after_days: int = 30
    compact_monthly_after_days: int = 90

    # Snapshots
    snapshot_window_hours: int = 48

    # Alerts
    alert_dedup_hours: int = 6
    seasonal_dedup_hours: int = 24

    # Pass leases (single-flight across processes)
    pass_lease_minutes: int = 60

    # Push relay (empty = log notifications instead of sending)
    push_relay_url: str = ""
    vapid_subject: str = "mailto:admin@localhost"

    # Logging
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "ORCHID_", "env_file": str(_ENV_FILE)}


settings = Settings()
