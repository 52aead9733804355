"""Ad Ops Hub - Central Configuration via Pydantic Settings."""

import os
from typing import Dict, Union

from pydantic_settings import BaseSettings


# Physical columns of the campaign log ("Weekly log" sheet), 1-based.
DEFAULT_COLUMNS: Dict[str, Union[int, str]] = {
    "campaign_id": 22,
    "client": 6,
    "platform": 7,
    "ad_format": 8,
    "budget": 9,
    "campaign_type": 12,
    "status": 5,
    "start_date": 19,
    "end_date": 20,
    "remarks": 42,
    "guide_link": 43,
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database ──
    database_url: str = ""

    # ── Sheets ──
    sheet_backend: str = "database"  # database | google
    google_spreadsheet_id: str = ""
    google_access_token: str = ""
    google_sheets_base_url: str = "https://sheets.googleapis.com/v4"
    source_sheet_name: str = "Weekly log_Thomas W"
    permissions_sheet_name: str = "Permissions"
    snapshot_sheet_name: str = "Daily Data Snapshot"
    columns: Dict[str, Union[int, str]] = DEFAULT_COLUMNS
    entry_column: Union[int, str] = 43  # Column AQ

    # ── Access ──
    admin_role: str = "admin"
    identity_header: str = "X-User-Email"

    # ── Cache ──
    cache_backend: str = "memory"  # memory | database
    cache_key_base_data: str = "DASHBOARD_BASE_V1"
    cache_key_search_prefix: str = "SEARCH_CT_"
    dashboard_cache_ttl: int = 60
    search_cache_ttl: int = 30
    search_result_cap: int = 300

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    snapshot_hour: int = 1  # Daily snapshot at 1 AM

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/adops.db"
        return "sqlite:///./adops.db"

    @property
    def google_configured(self) -> bool:
        return bool(self.google_spreadsheet_id and self.google_access_token)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "ADOPS_",
    }


settings = Settings()
