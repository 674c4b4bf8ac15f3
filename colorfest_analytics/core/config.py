import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from colorfest_analytics.core.models import DashboardTargets

load_dotenv()


def _opt_int(name: str, default: Optional[int] = None) -> Optional[int]:
    """`default` only when unset; set but empty means no value."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    return int(raw) if raw else None


@dataclass(frozen=True)
class Settings:
    dice_api_key: str = os.getenv("DICE_API_KEY", "")
    dice_graphql_url: str = os.getenv("DICE_GRAPHQL_URL", "https://partners-endpoint.dice.fm/graphql")
    dice_timeout_s: float = float(os.getenv("DICE_TIMEOUT_S", "15"))
    timezone: str = os.getenv("FESTIVAL_TIMEZONE", "Europe/Rome")
    snapshot_db_path: str = os.getenv("SNAPSHOT_DB_PATH", "colorfest.db")
    editions_config_path: str = os.getenv("EDITIONS_CONFIG_PATH", "")
    current_edition_key: str = os.getenv("CURRENT_EDITION_KEY", "")
    sales_goal: Optional[int] = _opt_int("SALES_GOAL", 6000)
    capacity_per_day: Optional[int] = _opt_int("CAPACITY_PER_DAY")
    poll_interval_s: int = int(os.getenv("POLL_INTERVAL_S", "300"))
    historical_batch_size: int = int(os.getenv("HISTORICAL_BATCH_SIZE", "500"))
    gsheet_id: str = os.getenv("GSHEET_ID", "")
    gsheet_doc_title: str = os.getenv("GSHEET_DOC_TITLE", "Color Fest Analytics")
    gsheet_worksheet: str = os.getenv("GSHEET_WORKSHEET", "edizione")
    export_csv_dir: str = os.getenv("EXPORT_CSV_DIR", "exports")

    def targets(self) -> DashboardTargets:
        return DashboardTargets(sales_goal=self.sales_goal, capacity_per_day=self.capacity_per_day)


settings = Settings()
