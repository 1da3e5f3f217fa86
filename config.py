import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        month_label_locale: str,
        trend_top_n: int,
        max_import_bytes: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.month_label_locale = month_label_locale
        self.trend_top_n = trend_top_n
        self.max_import_bytes = max_import_bytes
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    database_url = os.getenv("FINANCE_DATABASE_URL")
    if not database_url:
        database_url = f"sqlite:///{_ensure_data_dir() / 'finance.db'}"
    timezone = os.getenv("FINANCE_TIMEZONE", "Europe/Berlin")
    month_label_locale = os.getenv("FINANCE_MONTH_LABEL_LOCALE", "en").lower()
    trend_top_n = int(os.getenv("FINANCE_TREND_TOP_N", "5"))
    max_import_bytes = int(os.getenv("FINANCE_MAX_IMPORT_BYTES", str(5 * 1024 * 1024)))
    log_level = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        month_label_locale=month_label_locale,
        trend_top_n=trend_top_n,
        max_import_bytes=max_import_bytes,
        log_level=log_level,
    )
