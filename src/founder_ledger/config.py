from __future__ import annotations

from functools import cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DB_FILE = ARTIFACTS_DIR / "founder_ledger.db"


class AppSettings(BaseSettings):
    db_file: Path = DB_FILE
    db_echo: bool = False
    cash_flow_months: int = 6
    display_timezone: str = "UTC"
    currency_symbol: str = "$"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FOUNDER_LEDGER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("cash_flow_months")
    @classmethod
    def _positive_months(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("cash_flow_months must be > 0")
        return value

    @field_validator("display_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as err:
            raise ValueError(f"unknown time zone {value!r}") from err
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.display_timezone)


@cache
def config() -> AppSettings:
    return AppSettings()
