"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

DEFAULT_FIREBASE_URL = "https://lumi-6dff7-default-rtdb.asia-southeast1.firebasedatabase.app"
DEFAULT_SUPABASE_TABLE = "detail_reports"
DEFAULT_TIMEZONE = "Asia/Ho_Chi_Minh"
DEFAULT_LOCAL_STORE = Path("output") / ".local_store.json"
MARKETING_PATH = "datasheet/Báo_cáo_MKT"
ORDERS_PATH = "datasheet/F3"
EMPLOYEES_PATH = "datasheet/Nhân_sự"
CHANGE_LOG_PATH = "ChangeLog"
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _read_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"Invalid {name}: {raw}")


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: {raw}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")
    return value


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: {raw}") from exc
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    firebase_url: str = DEFAULT_FIREBASE_URL
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_table: str = DEFAULT_SUPABASE_TABLE
    http_timeout: float = 15.0
    http_retries: int = 0
    local_store_path: Path = DEFAULT_LOCAL_STORE
    timezone: str = DEFAULT_TIMEZONE
    strip_name_suffix: bool = True
    include_unmatched: bool = False

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def firebase_collection_url(self, path: str) -> str:
        return f"{self.firebase_url.rstrip('/')}/{path.strip('/')}.json"

    @property
    def marketing_url(self) -> str:
        return self.firebase_collection_url(MARKETING_PATH)

    @property
    def orders_url(self) -> str:
        return self.firebase_collection_url(ORDERS_PATH)

    @property
    def employees_url(self) -> str:
        return self.firebase_collection_url(EMPLOYEES_PATH)

    @property
    def change_log_url(self) -> str:
        return self.firebase_collection_url(CHANGE_LOG_PATH)


def load_settings(env: Mapping[str, str] | None = None, dotenv_path: str | Path | None = None) -> Settings:
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    timezone = env.get("LUMI_TIMEZONE", "").strip() or DEFAULT_TIMEZONE
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid LUMI_TIMEZONE: {timezone}") from exc

    return Settings(
        firebase_url=env.get("LUMI_FIREBASE_URL", "").strip() or DEFAULT_FIREBASE_URL,
        supabase_url=env.get("LUMI_SUPABASE_URL", "").strip(),
        supabase_key=env.get("LUMI_SUPABASE_KEY", "").strip(),
        supabase_table=env.get("LUMI_SUPABASE_TABLE", "").strip() or DEFAULT_SUPABASE_TABLE,
        http_timeout=_read_float(env, "LUMI_HTTP_TIMEOUT", 15.0),
        http_retries=_read_int(env, "LUMI_HTTP_RETRIES", 0),
        local_store_path=Path(env.get("LUMI_LOCAL_STORE", "").strip() or DEFAULT_LOCAL_STORE),
        timezone=timezone,
        strip_name_suffix=_read_bool(env, "LUMI_STRIP_NAME_SUFFIX", True),
        include_unmatched=_read_bool(env, "LUMI_INCLUDE_UNMATCHED", False),
    )
