"""JSON ingestion helpers: Vietnamese-keyed backend rows to typed records."""

from __future__ import annotations

import json
import math
import re
from datetime import date, datetime, time, timezone, tzinfo
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from lumi_report.domain.models import ActualOrderRecord, CheckResult, MarketingActivityRecord

DEFAULT_TEAM = "Khác"
MARKETING_NAME_KEYS: tuple[str, ...] = ("Tên", "Ten", "Name")
MARKETING_SHIFT_KEYS: tuple[str, ...] = ("Ca", "ca")
PRODUCT_KEYS: tuple[str, ...] = ("Mặt hàng", "Sản_phẩm", "Sản phẩm")
MARKET_KEYS: tuple[str, ...] = ("Khu vực", "Thị_trường", "Thị trường")
TEAM_KEYS: tuple[str, ...] = ("Team", "Chi nhánh")
MESSAGE_KEYS: tuple[str, ...] = ("Số_Mess_Cmt", "Số Mess Cmt")
ORDER_NAME_KEYS: tuple[str, ...] = ("Nhân viên Marketing", "Marketing", "marketing", "Tên", "Ten", "Name")
ORDER_DATE_KEYS: tuple[str, ...] = ("Ngày lên đơn", "Ngày")
ORDER_TOTAL_KEYS: tuple[str, ...] = (
    "Tổng tiền VNĐ",
    "Tổng tiền VND",
    "Tổng_tiền_VNĐ",
    "Tổng_tiền_VND",
    "tongTienVND",
    "Total VND",
    "total_vnd",
)
CHECK_RESULT_KEYS: tuple[str, ...] = ("Kết quả Check", "Kết_quả_Check", "ket qua check", "KetQuaCheck")
ORDER_CODE_KEYS: tuple[str, ...] = ("Mã đơn hàng", "Mã đơn", "Mã")
DAY_FIRST_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
NUMBER_NOISE_RE = re.compile(r"[^0-9\-.]")


def rows_from_payload(payload: Any) -> list[dict[str, Any]]:
    """Accept a JSON array, an object-of-objects or a ``{"data": [...]}`` wrapper."""
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return [row for row in data if isinstance(row, dict)]
        return [row for row in payload.values() if isinstance(row, dict)]
    return []


def first_value(row: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def text_from(row: Mapping[str, Any], keys: Sequence[str], default: str = "") -> str:
    value = first_value(row, keys)
    if value is None:
        return default
    return str(value).strip()


def _coerce_number(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else None
    cleaned = NUMBER_NOISE_RE.sub("", str(raw))
    if cleaned.count(".") > 1:
        # "1.250.000" uses dots as thousand separators
        cleaned = cleaned.replace(".", "")
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_number(value: Any) -> float:
    number = _coerce_number(value)
    return 0.0 if number is None else number


def number_from(row: Mapping[str, Any], keys: Sequence[str]) -> float:
    for key in keys:
        number = _coerce_number(row.get(key))
        if number is not None:
            return number
    return 0.0


def _localize(value: datetime, tz: tzinfo | None) -> datetime:
    if value.tzinfo is None or tz is None:
        return value.replace(tzinfo=None)
    return value.astimezone(tz).replace(tzinfo=None)


def parse_date(value: Any, tz: tzinfo | None = None) -> datetime | None:
    """Parse a backend date; unparseable input yields None, never a guess."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _localize(value, tz)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            stamp = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return _localize(stamp, tz)

    text = str(value).strip()
    if not text:
        return None
    match = DAY_FIRST_RE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return datetime(year, month, day)
        except ValueError:
            return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return _localize(datetime.fromisoformat(text), tz)
    except ValueError:
        return None


def marketing_record_from_row(row: Mapping[str, Any], tz: tzinfo | None = None) -> MarketingActivityRecord | None:
    name = text_from(row, MARKETING_NAME_KEYS)
    if not name:
        return None
    return MarketingActivityRecord(
        staff_name=name,
        team=text_from(row, TEAM_KEYS, default=DEFAULT_TEAM),
        date=parse_date(row.get("Ngày"), tz),
        shift=text_from(row, MARKETING_SHIFT_KEYS),
        product=text_from(row, PRODUCT_KEYS),
        market=text_from(row, MARKET_KEYS),
        ad_spend=number_from(row, ("CPQC",)),
        message_count=number_from(row, MESSAGE_KEYS),
        order_count=number_from(row, ("Số đơn",)),
        revenue=number_from(row, ("Doanh số",)),
        email=text_from(row, ("Email",)),
        staff_id=text_from(row, ("id_NS",)),
    )


def order_record_from_row(row: Mapping[str, Any], tz: tzinfo | None = None) -> ActualOrderRecord | None:
    name = text_from(row, ORDER_NAME_KEYS)
    if not name:
        return None
    return ActualOrderRecord(
        staff_name=name,
        team=text_from(row, TEAM_KEYS, default=DEFAULT_TEAM),
        date=parse_date(first_value(row, ORDER_DATE_KEYS), tz),
        product=text_from(row, PRODUCT_KEYS),
        market=text_from(row, MARKET_KEYS),
        shift=text_from(row, MARKETING_SHIFT_KEYS),
        total_amount=number_from(row, ORDER_TOTAL_KEYS),
        check_result=CheckResult.parse(text_from(row, CHECK_RESULT_KEYS)),
        order_code=text_from(row, ORDER_CODE_KEYS),
    )


def parse_marketing_records(rows: Iterable[Mapping[str, Any]], tz: tzinfo | None = None) -> list[MarketingActivityRecord]:
    records: list[MarketingActivityRecord] = []
    for row in rows:
        record = marketing_record_from_row(row, tz)
        if record is not None:
            records.append(record)
    return records


def parse_order_records(rows: Iterable[Mapping[str, Any]], tz: tzinfo | None = None) -> list[ActualOrderRecord]:
    records: list[ActualOrderRecord] = []
    for row in rows:
        record = order_record_from_row(row, tz)
        if record is not None:
            records.append(record)
    return records


def read_json_rows(path: str | Path) -> list[dict[str, Any]]:
    """Read a JSON export of a backend collection from disk."""
    json_path = Path(path)
    if not json_path.exists():
        raise FileNotFoundError(f"Input JSON file not found: {json_path}")
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    return rows_from_payload(payload)
