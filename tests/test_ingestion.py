"""Tests for JSON ingestion of Vietnamese-keyed backend rows."""

import json
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from lumi_report.domain.models import CheckResult
from lumi_report.ingestion import (
    marketing_record_from_row,
    number_from,
    order_record_from_row,
    parse_date,
    parse_marketing_records,
    parse_number,
    parse_order_records,
    read_json_rows,
    rows_from_payload,
)

VN_TZ = ZoneInfo("Asia/Ho_Chi_Minh")


# ---------------------------------------------------------------------------
# rows_from_payload
# ---------------------------------------------------------------------------

class TestRowsFromPayload:
    def test_array(self):
        assert rows_from_payload([{"a": 1}, None, {"b": 2}]) == [{"a": 1}, {"b": 2}]

    def test_object_of_objects(self):
        assert rows_from_payload({"-Nx1": {"a": 1}, "-Nx2": {"a": 2}}) == [{"a": 1}, {"a": 2}]

    def test_data_wrapper(self):
        assert rows_from_payload({"data": [{"a": 1}]}) == [{"a": 1}]

    def test_null(self):
        assert rows_from_payload(None) == []


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

class TestParseNumber:
    def test_plain(self):
        assert parse_number(12) == 12.0

    def test_dot_thousands(self):
        assert parse_number("1.250.000") == 1_250_000

    def test_comma_thousands_and_currency(self):
        assert parse_number("1,250,000 ₫") == 1_250_000

    def test_decimal(self):
        assert parse_number("12.5") == 12.5

    @pytest.mark.parametrize("raw", [None, "", "abc", True, float("nan"), float("inf")])
    def test_garbage_is_zero(self, raw):
        assert parse_number(raw) == 0.0

    def test_number_from_first_parseable_key(self):
        row = {"Tổng tiền VNĐ": "", "Tổng tiền VND": "500,000"}
        assert number_from(row, ("Tổng tiền VNĐ", "Tổng tiền VND")) == 500_000


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

class TestParseDate:
    def test_day_first(self):
        assert parse_date("02/01/2025") == datetime(2025, 1, 2)

    def test_iso_date(self):
        assert parse_date("2025-01-02") == datetime(2025, 1, 2)

    def test_utc_instant_converted_to_local_day(self):
        assert parse_date("2025-01-01T17:30:00Z", VN_TZ) == datetime(2025, 1, 2, 0, 30)

    def test_epoch_millis(self):
        assert parse_date(0, ZoneInfo("UTC")) == datetime(1970, 1, 1)

    def test_date_object(self):
        assert parse_date(date(2025, 1, 2)) == datetime(2025, 1, 2)

    @pytest.mark.parametrize("raw", [None, "", "garbage", "31/02/2025", True])
    def test_unparseable_is_none(self, raw):
        assert parse_date(raw) is None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class TestMarketingRecord:
    def test_vietnamese_keys(self):
        row = {
            "Tên": "Mai Anh",
            "Team": "A",
            "Ngày": "2025-01-01",
            "Ca": "Sáng, Chiều",
            "Sản_phẩm": "P1",
            "Thị_trường": "VN",
            "CPQC": 100000,
            "Số_Mess_Cmt": "10",
            "Số đơn": 2,
            "Doanh số": "1,000,000",
            "Email": "mai@lumi.vn",
        }
        record = marketing_record_from_row(row)
        assert record.staff_name == "Mai Anh"
        assert record.date == datetime(2025, 1, 1)
        assert record.shift_tokens == ("Sáng", "Chiều")
        assert record.product == "P1"
        assert record.market == "VN"
        assert record.ad_spend == 100_000
        assert record.message_count == 10
        assert record.order_count == 2
        assert record.revenue == 1_000_000
        assert record.email == "mai@lumi.vn"

    def test_missing_team_defaults(self):
        assert marketing_record_from_row({"Tên": "Lan"}).team == "Khác"

    def test_nameless_rows_skipped(self):
        records = parse_marketing_records([{"Tên": ""}, {"Tên": "Lan"}, {"CPQC": 5}])
        assert [record.staff_name for record in records] == ["Lan"]


class TestOrderRecord:
    def test_vietnamese_keys(self):
        row = {
            "Nhân viên Marketing": "Mai Anh",
            "Ngày lên đơn": "01/01/2025",
            "Tổng tiền VNĐ": "900,000",
            "Kết quả Check": "Hủy",
            "Mã đơn hàng": "DH1",
        }
        record = order_record_from_row(row)
        assert record.staff_name == "Mai Anh"
        assert record.date == datetime(2025, 1, 1)
        assert record.total_amount == 900_000
        assert record.is_cancelled
        assert record.order_code == "DH1"

    def test_unparseable_date_is_none(self):
        records = parse_order_records([{"Marketing": "Lan", "Ngày lên đơn": "hôm qua"}])
        assert records[0].date is None


class TestCheckResult:
    @pytest.mark.parametrize("raw", ["Huỷ", "Hủy", "Huy", " huy ", "Đã huỷ", "cancelled"])
    def test_cancelled_spellings(self, raw):
        assert CheckResult.parse(raw) is CheckResult.CANCELLED

    def test_ok(self):
        assert CheckResult.parse("OK") is CheckResult.OK

    @pytest.mark.parametrize("raw", [None, "", "Chờ xác nhận"])
    def test_other(self, raw):
        assert CheckResult.parse(raw) is CheckResult.OTHER


# ---------------------------------------------------------------------------
# read_json_rows
# ---------------------------------------------------------------------------

class TestReadJsonRows:
    def test_reads_object_export(self, tmp_path):
        path = tmp_path / "f3.json"
        path.write_text(json.dumps({"a": {"Marketing": "Lan"}}, ensure_ascii=False), encoding="utf-8")
        assert read_json_rows(path) == [{"Marketing": "Lan"}]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_json_rows(tmp_path / "missing.json")
