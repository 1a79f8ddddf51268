"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from lumi_report.config import DEFAULT_FIREBASE_URL, Settings, load_settings


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings(env={})
        assert settings == Settings()
        assert settings.http_retries == 0
        assert settings.strip_name_suffix is True
        assert settings.include_unmatched is False
        assert not settings.supabase_enabled

    def test_overrides(self):
        settings = load_settings(
            env={
                "LUMI_FIREBASE_URL": "https://example.test/",
                "LUMI_SUPABASE_URL": "https://sb.test",
                "LUMI_SUPABASE_KEY": "key",
                "LUMI_HTTP_TIMEOUT": "2.5",
                "LUMI_HTTP_RETRIES": "3",
                "LUMI_LOCAL_STORE": "/tmp/lumi.json",
                "LUMI_STRIP_NAME_SUFFIX": "off",
                "LUMI_INCLUDE_UNMATCHED": "yes",
            }
        )
        assert settings.orders_url == "https://example.test/datasheet/F3.json"
        assert settings.supabase_enabled
        assert settings.http_timeout == 2.5
        assert settings.http_retries == 3
        assert settings.local_store_path == Path("/tmp/lumi.json")
        assert settings.strip_name_suffix is False
        assert settings.include_unmatched is True

    @pytest.mark.parametrize(
        "name, value",
        [
            ("LUMI_HTTP_TIMEOUT", "abc"),
            ("LUMI_HTTP_TIMEOUT", "0"),
            ("LUMI_HTTP_RETRIES", "-1"),
            ("LUMI_HTTP_RETRIES", "1.5"),
            ("LUMI_INCLUDE_UNMATCHED", "maybe"),
            ("LUMI_TIMEZONE", "Mars/Olympus_Mons"),
        ],
    )
    def test_invalid_values_name_the_variable(self, name, value):
        with pytest.raises(ValueError, match=name):
            load_settings(env={name: value})


class TestSettingsUrls:
    def test_backend_urls(self):
        settings = Settings()
        assert settings.marketing_url == f"{DEFAULT_FIREBASE_URL}/datasheet/Báo_cáo_MKT.json"
        assert settings.orders_url == f"{DEFAULT_FIREBASE_URL}/datasheet/F3.json"
        assert settings.employees_url == f"{DEFAULT_FIREBASE_URL}/datasheet/Nhân_sự.json"
        assert settings.change_log_url == f"{DEFAULT_FIREBASE_URL}/ChangeLog.json"

    def test_timezone(self):
        assert Settings().tz.key == "Asia/Ho_Chi_Minh"
