"""Tests for settings persistence and overrides."""

from __future__ import annotations

import json
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from postage_auditor.core.config import Settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        s = Settings()
        assert s.ebay.site_id == 15
        assert s.ebay.marketplace_id == "EBAY_AU"
        assert s.enrichment.max_concurrent_requests == 30
        assert s.enrichment.request_timeout_seconds == 15
        assert s.batch.weight_band == "Medium"
        assert s.batch.discount_band == 3
        assert s.batch.tolerance == Decimal("0.05")

    def test_ttl_properties(self):
        s = Settings()
        assert s.enrichment.enrichment_ttl == timedelta(hours=24)
        assert s.enrichment.display_ttl == timedelta(minutes=60)

    def test_api_urls(self):
        s = Settings()
        assert s.ebay.trading_api_url == "https://api.ebay.com/ws/api.dll"
        s.ebay.sandbox = True
        assert s.ebay.trading_api_url == "https://api.sandbox.ebay.com/ws/api.dll"
        assert s.ebay.browse_api_url == "https://api.sandbox.ebay.com/buy/browse/v1"

    def test_save_never_writes_token(self, tmp_path):
        with patch("postage_auditor.core.config.get_config_dir", return_value=tmp_path):
            s = Settings()
            s.ebay.user_token = "secret"
            s.port = 6060
            s.save()

            data = json.loads((tmp_path / "settings.json").read_text())
            assert "user_token" not in data["ebay"]
            assert data["batch"]["tolerance"] == "0.05"

            loaded = Settings.load()
            assert loaded.port == 6060
            assert loaded.batch.tolerance == Decimal("0.05")

    def test_env_file_overrides(self, tmp_path):
        (tmp_path / ".env").write_text("PA_EBAY_USER_TOKEN=abc123\nPA_MOCK_MODE=true\n")
        with patch("postage_auditor.core.config.get_config_dir", return_value=tmp_path):
            loaded = Settings.load()
        assert loaded.ebay.user_token == "abc123"
        assert loaded.ebay.mock_mode is True

    def test_corrupt_settings_file_uses_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text("{not json")
        with patch("postage_auditor.core.config.get_config_dir", return_value=tmp_path):
            loaded = Settings.load()
        assert loaded.port == 5050
