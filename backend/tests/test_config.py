"""
Tests for settings and structured logging helpers.
"""
import logging

import pytest

from wallvault.config import Settings
from wallvault.storage.exceptions import StorageConfigError
from wallvault.utils.logging import log_migration_item_failed, log_storage_request


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        app_settings = Settings(_env_file=None)
        assert app_settings.r2_region == "auto"
        assert app_settings.r2_upload_expiration == 3600
        assert app_settings.r2_download_expiration == 300
        assert app_settings.r2_http_timeout_seconds == 30.0
        assert app_settings.migration_batch_size == 10

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("R2_HTTP_TIMEOUT_SECONDS", "12")
        monkeypatch.setenv("MIGRATION_BATCH_SIZE", "25")
        app_settings = Settings(_env_file=None)
        assert app_settings.r2_http_timeout_seconds == 12.0
        assert app_settings.migration_batch_size == 25

    def test_signing_credentials(self):
        credentials = Settings(_env_file=None).signing_credentials()
        assert credentials.bucket_name == "wallpapers-test"
        assert credentials.host == "wallpapers-test.testaccount.r2.cloudflarestorage.com"
        assert credentials.public_base_url == "https://pub-test.r2.dev"

    def test_signing_credentials_lists_every_missing_variable(self):
        app_settings = Settings(
            _env_file=None,
            cloudflare_account_id=None,
            cloudflare_r2_access_key_id=None,
            cloudflare_r2_secret_access_key=None,
            cloudflare_r2_bucket_name=None,
        )
        with pytest.raises(StorageConfigError) as exc_info:
            app_settings.signing_credentials()

        for name in (
            "CLOUDFLARE_ACCOUNT_ID",
            "CLOUDFLARE_R2_ACCESS_KEY_ID",
            "CLOUDFLARE_R2_SECRET_ACCESS_KEY",
            "CLOUDFLARE_R2_BUCKET_NAME",
        ):
            assert name in str(exc_info.value)


class TestLoggingHelpers:
    """Tests for structured log events."""

    def test_item_failure_carries_wallpaper_id(self, caplog):
        logger = logging.getLogger("test.migration")
        with caplog.at_level(logging.ERROR, logger="test.migration"):
            log_migration_item_failed(logger, "w-42", "Failed to download wallpaper w-42: 404")

        record = caplog.records[-1]
        assert record.event == "migration_item_failed"
        assert record.wallpaper_id == "w-42"

    def test_storage_request_never_logs_urls(self, caplog):
        logger = logging.getLogger("test.storage")
        with caplog.at_level(logging.DEBUG, logger="test.storage"):
            log_storage_request(logger, "put_object", "wallpapers/a.jpg", status_code=200, duration_ms=12.3456)

        record = caplog.records[-1]
        assert record.object_key == "wallpapers/a.jpg"
        assert record.duration_ms == 12.35
        assert "X-Amz-Signature" not in record.getMessage()
