"""Unit tests for the configuration module."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from oomph_loader.config import Settings, get_settings


def _make_settings(**overrides) -> Settings:
    """Create Settings isolated from any .env file."""
    return Settings(_env_file=None, **overrides)


class TestDefaults:
    def test_defaults_match_asset_service(self, monkeypatch):
        """Test the defaults used when nothing is configured."""
        for var in ("ASSET_ENDPOINT", "CACHE_DIR", "REQUEST_TIMEOUT_SECONDS"):
            monkeypatch.delenv(var, raising=False)
        settings = _make_settings()

        assert settings.asset_endpoint == "https://api.oomph.ac/assets"
        assert settings.cache_dir == ".oomph-cache"
        assert settings.request_timeout_seconds == 60
        assert settings.max_pooled_buffer_bytes == 1024 * 1024
        assert settings.shutdown_grace_seconds == 5
        assert settings.asset_compression == "auto"

    def test_environment_overrides(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("CACHE_DIR", "/var/cache/oomph")
        monkeypatch.setenv("SHUTDOWN_GRACE_SECONDS", "2.5")
        settings = _make_settings()

        assert settings.cache_dir == "/var/cache/oomph"
        assert settings.shutdown_grace_seconds == 2.5


class TestValidation:
    def test_unknown_compression_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(asset_compression="brotli")

    @pytest.mark.parametrize(
        "field", ["request_timeout_seconds", "shutdown_grace_seconds", "max_pooled_buffer_bytes"]
    )
    def test_non_positive_limits_rejected(self, field):
        with pytest.raises(ValidationError):
            _make_settings(**{field: 0})


class TestIsDevelopment:
    def test_development(self):
        assert _make_settings(environment="Development").is_development is True

    def test_production(self):
        assert _make_settings(environment="production").is_development is False


class TestGetSettings:
    def test_get_settings_is_cached(self):
        with patch("oomph_loader.config.Settings") as mock_cls:
            first = get_settings()
            second = get_settings()

        assert first is second
        mock_cls.assert_called_once_with()
