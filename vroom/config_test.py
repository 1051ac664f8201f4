from unittest.mock import patch

import pytest
from vroom.config import Settings
from pydantic import ValidationError


@pytest.mark.unit
class TestSettings:
    """Unit tests for Settings configuration."""

    def test_settings_with_valid_env(self, monkeypatch):
        """Test settings with valid environment variables."""
        monkeypatch.setenv("GOOGLE_PLACES_API_KEY", "places-key")
        monkeypatch.setenv("HUNTER_API_KEY", "hunter-key")
        monkeypatch.setenv("CLAWDBOT_API_URL", "http://clawdbot:9000")
        monkeypatch.setenv("SOURCE_TIMEOUT_SECONDS", "12.5")

        settings = Settings(_env_file=None)

        assert settings.google_places_api_key == "places-key"
        assert settings.hunter_api_key == "hunter-key"
        assert settings.clawdbot_api_url == "http://clawdbot:9000"
        assert settings.source_timeout_seconds == 12.5

    def test_settings_default_values(self, monkeypatch):
        """Test settings with default values."""
        monkeypatch.delenv("DEFAULT_CITY", raising=False)
        monkeypatch.delenv("ENRICHMENT_CONCURRENCY", raising=False)

        settings = Settings(_env_file=None)

        assert settings.default_city == "New York"
        assert settings.default_party_size == 20
        assert settings.default_limit == 30
        assert settings.default_sources == ["google_places", "resy"]
        assert settings.enrichment_concurrency == 5
        assert settings.enrichment_group_pause_seconds == 0.2
        assert settings.min_email_confidence == 50

    def test_credentials_optional(self, monkeypatch):
        """Missing provider keys are allowed; providers skip themselves."""
        for name in ("GOOGLE_PLACES_API_KEY", "RESY_API_KEY", "EXA_API_KEY", "HUNTER_API_KEY", "CLAWDBOT_API_KEY"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.google_places_api_key is None
        assert settings.resy_api_key is None
        assert settings.exa_api_key is None
        assert settings.hunter_api_key is None
        assert settings.clawdbot_api_key is None

    def test_invalid_concurrency_validation(self, monkeypatch):
        """Test enrichment concurrency bounds."""
        monkeypatch.setenv("ENRICHMENT_CONCURRENCY", "0")
        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)
        assert "greater than or equal to 1" in str(exc_info.value)

        monkeypatch.setenv("ENRICHMENT_CONCURRENCY", "500")
        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)
        assert "less than or equal to 50" in str(exc_info.value)

    def test_min_email_confidence_bounds(self, monkeypatch):
        monkeypatch.setenv("MIN_EMAIL_CONFIDENCE", "101")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_poll_interval_must_fit_wait(self, monkeypatch):
        """Poll interval longer than the wait budget is rejected."""
        monkeypatch.setenv("CLAWDBOT_MAX_WAIT_SECONDS", "10")
        monkeypatch.setenv("CLAWDBOT_POLL_INTERVAL_SECONDS", "30")

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)
        assert "clawdbot_poll_interval_seconds" in str(exc_info.value)

    def test_case_insensitive_env_vars(self, monkeypatch):
        """Test that environment variable names are case-insensitive."""
        monkeypatch.setenv("default_city", "Chicago")
        monkeypatch.setenv("ReSy_ApI_KeY", "resy-key")

        settings = Settings(_env_file=None)

        assert settings.default_city == "Chicago"
        assert settings.resy_api_key == "resy-key"

    def test_debug_forces_debug_logging(self, monkeypatch):
        """DEBUG=true overrides LOG_LEVEL for every sink."""
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.delenv("LOG_JSON", raising=False)
        monkeypatch.delenv("LOG_FILE", raising=False)

        settings = Settings(_env_file=None)
        assert settings.effective_log_level == "DEBUG"

        with patch("vroom.config.logger") as mock_logger:
            settings.configure_logging()
        assert mock_logger.add.call_args.kwargs["level"] == "DEBUG"

    def test_log_level_used_without_debug(self, monkeypatch):
        monkeypatch.delenv("DEBUG", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        assert Settings(_env_file=None).effective_log_level == "WARNING"
