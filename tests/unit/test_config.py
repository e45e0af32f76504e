"""
Unit tests for configuration loading and validation.

These tests ensure:
  1. Config loads from environment variables correctly
  2. Required fields are validated at startup
  3. Type conversions work (e.g., strings to floats/ints)
  4. Helpful error messages are provided for bad config
"""

import pytest
from unittest.mock import patch
from blusocial.config import Config, validate_config


def valid(mock_config):
    """Fill a patched config with values that pass validation."""
    mock_config.FIREBASE_PROJECT_ID = "test"
    mock_config.DEFAULT_DISCOVERY_RADIUS_KM = 0.5
    mock_config.BATCH_CHUNK_SIZE = 30
    mock_config.APP_BASE_URL = ""
    mock_config.NOTIFICATION_ICON_URL = None
    return mock_config


class TestConfigLoading:
    """Test configuration loading from environment."""

    @patch.dict("os.environ", {"FIREBASE_PROJECT_ID": "test-project"})
    def test_required_config_loads(self):
        """Required config fields should load from environment."""
        config = Config(_env_file=None)
        assert config.FIREBASE_PROJECT_ID == "test-project"

    @patch.dict("os.environ", {
        "FIREBASE_PROJECT_ID": "test-project",
        "DEFAULT_DISCOVERY_RADIUS_KM": "1.25",
        "BATCH_CHUNK_SIZE": "10",
    })
    def test_numeric_config_conversion(self):
        """Numeric environment variables should be converted."""
        config = Config(_env_file=None)
        assert config.DEFAULT_DISCOVERY_RADIUS_KM == 1.25
        assert config.BATCH_CHUNK_SIZE == 10

    @patch.dict("os.environ", {
        "FIREBASE_PROJECT_ID": "test-project",
        "PORT": "9000",
    })
    def test_integer_config_conversion(self):
        """Integer environment variables should be converted to int."""
        config = Config(_env_file=None)
        assert isinstance(config.PORT, int)
        assert config.PORT == 9000

    @patch.dict("os.environ", {"FIREBASE_PROJECT_ID": "test-project"}, clear=False)
    def test_optional_config_defaults(self):
        """Optional config should have sensible defaults."""
        config = Config(_env_file=None)
        assert config.DEFAULT_DISCOVERY_RADIUS_KM == 0.5
        assert config.BATCH_CHUNK_SIZE == 30
        assert config.USERS_COLLECTION == "users"
        assert config.GRAPH_TIMEOUT == 30
        # DEBUG is set by test setup, so just check it's a bool
        assert isinstance(config.DEBUG, bool)


class TestConfigValidation:
    """Test configuration validation function."""

    @patch("blusocial.config.config")
    def test_validate_firebase_required(self, mock_config):
        """Firebase project ID must be set."""
        valid(mock_config).FIREBASE_PROJECT_ID = ""

        with pytest.raises(ValueError, match="FIREBASE_PROJECT_ID"):
            validate_config()

    @patch("blusocial.config.config")
    @pytest.mark.parametrize("radius", [0, -0.5])
    def test_validate_radius_positive(self, mock_config, radius):
        valid(mock_config).DEFAULT_DISCOVERY_RADIUS_KM = radius

        with pytest.raises(ValueError, match="DEFAULT_DISCOVERY_RADIUS_KM"):
            validate_config()

    @patch("blusocial.config.config")
    @pytest.mark.parametrize("size", [0, 31])
    def test_validate_chunk_size_range(self, mock_config, size):
        """Firestore "in" queries take between 1 and 30 values."""
        valid(mock_config).BATCH_CHUNK_SIZE = size

        with pytest.raises(ValueError, match="BATCH_CHUNK_SIZE"):
            validate_config()

    @patch("blusocial.config.config")
    def test_validate_app_url_must_be_https(self, mock_config):
        valid(mock_config).APP_BASE_URL = "http://blusocial.example"

        with pytest.raises(ValueError, match="APP_BASE_URL"):
            validate_config()

    @patch("blusocial.config.config")
    def test_validate_reports_all_errors(self, mock_config):
        valid(mock_config).FIREBASE_PROJECT_ID = ""
        mock_config.BATCH_CHUNK_SIZE = 0

        with pytest.raises(ValueError) as exc_info:
            validate_config()
        assert "FIREBASE_PROJECT_ID" in str(exc_info.value)
        assert "BATCH_CHUNK_SIZE" in str(exc_info.value)

    @patch("blusocial.config.config")
    def test_validate_success_returns_status(self, mock_config):
        """Successful validation should return status dict."""
        valid(mock_config).APP_BASE_URL = "https://blusocial.example"

        result = validate_config()
        assert result["firebase"] == "✓ Configured"
        assert result["batch_chunk_size"] == "30"
        assert result["push_icon"] == "✗ Default"
