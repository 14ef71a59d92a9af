"""
Unit tests for configuration management module.
"""

import os
from dataclasses import FrozenInstanceError
from unittest.mock import patch

import pytest

from ride_duel.utils.config import Config, DatabaseConfig, LoggingConfig, ReportConfig, StravaConfig
from ride_duel.utils.error_handling import ConfigurationError

BASE_ENV = {
    'STRAVA_CLIENT_ID': '12345',
    'STRAVA_CLIENT_SECRET': 'secret',
    'DB_HOST': 'db.example.com',
    'DB_PORT': '3307',
    'DB_USER': 'duel',
    'DB_PASSWORD': 'hunter2',
    'DB_NAME': 'ride_duel',
}


class TestStravaConfig:
    """Test StravaConfig dataclass"""

    def test_defaults(self):
        config = StravaConfig(client_id="12345", client_secret="secret")

        assert config.token_url == "https://www.strava.com/oauth/token"
        assert config.api_base_url == "https://www.strava.com/api/v3"
        config.validate()

    def test_immutable(self):
        config = StravaConfig(client_id="12345", client_secret="secret")

        with pytest.raises(FrozenInstanceError):
            config.client_id = "other"

    def test_missing_secret(self):
        with pytest.raises(ConfigurationError, match="client secret") as exc_info:
            StravaConfig(client_id="12345", client_secret=" ").validate()

        assert exc_info.value.config_field == "client_secret"

    def test_invalid_url(self):
        with pytest.raises(ConfigurationError):
            StravaConfig(client_id="1", client_secret="s", token_url="ftp://strava").validate()


class TestDatabaseConfig:
    """Test DatabaseConfig dataclass"""

    def test_invalid_port(self):
        config = DatabaseConfig(host="localhost", port=0, user="u", password="p", database="d")

        with pytest.raises(ConfigurationError, match="port"):
            config.validate()

    def test_missing_password(self):
        config = DatabaseConfig(host="localhost", port=3306, user="u", password="", database="d")

        with pytest.raises(ConfigurationError, match="password"):
            config.validate()


class TestReportConfig:
    """Test ReportConfig dataclass"""

    def test_negative_ttl(self):
        with pytest.raises(ConfigurationError):
            ReportConfig(cache_ttl=-1).validate()

    def test_zero_timeout(self):
        with pytest.raises(ConfigurationError):
            ReportConfig(timeout_seconds=0).validate()


class TestConfigFromEnv:
    """Test Config.from_env"""

    @patch.dict(os.environ, BASE_ENV, clear=True)
    def test_from_env(self):
        config = Config.from_env()

        assert config.strava.client_id == '12345'
        assert config.database == DatabaseConfig(
            host='db.example.com', port=3307, user='duel', password='hunter2', database='ride_duel'
        )
        assert config.report == ReportConfig(cache_ttl=900, timeout_seconds=25.0)

    @patch.dict(os.environ, {**BASE_ENV, 'REPORT_CACHE_TTL': '60', 'REPORT_TIMEOUT_SECONDS': '2.5'}, clear=True)
    def test_report_overrides(self):
        config = Config.from_env()

        assert config.report.cache_ttl == 60
        assert config.report.timeout_seconds == 2.5

    @patch.dict(os.environ, {k: v for k, v in BASE_ENV.items() if k != 'STRAVA_CLIENT_ID'}, clear=True)
    def test_missing_client_id(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_env()

        assert exc_info.value.config_field == "strava.client_id"

    @patch.dict(os.environ, {**BASE_ENV, 'DB_PORT': 'not-a-port'}, clear=True)
    def test_invalid_port_value(self):
        with pytest.raises(ConfigurationError, match="Invalid database configuration"):
            Config.from_env()

    @patch.dict(os.environ, {**BASE_ENV, 'REPORT_CACHE_TTL': 'forever'}, clear=True)
    def test_invalid_cache_ttl(self):
        with pytest.raises(ConfigurationError, match="Invalid report configuration"):
            Config.from_env()


class TestLoggingConfig:
    """Test LoggingConfig"""

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        assert LoggingConfig.from_env() == LoggingConfig(
            level='INFO', directory='logs', max_file_size=10 * 1024 * 1024, backup_count=5
        )

    @patch.dict(os.environ, {'LOG_LEVEL': 'debug', 'LOG_DIR': '/tmp/duel', 'LOG_MAX_FILE_SIZE': '2048',
                             'LOG_BACKUP_COUNT': '0'}, clear=True)
    def test_from_env(self):
        config = LoggingConfig.from_env()

        assert config == LoggingConfig(level='DEBUG', directory='/tmp/duel', max_file_size=2048, backup_count=0)

    @patch.dict(os.environ, {'LOG_LEVEL': 'ERROR'}, clear=True)
    def test_level_argument_overrides_env(self):
        assert LoggingConfig.from_env(level='debug').level == 'DEBUG'

    @patch.dict(os.environ, {'LOG_LEVEL': 'LOUD'}, clear=True)
    def test_unknown_level(self):
        with pytest.raises(ConfigurationError) as exc_info:
            LoggingConfig.from_env()

        assert exc_info.value.config_field == "level"

    @patch.dict(os.environ, {'LOG_MAX_FILE_SIZE': 'big'}, clear=True)
    def test_invalid_file_size(self):
        with pytest.raises(ConfigurationError, match="Invalid logging configuration"):
            LoggingConfig.from_env()

    def test_negative_backup_count(self):
        with pytest.raises(ConfigurationError):
            LoggingConfig(backup_count=-1).validate()
