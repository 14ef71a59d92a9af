"""
Configuration management for the Ride Duel backend.

This module provides dataclass-based configuration management with validation
and environment variable loading.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .error_handling import ConfigurationError

STRAVA_TOKEN_URL = "https://www.strava.com/oauth/token"
STRAVA_API_BASE_URL = "https://www.strava.com/api/v3"
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass(frozen=True)
class StravaConfig:
    """OAuth client credentials and endpoints for the Strava API."""
    client_id: str
    client_secret: str
    token_url: str = STRAVA_TOKEN_URL
    api_base_url: str = STRAVA_API_BASE_URL

    def validate(self) -> None:
        """Validate Strava configuration."""
        if not self.client_id or not self.client_id.strip():
            raise ConfigurationError("Strava client ID is required", config_field="client_id")

        if not self.client_secret or not self.client_secret.strip():
            raise ConfigurationError("Strava client secret is required", config_field="client_secret")

        for field_name in ('token_url', 'api_base_url'):
            value = getattr(self, field_name)
            if not value or not value.startswith(('http://', 'https://')):
                raise ConfigurationError(f"{field_name} must be an http(s) URL", config_field=field_name)


@dataclass(frozen=True)
class DatabaseConfig:
    """Credential store connection configuration."""
    host: str
    port: int
    user: str
    password: str
    database: str

    def validate(self) -> None:
        """Validate database configuration."""
        if not self.host or not self.host.strip():
            raise ConfigurationError("Database host is required", config_field="host")

        if not (1 <= self.port <= 65535):
            raise ConfigurationError("Database port must be between 1 and 65535", config_field="port")

        if not self.user or not self.user.strip():
            raise ConfigurationError("Database user is required", config_field="user")

        if not self.password:
            raise ConfigurationError("Database password is required", config_field="password")

        if not self.database or not self.database.strip():
            raise ConfigurationError("Database name is required", config_field="database")


@dataclass(frozen=True)
class ReportConfig:
    """Report caching and timeout settings."""
    cache_ttl: int = 900
    timeout_seconds: float = 25.0

    def validate(self) -> None:
        if self.cache_ttl < 0:
            raise ConfigurationError("Report cache TTL cannot be negative", config_field="cache_ttl")

        if self.timeout_seconds <= 0:
            raise ConfigurationError("Report timeout must be positive", config_field="timeout_seconds")


@dataclass(frozen=True)
class LoggingConfig:
    """Log level, directory and file rotation."""
    level: str = 'INFO'
    directory: str = 'logs'
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 5

    def validate(self) -> None:
        if self.level not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {self.level}", config_field="level")

        if not self.directory or not self.directory.strip():
            raise ConfigurationError("Log directory is required", config_field="directory")

        if self.max_file_size <= 0:
            raise ConfigurationError("Log file size must be positive", config_field="max_file_size")

        if self.backup_count < 0:
            raise ConfigurationError("Log backup count cannot be negative", config_field="backup_count")

    @classmethod
    def from_env(cls, level: Optional[str] = None) -> 'LoggingConfig':
        """
        Create logging configuration from LOG_* environment variables.

        Args:
            level: Overrides LOG_LEVEL when given
        """
        try:
            config = cls(
                level=(level or os.getenv('LOG_LEVEL', 'INFO')).upper(),
                directory=os.getenv('LOG_DIR', 'logs'),
                max_file_size=int(os.getenv('LOG_MAX_FILE_SIZE', str(10 * 1024 * 1024))),
                backup_count=int(os.getenv('LOG_BACKUP_COUNT', '5'))
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid logging configuration: {e}")

        config.validate()
        return config


@dataclass(frozen=True)
class Config:
    """Main application configuration."""
    strava: StravaConfig
    database: DatabaseConfig
    report: ReportConfig = ReportConfig()

    def validate(self) -> None:
        """Validate entire configuration."""
        try:
            self.strava.validate()
        except ConfigurationError as e:
            raise ConfigurationError(f"Strava validation failed: {e.message}", config_field=f"strava.{e.config_field}")

        try:
            self.database.validate()
        except ConfigurationError as e:
            raise ConfigurationError(f"Database validation failed: {e.message}", config_field=f"database.{e.config_field}")

        try:
            self.report.validate()
        except ConfigurationError as e:
            raise ConfigurationError(f"Report validation failed: {e.message}", config_field=f"report.{e.config_field}")

    @classmethod
    def from_env(cls) -> 'Config':
        """Create configuration from environment variables."""
        try:
            strava = StravaConfig(
                client_id=os.getenv('STRAVA_CLIENT_ID', ''),
                client_secret=os.getenv('STRAVA_CLIENT_SECRET', ''),
                token_url=os.getenv('STRAVA_TOKEN_URL', STRAVA_TOKEN_URL),
                api_base_url=os.getenv('STRAVA_API_BASE_URL', STRAVA_API_BASE_URL)
            )

            try:
                database = DatabaseConfig(
                    host=os.getenv('DB_HOST', 'localhost'),
                    port=int(os.getenv('DB_PORT', '3306')),
                    user=os.getenv('DB_USER', ''),
                    password=os.getenv('DB_PASSWORD', ''),
                    database=os.getenv('DB_NAME', '')
                )
            except (ValueError, TypeError) as e:
                raise ConfigurationError(f"Invalid database configuration: {e}")

            try:
                report = ReportConfig(
                    cache_ttl=int(os.getenv('REPORT_CACHE_TTL', '900')),
                    timeout_seconds=float(os.getenv('REPORT_TIMEOUT_SECONDS', '25'))
                )
            except (ValueError, TypeError) as e:
                raise ConfigurationError(f"Invalid report configuration: {e}")

            config = cls(strava=strava, database=database, report=report)
            config.validate()
            return config

        except Exception as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Error loading configuration from environment: {e}")
