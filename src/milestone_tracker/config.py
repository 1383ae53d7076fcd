"""
Configuration management for Milestone Tracker.

Loads an optional JSON config file, applies environment overrides and fills in
sensible defaults (including a generated JWT secret when none is provided).
"""

import json
import logging
import os
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, List

# List of known weak/default JWT secrets that should be rejected
WEAK_JWT_SECRETS = {
    "your_jwt_secret",
    "your-secret-key-change-in-production",
    "secret",
    "key",
    "password",
    "jwt-secret",
    "secret-key",
    "change-me",
    "default",
    "test",
    "development",
    "dev",
}

ENV_PREFIX = "MILESTONE_TRACKER_"


def _env(name: str) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}")


def _env_flag(name: str) -> Optional[bool]:
    value = _env(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _validate_jwt_secret_key(jwt_secret_key: str) -> None:
    """Validate JWT secret key security and reject weak/default keys.

    Args:
        jwt_secret_key: The JWT secret key to validate

    Raises:
        SystemExit: If the secret key is weak, default, or insecure
    """
    if not jwt_secret_key:
        logging.critical(
            "JWT secret key is empty - this is a critical security vulnerability"
        )
        sys.exit(1)

    if len(jwt_secret_key) < 32:
        logging.critical(
            f"JWT secret key is too short ({len(jwt_secret_key)} chars). "
            f"Minimum 32 characters required for security."
        )
        sys.exit(1)

    if jwt_secret_key.lower() in WEAK_JWT_SECRETS:
        logging.critical(
            f"JWT secret key '{jwt_secret_key}' is a known weak/default secret. "
            f"Set {ENV_PREFIX}JWT_SECRET_KEY with a secure key."
        )
        sys.exit(1)

    unique_chars = len(set(jwt_secret_key))
    if unique_chars < 8:
        logging.critical(
            f"JWT secret key has insufficient entropy ({unique_chars} unique characters). "
            f"Use a cryptographically secure random key."
        )
        sys.exit(1)

    logging.debug(
        f"JWT secret key validation passed ({len(jwt_secret_key)} chars, {unique_chars} unique)"
    )


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///./milestone_tracker.db"
    echo: bool = False
    log_queries: bool = False  # Log per-query timings via query_performance logger


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    auto_reload: bool = False
    workers: int = 1
    cors_origins: Optional[List[str]] = None


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Milestone Tracker"
    description: str = "Milestone progress tracking with daily tracking quotas"

    # Tracking quota
    default_daily_tracking_limit: int = 3

    # Security
    password_hash_iterations: int = 120_000  # PBKDF2 iterations
    jwt_secret_key: str = ""  # Must be set at runtime - no default for security
    jwt_access_token_expires_minutes: int = 24 * 60

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"


@dataclass
class MilestoneTrackerConfig:
    """Complete configuration for Milestone Tracker."""

    app: AppConfig
    server: ServerConfig
    database: DatabaseConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MilestoneTrackerConfig":
        """Create from dictionary."""
        return cls(
            app=AppConfig(**data.get("app", {})),
            server=ServerConfig(**data.get("server", {})),
            database=DatabaseConfig(**data.get("database", {})),
        )


class ConfigManager:
    """Manages configuration loading and environment overrides."""

    def __init__(self):
        self.config_file: Optional[Path] = None
        self.config: Optional[MilestoneTrackerConfig] = None

    def get_config_file_path(self) -> Optional[Path]:
        """Get the path for the config file, if one is configured."""
        config_file = _env("CONFIG_FILE")
        return Path(config_file) if config_file else None

    def _apply_environment(self, config: MilestoneTrackerConfig) -> None:
        """Apply environment variable overrides in place."""
        db_url = _env("DATABASE_URL") or os.getenv("DATABASE_URL")
        if db_url:
            config.database.url = db_url

        jwt_secret_key = _env("JWT_SECRET_KEY")
        if jwt_secret_key:
            config.app.jwt_secret_key = jwt_secret_key
            logging.info(f"Using JWT secret key from {ENV_PREFIX}JWT_SECRET_KEY")

        debug = _env_flag("DEBUG")
        if debug is not None:
            config.server.debug = debug
            config.app.log_level = "DEBUG" if debug else config.app.log_level

        log_to_file = _env_flag("LOG_TO_FILE")
        if log_to_file is not None:
            config.app.log_to_file = log_to_file

        log_dir = _env("LOG_DIR")
        if log_dir:
            config.app.log_dir = log_dir

        daily_limit = _env("DAILY_TRACKING_LIMIT")
        if daily_limit:
            config.app.default_daily_tracking_limit = int(daily_limit)

        log_queries = _env_flag("LOG_QUERIES")
        if log_queries is not None:
            config.database.log_queries = log_queries

    def create_default_config(self) -> MilestoneTrackerConfig:
        """Create default configuration."""
        return MilestoneTrackerConfig(
            app=AppConfig(), server=ServerConfig(), database=DatabaseConfig()
        )

    def load_config(self, reload: bool = False) -> MilestoneTrackerConfig:
        """Load configuration from file or create default, then apply environment."""
        if self.config is not None and not reload:
            return self.config

        self.config_file = self.get_config_file_path()

        if self.config_file and self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                config = MilestoneTrackerConfig.from_dict(data)
                logging.info(f"Loaded configuration from {self.config_file}")
            except (OSError, ValueError, TypeError) as e:
                logging.warning(f"Failed to load config from {self.config_file}: {e}")
                logging.info("Creating default configuration")
                config = self.create_default_config()
        else:
            config = self.create_default_config()

        self._apply_environment(config)

        if not config.app.jwt_secret_key:
            # Generate cryptographically secure 64-byte secret
            config.app.jwt_secret_key = secrets.token_urlsafe(64)
            logging.info("Generated new JWT secret key (not from environment)")

        _validate_jwt_secret_key(config.app.jwt_secret_key)

        if config.app.default_daily_tracking_limit <= 0:
            logging.critical("default_daily_tracking_limit must be positive")
            sys.exit(1)

        self.config = config
        return self.config


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> MilestoneTrackerConfig:
    """Get the current configuration."""
    return config_manager.load_config()
