"""Configuration management - Centralized configuration for Office Tracker.

Provides environment-aware configuration with sensible defaults.
All configuration is loaded from environment variables with fallbacks.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from office_tracker.common.constants import (
    DispatchConstants,
    MonitoringConstants,
    PushConstants,
    StoreConstants,
)
from office_tracker.common.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _get_project_root() -> Path:
    """Get the project root directory."""
    # settings.py -> config -> common -> office_tracker -> src -> project_root
    current = Path(__file__).resolve()
    return current.parent.parent.parent.parent.parent


def _optional_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    return Path(value) if value else None


@dataclass
class Config:
    """Central configuration object for Office Tracker.
    
    All settings can be overridden via environment variables prefixed with
    OFFICE_TRACKER_.
    
    Example:
        OFFICE_TRACKER_ENVIRONMENT=production
        OFFICE_TRACKER_DATABASE_URL=https://example-rtdb.firebasedatabase.app
        OFFICE_TRACKER_MAX_CONCURRENCY=8
    """
    
    # Core settings
    environment: Environment = field(
        default_factory=lambda: Environment(
            os.getenv("OFFICE_TRACKER_ENVIRONMENT", "development")
        )
    )
    debug: bool = field(
        default_factory=lambda: os.getenv("OFFICE_TRACKER_DEBUG", "false").lower() == "true"
    )
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("OFFICE_TRACKER_LOG_LEVEL", "INFO"))
    )
    
    # Paths
    project_root: Path = field(default_factory=_get_project_root)
    rules_file: Optional[Path] = field(
        default_factory=lambda: _optional_path("OFFICE_TRACKER_RULES_FILE")
    )
    
    # Record store
    database_url: Optional[str] = field(
        default_factory=lambda: os.getenv("OFFICE_TRACKER_DATABASE_URL")
    )
    database_auth_token: Optional[str] = field(
        default_factory=lambda: os.getenv("OFFICE_TRACKER_DATABASE_AUTH")
    )
    database_timeout: float = field(
        default_factory=lambda: float(
            os.getenv("OFFICE_TRACKER_DATABASE_TIMEOUT", str(StoreConstants.REQUEST_TIMEOUT_SECONDS))
        )
    )
    
    # Push relay
    push_relay_url: str = field(
        default_factory=lambda: os.getenv("OFFICE_TRACKER_PUSH_RELAY_URL", PushConstants.RELAY_URL)
    )
    push_access_token: Optional[str] = field(
        default_factory=lambda: os.getenv("OFFICE_TRACKER_PUSH_ACCESS_TOKEN")
    )
    push_timeout: float = field(
        default_factory=lambda: float(
            os.getenv("OFFICE_TRACKER_PUSH_TIMEOUT", str(PushConstants.REQUEST_TIMEOUT_SECONDS))
        )
    )
    push_chunk_size: int = field(
        default_factory=lambda: int(
            os.getenv("OFFICE_TRACKER_PUSH_CHUNK_SIZE", str(PushConstants.MAX_MESSAGES_PER_REQUEST))
        )
    )
    
    # Dispatch fan-out
    max_concurrency: int = field(
        default_factory=lambda: int(
            os.getenv("OFFICE_TRACKER_MAX_CONCURRENCY", str(DispatchConstants.DEFAULT_MAX_CONCURRENCY))
        )
    )
    
    # Monitoring
    metrics_enabled: bool = field(
        default_factory=lambda: os.getenv("OFFICE_TRACKER_METRICS_ENABLED", "false").lower() == "true"
    )
    metrics_namespace: str = field(
        default_factory=lambda: os.getenv(
            "OFFICE_TRACKER_METRICS_NAMESPACE", MonitoringConstants.DEFAULT_NAMESPACE
        )
    )
    aws_region: str = field(
        default_factory=lambda: os.getenv("AWS_DEFAULT_REGION", MonitoringConstants.DEFAULT_REGION)
    )
    
    # Decision audit log (disabled when unset)
    audit_log_dir: Optional[Path] = field(
        default_factory=lambda: _optional_path("OFFICE_TRACKER_AUDIT_LOG_DIR")
    )
    
    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.max_concurrency < 1:
            raise ConfigurationError(
                "OFFICE_TRACKER_MAX_CONCURRENCY must be at least 1",
                details={"max_concurrency": self.max_concurrency},
            )
        
        if not 1 <= self.push_chunk_size <= PushConstants.MAX_MESSAGES_PER_REQUEST:
            raise ConfigurationError(
                f"OFFICE_TRACKER_PUSH_CHUNK_SIZE must be between 1 and "
                f"{PushConstants.MAX_MESSAGES_PER_REQUEST}",
                details={"push_chunk_size": self.push_chunk_size},
            )
        
        if self.metrics_enabled and not self.metrics_namespace:
            raise ConfigurationError(
                "OFFICE_TRACKER_METRICS_NAMESPACE must be set when metrics are enabled"
            )
        
        if self.audit_log_dir is not None:
            self.audit_log_dir.mkdir(parents=True, exist_ok=True)
        
        # Warn about debug in production
        if self.environment == Environment.PRODUCTION and self.debug:
            import warnings
            warnings.warn(
                "Debug mode is enabled in production environment",
                RuntimeWarning,
                stacklevel=2
            )
    
    @property
    def config_dir(self) -> Path:
        """Get the config directory path."""
        return self.project_root / "config"
    
    @property
    def effective_rules_file(self) -> Path:
        """Rules file from the environment, or the bundled default."""
        return self.rules_file or self.config_dir / "reminder_rules.yaml"
    
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION
    
    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT


# Singleton instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.
    
    Returns:
        Config: The global configuration singleton.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
