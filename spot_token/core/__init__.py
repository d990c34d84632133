"""
Core module for spot-token.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs

Usage:
    from spot_token.core import (
        Config, load_config,
        setup_logging, get_logger,
        SpotTokenError, ConfigError, NetworkError
    )
"""

from spot_token.core.config import (
    AcquisitionConfig,
    Config,
    LoggingConfig,
    WebPlayerConfig,
    load_config,
)
from spot_token.core.exceptions import (
    AcquisitionCancelledError,
    ClockUnavailableError,
    ConfigError,
    EmptyStoreError,
    InvalidEncodingError,
    InvalidSecretPayloadError,
    InvalidTotpVersionError,
    NetworkError,
    SecretStoreError,
    SpotTokenError,
    TokenAcquisitionError,
    UnknownSecretVersionError,
    WebPlayerApiError,
)
from spot_token.core.logger import (
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "WebPlayerConfig",
    "AcquisitionConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "SpotTokenError",
    "ConfigError",
    "InvalidEncodingError",
    "SecretStoreError",
    "EmptyStoreError",
    "UnknownSecretVersionError",
    "InvalidTotpVersionError",
    "InvalidSecretPayloadError",
    "ClockUnavailableError",
    "NetworkError",
    "TokenAcquisitionError",
    "AcquisitionCancelledError",
    "WebPlayerApiError",
    # Logger
    "setup_logging",
    "get_logger",
    "shutdown_logging",
]
