"""
Configuration management for spot-token.

This module handles loading, validating, and providing access to the
optional application configuration stored in config.yaml.

The configuration file contains:
    - Web player endpoints (token endpoint, time source, secret document)
    - Browser identity (User-Agent) and optional sp_dc session cookie
    - Acquisition defaults (TOTP version, secret refresh, token validation)
    - Network timeout for every remote call
    - Optional log directory and console log level

Configuration File Location:
    By default config.yaml is looked up in the current working directory.
    Unlike an explicit --config path, a missing default file is not an
    error: every setting has a working default.

Example config.yaml:
    webplayer:
      token_url: "https://open.spotify.com/api/token"
      server_time_url: "https://open.spotify.com/"
      secrets_url: "https://github.com/xyloflake/spot-secrets-go/blob/main/secrets/secretDict.json?raw=true"
      sp_dc: null

    acquisition:
      totp_version: 61        # null = latest known version
      download_secrets: true
      verify_token: true
      timeout: 10

    logging:
      directory: null         # e.g. "~/.spot-token/logs"
      level: "INFO"
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from spot_token.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

# Environment variable overriding webplayer.sp_dc
SP_DC_ENV_VAR = "SPOT_TOKEN_SP_DC"

TOKEN_URL = "https://open.spotify.com/api/token"
SERVER_TIME_URL = "https://open.spotify.com/"
SECRET_DICT_URL = (
    "https://github.com/xyloflake/spot-secrets-go/blob/main/secrets/secretDict.json?raw=true"
)
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:145.0) Gecko/20100101 Firefox/145.0"
)

DEFAULT_TOTP_VERSION = 61
DEFAULT_TIMEOUT = 10.0

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class WebPlayerConfig:
    """
    Web player endpoint and identity configuration.

    Attributes:
        token_url: Endpoint issuing anonymous web-player access tokens.
        server_time_url: Any page whose response carries a Date header.
                         Used as the canonical clock for TOTP generation.
        secrets_url: Remote JSON document with rotated secret versions.
        user_agent: Browser User-Agent sent with every web-player request.
        sp_dc: Optional sp_dc session cookie for open.spotify.com.
               When set, the token endpoint issues a user-bound token.
    """
    token_url: str = TOKEN_URL
    server_time_url: str = SERVER_TIME_URL
    secrets_url: str = SECRET_DICT_URL
    user_agent: str = USER_AGENT
    sp_dc: str | None = None


@dataclass(frozen=True)
class AcquisitionConfig:
    """
    Token acquisition defaults.

    Attributes:
        totp_version: Secret version used to sign the request.
                      None selects the highest known version.
        download_secrets: Refresh the secret table from secrets_url
                          before each acquisition (best effort).
        verify_token: Check the obtained token against the Web API.
        timeout: Timeout in seconds applied to every network call.
    """
    totp_version: int | None = DEFAULT_TOTP_VERSION
    download_secrets: bool = True
    verify_token: bool = True
    timeout: float = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging configuration.

    Attributes:
        directory: Directory for log files, or None for console only.
        level: Console log level name.
    """
    directory: Path | None = None
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    This is the main configuration object that aggregates all configuration
    sections. It is created by load_config() and is immutable.

    Example:
        config = load_config()
        print(f"Token endpoint: {config.webplayer.token_url}")
        print(f"Timeout: {config.acquisition.timeout}s")
    """
    webplayer: WebPlayerConfig = field(default_factory=WebPlayerConfig)
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory
                     and falls back to defaults when it does not exist.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, the file has
                     invalid YAML syntax, or it contains invalid values.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. Read and parse YAML content (empty file = defaults)
        3. Validate and extract each optional section
        4. Apply SPOT_TOKEN_SP_DC environment override
        5. Create and return frozen Config object

    Example:
        try:
            config = load_config()
        except ConfigError as e:
            print(f"Configuration error: {e.message}")
            sys.exit(1)
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    raw_config: Any = {}
    if config_path.exists():
        raw_config = _read_yaml(config_path)
    elif explicit:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    webplayer = _parse_webplayer_config(_section(raw_config, "webplayer"))
    acquisition = _parse_acquisition_config(_section(raw_config, "acquisition"))
    logging_config = _parse_logging_config(_section(raw_config, "logging"))

    sp_dc_override = os.environ.get(SP_DC_ENV_VAR)
    if sp_dc_override:
        webplayer = WebPlayerConfig(
            token_url=webplayer.token_url,
            server_time_url=webplayer.server_time_url,
            secrets_url=webplayer.secrets_url,
            user_agent=webplayer.user_agent,
            sp_dc=sp_dc_override.strip(),
        )

    return Config(
        webplayer=webplayer,
        acquisition=acquisition,
        logging=logging_config
    )


def _read_yaml(config_path: Path) -> Any:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """
    Return a configuration section, or an empty dict when absent.

    Raises:
        ConfigError: If the section is present but not a dictionary.
    """
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _string_field(section: dict[str, Any], key: str, label: str, default: str) -> str:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{label}' must be a non-empty string",
            details={"field": label}
        )
    return value.strip()


def _bool_field(section: dict[str, Any], key: str, label: str, default: bool) -> bool:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(
            f"'{label}' must be true or false",
            details={"field": label, "value": value}
        )
    return value


def _parse_webplayer_config(section: dict[str, Any]) -> WebPlayerConfig:
    """
    Parse and validate the webplayer configuration section.

    Raises:
        ConfigError: If a URL or the user agent is not a non-empty string,
                     or sp_dc is not a string.
    """
    sp_dc = section.get("sp_dc")
    if sp_dc is not None:
        if not isinstance(sp_dc, str):
            raise ConfigError(
                "'webplayer.sp_dc' must be a string or null",
                details={"field": "webplayer.sp_dc"}
            )
        sp_dc = sp_dc.strip() or None

    return WebPlayerConfig(
        token_url=_string_field(section, "token_url", "webplayer.token_url", TOKEN_URL),
        server_time_url=_string_field(
            section, "server_time_url", "webplayer.server_time_url", SERVER_TIME_URL
        ),
        secrets_url=_string_field(
            section, "secrets_url", "webplayer.secrets_url", SECRET_DICT_URL
        ),
        user_agent=_string_field(section, "user_agent", "webplayer.user_agent", USER_AGENT),
        sp_dc=sp_dc,
    )


def _parse_acquisition_config(section: dict[str, Any]) -> AcquisitionConfig:
    """
    Parse and validate the acquisition configuration section.

    Applies defaults for fields that are not specified. An explicit
    `totp_version: null` is kept as None (latest known version).

    Raises:
        ConfigError: If totp_version is not a non-negative integer, a flag
                     is not a boolean, or timeout is not a positive number.
    """
    totp_version: int | None = DEFAULT_TOTP_VERSION
    if "totp_version" in section:
        raw_version = section["totp_version"]
        if raw_version is not None and (
            isinstance(raw_version, bool)
            or not isinstance(raw_version, int)
            or raw_version < 0
        ):
            raise ConfigError(
                "'acquisition.totp_version' must be a non-negative integer or null",
                details={"field": "acquisition.totp_version", "value": raw_version}
            )
        totp_version = raw_version

    timeout = DEFAULT_TIMEOUT
    raw_timeout = section.get("timeout")
    if raw_timeout is not None:
        if isinstance(raw_timeout, bool) or not isinstance(raw_timeout, (int, float)) or raw_timeout <= 0:
            raise ConfigError(
                "'acquisition.timeout' must be a positive number",
                details={"field": "acquisition.timeout", "value": raw_timeout}
            )
        timeout = float(raw_timeout)

    return AcquisitionConfig(
        totp_version=totp_version,
        download_secrets=_bool_field(
            section, "download_secrets", "acquisition.download_secrets", True
        ),
        verify_token=_bool_field(section, "verify_token", "acquisition.verify_token", True),
        timeout=timeout,
    )


def _parse_logging_config(section: dict[str, Any]) -> LoggingConfig:
    directory = None
    raw_directory = section.get("directory")
    if raw_directory is not None:
        if not isinstance(raw_directory, str) or not raw_directory.strip():
            raise ConfigError(
                "'logging.directory' must be a non-empty string or null",
                details={"field": "logging.directory"}
            )
        # Expand ~ and make absolute
        directory = Path(raw_directory.strip()).expanduser().resolve()

    level = _string_field(section, "level", "logging.level", "INFO").upper()
    if level not in LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    return LoggingConfig(directory=directory, level=level)
