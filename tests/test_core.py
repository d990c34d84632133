"""Test configuration loading, logging setup and the exception hierarchy"""

import logging
from pathlib import Path

import pytest

from spot_token.core.config import (
    SECRET_DICT_URL,
    SP_DC_ENV_VAR,
    Config,
    load_config,
)
from spot_token.core.exceptions import (
    ConfigError,
    SecretStoreError,
    SpotTokenError,
    TokenAcquisitionError,
    UnknownSecretVersionError,
)
from spot_token.core.logger import (
    ErrorOnlyFilter,
    TqdmLoggingHandler,
    setup_logging,
    shutdown_logging,
)


def write_config(directory: Path, content: str) -> Path:
    path = directory / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test load_config()"""

    @pytest.fixture(autouse=True)
    def no_env_override(self, monkeypatch):
        monkeypatch.delenv(SP_DC_ENV_VAR, raising=False)

    def test_missing_default_file_gives_defaults(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        assert load_config() == Config()

    def test_missing_explicit_file(self, temp_dir):
        with pytest.raises(ConfigError):
            load_config(temp_dir / "missing.yaml")

    def test_empty_file_gives_defaults(self, temp_dir):
        assert load_config(write_config(temp_dir, "")) == Config()

    def test_full_config(self, temp_dir):
        path = write_config(temp_dir, """
webplayer:
  token_url: "https://example.com/api/token"
  sp_dc: "  cookie  "
acquisition:
  totp_version: null
  download_secrets: false
  verify_token: false
  timeout: 3
logging:
  directory: "~/spot-logs"
  level: "debug"
""")
        config = load_config(path)

        assert config.webplayer.token_url == "https://example.com/api/token"
        assert config.webplayer.secrets_url == SECRET_DICT_URL
        assert config.webplayer.sp_dc == "cookie"
        assert config.acquisition.totp_version is None
        assert config.acquisition.download_secrets is False
        assert config.acquisition.verify_token is False
        assert config.acquisition.timeout == 3.0
        assert config.logging.directory == (Path.home() / "spot-logs").resolve()
        assert config.logging.level == "DEBUG"

    def test_env_override(self, temp_dir, monkeypatch):
        monkeypatch.setenv(SP_DC_ENV_VAR, "from-env")
        config = load_config(write_config(temp_dir, "webplayer:\n  sp_dc: from-file\n"))
        assert config.webplayer.sp_dc == "from-env"

    @pytest.mark.parametrize("content", [
        "- just\n- a list\n",
        "webplayer: 5\n",
        "webplayer:\n  token_url: ''\n",
        "webplayer:\n  sp_dc: 12\n",
        "acquisition:\n  totp_version: '61'\n",
        "acquisition:\n  totp_version: -1\n",
        "acquisition:\n  totp_version: true\n",
        "acquisition:\n  download_secrets: 'yes'\n",
        "acquisition:\n  timeout: 0\n",
        "logging:\n  level: LOUD\n",
        "webplayer: [unclosed\n",
    ])
    def test_invalid_config(self, temp_dir, content):
        with pytest.raises(ConfigError):
            load_config(write_config(temp_dir, content))


class TestLogging:
    """Test setup_logging()"""

    def test_console_only(self):
        setup_logging(None, "WARNING")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], TqdmLoggingHandler)
        assert handlers[0].level == logging.WARNING
        shutdown_logging()
        assert logging.getLogger().handlers == []

    def test_log_files(self, temp_dir):
        log_dir = temp_dir / "logs"
        setup_logging(log_dir, "INFO")

        logger = logging.getLogger("spot_token.test")
        logger.debug("debug line")
        logger.error("error line")
        shutdown_logging()

        full_log = next(log_dir.glob("log_full_*.log")).read_text(encoding="utf-8")
        error_log = next(log_dir.glob("log_errors_*.log")).read_text(encoding="utf-8")
        assert "debug line" in full_log
        assert "error line" in full_log
        assert "debug line" not in error_log
        assert "error line" in error_log

    def test_error_only_filter(self):
        def make(level):
            return logging.LogRecord("x", level, __file__, 1, "msg", None, None)

        error_filter = ErrorOnlyFilter()
        assert error_filter.filter(make(logging.ERROR))
        assert error_filter.filter(make(logging.CRITICAL))
        assert not error_filter.filter(make(logging.WARNING))


class TestExceptions:
    """Test the exception hierarchy"""

    def test_message_and_details(self):
        error = SpotTokenError("Something failed", details={"url": "https://example.com"})
        assert str(error) == "Something failed"
        assert error.details == {"url": "https://example.com"}
        assert SpotTokenError("x").details == {}

    def test_hierarchy(self):
        assert issubclass(UnknownSecretVersionError, SecretStoreError)
        assert issubclass(SecretStoreError, SpotTokenError)
        assert issubclass(ConfigError, SpotTokenError)

    def test_status_code(self):
        assert TokenAcquisitionError("No token", status_code=400).status_code == 400
