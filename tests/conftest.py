"""Test configuration and fixtures"""

import logging
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from spot_token.core.logger import TqdmLoggingHandler
from spot_token.webplayer.secret_store import DEFAULT_SECRETS, SecretVersionStore


def make_response(status=200, json_data=None, headers=None, text=""):
    """Build a Mock shaped like requests.Response"""
    response = Mock(spec=requests.Response)
    response.status_code = status
    response.ok = 200 <= status < 300
    response.headers = headers or {}
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def store():
    """Secret store seeded with the built-in versions"""
    return SecretVersionStore(DEFAULT_SECRETS)


@pytest.fixture
def session():
    """Mock requests session; set session.request.return_value/side_effect per test"""
    return Mock(spec=requests.Session)


@pytest.fixture
def response_factory():
    """Factory for mock HTTP responses"""
    return make_response


@pytest.fixture(autouse=True)
def reset_logging():
    """Remove handlers left behind by tests that call setup_logging()"""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, (TqdmLoggingHandler, logging.FileHandler)):
            handler.close()
            root_logger.removeHandler(handler)
