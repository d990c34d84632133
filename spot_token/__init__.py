"""
spot-token: Anonymous access tokens for the Spotify web player.

The web player obtains its access token from an unauthenticated endpoint
that only answers requests signed with a time-based one-time code. This
package reproduces that signing so other programs (a music player
backend, scripts, the bundled CLI) can obtain the same kind of token.

Architecture:
    totp/       - Base32 codec and RFC 4226/6238 one-time codes
    webplayer/  - Secret versions, server clock, token requests,
                  validation, acquisition orchestration, token cache
    core/       - Configuration, logging, exceptions
    cli.py      - Command-line interface

Usage:
    Command Line:
        spot-token token
        spot-token token --latest --no-verify --json
        spot-token secrets --refresh
        spot-token recommend 4cOdK2wGLETKBW3PvgPWqT

    Python API:
        from spot_token import get_access_token, get_recommend_song

        result = get_access_token(verify_token=False)
        payload = get_recommend_song(result.access_token, "4cOdK2wGLETKBW3PvgPWqT")

Dependencies:
    - requests: HTTP for every web-player endpoint
    - spotipy: Web API call used for token validation
    - pyyaml: Configuration file parsing
    - click / rich-click: CLI
    - tqdm: Progress-bar safe console logging
"""

__version__ = "0.1.0"
__author__ = "spot-token"
__license__ = "MIT"

from spot_token.core import (
    AcquisitionCancelledError,
    ClockUnavailableError,
    Config,
    ConfigError,
    NetworkError,
    SpotTokenError,
    TokenAcquisitionError,
    get_logger,
    load_config,
    setup_logging,
)
from spot_token.webplayer import (
    AcquireOptions,
    SecretVersionStore,
    TokenAcquirer,
    TokenCache,
    TokenResult,
    get_access_token,
    get_recommend_song,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
    # Exceptions
    "SpotTokenError",
    "ConfigError",
    "ClockUnavailableError",
    "NetworkError",
    "TokenAcquisitionError",
    "AcquisitionCancelledError",
    # Acquisition
    "AcquireOptions",
    "SecretVersionStore",
    "TokenAcquirer",
    "TokenCache",
    "TokenResult",
    "get_access_token",
    "get_recommend_song",
]
