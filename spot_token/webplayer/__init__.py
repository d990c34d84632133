"""
Spotify web-player token acquisition.

This module reproduces the web player's request signing so an anonymous
access token can be obtained without an OAuth application:

    secret_store.py  Secret versions, derivation, remote refresh
    clock.py         Server time from a Date header
    token.py         Token endpoint parameters and requests
    validator.py     Web API check of an obtained token
    acquire.py       The full acquisition sequence
    cache.py         Token reuse until shortly before expiry
    api.py           Bearer-token helpers (recommendations, lyrics)
"""

from spot_token.webplayer.acquire import (
    AcquireOptions,
    TokenAcquirer,
    get_access_token,
    get_default_acquirer,
)
from spot_token.webplayer.api import (
    RecommendedPlaylist,
    extract_recommended_playlist,
    get_lyrics,
    get_recommend_song,
)
from spot_token.webplayer.cache import TokenCache
from spot_token.webplayer.clock import ServerClock
from spot_token.webplayer.secret_store import (
    DEFAULT_SECRETS,
    CipherEntry,
    DerivedSecret,
    RefreshOutcome,
    SecretVersionStore,
    derive_secret,
    refresh_secrets,
    resolve_version,
)
from spot_token.webplayer.session import create_session
from spot_token.webplayer.token import TokenRequester, TokenResponse, TokenResult
from spot_token.webplayer.validator import TokenValidator

__all__ = [
    # Acquisition
    "AcquireOptions",
    "TokenAcquirer",
    "get_access_token",
    "get_default_acquirer",
    "TokenCache",
    # Components
    "SecretVersionStore",
    "CipherEntry",
    "DerivedSecret",
    "RefreshOutcome",
    "DEFAULT_SECRETS",
    "derive_secret",
    "refresh_secrets",
    "resolve_version",
    "ServerClock",
    "TokenRequester",
    "TokenResponse",
    "TokenResult",
    "TokenValidator",
    "create_session",
    # Helpers
    "get_recommend_song",
    "get_lyrics",
    "extract_recommended_playlist",
    "RecommendedPlaylist",
]
