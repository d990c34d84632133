"""
Reusable access token for server-side callers.

Acquiring a token costs several round trips, so callers that need a token
repeatedly (e.g. a recommendation endpoint) keep one in a TokenCache. The
cache refreshes shortly before expiry and lets only one acquisition run
at a time; concurrent callers wait for it and share its result.
"""

import threading
import time
from dataclasses import replace
from typing import Callable

from spot_token.core.logger import get_logger
from spot_token.webplayer.acquire import AcquireOptions, TokenAcquirer
from spot_token.webplayer.token import TokenResult


logger = get_logger(__name__)

# Refresh this many seconds before the reported expiry
REFRESH_BUFFER_SECONDS = 60

# Assumed lifetime when the endpoint reports no expiry
FALLBACK_LIFETIME_SECONDS = 1800


class TokenCache:
    """
    Single-flight cache around a TokenAcquirer.

    Attributes:
        refresh_buffer: Seconds before expiry at which a token is renewed.
        fallback_lifetime: Lifetime assumed for tokens without an expiry.

    Example:
        cache = TokenCache(acquirer)
        token = cache.get_token()      # acquires
        token = cache.get_token()      # cached
    """

    def __init__(
        self,
        acquirer: TokenAcquirer,
        refresh_buffer: int = REFRESH_BUFFER_SECONDS,
        fallback_lifetime: int = FALLBACK_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
        options: AcquireOptions | None = None
    ) -> None:
        self._acquirer = acquirer
        self.refresh_buffer = refresh_buffer
        self.fallback_lifetime = fallback_lifetime
        self._clock = clock
        # Cached tokens skip validation, they are used straight away
        self._options = replace(options or acquirer.default_options, verify_token=False)
        self._lock = threading.Lock()
        # (token, expires_at), always replaced as one tuple
        self._entry: tuple[str, float] | None = None

    def _fresh_token(self) -> str | None:
        entry = self._entry
        if entry is None:
            return None
        token, expires_at = entry
        if token and expires_at - self.refresh_buffer > self._clock():
            return token
        return None

    def get_token(self) -> str:
        """
        Return a valid access token, acquiring a new one when needed.

        Raises:
            SpotTokenError: Whatever the acquisition raises. The cache is
                            left empty in that case.
        """
        token = self._fresh_token()
        if token:
            return token

        with self._lock:
            # Another caller may have refreshed while we waited
            token = self._fresh_token()
            if token:
                return token

            self._entry = None
            result: TokenResult = self._acquirer.get_access_token(self._options)

            if result.expires_at:
                expires_at = float(result.expires_at)
            else:
                expires_at = self._clock() + self.fallback_lifetime
            self._entry = (result.access_token, expires_at)
            logger.debug(f"Cached access token until {int(expires_at)}")
            return result.access_token

    def invalidate(self) -> None:
        """Drop the cached token so the next call acquires a new one."""
        with self._lock:
            self._entry = None
