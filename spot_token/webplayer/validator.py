"""
Validation of web-player access tokens against the Spotify Web API.

A token is checked by calling the "current user" endpoint (GET /v1/me)
through spotipy. Anonymous web-player tokens are not bound to a user, so
the API answers 401 "Valid user authentication required" for a token it
otherwise accepts; that specific answer counts as valid.
"""

import requests
import spotipy

from spot_token.core.exceptions import NetworkError
from spot_token.core.logger import get_logger


logger = get_logger(__name__)

# 401 message meaning "token accepted, no user attached"
ANONYMOUS_TOKEN_MESSAGE = "valid user authentication required"


class TokenValidator:
    """
    Checks whether the Web API accepts an access token.

    spotipy is used with retries disabled: the validation result must
    reflect a single round trip.

    Attributes:
        timeout: Request timeout in seconds.
    """

    def __init__(self, timeout: float = 10.0, user_agent: str | None = None) -> None:
        self.timeout = timeout
        self.user_agent = user_agent

    def _client(
        self,
        access_token: str,
        client_id: str | None,
        session: requests.Session
    ) -> spotipy.Spotify:
        if self.user_agent:
            session.headers["User-Agent"] = self.user_agent
        if client_id:
            session.headers["Client-Id"] = client_id
        return spotipy.Spotify(
            auth=access_token,
            requests_session=session,
            requests_timeout=self.timeout,
            retries=0,
            status_retries=0,
        )

    def is_valid(self, access_token: str, client_id: str | None = None) -> bool:
        """
        Check a token against the current user endpoint.

        Args:
            access_token: Bearer token to check.
            client_id: Client id the token was issued for, sent as the
                       Client-Id header when present.

        Returns:
            True on 200, or on 401 with the anonymous-token message
            (any case). False for any other status or an empty token.

        Raises:
            NetworkError: On transport failure.
        """
        if not access_token:
            return False

        try:
            with requests.Session() as session:
                self._client(access_token, client_id, session).current_user()
        except spotipy.SpotifyException as e:
            if e.http_status == 401 and ANONYMOUS_TOKEN_MESSAGE in str(e.msg or "").lower():
                logger.debug("Token accepted (anonymous, no user attached)")
                return True
            logger.debug(f"Token rejected: HTTP {e.http_status}")
            return False
        except requests.RequestException as e:
            raise NetworkError(
                f"Token validation request failed: {e}",
                details={"original_error": str(e)}
            ) from e

        return True
