"""
HTTP session helpers shared by the web-player components.

Every component talks to the web player through a requests.Session so
callers (and tests) can inject their own. Transport failures are wrapped
in NetworkError here, in one place.
"""

import requests

from spot_token.core.config import USER_AGENT
from spot_token.core.exceptions import NetworkError
from spot_token.core.logger import get_logger


logger = get_logger(__name__)

SP_DC_COOKIE_DOMAIN = ".spotify.com"


def create_session(user_agent: str = USER_AGENT, sp_dc: str | None = None) -> requests.Session:
    """
    Create a session carrying the browser identity of the web player.

    Args:
        user_agent: User-Agent header sent with every request.
        sp_dc: Optional sp_dc cookie. When present the token endpoint
               issues a token bound to that logged-in user.

    Returns:
        A configured requests.Session.
    """
    session = requests.Session()
    session.headers["User-Agent"] = user_agent
    if sp_dc:
        session.cookies.set("sp_dc", sp_dc, domain=SP_DC_COOKIE_DOMAIN, path="/")
    return session


def send(
    session: requests.Session,
    method: str,
    url: str,
    timeout: float,
    **kwargs
) -> requests.Response:
    """
    Issue a request, translating transport failures into NetworkError.

    HTTP error statuses are NOT raised here; callers inspect the status
    themselves because several endpoints carry meaning in error responses.

    Raises:
        NetworkError: On connection errors, timeouts and other
                      requests exceptions.
    """
    logger.debug(f"{method} {url}")
    try:
        return session.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as e:
        raise NetworkError(
            f"Request to {url} failed: {e}",
            details={"url": url, "method": method, "original_error": str(e)}
        ) from e
