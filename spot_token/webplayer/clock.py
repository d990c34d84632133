"""
Server clock for TOTP generation.

The token endpoint rejects codes computed against a clock that drifts
from its own, so the local clock is never trusted. Instead the time is
read from the Date header of a HEAD request to the web player.
"""

from datetime import timezone
from email.utils import parsedate_to_datetime

import requests

from spot_token.core.config import SERVER_TIME_URL
from spot_token.core.exceptions import ClockUnavailableError, NetworkError
from spot_token.core.logger import get_logger
from spot_token.webplayer.session import send


logger = get_logger(__name__)


def parse_http_date(value: str) -> int:
    """
    Convert an HTTP Date header to whole seconds since the epoch.

    Raises:
        ClockUnavailableError: If the value cannot be parsed.
    """
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError) as e:
        raise ClockUnavailableError(
            "Unable to parse server time",
            details={"date_header": value, "original_error": str(e)}
        ) from e
    if parsed is None:
        raise ClockUnavailableError(
            "Unable to parse server time",
            details={"date_header": value}
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


class ServerClock:
    """
    Canonical time source backed by a remote Date header.

    Attributes:
        url: Page requested with HEAD. Any response with a Date header works.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        session: requests.Session,
        url: str = SERVER_TIME_URL,
        timeout: float = 10.0
    ) -> None:
        self._session = session
        self.url = url
        self.timeout = timeout

    def now(self) -> int:
        """
        Return the server's current time in epoch seconds.

        Raises:
            ClockUnavailableError: If the time source is unreachable, or the
                                   response has no parsable Date header.
        """
        try:
            response = send(self._session, "HEAD", self.url, self.timeout)
        except NetworkError as e:
            raise ClockUnavailableError(
                f"Time source unreachable: {e.message}",
                details={"url": self.url, "original_error": e.details.get("original_error")}
            ) from e

        date_header = response.headers.get("Date")
        if not date_header:
            raise ClockUnavailableError(
                "Missing Date header in server response",
                details={"url": self.url, "status_code": response.status_code}
            )

        timestamp = parse_http_date(date_header)
        logger.debug(f"Server time {timestamp} ({date_header})")
        return timestamp
