"""
Token endpoint requests for the web player.

The endpoint issues an access token when the request carries a valid
TOTP for one of the published secret versions:

    GET https://open.spotify.com/api/token
        ?reason=transport&productType=web-player
        &totp=123456&totpServer=123456&totpVer=61

Two negotiation paths exist, selected by the 'reason' parameter. The
orchestrator tries 'transport' first and falls back to 'init'; this
module only builds parameters and performs single requests.

Secret versions below 10 belong to an older protocol that also expects
server/client time and a synthetic build identifier (legacy parameters).
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import requests

from spot_token.core.config import TOKEN_URL
from spot_token.core.logger import get_logger
from spot_token.webplayer.session import send


logger = get_logger(__name__)

REASON_TRANSPORT = "transport"
REASON_INIT = "init"
PRODUCT_TYPE = "web-player"

# Secret versions below this use the legacy parameter set
LEGACY_VERSION_LIMIT = 10

TOKEN_REQUEST_HEADERS = {
    "Accept": "application/json",
    "App-Platform": "WebPlayer",
}


@dataclass(frozen=True)
class TokenResponse:
    """
    Raw outcome of a single token request.

    Attributes:
        ok: True for a 2xx status.
        status: HTTP status code.
        body: Parsed JSON body, or an empty dict if the body was not a
              JSON object.
    """
    ok: bool
    status: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def access_token(self) -> str:
        token = self.body.get("accessToken")
        return token if isinstance(token, str) else ""

    @property
    def has_token(self) -> bool:
        return self.ok and bool(self.access_token)


@dataclass(frozen=True)
class TokenResult:
    """
    Outcome of a successful acquisition.

    Attributes:
        access_token: Opaque bearer token.
        expires_at: Expiry in epoch seconds, if the endpoint reported one.
        client_id: Client id the token was issued for ("" if unknown).
        is_valid: Result of the optional validation call, or None when
                  validation was skipped.
    """
    access_token: str
    expires_at: int | None
    client_id: str
    is_valid: bool | None = None

    @classmethod
    def from_token_body(cls, body: dict[str, Any], is_valid: bool | None = None) -> "TokenResult":
        """
        Build a result from a token endpoint JSON body.

        accessTokenExpirationTimestampMs is converted to whole seconds.
        """
        expiration_ms = body.get("accessTokenExpirationTimestampMs")
        expires_at = int(expiration_ms) // 1000 if expiration_ms else None
        return cls(
            access_token=body.get("accessToken") or "",
            expires_at=expires_at,
            client_id=body.get("clientId") or "",
            is_valid=is_valid,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the result with the web player's field names."""
        return {
            "accessToken": self.access_token,
            "expiresAt": self.expires_at,
            "clientId": self.client_id,
            "isValid": self.is_valid,
        }


def build_legacy_params(server_time: int, client_time_ms: int) -> dict[str, Any]:
    """
    Build the extra parameters expected by secret versions below 10.

    Args:
        server_time: Server time in epoch seconds.
        client_time_ms: Local time in epoch milliseconds.

    Returns:
        Dict with sTime, cTime, buildDate (YYYY-MM-DD, UTC) and buildVer,
        e.g. "web-player_2024-05-01_1714521600000_1a2b3c4d".
    """
    build_date = datetime.fromtimestamp(server_time, tz=timezone.utc).strftime("%Y-%m-%d")
    build_ver = f"{PRODUCT_TYPE}_{build_date}_{server_time * 1000}_{secrets.token_hex(4)}"
    return {
        "sTime": server_time,
        "cTime": client_time_ms,
        "buildDate": build_date,
        "buildVer": build_ver,
    }


def build_token_params(
    totp: str,
    version: int,
    server_time: int,
    client_time_ms: int,
    reason: str = REASON_TRANSPORT
) -> dict[str, Any]:
    """
    Build the query parameters for a token request.

    Args:
        totp: Code generated from the derived secret and server time.
        version: Secret version the code was generated with.
        server_time: Server time in epoch seconds.
        client_time_ms: Local time in epoch milliseconds.
        reason: Negotiation path, 'transport' or 'init'.

    Returns:
        Query parameter dict. totpServer repeats totp.
    """
    params: dict[str, Any] = {
        "reason": reason,
        "productType": PRODUCT_TYPE,
        "totp": totp,
        "totpServer": totp,
        "totpVer": version,
    }
    if version < LEGACY_VERSION_LIMIT:
        params.update(build_legacy_params(server_time, client_time_ms))
    return params


class TokenRequester:
    """
    Performs single GET requests against the token endpoint.

    No retry happens here. The transport -> init fallback is the caller's
    decision, see spot_token.webplayer.acquire.
    """

    def __init__(
        self,
        session: requests.Session,
        url: str = TOKEN_URL,
        timeout: float = 10.0
    ) -> None:
        self._session = session
        self.url = url
        self.timeout = timeout

    def request(self, params: dict[str, Any]) -> TokenResponse:
        """
        Request a token.

        Args:
            params: Query parameters from build_token_params().

        Returns:
            TokenResponse with ok flag, status and parsed JSON body.

        Raises:
            NetworkError: On transport failure.
        """
        response = send(
            self._session, "GET", self.url, self.timeout,
            params={key: str(value) for key, value in params.items()},
            headers=TOKEN_REQUEST_HEADERS,
        )

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        logger.debug(
            f"Token response reason={params.get('reason')} status={response.status_code} "
            f"token={'yes' if body.get('accessToken') else 'no'}"
        )
        return TokenResponse(ok=response.ok, status=response.status_code, body=body)
