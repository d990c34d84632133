"""
Authenticated web-player endpoints used with an acquired token.

These are plain bearer-token GET requests against the web player's
internal "spclient" host:
    - Seed-to-playlist recommendations for a track
    - Time-synced lyrics for a track

Usage:
    token = cache.get_token()
    payload = get_recommend_song(token, "4cOdK2wGLETKBW3PvgPWqT")
    playlist = extract_recommended_playlist(payload)
    print(playlist.playlist_uri)
"""

from dataclasses import dataclass
from typing import Any

import requests

from spot_token.core.config import DEFAULT_TIMEOUT, USER_AGENT
from spot_token.core.exceptions import WebPlayerApiError
from spot_token.core.logger import get_logger
from spot_token.webplayer.session import send


logger = get_logger(__name__)

SPCLIENT_URL = "https://spclient.wg.spotify.com"
RECOMMEND_URL = (
    SPCLIENT_URL + "/inspiredby-mix/v2/seed_to_playlist/spotify:track:{track_id}"
)
LYRICS_URL = SPCLIENT_URL + "/color-lyrics/v2/track/{track_id}"


@dataclass(frozen=True)
class RecommendedPlaylist:
    """
    Playlist recommended for a seed track.

    Attributes:
        playlist_uri: Full Spotify URI, e.g. "spotify:playlist:37i9dQZF1E8..."
        playlist_id: The id segment of the URI.
    """
    playlist_uri: str
    playlist_id: str


def _require(token: str, track_id: str) -> None:
    if not token:
        raise ValueError("Missing Spotify access token")
    if not track_id:
        raise ValueError("Missing trackId")


def _get(
    session: requests.Session | None,
    url: str,
    timeout: float,
    headers: dict[str, str],
    params: dict[str, str]
) -> requests.Response:
    if session is not None:
        return send(session, "GET", url, timeout, headers=headers, params=params)
    with requests.Session() as own_session:
        return send(own_session, "GET", url, timeout, headers=headers, params=params)


def get_recommend_song(
    token: str,
    track_id: str,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT
) -> Any:
    """
    Fetch the seed-to-playlist recommendation for a track.

    Args:
        token: Web-player access token.
        track_id: Spotify track id (base62, no URI prefix).
        session: Optional HTTP session; without one a session is opened
                 for this request and closed afterwards.
        timeout: Request timeout in seconds.

    Returns:
        The JSON body, unmodified.

    Raises:
        ValueError: If token or track_id is empty.
        NetworkError: On transport failure.
        WebPlayerApiError: On a non-2xx response (status and body text
                           are in the message).
    """
    _require(token, track_id)

    url = RECOMMEND_URL.format(track_id=track_id)
    response = _get(
        session, url, timeout,
        headers={"User-Agent": USER_AGENT, "Authorization": f"Bearer {token}"},
        params={"response-format": "json"},
    )
    logger.debug(f"{url} -> HTTP {response.status_code}")
    if not response.ok:
        logger.error(f"getRecommendSong failed: HTTP {response.status_code}")
        raise WebPlayerApiError(
            f"HTTP {response.status_code}: {response.text}",
            details={"track_id": track_id},
            status_code=response.status_code
        )
    try:
        return response.json()
    except ValueError as e:
        raise WebPlayerApiError(
            "Recommendation response is not valid JSON",
            details={"track_id": track_id, "original_error": str(e)},
            status_code=response.status_code
        ) from e


def extract_recommended_playlist(payload: Any) -> RecommendedPlaylist:
    """
    Pull the recommended playlist out of a seed-to-playlist response.

    The playlist is the URI of the first entry in 'mediaItems'; its id is
    the segment after the last ':'.

    Raises:
        WebPlayerApiError: If the payload has no usable playlist URI.
    """
    media_items = payload.get("mediaItems") if isinstance(payload, dict) else None
    media_item = media_items[0] if isinstance(media_items, list) and media_items else None
    playlist_uri = media_item.get("uri") if isinstance(media_item, dict) else None

    if not isinstance(playlist_uri, str) or ":" not in playlist_uri:
        raise WebPlayerApiError("Recommendation response missing playlist data")

    playlist_id = playlist_uri.rsplit(":", 1)[1]
    if not playlist_id:
        raise WebPlayerApiError("Recommendation response missing playlist data")
    return RecommendedPlaylist(playlist_uri=playlist_uri, playlist_id=playlist_id)


def get_lyrics(
    token: str,
    track_id: str,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT
) -> Any | None:
    """
    Fetch time-synced lyrics for a track.

    Returns:
        The JSON body, or None when the track has no lyrics (HTTP 404).

    Raises:
        ValueError: If token or track_id is empty.
        NetworkError: On transport failure.
        WebPlayerApiError: On any other non-2xx response.
    """
    _require(token, track_id)

    url = LYRICS_URL.format(track_id=track_id)
    response = _get(
        session, url, timeout,
        headers={
            "User-Agent": USER_AGENT,
            "Authorization": f"Bearer {token}",
            "App-Platform": "WebPlayer",
        },
        params={"format": "json", "market": "from_token"},
    )
    logger.debug(f"{url} -> HTTP {response.status_code}")
    if response.status_code == 404:
        logger.info(f"No lyrics for track {track_id}")
        return None
    if not response.ok:
        raise WebPlayerApiError(
            f"HTTP {response.status_code}: {response.text}",
            details={"track_id": track_id},
            status_code=response.status_code
        )
    try:
        return response.json()
    except ValueError as e:
        raise WebPlayerApiError(
            "Lyrics response is not valid JSON",
            details={"track_id": track_id, "original_error": str(e)},
            status_code=response.status_code
        ) from e
