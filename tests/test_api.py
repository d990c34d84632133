"""Test the bearer-token web-player helpers"""

from unittest.mock import patch

import pytest
import requests

from spot_token.core.exceptions import NetworkError, WebPlayerApiError
from spot_token.webplayer.api import (
    RecommendedPlaylist,
    extract_recommended_playlist,
    get_lyrics,
    get_recommend_song,
)

TRACK_ID = "4cOdK2wGLETKBW3PvgPWqT"

RECOMMEND_PAYLOAD = {
    "mediaItems": [
        {"uri": "spotify:playlist:37i9dQZF1E8UXBoz02kGID"},
        {"uri": "spotify:playlist:other"},
    ]
}


class TestGetRecommendSong:
    """Test the seed-to-playlist request"""

    def test_request(self, session, response_factory):
        session.request.return_value = response_factory(json_data=RECOMMEND_PAYLOAD)

        payload = get_recommend_song("tok", TRACK_ID, session=session, timeout=6)

        assert payload == RECOMMEND_PAYLOAD
        args, kwargs = session.request.call_args
        assert args == (
            "GET",
            f"https://spclient.wg.spotify.com/inspiredby-mix/v2/seed_to_playlist/spotify:track:{TRACK_ID}",
        )
        assert kwargs["params"] == {"response-format": "json"}
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["timeout"] == 6

    @pytest.mark.parametrize("token,track_id", [("", TRACK_ID), ("tok", "")])
    def test_missing_arguments(self, session, token, track_id):
        with pytest.raises(ValueError):
            get_recommend_song(token, track_id, session=session)
        session.request.assert_not_called()

    def test_http_error(self, session, response_factory):
        session.request.return_value = response_factory(status=401, text="Unauthorized")

        with pytest.raises(WebPlayerApiError) as exc_info:
            get_recommend_song("tok", TRACK_ID, session=session)

        assert exc_info.value.message == "HTTP 401: Unauthorized"
        assert exc_info.value.status_code == 401

    def test_invalid_json(self, session, response_factory):
        session.request.return_value = response_factory(json_data=None)
        with pytest.raises(WebPlayerApiError):
            get_recommend_song("tok", TRACK_ID, session=session)

    def test_network_error(self, session):
        session.request.side_effect = requests.ConnectionError("offline")
        with pytest.raises(NetworkError):
            get_recommend_song("tok", TRACK_ID, session=session)

    @patch("spot_token.webplayer.api.requests.Session")
    def test_own_session_is_closed(self, mock_session_cls, response_factory):
        """Without a caller session, a temporary one is opened and closed"""
        session_cm = mock_session_cls.return_value
        session_cm.__exit__.return_value = False
        own_session = session_cm.__enter__.return_value
        own_session.request.return_value = response_factory(json_data=RECOMMEND_PAYLOAD)

        assert get_recommend_song("tok", TRACK_ID) == RECOMMEND_PAYLOAD

        own_session.request.assert_called_once()
        session_cm.__exit__.assert_called_once()


class TestExtractRecommendedPlaylist:
    """Test picking the playlist out of a recommendation"""

    def test_first_media_item(self):
        assert extract_recommended_playlist(RECOMMEND_PAYLOAD) == RecommendedPlaylist(
            playlist_uri="spotify:playlist:37i9dQZF1E8UXBoz02kGID",
            playlist_id="37i9dQZF1E8UXBoz02kGID",
        )

    @pytest.mark.parametrize("payload", [
        None,
        {},
        {"mediaItems": []},
        {"mediaItems": [{}]},
        {"mediaItems": [{"uri": "no-colon"}]},
        {"mediaItems": [{"uri": "spotify:playlist:"}]},
    ])
    def test_missing_playlist(self, payload):
        with pytest.raises(WebPlayerApiError):
            extract_recommended_playlist(payload)


class TestGetLyrics:
    """Test the lyrics request"""

    def test_request(self, session, response_factory):
        body = {"lyrics": {"syncType": "LINE_SYNCED", "lines": [{"startTimeMs": "1000", "words": "Hi"}]}}
        session.request.return_value = response_factory(json_data=body)

        assert get_lyrics("tok", TRACK_ID, session=session) == body

        args, kwargs = session.request.call_args
        assert args[1] == f"https://spclient.wg.spotify.com/color-lyrics/v2/track/{TRACK_ID}"
        assert kwargs["params"] == {"format": "json", "market": "from_token"}
        assert kwargs["headers"]["App-Platform"] == "WebPlayer"

    def test_no_lyrics(self, session, response_factory):
        session.request.return_value = response_factory(status=404)
        assert get_lyrics("tok", TRACK_ID, session=session) is None

    def test_http_error(self, session, response_factory):
        session.request.return_value = response_factory(status=500, text="boom")
        with pytest.raises(WebPlayerApiError) as exc_info:
            get_lyrics("tok", TRACK_ID, session=session)
        assert exc_info.value.status_code == 500
