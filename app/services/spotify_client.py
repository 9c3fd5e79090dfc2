# app/services/spotify_client.py
import base64
import logging
import urllib.parse
from typing import Dict, List, Optional

import requests

from app.config.settings import (
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_HTTP_TIMEOUT,
)

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE = "https://api.spotify.com/v1"
AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"


class SpotifyApiError(Exception):
    """Upstream answered with a non-2xx status, or could not be reached."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(resp: requests.Response) -> str:
    """
    Spotify 的錯誤格式有兩種：
    - Web API: {"error": {"status": 404, "message": "Non existing id"}}
    - Accounts: {"error": "invalid_grant", "error_description": "Invalid authorization code"}
    """
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"Spotify HTTP {resp.status_code}"

    if not isinstance(data, dict):
        return resp.text or f"Spotify HTTP {resp.status_code}"

    err = data.get("error")
    if isinstance(err, dict) and err.get("message"):
        return err["message"]
    if data.get("error_description"):
        return data["error_description"]
    if isinstance(err, str) and err:
        return err
    return resp.text or f"Spotify HTTP {resp.status_code}"


class SpotifyClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    # --------------------------
    # OAuth (accounts.spotify.com)
    # --------------------------
    def _basic_auth_header(self) -> str:
        raw = f"{self.client_id}:{self.client_secret}".encode()
        return "Basic " + base64.b64encode(raw).decode()

    def authorize_url(self, scopes: List[str], state: str, show_dialog: bool = False) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(scopes),
            "state": state,
        }
        if show_dialog:
            params["show_dialog"] = "true"
        return AUTHORIZE_URL + "?" + urllib.parse.urlencode(params)

    def _token_request(self, data: Dict) -> Dict:
        try:
            r = requests.post(
                TOKEN_URL,
                headers={"Authorization": self._basic_auth_header()},
                data=data,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SpotifyApiError(502, f"Spotify token endpoint unreachable: {e}")

        if r.status_code != 200:
            raise SpotifyApiError(r.status_code, _error_message(r))

        # Spotify 前面的 proxy / gateway 可能回 200 + HTML
        try:
            token_data = r.json()
        except ValueError:
            raise SpotifyApiError(502, "Spotify token response is not JSON")

        if not isinstance(token_data, dict) or "access_token" not in token_data:
            raise SpotifyApiError(502, "Spotify token response has no access_token")
        return token_data

    def exchange_code(self, code: str) -> Dict:
        return self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })

    def refresh_access_token(self, refresh_token: str) -> Dict:
        return self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    # --------------------------
    # Web API (api.spotify.com/v1)
    # --------------------------
    def _call(
        self,
        method: str,
        access_token: str,
        path: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None,
    ) -> Optional[Dict]:
        url = f"{SPOTIFY_API_BASE}/{path}"
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            r = requests.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SpotifyApiError(502, f"Spotify API unreachable: {e}")

        if r.status_code >= 300:
            message = _error_message(r)
            logger.warning(f"Spotify {method} /{path} failed: {r.status_code} {message}")
            raise SpotifyApiError(r.status_code, message)

        # 204 No Content (nothing playing, playback commands)
        if r.status_code == 204 or not r.content:
            return None

        try:
            return r.json()
        except ValueError:
            # play/pause 有時回 200 + 非 JSON body
            return None

    def get_top_tracks(self, access_token: str, limit: int = 10) -> Dict:
        return self._call("GET", access_token, "me/top/tracks", params={"limit": limit}) or {}

    def get_currently_playing(self, access_token: str) -> Optional[Dict]:
        return self._call("GET", access_token, "me/player/currently-playing")

    def get_track(self, access_token: str, track_id: str) -> Dict:
        path = "tracks/" + urllib.parse.quote(track_id, safe="")
        return self._call("GET", access_token, path) or {}

    def pause(self, access_token: str) -> None:
        self._call("PUT", access_token, "me/player/pause")

    def play(self, access_token: str, uris: List[str]) -> None:
        self._call("PUT", access_token, "me/player/play", json={"uris": uris})


_cached_client = None

def get_spotify_client() -> SpotifyClient:
    global _cached_client

    if _cached_client is None:
        _cached_client = SpotifyClient(
            client_id=SPOTIFY_CLIENT_ID,
            client_secret=SPOTIFY_CLIENT_SECRET,
            redirect_uri=SPOTIFY_REDIRECT_URI,
            timeout=SPOTIFY_HTTP_TIMEOUT,
        )
    return _cached_client
