import logging
import threading
import time
from typing import Callable, Optional

from app.config.settings import (
    SPOTIFY_ACCESS_TOKEN,
    SPOTIFY_REFRESH_TOKEN,
    TOKEN_REFRESH_MARGIN,
)
from app.models.token_model import SpotifyToken
from app.services.spotify_client import SpotifyApiError, SpotifyClient, get_spotify_client

logger = logging.getLogger(__name__)


class NotAuthenticatedError(Exception):
    """No Spotify tokens stored yet: /spotify/auth has not been completed."""


class TokenRefreshError(SpotifyApiError):
    pass


def token_from_response(token_data: dict, previous: Optional[SpotifyToken] = None, now: Optional[int] = None) -> SpotifyToken:
    """
    Spotify token endpoint 回傳 → SpotifyToken。
    refresh 時 Spotify 有時不會回 refresh token，要沿用舊的。
    """
    now = int(time.time()) if now is None else now

    refresh_token = token_data.get("refresh_token")
    if not refresh_token and previous is not None:
        refresh_token = previous.refresh_token

    expires_in = token_data.get("expires_in")
    return SpotifyToken(
        access_token=token_data["access_token"],
        refresh_token=refresh_token,
        expires_at=now + int(expires_in) if expires_in is not None else None,
        token_type=token_data.get("token_type", "Bearer"),
        scope=token_data.get("scope"),
    )


class TokenStore:
    """Holder of the single access/refresh token pair this service acts with."""

    def get(self) -> Optional[SpotifyToken]:
        raise NotImplementedError

    def set(self, token: SpotifyToken) -> None:
        raise NotImplementedError

    def refresh(self) -> SpotifyToken:
        raise NotImplementedError

    def get_valid_access_token(self) -> str:
        raise NotImplementedError


class InMemoryTokenStore(TokenStore):
    def __init__(
        self,
        client: SpotifyClient,
        token: Optional[SpotifyToken] = None,
        refresh_margin: int = 30,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.refresh_margin = refresh_margin
        self.clock = clock
        self._token = token
        self._lock = threading.RLock()

    def get(self) -> Optional[SpotifyToken]:
        with self._lock:
            return self._token

    def set(self, token: SpotifyToken) -> None:
        with self._lock:
            self._token = token

    def refresh(self) -> SpotifyToken:
        with self._lock:
            current = self._token
            if current is None or not current.refresh_token:
                raise NotAuthenticatedError("Spotify not linked. Visit /spotify/auth first.")

            try:
                token_data = self.client.refresh_access_token(current.refresh_token)
            except SpotifyApiError as e:
                # 失敗就保留原本的 token
                logger.error(f"Error refreshing Spotify token: {e.status_code} {e.message}")
                raise TokenRefreshError(e.status_code, f"Token refresh failed: {e.message}")

            self._token = token_from_response(token_data, previous=current, now=int(self.clock()))
            logger.info("Spotify access token refreshed")
            return self._token

    def is_expiring(self, token: SpotifyToken) -> bool:
        # 不知道什麼時候過期 → 能 refresh 就當作已過期
        if token.expires_at is None:
            return bool(token.refresh_token)
        return token.expires_at <= self.clock() + self.refresh_margin

    def get_valid_access_token(self) -> str:
        with self._lock:
            token = self._token
            if token is None:
                raise NotAuthenticatedError("Spotify not linked. Visit /spotify/auth first.")

            if self.is_expiring(token):
                token = self.refresh()

            return token.access_token


_cached_store = None

def get_token_store() -> TokenStore:
    global _cached_store

    if _cached_store is None:
        seed = None
        if SPOTIFY_ACCESS_TOKEN or SPOTIFY_REFRESH_TOKEN:
            seed = SpotifyToken(
                access_token=SPOTIFY_ACCESS_TOKEN or "",
                refresh_token=SPOTIFY_REFRESH_TOKEN,
            )
        _cached_store = InMemoryTokenStore(
            get_spotify_client(),
            token=seed,
            refresh_margin=TOKEN_REFRESH_MARGIN,
        )
    return _cached_store
