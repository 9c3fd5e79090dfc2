# app/services/playback_service.py
import logging

from app.services.spotify_client import SpotifyApiError, SpotifyClient
from app.services.spotify_token_service import TokenStore

logger = logging.getLogger(__name__)


def pause_playback(client: SpotifyClient, token_store: TokenStore) -> str:
    access_token = token_store.get_valid_access_token()
    client.pause(access_token)
    return "Playback paused."


def play_track(client: SpotifyClient, token_store: TokenStore, track_id: str) -> str:
    """
    1. 先查 track 拿到 uri + name（查不到就不會送 play）
    2. 再叫 Spotify 播放該 uri
    """
    access_token = token_store.get_valid_access_token()

    track = client.get_track(access_token, track_id)
    uri = track.get("uri")
    if not uri:
        raise SpotifyApiError(404, f"Track {track_id} has no playable uri")

    client.play(access_token, [uri])
    logger.info(f"Started playback of track {track_id}")
    return f"Playing: {track.get('name', track_id)}"
