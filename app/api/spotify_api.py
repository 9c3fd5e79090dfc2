# app/api/spotify_api.py
import logging

from fastapi import APIRouter, Depends

from app.models.spotify_auth_models import ErrorResponse, MessageResponse
from app.models.spotify_models import ListeningStateResponse
from app.services.playback_service import pause_playback, play_track
from app.services.spotify_client import SpotifyApiError, SpotifyClient, get_spotify_client
from app.services.spotify_token_service import TokenStore, get_token_store
from app.services.spotify_user_service import get_listening_state

router = APIRouter(responses={500: {"model": ErrorResponse}})

logger = logging.getLogger(__name__)


@router.get("", response_model=ListeningStateResponse)
async def listening_state(
    client: SpotifyClient = Depends(get_spotify_client),
    token_store: TokenStore = Depends(get_token_store),
):
    """
    Top 10 tracks + now playing + 可用的操作提示。
    """
    try:
        return await get_listening_state(client, token_store)
    except SpotifyApiError as e:
        logger.error(f"Error fetching listening state: {e.message}")
        raise


@router.put("/pause", response_model=MessageResponse)
def pause(
    client: SpotifyClient = Depends(get_spotify_client),
    token_store: TokenStore = Depends(get_token_store),
):
    try:
        message = pause_playback(client, token_store)
    except SpotifyApiError as e:
        logger.error(f"Error pausing playback: {e.message}")
        raise
    return {"message": message}


@router.put("/play/{track_id}", response_model=MessageResponse)
def play(
    track_id: str,
    client: SpotifyClient = Depends(get_spotify_client),
    token_store: TokenStore = Depends(get_token_store),
):
    """
    播放指定的 track（track_id 可從 GET /spotify 的 topTracks 拿）。
    """
    try:
        message = play_track(client, token_store, track_id)
    except SpotifyApiError as e:
        logger.error(f"Error playing track {track_id}: {e.message}")
        raise
    return {"message": message}
