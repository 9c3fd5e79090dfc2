# app/services/spotify_user_service.py
import asyncio
from typing import Dict, List

from starlette.concurrency import run_in_threadpool

from app.models.spotify_models import ListeningActions, ListeningStateResponse, TrackSummary
from app.services.spotify_client import SpotifyClient
from app.services.spotify_now_playing import build_now_playing, first_artist_name
from app.services.spotify_token_service import TokenStore

TOP_TRACKS_LIMIT = 10

LISTENING_ACTIONS = ListeningActions(
    pause="PUT /spotify/pause",
    play="PUT /spotify/play/{trackId} (replace {trackId} with a track ID from topTracks)",
)


def shape_top_tracks(data: Dict, limit: int = TOP_TRACKS_LIMIT) -> List[TrackSummary]:
    """Keep Spotify's ranking; drop items that can't be played back (local files)."""
    tracks = []
    for track in data.get("items") or []:
        if len(tracks) >= limit:
            break
        if not isinstance(track, dict):
            continue
        if not track.get("id") or not track.get("uri") or not track.get("name"):
            continue

        tracks.append(TrackSummary(
            id=track["id"],
            name=track["name"],
            artist=first_artist_name(track),
            uri=track["uri"],
        ))
    return tracks


async def get_listening_state(client: SpotifyClient, token_store: TokenStore) -> ListeningStateResponse:
    access_token = await run_in_threadpool(token_store.get_valid_access_token)

    # 兩個 request 互不相依 → 同時打；任何一個失敗整個 request 失敗
    top_data, now_playing_data = await asyncio.gather(
        run_in_threadpool(client.get_top_tracks, access_token, TOP_TRACKS_LIMIT),
        run_in_threadpool(client.get_currently_playing, access_token),
    )

    return ListeningStateResponse(
        topTracks=shape_top_tracks(top_data),
        nowPlaying=build_now_playing(now_playing_data),
        actions=LISTENING_ACTIONS,
    )
