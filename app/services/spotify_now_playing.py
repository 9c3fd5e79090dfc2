# app/services/spotify_now_playing.py
from typing import Optional
from app.models.spotify_models import NowPlaying

UNKNOWN_ARTIST = "Unknown artist"


def first_artist_name(item: dict) -> str:
    artists = item.get("artists") or []
    if artists and isinstance(artists[0], dict) and artists[0].get("name"):
        return artists[0]["name"]
    return UNKNOWN_ARTIST


def build_now_playing(payload: Optional[dict]) -> Optional[NowPlaying]:
    """
    Spotify Currently Playing 回傳 → NowPlaying。
    回傳 None 的情況：
    - 204 No Content（payload 是 None）
    - 有 body 但沒有 item（例如廣告、私人模式）
    """
    if not isinstance(payload, dict):
        return None

    item = payload.get("item")
    if not isinstance(item, dict) or not item.get("name"):
        return None

    return NowPlaying(
        name=item["name"],
        artist=first_artist_name(item),
        isPlaying=bool(payload.get("is_playing")),
    )
