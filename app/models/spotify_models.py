# app/models/spotify_models.py
from pydantic import BaseModel
from typing import List, Optional


class TrackSummary(BaseModel):
    id: str
    name: str
    artist: str
    uri: str


class NowPlaying(BaseModel):
    name: str
    artist: str
    isPlaying: bool


class ListeningActions(BaseModel):
    pause: str
    play: str


class ListeningStateResponse(BaseModel):
    topTracks: List[TrackSummary]
    nowPlaying: Optional[NowPlaying] = None
    actions: ListeningActions
