# app/models/token_model.py
from pydantic import BaseModel

class SpotifyToken(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None   # Unix timestamp, None when unknown
    token_type: str = "Bearer"
    scope: str | None = None
