# app/api/spotify_auth_api.py
import logging
from typing import Optional

from fastapi import APIRouter, Cookie, HTTPException, Depends, Query, Response
from fastapi.responses import RedirectResponse

from app.models.spotify_auth_models import ErrorResponse, MessageResponse
from app.services.oauth_state_service import (
    STATE_COOKIE_NAME,
    STATE_TTL_SECONDS,
    InvalidStateError,
    create_state_token,
    verify_state_token,
)
from app.services.spotify_client import SpotifyClient, get_spotify_client
from app.services.spotify_token_service import (
    TokenStore,
    get_token_store,
    token_from_response,
)

router = APIRouter(responses={500: {"model": ErrorResponse}})

logger = logging.getLogger(__name__)

SCOPES = [
    "user-top-read",
    "user-read-currently-playing",
    "user-modify-playback-state",
]


@router.get(
    "/auth",
    summary="Spotify Login: redirect to Spotify",
    description="建立 Spotify 授權 URL（含 CSRF state），直接 302 redirect 過去。",
)
def spotify_auth(
    show_dialog: bool = Query(False, description="強制 Spotify 再顯示一次授權畫面"),
    client: SpotifyClient = Depends(get_spotify_client),
):
    if not client.client_id or not client.redirect_uri:
        raise HTTPException(status_code=500, detail="Spotify env vars not configured")

    state = create_state_token()
    url = client.authorize_url(SCOPES, state=state, show_dialog=show_dialog)
    response = RedirectResponse(url, status_code=302)
    # state 綁在發起 flow 的瀏覽器上，callback 要帶回同一個 cookie
    response.set_cookie(
        STATE_COOKIE_NAME,
        state,
        max_age=STATE_TTL_SECONDS,
        path="/spotify/callback",
        httponly=True,
        samesite="lax",
        secure=client.redirect_uri.startswith("https://"),
    )
    return response


@router.get(
    "/callback",
    summary="Spotify OAuth Callback",
    description=(
        "Spotify 授權完成後會 redirect 到此 endpoint，"
        "並附上 code/state。驗證 state 後用 code 交換 access/refresh token。"
    ),
    response_model=MessageResponse,
)
def spotify_callback(
    response: Response,
    code: Optional[str] = Query(None, description="Spotify 回傳的授權 code"),
    state: Optional[str] = Query(None, description="我們在 /auth 送出去的 state"),
    error: Optional[str] = Query(None, description="使用者拒絕授權時 Spotify 會帶 error"),
    state_cookie: Optional[str] = Cookie(None, alias=STATE_COOKIE_NAME),
    client: SpotifyClient = Depends(get_spotify_client),
    token_store: TokenStore = Depends(get_token_store),
):
    # 1. 使用者在 Spotify 按了取消
    if error:
        raise HTTPException(status_code=400, detail=f"Spotify auth error: {error}")

    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    # 2. 確認是我們自己發出去的 flow
    try:
        verify_state_token(state, state_cookie)
    except InvalidStateError as e:
        logger.warning(f"Rejected Spotify callback: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    response.delete_cookie(STATE_COOKIE_NAME, path="/spotify/callback")

    # 3. code → token（失敗會丟 SpotifyApiError，token store 不會被動到）
    token_data = client.exchange_code(code)

    # 4. 存到 token store
    token_store.set(token_from_response(token_data))
    logger.info("Spotify authorization completed")

    return {"message": "Authenticated! You can now use /spotify."}
