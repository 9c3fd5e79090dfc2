# app/services/oauth_state_service.py
import secrets
import threading
import time
import jwt
from app.config.settings import STATE_SECRET

STATE_ALGORITHM = "HS256"
STATE_TTL_SECONDS = 600  # state 有效 10 分鐘
STATE_PURPOSE = "spotify_oauth_state"
STATE_COOKIE_NAME = "spotify_oauth_state"

# 發出去但還沒用過的 nonce → 過期時間
_pending_nonces = {}
_pending_lock = threading.Lock()


class InvalidStateError(Exception):
    pass


def _drop_expired_nonces(now: int) -> None:
    expired = [n for n, exp in _pending_nonces.items() if exp < now]
    for n in expired:
        del _pending_nonces[n]


def create_state_token(secret: str = STATE_SECRET, now: int | None = None) -> str:
    """
    產生 OAuth state：帶 nonce + exp 的簽章 JWT。
    nonce 記在 process 裡，callback 用過一次就刪掉。
    """
    now = int(time.time()) if now is None else now
    nonce = secrets.token_urlsafe(16)
    payload = {
        "purpose": STATE_PURPOSE,
        "nonce": nonce,
        "iat": now,
        "exp": now + STATE_TTL_SECONDS,
    }

    with _pending_lock:
        _drop_expired_nonces(int(time.time()))
        _pending_nonces[nonce] = now + STATE_TTL_SECONDS

    return jwt.encode(payload, secret, algorithm=STATE_ALGORITHM)


def verify_state_token(state: str | None, cookie_state: str | None, secret: str = STATE_SECRET) -> dict:
    """
    callback 驗 state：
    1. 要跟 /auth 設在這個瀏覽器的 cookie 一樣
    2. 簽章正確、沒過期
    3. nonce 還沒被用過（用完即刪）
    """
    if not state:
        raise InvalidStateError("Missing OAuth state")

    if not cookie_state or not secrets.compare_digest(state, cookie_state):
        raise InvalidStateError("OAuth state does not match this browser, restart at /spotify/auth")

    try:
        payload = jwt.decode(state, secret, algorithms=[STATE_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise InvalidStateError("OAuth state expired, restart at /spotify/auth")
    except jwt.InvalidTokenError:
        raise InvalidStateError("Invalid OAuth state")

    if payload.get("purpose") != STATE_PURPOSE:
        raise InvalidStateError("Invalid OAuth state")

    with _pending_lock:
        if _pending_nonces.pop(payload.get("nonce"), None) is None:
            raise InvalidStateError("OAuth state already used, restart at /spotify/auth")

    return payload
