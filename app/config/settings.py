import os
import secrets
from dotenv import load_dotenv

def load_env():
    if os.getenv("ENVIRONMENT") == "production":
        return

    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    env_path = os.path.join(base_dir, ".env")

    if os.path.exists(env_path):
        load_dotenv(env_path)

# Load env now
load_env()

# Spotify OAuth
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", "")

# Optional token seed (e.g. a refresh token obtained in an earlier run)
SPOTIFY_ACCESS_TOKEN = os.getenv("SPOTIFY_ACCESS_TOKEN")
SPOTIFY_REFRESH_TOKEN = os.getenv("SPOTIFY_REFRESH_TOKEN")

# Seconds before expiry at which the access token gets refreshed
TOKEN_REFRESH_MARGIN = int(os.getenv("TOKEN_REFRESH_MARGIN", "30"))

# Upstream request timeout (seconds)
SPOTIFY_HTTP_TIMEOUT = float(os.getenv("SPOTIFY_HTTP_TIMEOUT", "10"))

# OAuth state signing
# 沒設定就每個 process 隨機產生
STATE_SECRET = os.getenv("STATE_SECRET") or secrets.token_urlsafe(32)

# HTTP
PORT = int(os.getenv("PORT", "5000"))
ALLOWED_ORIGIN = os.getenv("ALLOWED_ORIGIN", "https://frontend-spotify-mu.vercel.app")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
