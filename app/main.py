# app/main.py
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config.settings import ALLOWED_ORIGIN, LOG_LEVEL, PORT

# === Import Routers ===
from app.api.spotify_auth_api import router as spotify_auth_router
from app.api.spotify_api import router as spotify_router
from app.services.spotify_client import SpotifyApiError
from app.services.spotify_token_service import NotAuthenticatedError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Spotify Now Playing Backend",
    description=(
        "Backend for: "
        "• Spotify OAuth (authorization code) "
        "• Top tracks + now playing "
        "• Pause / play"
    ),
    version="1.0.0"
)


# === Origin guard ===
# 別的網域來的 request 在進 router 之前就擋掉（沒有 Origin header 的照常放行）
@app.middleware("http")
async def reject_foreign_origins(request: Request, call_next):
    origin = request.headers.get("origin")
    if origin and origin != ALLOWED_ORIGIN:
        logger.warning(f"Rejected {request.method} {request.url.path} from origin {origin}")
        return JSONResponse(status_code=403, content={"error": "Origin not allowed"})
    return await call_next(request)


# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=[ALLOWED_ORIGIN],
    allow_methods=["GET", "PUT"],
    allow_headers=["*"],
)


# === Errors → {error: message} ===
@app.exception_handler(SpotifyApiError)
async def spotify_error_handler(request: Request, exc: SpotifyApiError):
    return JSONResponse(status_code=500, content={"error": exc.message})


@app.exception_handler(NotAuthenticatedError)
async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
    return JSONResponse(status_code=401, content={"error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


# === Spotify OAuth + listening state / playback ===
app.include_router(spotify_auth_router, prefix="/spotify", tags=["Spotify OAuth"])
app.include_router(spotify_router, prefix="/spotify", tags=["Spotify"])

@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Spotify Now Playing Backend running"
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Server running on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
