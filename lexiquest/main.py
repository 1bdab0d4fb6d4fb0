# lexiquest/main.py
from __future__ import annotations

import os
import time
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Depends, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .analytics import AnalyticsService, clamp_limit
from .auth import AuthService, Identity, BCRYPT_ROUNDS, JWT_SECRET
from .db_pg import DATABASE_URL, Persistence
from .dictionary_client import DictionaryClient
from .errors import AppError, InternalError, ServiceUnavailable
from .log import get_logger, setup_logging
from .lookup import LookupService
from .schema import (
    AuthOut, LikedWord, LikedWordsOut, LoginIn, MessageOut, PlatformStats, ProfileIn, ProfileOut,
    RegisterIn, SearchHistoryItem, UserStats, WordCount, WordDefinition, WordIn, WordOfTheDay,
)
from .stores import UserStore, WordStore
from .word_lists import WordListService

# ───────── Config ─────────
ENVIRONMENT = os.getenv("APP_ENV", "development")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
DEV_JWT_SECRET = "lexiquest-development-secret-change-me-now"

AUTH_UNAVAILABLE = "Authentication not available. Database connection required."
USER_FEATURES_UNAVAILABLE = "User features not available. Database connection required."

logger = get_logger(__name__)


# ───────── Dependencies ─────────
def get_persistence(request: Request) -> Persistence:
    return request.app.state.persistence

def require_db_for_auth(persistence: Persistence = Depends(get_persistence)) -> Persistence:
    if not persistence.available:
        raise ServiceUnavailable(AUTH_UNAVAILABLE)
    return persistence

def require_db_for_words(persistence: Persistence = Depends(get_persistence)) -> Persistence:
    if not persistence.available:
        raise ServiceUnavailable(USER_FEATURES_UNAVAILABLE)
    return persistence

def get_auth(request: Request) -> AuthService:
    return request.app.state.auth

def current_identity(
    _: Persistence = Depends(require_db_for_auth),
    auth: AuthService = Depends(get_auth),
    x_auth_token: Optional[str] = Header(None),
) -> Identity:
    return auth.verify(x_auth_token)

def current_word_user(
    _: Persistence = Depends(require_db_for_words),
    auth: AuthService = Depends(get_auth),
    x_auth_token: Optional[str] = Header(None),
) -> Identity:
    return auth.verify(x_auth_token)

def get_word_lists(request: Request) -> WordListService:
    return request.app.state.word_lists


# ───────── App factory ─────────
def create_app(
    database_url: Optional[str] = DATABASE_URL,
    dictionary: Optional[DictionaryClient] = None,
    jwt_secret: Optional[str] = JWT_SECRET,
    bcrypt_rounds: int = BCRYPT_ROUNDS,
    environment: str = ENVIRONMENT,
) -> FastAPI:
    setup_logging()

    if not jwt_secret:
        if environment == "production":
            raise RuntimeError("JWT_SECRET is not set")
        logger.warning("JWT_SECRET is not set; using the development secret")
        jwt_secret = DEV_JWT_SECRET

    app = FastAPI(title="LexiQuest API", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[FRONTEND_URL] if environment == "production" else ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    persistence = Persistence(database_url)
    users = UserStore(persistence.sessions) if persistence.sessions is not None else None
    words = WordStore(persistence.sessions) if persistence.sessions is not None else None

    app.state.persistence = persistence
    app.state.started = time.monotonic()
    app.state.lookup = LookupService(persistence, dictionary or DictionaryClient())
    app.state.analytics = AnalyticsService(persistence)
    app.state.auth = AuthService(users, jwt_secret, rounds=bcrypt_rounds)
    app.state.word_lists = WordListService(users, words)

    # ───────── Lifecycle ─────────
    @app.on_event("startup")
    async def on_startup():
        await persistence.connect()
        logger.info(f"Environment: {environment}")
        logger.info("Database: " + ("Connected" if persistence.available else "Disconnected - Demo mode"))

    @app.on_event("shutdown")
    async def on_shutdown():
        logger.info("Shutting down, closing database connections")
        await persistence.dispose()

    # ───────── Errors ─────────
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=InternalError().to_body())

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)

    # ───────── Service ─────────
    @app.get("/")
    async def root():
        return {
            "message": "LexiQuest Backend is running!",
            "version": __version__,
            "database": "Connected" if persistence.available else "Disconnected",
            "endpoints": {
                "auth": "/api/auth",
                "words": "/api/words",
                "analytics": "/api/analytics",
                "search": "/api/search/:word",
            },
        }

    @app.get("/health")
    async def health():
        connected = await persistence.ping() if persistence.engine is not None else False
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.monotonic() - app.state.started,
            "database": "connected" if connected else "disconnected",
        }

    # ───────── Search ─────────
    @app.get("/api/search/{word}", response_model=WordDefinition)
    async def search(word: str):
        return await app.state.lookup.lookup_word(word)

    # ───────── Auth ─────────
    @app.post("/api/auth/register", response_model=AuthOut, response_model_exclude_none=True, status_code=201)
    async def register(body: RegisterIn, _: Persistence = Depends(require_db_for_auth)):
        return await app.state.auth.register(body.email, body.password, body.firstName, body.lastName)

    @app.post("/api/auth/login", response_model=AuthOut)
    async def login(body: LoginIn, _: Persistence = Depends(require_db_for_auth)):
        return await app.state.auth.login(body.email, body.password)

    @app.get("/api/auth/me", response_model=ProfileOut)
    async def me(identity: Identity = Depends(current_identity)):
        return await app.state.auth.me(identity)

    @app.put("/api/auth/profile", response_model=ProfileOut, response_model_exclude_none=True)
    async def update_profile(body: ProfileIn, identity: Identity = Depends(current_identity)):
        prefs = body.preferences.model_dump(exclude_none=True) if body.preferences else None
        return await app.state.auth.update_profile(identity, body.firstName, body.lastName, prefs)

    # ───────── User words ─────────
    @app.post("/api/words/like", response_model=LikedWordsOut)
    async def like_word(
        body: WordIn,
        identity: Identity = Depends(current_word_user),
        lists: WordListService = Depends(get_word_lists),
    ):
        return await lists.like_word(identity, body.word)

    @app.delete("/api/words/unlike/{word}", response_model=LikedWordsOut)
    async def unlike_word(
        word: str,
        identity: Identity = Depends(current_word_user),
        lists: WordListService = Depends(get_word_lists),
    ):
        return await lists.unlike_word(identity, word)

    @app.get("/api/words/liked", response_model=List[LikedWord])
    async def liked_words(
        identity: Identity = Depends(current_word_user),
        lists: WordListService = Depends(get_word_lists),
    ):
        return await lists.liked_words(identity)

    @app.post("/api/words/search-history", response_model=MessageOut)
    async def add_search_history(
        body: WordIn,
        identity: Identity = Depends(current_word_user),
        lists: WordListService = Depends(get_word_lists),
    ):
        return await lists.add_search_history(identity, body.word)

    @app.get("/api/words/search-history", response_model=List[SearchHistoryItem])
    async def search_history(
        identity: Identity = Depends(current_word_user),
        lists: WordListService = Depends(get_word_lists),
    ):
        return await lists.search_history(identity)

    @app.get("/api/words/stats", response_model=UserStats)
    async def word_stats(
        identity: Identity = Depends(current_word_user),
        lists: WordListService = Depends(get_word_lists),
    ):
        return await lists.stats(identity)

    # ───────── Analytics ─────────
    @app.get("/api/analytics/popular", response_model=List[WordCount], response_model_exclude_none=True)
    async def popular(limit: Optional[str] = Query(None)):
        return await app.state.analytics.popular_words(clamp_limit(limit))

    @app.get("/api/analytics/trending", response_model=List[WordCount], response_model_exclude_none=True)
    async def trending(limit: Optional[str] = Query(None)):
        return await app.state.analytics.trending_words(clamp_limit(limit))

    @app.get("/api/analytics/word-of-the-day", response_model=WordOfTheDay, response_model_exclude_none=True)
    async def word_of_the_day():
        return await app.state.analytics.word_of_the_day()

    @app.get("/api/analytics/stats", response_model=PlatformStats)
    async def platform_stats():
        return await app.state.analytics.platform_stats()

    return app


app = create_app()
