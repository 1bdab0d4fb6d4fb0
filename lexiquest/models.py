# lexiquest/models.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, Boolean, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB
from .db_pg import Base

CACHE_TTL = timedelta(days=7)

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests)
JSONDoc = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_expiry() -> datetime:
    return utcnow() + CACHE_TTL


def default_preferences() -> dict[str, Any]:
    return {"theme": "light", "dailyWordNotifications": True}


class WordRecord(Base):
    __tablename__ = "word_cache"

    # normalized lowercase word is the key
    word: Mapped[str] = mapped_column(String(128), primary_key=True)

    phonetic: Mapped[str] = mapped_column(String(256), default="")
    phonetic_audio: Mapped[str] = mapped_column(Text, default="")
    origin: Mapped[str] = mapped_column(Text, default="")
    meanings: Mapped[list[dict[str, Any]]] = mapped_column(JSONDoc, default=list)
    source_urls: Mapped[list[str]] = mapped_column(JSONDoc, default=list)

    # analytics
    search_count: Mapped[int] = mapped_column(Integer, default=0, index=True)
    like_count: Mapped[int] = mapped_column(Integer, default=0, index=True)
    last_searched: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    # cache control
    cache_expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=default_expiry)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class UserAccount(Base):
    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(128))
    first_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # [{"word": str, "dateAdded": iso}] and [{"word": str, "searchedAt": iso}], newest first
    liked_words: Mapped[list[dict[str, Any]]] = mapped_column(JSONDoc, default=list)
    search_history: Mapped[list[dict[str, Any]]] = mapped_column(JSONDoc, default=list)
    preferences: Mapped[dict[str, Any]] = mapped_column(JSONDoc, default=default_preferences)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
