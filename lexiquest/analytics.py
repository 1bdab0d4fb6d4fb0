# lexiquest/analytics.py
from __future__ import annotations

import asyncio
import os
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytz

from .db_pg import Persistence
from .log import get_logger
from .models import WordRecord, utcnow
from .stores import UserStore, WordStore

# calendar days for word-of-the-day are cut in this zone
TZ = pytz.timezone(os.getenv("APP_TIMEZONE", "UTC"))

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

FALLBACK_WORD = {
    "word": "serendipity",
    "phonetic": "/ˌser.ənˈdɪp.ɪ.ti/",
    "definition": "The occurrence and development of events by chance in a happy or beneficial way.",
    "isDefault": True,
}

# served when there is no database
DEMO_POPULAR = [
    {"word": "serendipity", "searchCount": 42, "likeCount": 0},
    {"word": "ephemeral", "searchCount": 38, "likeCount": 0},
    {"word": "ubiquitous", "searchCount": 35, "likeCount": 0},
    {"word": "mellifluous", "searchCount": 31, "likeCount": 0},
    {"word": "petrichor", "searchCount": 28, "likeCount": 0},
    {"word": "wanderlust", "searchCount": 25, "likeCount": 0},
]

logger = get_logger(__name__)


def clamp_limit(raw: Any) -> int:
    try:
        n = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if n <= 0:
        return DEFAULT_LIMIT
    return min(n, MAX_LIMIT)


def yesterday_window(now: Optional[datetime] = None, tz=TZ) -> Tuple[datetime, datetime]:
    """[start, end) of the calendar day before `now` in `tz`, as UTC datetimes."""
    local_now = (now or utcnow()).astimezone(tz)
    day = local_now.date() - timedelta(days=1)
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(pytz.utc), end.astimezone(pytz.utc)


def _counts(rec: WordRecord, with_last: bool = False) -> Dict[str, Any]:
    out = {"word": rec.word, "searchCount": rec.search_count or 0, "likeCount": rec.like_count or 0}
    if with_last:
        out["lastSearched"] = rec.last_searched
    return out


class AnalyticsService:
    def __init__(self, persistence: Persistence):
        self.persistence = persistence
        self.words = WordStore(persistence.sessions) if persistence.sessions is not None else None
        self.users = UserStore(persistence.sessions) if persistence.sessions is not None else None

    @property
    def live(self) -> bool:
        return self.words is not None and self.persistence.available

    async def popular_words(self, limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
        if not self.live:
            return DEMO_POPULAR[:limit]
        return [_counts(r) for r in await self.words.popular(limit)]

    async def trending_words(self, limit: int = DEFAULT_LIMIT, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        if not self.live:
            return DEMO_POPULAR[:limit]
        return [_counts(r, with_last=True) for r in await self.words.trending(limit, now=now)]

    async def word_of_the_day(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        if not self.live:
            return dict(FALLBACK_WORD)

        start, end = yesterday_window(now)
        rec = await self.words.top_searched_between(start, end)
        if rec is None:
            return dict(FALLBACK_WORD)

        meanings = rec.meanings or []
        first_meaning = meanings[0] if meanings else {}
        defs = first_meaning.get("definitions") or []
        first_def = defs[0] if defs else {}
        return {
            "word": rec.word,
            "phonetic": rec.phonetic or "",
            "definition": first_def.get("definition") or "No definition available",
            "example": first_def.get("example") or "",
            "partOfSpeech": first_meaning.get("partOfSpeech") or "",
            "searchCount": rec.search_count or 0,
            "isDefault": False,
        }

    async def platform_stats(self) -> Dict[str, int]:
        stats = {"totalWords": 0, "totalUsers": 0, "totalSearches": 0, "totalLikes": 0}
        if not self.live:
            return stats

        queries = {
            "totalWords": self.words.count,
            "totalUsers": self.users.count,
            "totalSearches": self.words.total_searches,
            "totalLikes": self.words.total_likes,
        }
        results = await asyncio.gather(*(q() for q in queries.values()), return_exceptions=True)
        for key, value in zip(queries, results):
            if isinstance(value, Exception):
                logger.error(f"Platform stats: {key} failed: {value}")
                continue
            stats[key] = value
        return stats
