# lexiquest/stores.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from .models import WordRecord, UserAccount, CACHE_TTL, default_preferences, utcnow

TRENDING_WINDOW = timedelta(days=7)


def _insert_for(session: AsyncSession):
    # ON CONFLICT is dialect specific
    if session.bind is not None and session.bind.dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


# ───────── Word cache ─────────
class WordStore:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self.sessions = sessions

    async def get(self, word: str) -> Optional[WordRecord]:
        async with self.sessions() as db:
            return await db.get(WordRecord, word)

    async def record_hit(self, word: str, now: Optional[datetime] = None) -> Optional[WordRecord]:
        """
        Return the still-valid record for `word` after bumping its search counters,
        or None when there is no record or it has expired.

        Read and update share one session; there is no row lock, so two concurrent
        hits may both write back the same count.
        """
        now = now or utcnow()
        async with self.sessions() as db:
            res = await db.execute(
                select(WordRecord).where(WordRecord.word == word, WordRecord.cache_expiry > now)
            )
            rec = res.scalar_one_or_none()
            if rec is None:
                return None
            rec.search_count = (rec.search_count or 0) + 1
            rec.last_searched = now
            await db.commit()
            return rec

    async def upsert(self, shaped: Dict[str, Any], now: Optional[datetime] = None) -> None:
        """Insert or overwrite the cached definition for shaped['word'] with a fresh TTL."""
        now = now or utcnow()
        values = dict(
            word=shaped["word"],
            phonetic=shaped.get("phonetic", ""),
            phonetic_audio=shaped.get("phoneticAudio", ""),
            origin=shaped.get("origin", ""),
            meanings=shaped.get("meanings", []),
            source_urls=shaped.get("sourceUrls", []),
            search_count=1,
            last_searched=now,
            cache_expiry=now + CACHE_TTL,
            updated_at=now,
        )
        async with self.sessions() as db:
            insert = _insert_for(db)
            stmt = insert(WordRecord).values(created_at=now, like_count=0, **values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["word"],
                set_={k: v for k, v in values.items() if k != "word"},
            )
            await db.execute(stmt)
            await db.commit()

    async def adjust_like_count(self, word: str, delta: int) -> Optional[int]:
        """Add `delta` to the like counter, never going below zero. None if the word is not cached."""
        async with self.sessions() as db:
            rec = await db.get(WordRecord, word)
            if rec is None:
                return None
            rec.like_count = max(0, (rec.like_count or 0) + delta)
            await db.commit()
            return rec.like_count

    async def popular(self, limit: int = 10) -> List[WordRecord]:
        async with self.sessions() as db:
            res = await db.execute(
                select(WordRecord).order_by(WordRecord.search_count.desc()).limit(limit)
            )
            return list(res.scalars().all())

    async def trending(self, limit: int = 10, now: Optional[datetime] = None) -> List[WordRecord]:
        since = (now or utcnow()) - TRENDING_WINDOW
        async with self.sessions() as db:
            res = await db.execute(
                select(WordRecord)
                .where(WordRecord.last_searched >= since)
                .order_by(WordRecord.search_count.desc())
                .limit(limit)
            )
            return list(res.scalars().all())

    async def top_searched_between(self, start: datetime, end: datetime) -> Optional[WordRecord]:
        async with self.sessions() as db:
            res = await db.execute(
                select(WordRecord)
                .where(WordRecord.last_searched >= start, WordRecord.last_searched < end)
                .order_by(WordRecord.search_count.desc())
                .limit(1)
            )
            return res.scalars().first()

    async def count(self) -> int:
        async with self.sessions() as db:
            return int(await db.scalar(select(func.count()).select_from(WordRecord)) or 0)

    async def total_searches(self) -> int:
        async with self.sessions() as db:
            return int(await db.scalar(select(func.sum(WordRecord.search_count))) or 0)

    async def total_likes(self) -> int:
        async with self.sessions() as db:
            return int(await db.scalar(select(func.sum(WordRecord.like_count))) or 0)


# ───────── User accounts ─────────
class UserStore:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self.sessions = sessions

    async def get(self, user_id: int) -> Optional[UserAccount]:
        async with self.sessions() as db:
            return await db.get(UserAccount, user_id)

    async def get_by_email(self, email: str) -> Optional[UserAccount]:
        async with self.sessions() as db:
            res = await db.execute(select(UserAccount).where(UserAccount.email == email))
            return res.scalar_one_or_none()

    async def create(
        self,
        email: str,
        password_hash: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> UserAccount:
        """Raises sqlalchemy IntegrityError when the email is already taken."""
        user = UserAccount(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            liked_words=[],
            search_history=[],
            preferences=default_preferences(),
            is_active=True,
        )
        async with self.sessions() as db:
            db.add(user)
            await db.commit()
            await db.refresh(user)
            return user

    async def update(self, user_id: int, **values: Any) -> Optional[UserAccount]:
        """Write the given columns and return the fresh row, or None if the user is gone."""
        values.setdefault("updated_at", utcnow())
        async with self.sessions() as db:
            await db.execute(update(UserAccount).where(UserAccount.id == user_id).values(**values))
            await db.commit()
            return await db.get(UserAccount, user_id, populate_existing=True)

    async def touch_login(self, user_id: int, now: Optional[datetime] = None) -> Optional[UserAccount]:
        return await self.update(user_id, last_login=now or utcnow())

    async def save_liked_words(self, user_id: int, liked: List[Dict[str, Any]]) -> Optional[UserAccount]:
        return await self.update(user_id, liked_words=liked)

    async def save_search_history(self, user_id: int, history: List[Dict[str, Any]]) -> Optional[UserAccount]:
        return await self.update(user_id, search_history=history)

    async def count(self) -> int:
        async with self.sessions() as db:
            return int(await db.scalar(select(func.count()).select_from(UserAccount)) or 0)
