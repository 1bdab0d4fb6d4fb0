# lexiquest/word_lists.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from .auth import Identity
from .errors import InvalidInput, NotFoundError
from .log import get_logger
from .models import UserAccount, utcnow
from .stores import UserStore, WordStore

MAX_SEARCH_HISTORY = 50
RECENT_SEARCHES = 5

logger = get_logger(__name__)


def clean_word(word: Optional[str]) -> str:
    if not isinstance(word, str) or not word.strip():
        raise InvalidInput("Word is required")
    return word.strip().lower()


# ───────── list operations (return new lists) ─────────
def with_liked(liked: List[Dict[str, Any]], word: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    if any(item.get("word") == word for item in liked):
        return list(liked)
    return [*liked, {"word": word, "dateAdded": (now or utcnow()).isoformat()}]

def without_liked(liked: List[Dict[str, Any]], word: str) -> List[Dict[str, Any]]:
    return [item for item in liked if item.get("word") != word]

def with_search(
    history: List[Dict[str, Any]],
    word: str,
    now: Optional[datetime] = None,
    cap: int = MAX_SEARCH_HISTORY,
) -> List[Dict[str, Any]]:
    """Move `word` to the front (most recent first) and keep at most `cap` entries."""
    rest = [item for item in history if item.get("word") != word]
    return [{"word": word, "searchedAt": (now or utcnow()).isoformat()}, *rest][:cap]


def _liked_view(user: UserAccount) -> List[Dict[str, Any]]:
    return [{"word": i["word"], "dateAdded": i["dateAdded"]} for i in (user.liked_words or [])]


class WordListService:
    """Liked words, search history and per-user stats, always scoped to the caller's own account."""

    def __init__(self, users: UserStore, words: Optional[WordStore] = None):
        self.users = users
        self.words = words

    async def _user(self, identity: Identity) -> UserAccount:
        user = await self.users.get(identity.id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _bump_like_count(self, word: str, delta: int) -> None:
        if self.words is None:
            return
        try:
            await self.words.adjust_like_count(word, delta)
        except Exception as e:
            logger.error(f"Could not update like count for '{word}': {e}")

    async def like_word(self, identity: Identity, word: Optional[str]) -> Dict[str, Any]:
        word = clean_word(word)
        user = await self._user(identity)
        current = user.liked_words or []
        liked = with_liked(current, word)
        if len(liked) != len(current):
            user = await self.users.save_liked_words(user.id, liked) or user
            await self._bump_like_count(word, +1)
        return {"message": "Word added to favorites", "likedWords": _liked_view(user)}

    async def unlike_word(self, identity: Identity, word: Optional[str]) -> Dict[str, Any]:
        word = clean_word(word)
        user = await self._user(identity)
        current = user.liked_words or []
        liked = without_liked(current, word)
        if len(liked) != len(current):
            user = await self.users.save_liked_words(user.id, liked) or user
            await self._bump_like_count(word, -1)
        return {"message": "Word removed from favorites", "likedWords": _liked_view(user)}

    async def liked_words(self, identity: Identity) -> List[Dict[str, Any]]:
        user = await self._user(identity)
        return sorted(_liked_view(user), key=lambda i: i["dateAdded"], reverse=True)

    async def add_search_history(self, identity: Identity, word: Optional[str]) -> Dict[str, Any]:
        word = clean_word(word)
        user = await self._user(identity)
        await self.users.save_search_history(user.id, with_search(user.search_history or [], word))
        return {"message": "Added to search history"}

    async def search_history(self, identity: Identity) -> List[Dict[str, Any]]:
        user = await self._user(identity)
        return [{"word": i["word"], "searchedAt": i["searchedAt"]} for i in (user.search_history or [])]

    async def stats(self, identity: Identity) -> Dict[str, Any]:
        user = await self._user(identity)
        history = user.search_history or []
        return {
            "totalLikedWords": len(user.liked_words or []),
            "totalSearches": len(history),
            "recentSearches": [i["word"] for i in history[:RECENT_SEARCHES]],
            "memberSince": user.created_at,
            "lastActivity": user.last_login or user.updated_at,
        }
