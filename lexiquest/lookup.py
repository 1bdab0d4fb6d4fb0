# lexiquest/lookup.py
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from .db_pg import Persistence
from .dictionary_client import DictionaryClient
from .errors import InvalidInput
from .log import get_logger
from .models import WordRecord
from .stores import WordStore

MAX_DEFINITIONS_PER_MEANING = 3

_NOT_WORD_CHARS = re.compile(r"[^a-zA-Z\s-]")

logger = get_logger(__name__)


def normalize_word(raw: Optional[str]) -> str:
    """Trim, lowercase and drop everything outside letters, whitespace and hyphens."""
    if raw is None or not raw.strip():
        raise InvalidInput("Word parameter is required")
    word = _NOT_WORD_CHARS.sub("", raw.strip().lower())
    if not word:
        raise InvalidInput("Invalid word format")
    return word


def _str_list(v: Any) -> List[str]:
    if isinstance(v, list):
        return [s for s in v if isinstance(s, str)]
    return []


def _first_phonetic(phonetics: Any, key: str) -> str:
    if not isinstance(phonetics, list):
        return ""
    for p in phonetics:
        if isinstance(p, dict):
            v = p.get(key)
            if isinstance(v, str) and v:
                return v
    return ""


def shape_entry(entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Reshape the upstream payload into the response document.

    Only entries[0] is used, other homographs are ignored. Each meaning keeps
    at most three definitions.
    """
    first = entries[0]
    phonetics = first.get("phonetics") or []

    meanings = []
    for meaning in first.get("meanings") or []:
        if not isinstance(meaning, dict):
            continue
        defs = [d for d in (meaning.get("definitions") or []) if isinstance(d, dict)]
        meanings.append({
            "partOfSpeech": meaning.get("partOfSpeech") or "",
            "definitions": [
                {
                    "definition": d.get("definition") or "",
                    "example": d.get("example") or "",
                    "synonyms": _str_list(d.get("synonyms")),
                    "antonyms": _str_list(d.get("antonyms")),
                }
                for d in defs[:MAX_DEFINITIONS_PER_MEANING]
            ],
            "synonyms": _str_list(meaning.get("synonyms")),
            "antonyms": _str_list(meaning.get("antonyms")),
        })

    return {
        "word": first.get("word") or "",
        "phonetic": _first_phonetic(phonetics, "text"),
        "phoneticAudio": _first_phonetic(phonetics, "audio"),
        "origin": first.get("origin") or "",
        "meanings": meanings,
        "sourceUrls": _str_list(first.get("sourceUrls")),
        "cached": False,
    }


def record_to_definition(rec: WordRecord) -> Dict[str, Any]:
    return {
        "word": rec.word,
        "phonetic": rec.phonetic or "",
        "phoneticAudio": rec.phonetic_audio or "",
        "origin": rec.origin or "",
        "meanings": rec.meanings or [],
        "sourceUrls": rec.source_urls or [],
        "cached": True,
    }


class LookupService:
    def __init__(self, persistence: Persistence, client: DictionaryClient):
        self.persistence = persistence
        self.client = client
        self.words = WordStore(persistence.sessions) if persistence.sessions is not None else None

    def _cache(self) -> Optional[WordStore]:
        # connectivity is checked per call
        if self.words is not None and self.persistence.available:
            return self.words
        return None

    async def lookup_word(self, raw: Optional[str]) -> Dict[str, Any]:
        word = normalize_word(raw)
        logger.info(f"Received search request for word: {word}")

        cache = self._cache()
        if cache is not None:
            try:
                rec = await cache.record_hit(word)
            except Exception as e:
                logger.error(f"Cache read failed for '{word}', fetching from upstream: {e}")
                rec = None
            if rec is not None:
                return record_to_definition(rec)

        entries = await self.client.lookup(word)
        shaped = shape_entry(entries)

        if cache is not None:
            try:
                await cache.upsert({**shaped, "word": word})
            except Exception as e:
                logger.error(f"Error caching word '{word}': {e}")

        return shaped
