from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytz

from lexiquest.analytics import AnalyticsService, FALLBACK_WORD, clamp_limit, yesterday_window
from lexiquest.db_pg import Persistence
from lexiquest.lookup import shape_entry

from conftest import CAT_PAYLOAD

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _shaped(word):
    return dict(shape_entry(CAT_PAYLOAD), word=word)


@pytest.fixture()
async def seeded(word_store):
    yesterday = NOW - timedelta(days=1)

    await word_store.upsert(_shaped("cat"), now=yesterday)
    for _ in range(2):
        await word_store.record_hit("cat", now=yesterday + timedelta(hours=1))

    await word_store.upsert(_shaped("dog"), now=yesterday - timedelta(hours=2))

    await word_store.upsert(_shaped("emu"), now=NOW)
    for _ in range(4):
        await word_store.record_hit("emu", now=NOW)

    await word_store.upsert(_shaped("old"), now=NOW - timedelta(days=30))
    return word_store


def test_yesterday_window_is_a_calendar_day():
    start, end = yesterday_window(NOW, tz=pytz.utc)
    assert start == datetime(2026, 10, 16, tzinfo=timezone.utc)
    assert end == datetime(2026, 10, 17, tzinfo=timezone.utc)


def test_yesterday_window_in_local_zone():
    tz = pytz.timezone("America/New_York")
    start, end = yesterday_window(datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc), tz=tz)
    assert start == datetime(2026, 10, 15, 4, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 10, 16, 4, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("raw, expected", [(None, 10), ("5", 5), ("abc", 10), ("-3", 10), ("0", 10), ("1000", 100)])
def test_clamp_limit(raw, expected):
    assert clamp_limit(raw) == expected


async def test_popular_words(persistence, seeded):
    service = AnalyticsService(persistence)
    popular = await service.popular_words(3)
    assert [p["word"] for p in popular][:2] == ["emu", "cat"]
    assert popular[2]["word"] in {"dog", "old"}
    assert popular[0] == {"word": "emu", "searchCount": 5, "likeCount": 0}


async def test_trending_words_ignore_old_searches(persistence, seeded):
    service = AnalyticsService(persistence)
    trending = await service.trending_words(10, now=NOW)
    assert [t["word"] for t in trending] == ["emu", "cat", "dog"]
    assert all("lastSearched" in t for t in trending)


async def test_word_of_the_day_picks_yesterdays_top_word(persistence, seeded):
    service = AnalyticsService(persistence)
    wotd = await service.word_of_the_day(now=NOW)
    assert wotd == {
        "word": "cat",
        "phonetic": "/kæt/",
        "definition": "A small domesticated feline.",
        "example": "The cat purred.",
        "partOfSpeech": "noun",
        "searchCount": 3,
        "isDefault": False,
    }


async def test_word_of_the_day_fallback(persistence, word_store):
    await word_store.upsert(_shaped("emu"), now=NOW)
    service = AnalyticsService(persistence)
    wotd = await service.word_of_the_day(now=NOW)
    assert wotd["word"] == "serendipity"
    assert wotd["isDefault"] is True


async def test_platform_stats(persistence, seeded, user_store):
    await user_store.create("stats@lexiquest.io", "hash")
    await seeded.adjust_like_count("cat", +2)
    service = AnalyticsService(persistence)
    assert await service.platform_stats() == {
        "totalWords": 4,
        "totalUsers": 1,
        "totalSearches": 10,
        "totalLikes": 2,
    }


async def test_platform_stats_survive_a_failing_aggregate(persistence, seeded, monkeypatch):
    service = AnalyticsService(persistence)

    async def broken():
        raise RuntimeError("aggregate failed")

    monkeypatch.setattr(service.words, "total_searches", broken)
    stats = await service.platform_stats()
    assert stats["totalSearches"] == 0
    assert stats["totalWords"] == 4


async def test_demo_mode_serves_static_data():
    service = AnalyticsService(Persistence(None))
    assert (await service.popular_words(3))[0]["word"] == "serendipity"
    assert len(await service.trending_words(10)) == 6
    assert await service.word_of_the_day() == FALLBACK_WORD
    assert await service.platform_stats() == {"totalWords": 0, "totalUsers": 0, "totalSearches": 0, "totalLikes": 0}
