from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from lexiquest.db_pg import Persistence
from lexiquest.dictionary_client import DictionaryClient
from lexiquest.main import create_app
from lexiquest.stores import UserStore, WordStore

SECRET = "test-secret-that-is-long-enough-for-hs256"
API_BASE = "https://dictionary.test/api/v2/entries/en"

CAT_PAYLOAD = [
    {
        "word": "cat",
        "phonetics": [
            {"audio": ""},
            {"text": "/kæt/", "audio": ""},
            {"text": "/kat/", "audio": "https://audio.test/cat-uk.mp3"},
        ],
        "origin": "Old English catt",
        "meanings": [
            {
                "partOfSpeech": "noun",
                "definitions": [
                    {"definition": "A small domesticated feline.", "example": "The cat purred.", "synonyms": ["feline"]},
                    {"definition": "Any member of the family Felidae."},
                    {"definition": "A person, especially a man.", "antonyms": ["dog"]},
                    {"definition": "A catfish."},
                ],
                "synonyms": ["kitty"],
            },
            {
                "partOfSpeech": "verb",
                "definitions": [{"definition": "To hoist the anchor.", "example": "Cat the anchor."}],
            },
        ],
        "sourceUrls": ["https://en.wiktionary.org/wiki/cat"],
    },
    {
        "word": "cat",
        "phonetics": [],
        "meanings": [{"partOfSpeech": "noun", "definitions": [{"definition": "A catamaran."}]}],
    },
]

NOT_FOUND_PAYLOAD = {
    "title": "No Definitions Found",
    "message": "Sorry pal, we couldn't find definitions for the word you were looking for.",
    "resolution": "You can try the search again at later time or head to the web instead.",
}


class FakeUpstream:
    """Stands in for the dictionary API; records every word it was asked for."""

    def __init__(self):
        self.calls: list[str] = []
        self.responses: dict[str, tuple[int, object]] = {"cat": (200, CAT_PAYLOAD)}
        self.raise_for: dict[str, type[httpx.HTTPError]] = {}
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        word = request.url.path.rsplit("/", 1)[-1]
        self.calls.append(word)
        if word in self.raise_for:
            raise self.raise_for[word]("upstream failure", request=request)
        status, body = self.responses.get(word, (404, NOT_FOUND_PAYLOAD))
        return httpx.Response(status, json=body)


@pytest.fixture()
def upstream():
    return FakeUpstream()


@pytest.fixture()
def dictionary(upstream):
    return DictionaryClient(base_url=API_BASE, transport=upstream.transport)


@pytest.fixture()
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'lexiquest.db'}"


@pytest.fixture()
async def persistence(db_url):
    p = Persistence(db_url)
    assert await p.connect()
    try:
        yield p
    finally:
        await p.dispose()


@pytest.fixture()
def word_store(persistence):
    return WordStore(persistence.sessions)


@pytest.fixture()
def user_store(persistence):
    return UserStore(persistence.sessions)


@pytest.fixture()
def client(db_url, dictionary):
    app = create_app(database_url=db_url, dictionary=dictionary, jwt_secret=SECRET, bcrypt_rounds=4)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def demo_client(dictionary):
    app = create_app(database_url=None, dictionary=dictionary, jwt_secret=SECRET, bcrypt_rounds=4)
    with TestClient(app) as c:
        yield c
