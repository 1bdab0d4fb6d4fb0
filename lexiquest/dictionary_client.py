# lexiquest/dictionary_client.py
from __future__ import annotations
import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .errors import NotFoundError, UpstreamError, UpstreamTimeout
from .log import get_logger

API_BASE = os.getenv("DICTIONARY_API_BASE", "https://api.dictionaryapi.dev/api/v2/entries/en")
API_TIMEOUT = float(os.getenv("DICTIONARY_API_TIMEOUT", "10"))

HEADERS = {"accept": "application/json", "User-Agent": "LexiQuest/2.0"}

logger = get_logger(__name__)


def _json_or_none(r: httpx.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return None


class DictionaryClient:
    """
    Thin async client for the public dictionary API.

    `lookup` returns the raw list of entries for a word; every failure is
    raised as one of the error kinds in `errors`.
    """

    def __init__(
        self,
        base_url: str = API_BASE,
        timeout: float = API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _http_get(self, path: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.get(f"{self.base_url}{path}", headers=HEADERS)

    async def lookup(self, word: str) -> List[Dict[str, Any]]:
        try:
            r = await self._http_get(f"/{quote(word)}")
        except httpx.TimeoutException as e:
            logger.warning(f"Dictionary API timed out for '{word}': {e}")
            raise UpstreamTimeout()
        except httpx.HTTPError as e:
            logger.error(f"Dictionary API request failed for '{word}': {e}")
            raise UpstreamError()

        data = _json_or_none(r)

        if r.is_error:
            logger.info(f"Error fetching data for word '{word}': {r.status_code} {data}")
            detail = data if isinstance(data, dict) else {}
            message = detail.get("message") or "Word not found"
            suggestions = detail.get("suggestions") or []
            if r.status_code == 404:
                raise NotFoundError(message, suggestions=suggestions)
            raise UpstreamError(message, status_code=r.status_code, suggestions=suggestions)

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            logger.error(f"Malformed dictionary payload for '{word}'")
            raise UpstreamError()
        return data
