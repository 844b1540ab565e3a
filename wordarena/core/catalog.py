"""
catalog.py — Vocabulary Catalog Client
=======================================
Word lists live in the academy's catalog service. The game only needs one
read: all prompts of a book, fetched once when the host starts a room.

Two implementations share the same coroutine signature:

    prompts = await catalog.fetch_prompts_for_book("기본", "academy_default")

- InMemoryCatalog — seeded books, used in development and tests
- HttpCatalog     — GET {CATALOG_API_URL}/v1/books/{book}/words
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from wordarena.apps.rooms.models import Prompt
from wordarena.core.config import get_settings
from wordarena.core.errors import CatalogError

logger = logging.getLogger(__name__)


class VocabularyCatalog(Protocol):
    async def fetch_prompts_for_book(self, book_name: str, academy_id: str) -> list[Prompt]:
        ...


# ── Seed data ───────────────────────────────────────

DEFAULT_WORDS: list[tuple[str, str]] = [
    ("사과", "apple"),
    ("바나나", "banana"),
    ("학교", "school"),
    ("선생님", "teacher"),
    ("친구", "friend"),
    ("가족", "family"),
    ("책", "book"),
    ("연필", "pencil"),
    ("창문", "window"),
    ("의자", "chair"),
    ("하늘", "sky"),
    ("바다", "sea"),
    ("강아지", "puppy"),
    ("고양이", "cat"),
    ("우유", "milk"),
]


class InMemoryCatalog:
    """Books keyed by (academy_id, book_name)."""

    def __init__(self) -> None:
        self._books: dict[tuple[str, str], list[Prompt]] = {}

    def add_book(self, academy_id: str, book_name: str, words: list[tuple[str, str]]) -> list[Prompt]:
        prompts = [
            Prompt(id=f"{book_name}-{i}", term=term, answer=answer)
            for i, (term, answer) in enumerate(words)
        ]
        self._books[(academy_id, book_name)] = prompts
        return prompts

    async def fetch_prompts_for_book(self, book_name: str, academy_id: str) -> list[Prompt]:
        return list(self._books.get((academy_id, book_name), []))


class HttpCatalog:
    def __init__(self, base_url: str, api_key: str = "", timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch_prompts_for_book(self, book_name: str, academy_id: str) -> list[Prompt]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    f"{self.base_url}/v1/books/{book_name}/words",
                    params={"academy_id": academy_id},
                    headers=self._headers(),
                )
                resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Catalog returned HTTP {e.response.status_code} for book {book_name!r}")
            raise CatalogError(
                f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                details={"book": book_name},
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Catalog request failed for book {book_name!r}: {e}")
            raise CatalogError(str(e), details={"book": book_name}) from e

        words = data.get("words", data) if isinstance(data, dict) else data
        return [
            Prompt(
                id=str(w.get("id", f"{book_name}-{i}")),
                term=w.get("term") or w.get("korean", ""),
                answer=w.get("answer") or w.get("english", ""),
            )
            for i, w in enumerate(words)
        ]


# ═══════════════════════════════════════════════════
# CONFIGURED INSTANCE
# ═══════════════════════════════════════════════════

_catalog: VocabularyCatalog | None = None


def default_catalog() -> InMemoryCatalog:
    settings = get_settings()
    catalog = InMemoryCatalog()
    catalog.add_book(settings.DEFAULT_ACADEMY_ID, settings.DEFAULT_BOOK, DEFAULT_WORDS)
    return catalog


def get_catalog() -> VocabularyCatalog:
    global _catalog
    if _catalog is None:
        settings = get_settings()
        if settings.USE_IN_MEMORY_CATALOG:
            _catalog = default_catalog()
        else:
            _catalog = HttpCatalog(
                settings.CATALOG_API_URL,
                api_key=settings.CATALOG_API_KEY,
                timeout=settings.CATALOG_TIMEOUT_SECONDS,
            )
    return _catalog


def set_catalog(catalog: VocabularyCatalog | None) -> None:
    """Swap the catalog (None restores the configured default on next use)."""
    global _catalog
    _catalog = catalog
