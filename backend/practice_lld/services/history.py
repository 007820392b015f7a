"""Per-user store of already asked question short titles."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Protocol


class QuestionHistoryRepository(Protocol):
    async def get_asked_short_titles(self, user_id: str) -> List[str]:
        ...

    async def add_short_title(self, user_id: str, short_title: str) -> None:
        ...


class InMemoryQuestionHistoryRepository:
    """Process-local history; titles keep insertion order and are not repeated."""

    def __init__(self) -> None:
        self._titles: Dict[str, List[str]] = {}
        self._lock = asyncio.Lock()

    async def get_asked_short_titles(self, user_id: str) -> List[str]:
        async with self._lock:
            return list(self._titles.get(user_id, []))

    async def add_short_title(self, user_id: str, short_title: str) -> None:
        async with self._lock:
            titles = self._titles.setdefault(user_id, [])
            if short_title not in titles:
                titles.append(short_title)


__all__ = ["InMemoryQuestionHistoryRepository", "QuestionHistoryRepository"]
