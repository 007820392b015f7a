# -*- coding: utf-8 -*-
"""Request-scoped access to the collaborators built at startup."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import Request

from practice_lld.completion import CompletionClient, Provider
from practice_lld.services import (
    LldQuestionService,
    ModelComparisonService,
    QuestionHistoryRepository,
)

_DISCONNECT_POLL_SEC = 0.5


@dataclass(frozen=True)
class DiagnosticsTarget:
    """The client and model that serve the free-form diagnostics endpoints."""

    provider: Provider
    model: str
    client: Optional[CompletionClient] = None


def get_question_service(request: Request) -> LldQuestionService:
    return request.app.state.question_service


def get_comparison_service(request: Request) -> ModelComparisonService:
    return request.app.state.comparison_service


def get_history_repository(request: Request) -> QuestionHistoryRepository:
    return request.app.state.history_repository


def get_diagnostics_target(request: Request) -> DiagnosticsTarget:
    return request.app.state.diagnostics


@contextlib.asynccontextmanager
async def disconnect_event(request: Request) -> AsyncIterator[asyncio.Event]:
    """Yield an event that is set once the HTTP client goes away."""

    event = asyncio.Event()

    async def _watch() -> None:
        while not await request.is_disconnected():
            await asyncio.sleep(_DISCONNECT_POLL_SEC)
        event.set()

    watcher = asyncio.ensure_future(_watch())
    try:
        yield event
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
