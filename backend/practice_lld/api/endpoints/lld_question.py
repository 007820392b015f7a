# -*- coding: utf-8 -*-
"""Interview question generation endpoint."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from practice_lld.api.dependencies import (
    disconnect_event,
    get_history_repository,
    get_question_service,
)
from practice_lld.models import ErrorResponse, GenerateLldQuestionRequest, QuestionResponse
from practice_lld.services import LldQuestionService, QuestionHistoryRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/LldQuestion", tags=["lld-question"])


async def _merge_user_history(
    repository: QuestionHistoryRepository,
    user_id: str,
    already_asked: Optional[List[str]],
) -> Optional[List[str]]:
    try:
        stored = await repository.get_asked_short_titles(user_id)
    except Exception:
        logger.exception("Failed to load question history for user %s", user_id)
        return already_asked
    if not stored:
        return already_asked
    return [*(already_asked or []), *stored]


async def _save_user_history(
    repository: QuestionHistoryRepository,
    user_id: str,
    short_title: str,
) -> None:
    try:
        await repository.add_short_title(user_id, short_title)
    except Exception:
        logger.exception("Failed to save question history for user %s", user_id)


@router.post(
    "/generate",
    response_model=QuestionResponse,
    responses={502: {"model": ErrorResponse}},
)
async def generate_question(
    payload: GenerateLldQuestionRequest,
    request: Request,
    x_uid: Optional[str] = Header(default=None),
    service: LldQuestionService = Depends(get_question_service),
    history: QuestionHistoryRepository = Depends(get_history_repository),
):
    user_id = (x_uid or "").strip()
    already_asked = payload.already_asked_short_titles
    if user_id:
        already_asked = await _merge_user_history(history, user_id, already_asked)

    async with disconnect_event(request) as cancel_event:
        result = await service.generate_question(
            payload.difficulty,
            already_asked=already_asked,
            cancel_event=cancel_event,
        )

    if not result.is_success or result.question is None:
        return JSONResponse(status_code=502, content={"error": result.error_message})

    short_title = result.question.short_title.strip()
    if user_id and short_title:
        await _save_user_history(history, user_id, short_title)

    return result.question
