# -*- coding: utf-8 -*-
"""Free-form prompt endpoints for checking a provider connection by hand."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from practice_lld.api.dependencies import (
    DiagnosticsTarget,
    disconnect_event,
    get_diagnostics_target,
)
from practice_lld.completion import CompletionResult, Message
from practice_lld.models import (
    ConversationRequest,
    ErrorResponse,
    PromptRequest,
    PromptResponse,
    UsageInfo,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/OpenRouterTest", tags=["diagnostics"])


def _no_client(target: DiagnosticsTarget) -> JSONResponse:
    logger.error("No client configured for diagnostics provider %s", target.provider.value)
    return JSONResponse(
        status_code=502,
        content={"error": f"No client configured for provider {target.provider.value}."},
    )


def _to_response(result: CompletionResult[str]):
    if not result.is_success:
        return JSONResponse(status_code=502, content={"error": result.error_message})

    usage = None
    if result.usage is not None:
        usage = UsageInfo(
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            total_tokens=result.usage.total_tokens,
        )
    return PromptResponse(
        text_response=result.data or "",
        reasoning_summary=(result.reasoning_trace or "").splitlines(),
        usage=usage,
    )


@router.post(
    "/prompt",
    response_model=PromptResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def send_prompt(
    payload: PromptRequest,
    request: Request,
    target: DiagnosticsTarget = Depends(get_diagnostics_target),
):
    if not (payload.user_prompt or "").strip():
        return JSONResponse(status_code=400, content={"error": "userPrompt is required."})
    if target.client is None:
        return _no_client(target)

    async with disconnect_event(request) as cancel_event:
        result = await target.client.send_text(
            target.model,
            payload.user_prompt,
            system_prompt=payload.system_prompt,
            assistant_prompt=payload.assistant_prompt,
            temperature=payload.temperature,
            reasoning_effort=payload.reasoning_effort,
            max_tokens=payload.max_output_tokens,
            cancel_event=cancel_event,
        )
    return _to_response(result)


@router.post(
    "/conversation",
    response_model=PromptResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def send_conversation(
    payload: ConversationRequest,
    request: Request,
    target: DiagnosticsTarget = Depends(get_diagnostics_target),
):
    if not payload.messages:
        return JSONResponse(
            status_code=400, content={"error": "At least one message is required."}
        )
    if target.client is None:
        return _no_client(target)

    async with disconnect_event(request) as cancel_event:
        result = await target.client.send_messages(
            target.model,
            [Message(role=item.role, content=item.content) for item in payload.messages],
            temperature=payload.temperature,
            reasoning_effort=payload.reasoning_effort,
            max_tokens=payload.max_output_tokens,
            cancel_event=cancel_event,
        )
    return _to_response(result)
