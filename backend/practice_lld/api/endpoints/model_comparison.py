# -*- coding: utf-8 -*-
"""A/B comparison endpoints: run rounds, record votes, report scores."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from practice_lld.api.dependencies import disconnect_event, get_comparison_service
from practice_lld.models import (
    AnalysisResult,
    ComparisonGenerateRequest,
    ComparisonRoundResult,
    ErrorResponse,
    MessageResponse,
    VoteRequest,
)
from practice_lld.services import ModelComparisonService

router = APIRouter(prefix="/api/ModelComparison", tags=["model-comparison"])


@router.post(
    "/generate",
    response_model=ComparisonRoundResult,
    responses={502: {"model": ErrorResponse}},
)
async def generate_round(
    payload: ComparisonGenerateRequest,
    request: Request,
    service: ModelComparisonService = Depends(get_comparison_service),
):
    async with disconnect_event(request) as cancel_event:
        result = await service.generate_comparison_round(
            payload.difficulty,
            payload.reasoning_effort,
            cancel_event=cancel_event,
        )

    if not result.is_success:
        return JSONResponse(status_code=502, content={"error": result.error_message})
    return result


@router.post(
    "/vote",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
)
def record_vote(
    payload: VoteRequest,
    service: ModelComparisonService = Depends(get_comparison_service),
):
    winning_model = (payload.winning_model or "").strip()
    losing_model = (payload.losing_model or "").strip()
    if not winning_model or not losing_model:
        return JSONResponse(
            status_code=400,
            content={"error": "Both winningModel and losingModel are required."},
        )

    service.record_vote(payload.winning_model, payload.losing_model)
    return MessageResponse(message="Vote recorded.")


@router.get("/results", response_model=AnalysisResult)
def get_results(service: ModelComparisonService = Depends(get_comparison_service)):
    return service.get_analysis_results()


@router.post("/reset", response_model=MessageResponse)
def reset(service: ModelComparisonService = Depends(get_comparison_service)):
    service.reset()
    return MessageResponse(message="Analysis reset.")


@router.get("/models", response_model=List[str])
def get_models(service: ModelComparisonService = Depends(get_comparison_service)):
    return service.get_available_models()
