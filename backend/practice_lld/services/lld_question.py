# -*- coding: utf-8 -*-
"""Generate LLD interview questions through the completion clients."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

from practice_lld.completion import (
    CompletionClient,
    CompletionResult,
    Provider,
    ReasoningEffort,
)
from practice_lld.config import QuestionSettings
from practice_lld.models import Difficulty, QuestionResponse
from practice_lld.prompts import build_system_prompt, build_user_prompt

logger = logging.getLogger(__name__)

_ARRAY_OF_STRINGS = {"type": "array", "items": {"type": "string"}}

LLD_QUESTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "question": {
            "type": "string",
            "description": "The full LLD interview question text.",
        },
        "constraints": {
            **_ARRAY_OF_STRINGS,
            "description": "List of constraints or requirements for the question.",
        },
        "short_title": {
            "type": "string",
            "description": "A unique short title which can be identifier for the question.",
        },
        "functional_requirements": {
            **_ARRAY_OF_STRINGS,
            "description": "List of functional requirements that the design should fulfill.",
        },
        "non_functional_requirements": {
            **_ARRAY_OF_STRINGS,
            "description": (
                "List of non-functional requirements such as scalability, performance, "
                "thread-safety, and reliability considerations."
            ),
        },
    },
    "required": [
        "question",
        "constraints",
        "short_title",
        "functional_requirements",
        "non_functional_requirements",
    ],
    "additionalProperties": False,
}


@dataclass
class QuestionResult:
    is_success: bool
    question: Optional[QuestionResponse] = None
    error_message: Optional[str] = None
    model_name: Optional[str] = None


class LldQuestionService:
    """Builds the interview prompts and asks a model for a question.

    ``generate_question`` walks the configured fallback models in order and
    returns the first success. ``generate_question_with_model`` targets one
    model and never falls back.
    """

    def __init__(
        self,
        clients: Mapping[Provider, CompletionClient],
        settings: Optional[QuestionSettings] = None,
    ) -> None:
        self._clients = dict(clients)
        self._settings = settings or QuestionSettings()

    async def generate_question(
        self,
        difficulty: Difficulty,
        already_asked: Optional[Sequence[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> QuestionResult:
        provider = self._settings.fallback_provider
        models = self._settings.fallback_models
        if not models:
            return QuestionResult(is_success=False, error_message="No fallback models configured.")

        result: Optional[QuestionResult] = None
        for model_id in models:
            result = await self.generate_question_with_model(
                model_id,
                provider,
                difficulty,
                self._settings.default_reasoning_effort,
                already_asked=already_asked,
                cancel_event=cancel_event,
            )
            if result.is_success:
                return result
            logger.warning("Question generation failed with %s: %s", model_id, result.error_message)

        return result

    async def generate_question_with_model(
        self,
        model_id: str,
        provider: Provider,
        difficulty: Difficulty,
        reasoning_effort: ReasoningEffort,
        already_asked: Optional[Sequence[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> QuestionResult:
        client = self._clients.get(provider)
        if client is None:
            return QuestionResult(
                is_success=False,
                error_message=f"No completion client is configured for provider {provider.value}.",
                model_name=model_id,
            )

        completion = await client.send_structured(
            model=model_id,
            user_prompt=build_user_prompt(already_asked),
            response_model=QuestionResponse,
            schema=LLD_QUESTION_SCHEMA,
            schema_name=self._settings.schema_name,
            system_prompt=build_system_prompt(difficulty),
            temperature=self._settings.temperature,
            reasoning_effort=reasoning_effort,
            cancel_event=cancel_event,
        )
        return self._to_result(completion, model_id)

    @staticmethod
    def _to_result(completion: CompletionResult[QuestionResponse], model_id: str) -> QuestionResult:
        if not completion.is_success:
            return QuestionResult(
                is_success=False,
                error_message=completion.error_message,
                model_name=model_id,
            )
        return QuestionResult(is_success=True, question=completion.data, model_name=model_id)


__all__ = ["LLD_QUESTION_SCHEMA", "LldQuestionService", "QuestionResult"]
