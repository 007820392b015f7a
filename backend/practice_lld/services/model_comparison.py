# -*- coding: utf-8 -*-
"""Head-to-head question generation rounds and vote bookkeeping."""

from __future__ import annotations

import asyncio
import logging
import random
from threading import Lock
from typing import Dict, List, Optional, Sequence, Tuple

from practice_lld.completion import ModelEntry, ReasoningEffort
from practice_lld.models import (
    AnalysisResult,
    ComparisonRoundResult,
    Difficulty,
    ModelQuestionResult,
    ModelScore,
)
from practice_lld.services.lld_question import LldQuestionService

logger = logging.getLogger(__name__)


class ModelComparisonService:
    """Runs comparison rounds between two catalog models and keeps score.

    Short-title history and vote counters live in memory for the lifetime of
    the instance and are shared by every round. All reads and writes of that
    state go through one lock, and ``reset`` clears the containers in place,
    so a round that finishes after a reset writes into the fresh state.
    """

    def __init__(
        self,
        question_service: LldQuestionService,
        catalog: Sequence[ModelEntry],
        rng: Optional[random.Random] = None,
    ) -> None:
        if len({entry.display_name for entry in catalog}) < 2:
            raise ValueError("The comparison catalog needs at least two distinct models.")
        self._question_service = question_service
        self._catalog = list(catalog)
        self._rng = rng or random.Random()

        self._lock = Lock()
        self._short_titles: Dict[str, List[str]] = {}
        # display name -> (times_shown, times_selected)
        self._scores: Dict[str, Tuple[int, int]] = {}
        self._total_rounds = 0

    def pick_two_random_models(self) -> Tuple[ModelEntry, ModelEntry]:
        shuffled = list(self._catalog)
        self._rng.shuffle(shuffled)
        first = shuffled[0]
        second = next(entry for entry in shuffled[1:] if entry.display_name != first.display_name)
        return first, second

    async def generate_comparison_round(
        self,
        difficulty: Difficulty,
        reasoning_effort: ReasoningEffort = ReasoningEffort.NONE,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ComparisonRoundResult:
        entry_a, entry_b = self.pick_two_random_models()
        logger.info(
            "Comparison round: %s vs %s (%s, effort %s)",
            entry_a.display_name,
            entry_b.display_name,
            difficulty.value,
            reasoning_effort.value,
        )

        # Both sides see the history as it was when the round started.
        titles_a = self.get_short_titles(entry_a.display_name)
        titles_b = self.get_short_titles(entry_b.display_name)

        result_a, result_b = await asyncio.gather(
            self._generate_from_model(entry_a, difficulty, reasoning_effort, titles_a, cancel_event),
            self._generate_from_model(entry_b, difficulty, reasoning_effort, titles_b, cancel_event),
        )

        for result in (result_a, result_b):
            if result.is_success and result.question is not None:
                self.add_short_title(result.model_name, result.question.short_title)

        error_message = None
        if not result_a.is_success and not result_b.is_success:
            error_message = (
                f"Both models failed. Model A ({entry_a.display_name}): {result_a.error_message}; "
                f"Model B ({entry_b.display_name}): {result_b.error_message}"
            )
            logger.warning("%s", error_message)

        return ComparisonRoundResult(
            is_success=result_a.is_success or result_b.is_success,
            error_message=error_message,
            model_a=result_a,
            model_b=result_b,
        )

    async def _generate_from_model(
        self,
        entry: ModelEntry,
        difficulty: Difficulty,
        reasoning_effort: ReasoningEffort,
        already_asked: List[str],
        cancel_event: Optional[asyncio.Event],
    ) -> ModelQuestionResult:
        try:
            result = await self._question_service.generate_question_with_model(
                entry.model_id,
                entry.provider,
                difficulty,
                reasoning_effort,
                already_asked=already_asked,
                cancel_event=cancel_event,
            )
        except Exception as exc:
            logger.exception("Question generation raised for %s", entry.display_name)
            return ModelQuestionResult(
                model_name=entry.display_name,
                is_success=False,
                error_message=str(exc) or exc.__class__.__name__,
            )

        if not result.is_success:
            return ModelQuestionResult(
                model_name=entry.display_name,
                is_success=False,
                error_message=result.error_message,
            )
        return ModelQuestionResult(
            model_name=entry.display_name,
            is_success=True,
            question=result.question,
        )

    def get_short_titles(self, model_name: str) -> List[str]:
        with self._lock:
            return list(self._short_titles.get(model_name, ()))

    def add_short_title(self, model_name: str, short_title: str) -> None:
        if not short_title:
            return
        with self._lock:
            titles = self._short_titles.setdefault(model_name, [])
            if short_title not in titles:
                titles.append(short_title)

    def record_vote(self, winning_model: str, losing_model: str) -> None:
        with self._lock:
            self._total_rounds += 1
            shown, selected = self._scores.get(winning_model, (0, 0))
            self._scores[winning_model] = (shown + 1, selected + 1)
            shown, selected = self._scores.get(losing_model, (0, 0))
            self._scores[losing_model] = (shown + 1, selected)

    def get_analysis_results(self) -> AnalysisResult:
        with self._lock:
            snapshot = list(self._scores.items())
            total_rounds = self._total_rounds

        scores = [
            ModelScore(model_name=name, times_shown=shown, times_selected=selected)
            for name, (shown, selected) in snapshot
        ]
        scores.sort(key=lambda score: (score.selection_percentage, score.times_selected), reverse=True)
        return AnalysisResult(scores=scores, total_rounds=total_rounds)

    def reset(self) -> None:
        with self._lock:
            self._short_titles.clear()
            self._scores.clear()
            self._total_rounds = 0
        logger.info("Comparison history and scores reset.")

    def get_available_models(self) -> List[str]:
        return [entry.display_name for entry in self._catalog]


__all__ = ["ModelComparisonService"]
