"""Tests for the comparison engine."""
import asyncio
import random
from threading import Thread

import pytest

from practice_lld.completion import ModelEntry, Provider, ReasoningEffort
from practice_lld.models import Difficulty, QuestionResponse
from practice_lld.services.lld_question import QuestionResult
from practice_lld.services.model_comparison import ModelComparisonService

A = ModelEntry("model-a", Provider.GROQ)
B = ModelEntry("model-b", Provider.OPENROUTER)
C = ModelEntry("model-c", Provider.GROQ)


class ScriptedQuestionService:
    """Returns results from per-model callables and records what it was asked."""

    def __init__(self, behaviours):
        self.behaviours = behaviours
        self.calls = []

    async def generate_question_with_model(
        self, model_id, provider, difficulty, reasoning_effort, already_asked=None, cancel_event=None
    ):
        self.calls.append(
            {
                "model_id": model_id,
                "provider": provider,
                "difficulty": difficulty,
                "reasoning_effort": reasoning_effort,
                "already_asked": list(already_asked or []),
                "cancel_event": cancel_event,
            }
        )
        return await self.behaviours[model_id]()


def succeed(short_title):
    async def _run():
        return QuestionResult(
            is_success=True,
            question=QuestionResponse(question="q", constraints=[], short_title=short_title),
        )

    return _run


def fail(message):
    async def _run():
        return QuestionResult(is_success=False, error_message=message)

    return _run


def _engine(behaviours, catalog=(A, B), seed=7):
    return ModelComparisonService(ScriptedQuestionService(behaviours), list(catalog), random.Random(seed))


class TestPickTwoRandomModels:
    """Test suite for model selection."""

    def test_always_two_distinct_entries_from_catalog(self):
        engine = _engine({}, catalog=(A, B, C))
        for _ in range(200):
            first, second = engine.pick_two_random_models()
            assert first in (A, B, C)
            assert second in (A, B, C)
            assert first.display_name != second.display_name

    def test_duplicate_catalog_entries_are_skipped(self):
        engine = _engine({}, catalog=(A, A, B))
        for _ in range(50):
            first, second = engine.pick_two_random_models()
            assert {first, second} == {A, B}

    def test_catalog_needs_two_distinct_models(self):
        with pytest.raises(ValueError):
            _engine({}, catalog=(A, A))

    def test_available_models_use_display_names(self):
        engine = _engine({}, catalog=(A, B, C))
        assert engine.get_available_models() == [
            "[Groq] model-a",
            "[OpenRouter] model-b",
            "[Groq] model-c",
        ]


class TestGenerateComparisonRound:
    """Test suite for comparison rounds."""

    async def test_one_side_failing_still_succeeds(self):
        engine = _engine({"model-a": fail("timeout"), "model-b": succeed("PARKING_LOT")})

        result = await engine.generate_comparison_round(Difficulty.MEDIUM, ReasoningEffort.LOW)

        assert result.is_success is True
        assert result.error_message is None
        assert engine.get_short_titles(B.display_name) == ["PARKING_LOT"]
        assert engine.get_short_titles(A.display_name) == []

        sides = {result.model_a.model_name: result.model_a, result.model_b.model_name: result.model_b}
        assert sides[A.display_name].is_success is False
        assert sides[A.display_name].error_message == "timeout"
        assert sides[B.display_name].question.short_title == "PARKING_LOT"

    async def test_both_sides_failing_combines_errors(self):
        engine = _engine({"model-a": fail("timeout"), "model-b": fail("rate limited")})

        result = await engine.generate_comparison_round(Difficulty.HARD)

        assert result.is_success is False
        message = result.error_message
        assert message.startswith("Both models failed. Model A (")
        for fragment in (A.display_name, B.display_name, "timeout", "rate limited"):
            assert fragment in message

        first = result.model_a
        second = result.model_b
        assert message == (
            f"Both models failed. Model A ({first.model_name}): {first.error_message}; "
            f"Model B ({second.model_name}): {second.error_message}"
        )

    async def test_exceptions_become_side_failures(self):
        async def explode():
            raise RuntimeError("kaboom")

        engine = _engine({"model-a": explode, "model-b": succeed("ELEVATOR")})

        result = await engine.generate_comparison_round(Difficulty.EASY)

        assert result.is_success is True
        failed = result.model_a if result.model_a.model_name == A.display_name else result.model_b
        assert failed.is_success is False
        assert failed.error_message == "kaboom"

    async def test_prior_titles_are_passed_and_settings_forwarded(self):
        engine = _engine({"model-a": succeed("SECOND"), "model-b": succeed("OTHER")})
        engine.add_short_title(A.display_name, "FIRST")
        event = asyncio.Event()

        await engine.generate_comparison_round(Difficulty.HARD, ReasoningEffort.HIGH, cancel_event=event)

        calls = {call["model_id"]: call for call in engine._question_service.calls}
        assert calls["model-a"]["already_asked"] == ["FIRST"]
        assert calls["model-b"]["already_asked"] == []
        assert calls["model-b"]["provider"] is Provider.OPENROUTER
        assert all(call["difficulty"] is Difficulty.HARD for call in calls.values())
        assert all(call["reasoning_effort"] is ReasoningEffort.HIGH for call in calls.values())
        assert all(call["cancel_event"] is event for call in calls.values())
        assert engine.get_short_titles(A.display_name) == ["FIRST", "SECOND"]

    async def test_sides_run_concurrently(self):
        both_started = asyncio.Event()
        started = []

        def waiting(short_title):
            async def _run():
                started.append(short_title)
                if len(started) == 2:
                    both_started.set()
                await asyncio.wait_for(both_started.wait(), timeout=1)
                return await succeed(short_title)()

            return _run

        engine = _engine({"model-a": waiting("A1"), "model-b": waiting("B1")})
        result = await engine.generate_comparison_round(Difficulty.MEDIUM)

        assert result.model_a.is_success and result.model_b.is_success

    async def test_concurrent_rounds_never_lose_titles(self):
        counters = {"model-a": 0, "model-b": 0}

        def distinct(model_id):
            async def _run():
                counters[model_id] += 1
                title = f"{model_id.upper()}_{counters[model_id]}"
                await asyncio.sleep(0)
                return await succeed(title)()

            return _run

        engine = _engine({"model-a": distinct("model-a"), "model-b": distinct("model-b")})
        rounds = 25

        results = await asyncio.gather(
            *(engine.generate_comparison_round(Difficulty.MEDIUM) for _ in range(rounds))
        )

        assert all(result.is_success for result in results)
        assert len(engine.get_short_titles(A.display_name)) == rounds
        assert len(engine.get_short_titles(B.display_name)) == rounds

    async def test_duplicate_titles_are_stored_once(self):
        engine = _engine({"model-a": succeed("SAME"), "model-b": succeed("SAME")})
        await asyncio.gather(*(engine.generate_comparison_round(Difficulty.EASY) for _ in range(5)))
        assert engine.get_short_titles(A.display_name) == ["SAME"]
        assert engine.get_short_titles(B.display_name) == ["SAME"]

    async def test_round_finishing_after_reset_writes_fresh_state(self):
        release = asyncio.Event()

        def gated(short_title):
            async def _run():
                await release.wait()
                return await succeed(short_title)()

            return _run

        engine = _engine({"model-a": gated("AFTER_A"), "model-b": gated("AFTER_B")})
        engine.add_short_title(A.display_name, "BEFORE")
        engine.record_vote(A.display_name, B.display_name)

        round_task = asyncio.ensure_future(engine.generate_comparison_round(Difficulty.EASY))
        await asyncio.sleep(0.01)
        engine.reset()
        release.set()
        await round_task

        assert engine.get_short_titles(A.display_name) == ["AFTER_A"]
        assert engine.get_short_titles(B.display_name) == ["AFTER_B"]
        assert engine.get_analysis_results().total_rounds == 0


class TestVotesAndAnalysis:
    """Test suite for vote recording and scoring."""

    def test_vote_scenario(self):
        engine = _engine({})
        engine.record_vote("A", "B")
        engine.record_vote("A", "C")

        analysis = engine.get_analysis_results()
        scores = {score.model_name: score for score in analysis.scores}

        assert analysis.total_rounds == 2
        assert (scores["A"].times_shown, scores["A"].times_selected) == (2, 2)
        assert scores["A"].selection_percentage == 100.0
        assert (scores["B"].times_shown, scores["B"].times_selected) == (1, 0)
        assert scores["B"].selection_percentage == 0.0
        assert (scores["C"].times_shown, scores["C"].times_selected) == (1, 0)
        assert analysis.scores[0].model_name == "A"

    def test_percentage_rounds_to_one_decimal(self):
        engine = _engine({})
        engine.record_vote("A", "B")
        engine.record_vote("B", "A")
        engine.record_vote("B", "A")

        scores = {score.model_name: score for score in engine.get_analysis_results().scores}
        assert scores["A"].selection_percentage == 33.3
        assert scores["B"].selection_percentage == 66.7

    def test_sorted_by_percentage_then_times_selected(self):
        engine = _engine({})
        engine.record_vote("X", "LOSER")
        for _ in range(3):
            engine.record_vote("Y", "LOSER")

        names = [score.model_name for score in engine.get_analysis_results().scores]
        assert names == ["Y", "X", "LOSER"]

    def test_invariants_hold_for_vote_sequences(self):
        engine = _engine({})
        rng = random.Random(3)
        names = ["A", "B", "C", "D"]
        for count in range(1, 101):
            winner, loser = rng.sample(names, 2)
            engine.record_vote(winner, loser)
            analysis = engine.get_analysis_results()
            assert analysis.total_rounds == count
            for score in analysis.scores:
                assert score.times_selected <= score.times_shown
                assert 0.0 <= score.selection_percentage <= 100.0

    def test_votes_from_threads_are_not_lost(self):
        engine = _engine({})

        def vote_many():
            for _ in range(500):
                engine.record_vote("A", "B")

        threads = [Thread(target=vote_many) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        scores = {score.model_name: score for score in engine.get_analysis_results().scores}
        assert engine.get_analysis_results().total_rounds == 2000
        assert scores["A"].times_selected == scores["A"].times_shown == 2000
        assert scores["B"].times_shown == 2000

    def test_reset_clears_everything(self):
        engine = _engine({})
        engine.record_vote("A", "B")
        engine.add_short_title("A", "PARKING_LOT")

        engine.reset()

        analysis = engine.get_analysis_results()
        assert analysis.total_rounds == 0
        assert analysis.scores == []
        assert engine.get_short_titles("A") == []

    def test_blank_titles_are_ignored(self):
        engine = _engine({})
        engine.add_short_title("A", "")
        assert engine.get_short_titles("A") == []
