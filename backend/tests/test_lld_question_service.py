"""Tests for the question generation service."""
import pytest

from practice_lld.completion import CompletionErrorKind, CompletionResult, Provider, ReasoningEffort
from practice_lld.config import QuestionSettings
from practice_lld.models import Difficulty, QuestionResponse
from practice_lld.prompts import build_system_prompt, build_user_prompt
from practice_lld.services.lld_question import LLD_QUESTION_SCHEMA, LldQuestionService


def _question(short_title):
    return QuestionResponse(question="Design it.", constraints=[], short_title=short_title)


class RecordingClient:
    """Stands in for CompletionClient; replays results keyed by model."""

    def __init__(self, results):
        self.results = dict(results)
        self.calls = []

    async def send_structured(self, **kwargs):
        self.calls.append(kwargs)
        return self.results[kwargs["model"]]


def _ok(short_title):
    return CompletionResult(is_success=True, data=_question(short_title))


def _failed(message):
    return CompletionResult.failure(message, CompletionErrorKind.PROVIDER_ERROR)


@pytest.fixture
def settings():
    return QuestionSettings(
        temperature=0.9,
        default_reasoning_effort=ReasoningEffort.MEDIUM,
        fallback_provider=Provider.GROQ,
        fallback_models=["first", "second", "third"],
    )


class TestPrompts:
    """Test suite for prompt builders."""

    def test_system_prompt_uses_lowercase_difficulty(self):
        prompt = build_system_prompt(Difficulty.HARD)
        assert "interview of hard difficulty" in prompt
        assert "already asked list" in prompt

    def test_user_prompt_without_history(self):
        assert build_user_prompt(None) == (
            "No questions have been asked yet. Generate a new LLD interview question."
        )
        assert build_user_prompt([]) == build_user_prompt(None)

    def test_user_prompt_lists_titles_verbatim(self):
        prompt = build_user_prompt(["PARKING_LOT", "ELEVATOR"])
        assert prompt == (
            "Already asked questions (short titles): PARKING_LOT, ELEVATOR. "
            "Generate a new LLD interview question that is different from the ones listed."
        )


class TestSchema:
    def test_all_properties_required(self):
        assert set(LLD_QUESTION_SCHEMA["required"]) == set(LLD_QUESTION_SCHEMA["properties"])
        assert LLD_QUESTION_SCHEMA["additionalProperties"] is False


class TestDefaultMode:
    """Test suite for generate_question with the fallback list."""

    async def test_first_success_wins(self, settings):
        client = RecordingClient({"first": _failed("boom"), "second": _ok("CACHE"), "third": _ok("X")})
        service = LldQuestionService({Provider.GROQ: client}, settings)

        result = await service.generate_question(Difficulty.EASY, ["PARKING_LOT"])

        assert result.is_success is True
        assert result.question.short_title == "CACHE"
        assert result.model_name == "second"
        assert [call["model"] for call in client.calls] == ["first", "second"]

        call = client.calls[0]
        assert call["schema"] is LLD_QUESTION_SCHEMA
        assert call["schema_name"] == "lld_question"
        assert call["temperature"] == 0.9
        assert call["reasoning_effort"] is ReasoningEffort.MEDIUM
        assert call["response_model"] is QuestionResponse
        assert "PARKING_LOT" in call["user_prompt"]
        assert "easy difficulty" in call["system_prompt"]

    async def test_all_failures_return_last(self, settings):
        client = RecordingClient({"first": _failed("a"), "second": _failed("b"), "third": _failed("c")})
        service = LldQuestionService({Provider.GROQ: client}, settings)

        result = await service.generate_question(Difficulty.MEDIUM)

        assert result.is_success is False
        assert result.error_message == "c"
        assert result.question is None
        assert len(client.calls) == 3

    async def test_no_fallback_models(self):
        service = LldQuestionService({}, QuestionSettings(fallback_models=[]))
        result = await service.generate_question(Difficulty.MEDIUM)
        assert result.is_success is False


class TestTargetedMode:
    """Test suite for generate_question_with_model."""

    async def test_dispatches_to_provider_client(self, settings):
        groq = RecordingClient({})
        openrouter = RecordingClient({"anthropic/claude-sonnet": _ok("LRU_CACHE")})
        service = LldQuestionService({Provider.GROQ: groq, Provider.OPENROUTER: openrouter}, settings)

        result = await service.generate_question_with_model(
            "anthropic/claude-sonnet",
            Provider.OPENROUTER,
            Difficulty.HARD,
            ReasoningEffort.HIGH,
        )

        assert result.is_success is True
        assert groq.calls == []
        assert openrouter.calls[0]["reasoning_effort"] is ReasoningEffort.HIGH

    async def test_failure_is_not_retried(self, settings):
        client = RecordingClient({"x": _failed("rate limited")})
        service = LldQuestionService({Provider.GROQ: client}, settings)

        result = await service.generate_question_with_model(
            "x", Provider.GROQ, Difficulty.EASY, ReasoningEffort.NONE
        )

        assert result.is_success is False
        assert result.error_message == "rate limited"
        assert len(client.calls) == 1

    async def test_missing_client_is_a_failure_result(self, settings):
        service = LldQuestionService({}, settings)
        result = await service.generate_question_with_model(
            "x", Provider.OPENROUTER_RESPONSES, Difficulty.EASY, ReasoningEffort.NONE
        )
        assert result.is_success is False
        assert "OpenRouterResponses" in result.error_message
