"""Pydantic models and domain entities for the backend service."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from practice_lld.completion.models import CaseInsensitiveEnum, ReasoningEffort


class Difficulty(CaseInsensitiveEnum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ApiModel(BaseModel):
    """Base schema: camelCase over HTTP, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class QuestionResponse(ApiModel):
    """An interview question as generated by a model.

    Models answer with snake_case keys; clients receive camelCase.
    """

    question: str
    constraints: List[str]
    short_title: str
    functional_requirements: Optional[List[str]] = None
    non_functional_requirements: Optional[List[str]] = None

    @field_validator("short_title")
    @classmethod
    def _short_title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("short_title must not be blank")
        return value


class GenerateLldQuestionRequest(ApiModel):
    difficulty: Difficulty = Difficulty.MEDIUM
    already_asked_short_titles: Optional[List[str]] = None


class ComparisonGenerateRequest(ApiModel):
    difficulty: Difficulty = Difficulty.MEDIUM
    reasoning_effort: ReasoningEffort = ReasoningEffort.NONE


class VoteRequest(ApiModel):
    winning_model: Optional[str] = None
    losing_model: Optional[str] = None


class ModelQuestionResult(ApiModel):
    """Outcome of one side of a comparison round."""

    model_name: str
    is_success: bool
    error_message: Optional[str] = None
    question: Optional[QuestionResponse] = None


class ComparisonRoundResult(ApiModel):
    is_success: bool
    error_message: Optional[str] = None
    model_a: Optional[ModelQuestionResult] = None
    model_b: Optional[ModelQuestionResult] = None


class ModelScore(ApiModel):
    model_name: str
    times_selected: int = 0
    times_shown: int = 0

    @computed_field(alias="selectionPercentage")
    @property
    def selection_percentage(self) -> float:
        if self.times_shown <= 0:
            return 0.0
        return round(self.times_selected / self.times_shown * 100, 1)


class AnalysisResult(ApiModel):
    scores: List[ModelScore] = Field(default_factory=list)
    total_rounds: int = 0


class PromptRequest(ApiModel):
    """Free-form prompt sent to the diagnostics model."""

    user_prompt: Optional[str] = None
    system_prompt: Optional[str] = None
    assistant_prompt: Optional[str] = None
    temperature: Optional[float] = None
    reasoning_effort: ReasoningEffort = ReasoningEffort.NONE
    max_output_tokens: Optional[int] = None


class ConversationMessage(ApiModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ConversationRequest(ApiModel):
    messages: Optional[List[ConversationMessage]] = None
    temperature: Optional[float] = None
    reasoning_effort: ReasoningEffort = ReasoningEffort.NONE
    max_output_tokens: Optional[int] = None


class UsageInfo(ApiModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class PromptResponse(ApiModel):
    text_response: str
    reasoning_summary: List[str] = Field(default_factory=list)
    usage: Optional[UsageInfo] = None


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
