"""Domain services built on the completion layer."""

from .history import InMemoryQuestionHistoryRepository, QuestionHistoryRepository
from .lld_question import LLD_QUESTION_SCHEMA, LldQuestionService, QuestionResult
from .model_comparison import ModelComparisonService

__all__ = [
    "InMemoryQuestionHistoryRepository",
    "LLD_QUESTION_SCHEMA",
    "LldQuestionService",
    "ModelComparisonService",
    "QuestionHistoryRepository",
    "QuestionResult",
]
