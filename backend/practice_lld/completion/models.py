# -*- coding: utf-8 -*-
"""Request, response and result types shared by the completion clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class CaseInsensitiveEnum(str, Enum):
    """Accept member values and names regardless of case."""

    @classmethod
    def _missing_(cls, value: object) -> Optional["CaseInsensitiveEnum"]:
        if isinstance(value, str):
            text = value.strip().lower()
            for member in cls:
                if member.value.lower() == text or member.name.lower() == text:
                    return member
        return None


class Provider(CaseInsensitiveEnum):
    """Closed set of backends a model can be called through."""

    OPENROUTER = "OpenRouter"
    OPENROUTER_RESPONSES = "OpenRouterResponses"
    GROQ = "Groq"


class ReasoningEffort(CaseInsensitiveEnum):
    NONE = "None"
    MINIMAL = "Minimal"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def wire_value(self) -> str:
        return self.value.lower()


class CompletionErrorKind(str, Enum):
    """Why a completion call failed."""

    NETWORK = "network"
    RESPONSE_PARSE = "response_parse"
    PROVIDER_ERROR = "provider_error"
    HTTP_STATUS = "http_status"
    STRUCTURED_OUTPUT_REJECTED = "structured_output_rejected"
    SCHEMA_VALIDATION = "schema_validation"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ModelEntry:
    """A callable model from the static catalog."""

    model_id: str
    provider: Provider

    @property
    def display_name(self) -> str:
        return f"[{self.provider.value}] {self.model_id}"


@dataclass(frozen=True)
class Message:
    role: str  # "system", "user" or "assistant"
    content: str


@dataclass(frozen=True)
class StructuredOutputSchema:
    name: str
    schema: Dict[str, Any]
    strict: bool = True


@dataclass
class CompletionRequest:
    """Provider-neutral description of one completion call."""

    model: str
    messages: List[Message]
    temperature: Optional[float] = None
    reasoning_effort: ReasoningEffort = ReasoningEffort.NONE
    max_tokens: Optional[int] = None
    structured_output: Optional[StructuredOutputSchema] = None


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ProviderResponse:
    """Normalised view of a provider envelope."""

    success: bool
    text: Optional[str] = None
    error_message: Optional[str] = None
    error_kind: Optional[CompletionErrorKind] = None
    usage: Optional[Usage] = None
    reasoning_trace: Optional[str] = None
    status_code: Optional[int] = None
    raw: Optional[Dict[str, Any]] = None
    # Undecoded body of a failed HTTP response.
    body: Optional[str] = field(default=None, repr=False)


@dataclass
class CompletionResult(Generic[T]):
    """Outcome of a completion call.

    ``is_success`` implies ``data`` holds a validated instance of the target
    type; a failed result never carries ``data``.
    """

    is_success: bool
    data: Optional[T] = None
    error_message: Optional[str] = None
    error_kind: Optional[CompletionErrorKind] = None
    raw_text: Optional[str] = None
    usage: Optional[Usage] = None
    reasoning_trace: Optional[str] = None
    attempts: int = 1
    model: Optional[str] = None
    raw: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @classmethod
    def failure(
        cls,
        message: str,
        kind: CompletionErrorKind,
        **kwargs: Any,
    ) -> "CompletionResult[T]":
        return cls(is_success=False, error_message=message, error_kind=kind, **kwargs)


__all__ = [
    "CaseInsensitiveEnum",
    "CompletionErrorKind",
    "CompletionRequest",
    "CompletionResult",
    "Message",
    "ModelEntry",
    "Provider",
    "ProviderResponse",
    "ReasoningEffort",
    "StructuredOutputSchema",
    "Usage",
]
