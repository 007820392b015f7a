"""Multi-provider structured completion layer."""

from .adapters import ModelCapabilities, ProviderAdapter, ReasoningStyle, build_adapter
from .client import CompletionClient
from .extractor import extract_json_object, parse_structured
from .models import (
    CompletionErrorKind,
    CompletionRequest,
    CompletionResult,
    Message,
    ModelEntry,
    Provider,
    ProviderResponse,
    ReasoningEffort,
    StructuredOutputSchema,
    Usage,
)

__all__ = [
    "CompletionClient",
    "CompletionErrorKind",
    "CompletionRequest",
    "CompletionResult",
    "Message",
    "ModelCapabilities",
    "ModelEntry",
    "Provider",
    "ProviderAdapter",
    "ProviderResponse",
    "ReasoningEffort",
    "ReasoningStyle",
    "StructuredOutputSchema",
    "Usage",
    "build_adapter",
    "extract_json_object",
    "parse_structured",
]
