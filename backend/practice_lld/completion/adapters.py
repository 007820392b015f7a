# -*- coding: utf-8 -*-
"""Provider adapters: request shaping and envelope parsing per wire protocol.

Each adapter is bound to a single model. Model quirks (reasoning parameters,
system-role support, structured-output support) are resolved into a
:class:`ModelCapabilities` record when the adapter is built, so request
building is a pure data transform with no per-call model-name checks.
"""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

from .models import (
    CompletionErrorKind,
    CompletionRequest,
    Message,
    Provider,
    ProviderResponse,
    ReasoningEffort,
    StructuredOutputSchema,
    Usage,
)

logger = logging.getLogger(__name__)


class ReasoningStyle(str, Enum):
    NONE = "none"
    # Top-level reasoning_effort (low/medium/high) plus include_reasoning.
    EFFORT_WITH_TRACE = "effort_with_trace"
    # Top-level reasoning_format plus reasoning_effort "none"/"default".
    REASONING_FORMAT = "reasoning_format"
    # Nested reasoning object: {"enabled": true, "effort": ...}.
    NESTED = "nested"


_REASONING_FORMATS = {"parsed", "hidden", "raw"}

GROQ_EFFORT_WITH_TRACE_MODELS = (
    "openai/gpt-oss-20b",
    "openai/gpt-oss-120b",
    "openai/gpt-oss-safeguard-20b",
)
GROQ_REASONING_FORMAT_MODELS = ("qwen/qwen3-32b",)
SYSTEM_PROMPT_MERGE_PREFIXES = ("google/gemma-",)

# Phrases providers use when the structured-output clause itself is refused.
_STRUCTURED_OUTPUT_MARKERS = (
    "response_format",
    "json_schema",
    "text.format",
    "structured output",
    "structured_outputs",
    "no endpoints found that can handle the requested parameters",
)


@dataclass(frozen=True)
class ModelCapabilities:
    reasoning_style: ReasoningStyle = ReasoningStyle.NONE
    merges_system_prompt: bool = False
    supports_structured_output: bool = True
    reasoning_format: str = "parsed"


def resolve_capabilities(
    provider: Provider,
    model_id: str,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> ModelCapabilities:
    """Build the capability record for ``model_id`` on ``provider``."""

    normalized = model_id.strip().lower()

    if provider is Provider.GROQ:
        if normalized in GROQ_EFFORT_WITH_TRACE_MODELS:
            style = ReasoningStyle.EFFORT_WITH_TRACE
        elif normalized in GROQ_REASONING_FORMAT_MODELS:
            style = ReasoningStyle.REASONING_FORMAT
        else:
            style = ReasoningStyle.NONE
    else:
        style = ReasoningStyle.NESTED

    capabilities = ModelCapabilities(
        reasoning_style=style,
        merges_system_prompt=normalized.startswith(SYSTEM_PROMPT_MERGE_PREFIXES),
    )

    override = (overrides or {}).get(model_id)
    if override:
        known = {item.name for item in fields(ModelCapabilities)}
        unknown = set(override) - known
        if unknown:
            raise ValueError(
                f"Unknown capability override(s) for {model_id}: {', '.join(sorted(unknown))}"
            )
        values = dict(override)
        if "reasoning_style" in values:
            values["reasoning_style"] = ReasoningStyle(values["reasoning_style"])
        capabilities = replace(capabilities, **values)

    if capabilities.reasoning_format not in _REASONING_FORMATS:
        raise ValueError(
            f"Invalid reasoning_format {capabilities.reasoning_format!r} for {model_id}"
        )
    return capabilities


def _failure(
    message: str,
    kind: CompletionErrorKind,
    status_code: Optional[int],
    raw: Optional[Dict[str, Any]] = None,
    body: Optional[str] = None,
) -> ProviderResponse:
    return ProviderResponse(
        success=False,
        error_message=message,
        error_kind=kind,
        status_code=status_code,
        raw=raw,
        body=body,
    )


def _int_or_zero(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class ProviderAdapter(ABC):
    """Shapes requests for, and parses responses from, one wire protocol."""

    provider: Provider
    endpoint_path: str

    def __init__(self, model_id: str, capabilities: ModelCapabilities) -> None:
        self.model_id = model_id
        self.capabilities = capabilities

    @property
    def supports_structured_output(self) -> bool:
        return self.capabilities.supports_structured_output

    def build_messages(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        assistant_prompt: Optional[str] = None,
    ) -> List[Message]:
        """Return system, user and assistant messages in that order.

        Models without a system role get the system prompt folded into the
        start of the user prompt instead.
        """

        if system_prompt and self.capabilities.merges_system_prompt:
            user_prompt = f"{system_prompt}\n\n{user_prompt}"
            system_prompt = None

        messages: List[Message] = []
        if system_prompt:
            messages.append(Message(role="system", content=system_prompt))
        messages.append(Message(role="user", content=user_prompt))
        if assistant_prompt:
            messages.append(Message(role="assistant", content=assistant_prompt))
        return messages

    def prepare_messages(self, messages: Sequence[Message]) -> List[Message]:
        """Apply the system-role rule to an existing conversation.

        For models without a system role, system messages are dropped and
        their text is prepended to the first user message.
        """

        if not self.capabilities.merges_system_prompt:
            return list(messages)

        system_text = "\n\n".join(m.content for m in messages if m.role == "system" and m.content)
        prepared = [m for m in messages if m.role != "system"]
        if not system_text:
            return prepared

        for index, message in enumerate(prepared):
            if message.role == "user":
                prepared[index] = Message(role="user", content=f"{system_text}\n\n{message.content}")
                return prepared
        return [Message(role="user", content=system_text), *prepared]

    @abstractmethod
    def build_request(self, request: CompletionRequest) -> Dict[str, Any]:
        """Return the JSON body for ``request``."""
        raise NotImplementedError

    @abstractmethod
    def _parse_envelope(self, payload: Dict[str, Any], status_code: int) -> ProviderResponse:
        """Parse a decoded 2xx envelope that carries no top-level error."""
        raise NotImplementedError

    def parse_response(
        self,
        status_code: int,
        body: str,
        reason: Optional[str] = None,
    ) -> ProviderResponse:
        """Normalise an HTTP response into a :class:`ProviderResponse`."""

        ok = 200 <= status_code < 300
        status_text = f"HTTP {status_code}: {reason or 'Unknown status'}"

        if not body or not body.strip():
            if ok:
                return _failure("Empty response body.", CompletionErrorKind.RESPONSE_PARSE, status_code)
            return _failure(status_text, CompletionErrorKind.HTTP_STATUS, status_code, body=body)

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            if ok:
                return _failure(
                    f"JSON parsing error: {exc}", CompletionErrorKind.RESPONSE_PARSE, status_code
                )
            return _failure(status_text, CompletionErrorKind.HTTP_STATUS, status_code, body=body)

        if not isinstance(payload, dict):
            if ok:
                return _failure(
                    "JSON parsing error: response envelope is not an object.",
                    CompletionErrorKind.RESPONSE_PARSE,
                    status_code,
                )
            return _failure(status_text, CompletionErrorKind.HTTP_STATUS, status_code, body=body)

        error = payload.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message") or "Unknown error"
            else:
                message = str(error)
            return _failure(
                message,
                CompletionErrorKind.PROVIDER_ERROR,
                status_code,
                payload,
                body=None if ok else body,
            )

        if not ok:
            return _failure(status_text, CompletionErrorKind.HTTP_STATUS, status_code, payload, body)

        return self._parse_envelope(payload, status_code)

    def is_structured_output_rejection(self, response: ProviderResponse) -> bool:
        """Return True when ``response`` refuses the structured-output clause."""

        if response.success:
            return False
        if response.error_kind not in (
            CompletionErrorKind.PROVIDER_ERROR,
            CompletionErrorKind.HTTP_STATUS,
        ):
            return False
        if response.status_code is not None and response.status_code >= 500:
            return False

        haystack = (response.error_message or "").lower()
        if response.raw is not None:
            haystack += " " + json.dumps(response.raw, ensure_ascii=False).lower()
        elif response.body:
            haystack += " " + response.body.lower()
        return any(marker in haystack for marker in _STRUCTURED_OUTPUT_MARKERS)


def _chat_messages(messages: List[Message]) -> List[Dict[str, str]]:
    return [{"role": message.role, "content": message.content} for message in messages]


def _chat_response_format(schema: StructuredOutputSchema) -> Dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": schema.name,
            "schema": schema.schema,
            "strict": schema.strict,
        },
    }


def _content_text(content: Any) -> Optional[str]:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") in {"text", "output_text", None}
        ]
        joined = "".join(parts)
        return joined or None
    return None


def _parse_chat_completion(payload: Dict[str, Any], status_code: int) -> ProviderResponse:
    choices = payload.get("choices") or []
    choice = choices[0] if choices and isinstance(choices[0], dict) else {}

    choice_error = choice.get("error")
    if choice_error:
        message = choice_error.get("message") if isinstance(choice_error, dict) else str(choice_error)
        return _failure(
            message or "Unknown error", CompletionErrorKind.PROVIDER_ERROR, status_code, payload
        )

    message = choice.get("message") or {}
    reasoning = message.get("reasoning")

    usage = None
    usage_raw = payload.get("usage")
    if isinstance(usage_raw, dict):
        usage = Usage(
            prompt_tokens=_int_or_zero(usage_raw.get("prompt_tokens")),
            completion_tokens=_int_or_zero(usage_raw.get("completion_tokens")),
            total_tokens=_int_or_zero(usage_raw.get("total_tokens")),
        )

    return ProviderResponse(
        success=True,
        text=_content_text(message.get("content")),
        usage=usage,
        reasoning_trace=reasoning if isinstance(reasoning, str) and reasoning else None,
        status_code=status_code,
        raw=payload,
    )


class GroqChatAdapter(ProviderAdapter):
    """Groq chat completions with top-level reasoning parameters."""

    provider = Provider.GROQ
    endpoint_path = "/chat/completions"

    def build_request(self, request: CompletionRequest) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": request.model,
            "messages": _chat_messages(request.messages),
        }
        if request.max_tokens is not None:
            body["max_completion_tokens"] = request.max_tokens
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.structured_output is not None:
            body["response_format"] = _chat_response_format(request.structured_output)

        style = self.capabilities.reasoning_style
        effort = request.reasoning_effort
        if style is ReasoningStyle.EFFORT_WITH_TRACE:
            # reasoning_format is not accepted alongside include_reasoning.
            body["include_reasoning"] = True
            if effort in (ReasoningEffort.LOW, ReasoningEffort.MEDIUM, ReasoningEffort.HIGH):
                body["reasoning_effort"] = effort.wire_value
        elif style is ReasoningStyle.REASONING_FORMAT:
            reasoning_format = self.capabilities.reasoning_format
            if reasoning_format == "raw" and request.structured_output is not None:
                reasoning_format = "parsed"
            body["reasoning_format"] = reasoning_format
            body["reasoning_effort"] = "none" if effort is ReasoningEffort.NONE else "default"
        return body

    def _parse_envelope(self, payload: Dict[str, Any], status_code: int) -> ProviderResponse:
        return _parse_chat_completion(payload, status_code)


class OpenRouterChatAdapter(ProviderAdapter):
    """OpenRouter chat completions with a nested reasoning object."""

    provider = Provider.OPENROUTER
    endpoint_path = "/chat/completions"

    def build_request(self, request: CompletionRequest) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": request.model,
            "messages": _chat_messages(request.messages),
        }
        if request.max_tokens is not None:
            body["max_tokens"] = request.max_tokens
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if self.capabilities.reasoning_style is ReasoningStyle.NESTED:
            reasoning: Dict[str, Any] = {"enabled": True}
            if request.reasoning_effort is not ReasoningEffort.NONE:
                reasoning["effort"] = request.reasoning_effort.wire_value
            body["reasoning"] = reasoning
        if request.structured_output is not None:
            body["response_format"] = _chat_response_format(request.structured_output)
        return body

    def _parse_envelope(self, payload: Dict[str, Any], status_code: int) -> ProviderResponse:
        return _parse_chat_completion(payload, status_code)


class OpenRouterResponsesAdapter(ProviderAdapter):
    """OpenRouter Responses API: ``input`` items and ``text.format``."""

    provider = Provider.OPENROUTER_RESPONSES
    endpoint_path = "/responses"

    @staticmethod
    def _input_item(message: Message) -> Dict[str, Any]:
        if message.role == "assistant":
            return {
                "type": "message",
                "role": "assistant",
                "id": f"msg_{uuid.uuid4().hex}",
                "status": "completed",
                "content": [
                    {"type": "output_text", "text": message.content, "annotations": []},
                ],
            }
        return {
            "type": "message",
            "role": message.role,
            "content": [{"type": "input_text", "text": message.content}],
        }

    def build_request(self, request: CompletionRequest) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": request.model,
            "input": [self._input_item(message) for message in request.messages],
        }
        if request.max_tokens is not None:
            body["max_output_tokens"] = request.max_tokens
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if (
            self.capabilities.reasoning_style is ReasoningStyle.NESTED
            and request.reasoning_effort is not ReasoningEffort.NONE
        ):
            body["reasoning"] = {"effort": request.reasoning_effort.wire_value}
        if request.structured_output is not None:
            schema = request.structured_output
            body["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": schema.name,
                    "schema": schema.schema,
                    "strict": schema.strict,
                }
            }
        return body

    def _parse_envelope(self, payload: Dict[str, Any], status_code: int) -> ProviderResponse:
        text: Optional[str] = None
        summaries: List[str] = []

        for item in payload.get("output") or []:
            if not isinstance(item, dict):
                continue
            item_type = item.get("type")
            if item_type == "message" and text is None:
                for content in item.get("content") or []:
                    if (
                        isinstance(content, dict)
                        and content.get("type") == "output_text"
                        and content.get("text")
                    ):
                        text = content["text"]
                        break
            elif item_type == "reasoning" and not summaries:
                for entry in item.get("summary") or []:
                    if isinstance(entry, str) and entry:
                        summaries.append(entry)
                    elif isinstance(entry, dict) and entry.get("text"):
                        summaries.append(entry["text"])

        usage = None
        usage_raw = payload.get("usage")
        if isinstance(usage_raw, dict):
            usage = Usage(
                prompt_tokens=_int_or_zero(usage_raw.get("input_tokens")),
                completion_tokens=_int_or_zero(usage_raw.get("output_tokens")),
                total_tokens=_int_or_zero(usage_raw.get("total_tokens")),
            )

        return ProviderResponse(
            success=True,
            text=text,
            usage=usage,
            reasoning_trace="\n".join(summaries) or None,
            status_code=status_code,
            raw=payload,
        )


_ADAPTERS: Dict[Provider, Type[ProviderAdapter]] = {
    Provider.GROQ: GroqChatAdapter,
    Provider.OPENROUTER: OpenRouterChatAdapter,
    Provider.OPENROUTER_RESPONSES: OpenRouterResponsesAdapter,
}


def build_adapter(
    provider: Provider,
    model_id: str,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> ProviderAdapter:
    """Return the adapter for ``model_id`` with its capabilities resolved."""

    adapter_cls = _ADAPTERS[provider]
    capabilities = resolve_capabilities(provider, model_id, overrides)
    logger.debug("Adapter %s resolved for %s: %s", adapter_cls.__name__, model_id, capabilities)
    return adapter_cls(model_id, capabilities)


__all__ = [
    "GroqChatAdapter",
    "ModelCapabilities",
    "OpenRouterChatAdapter",
    "OpenRouterResponsesAdapter",
    "ProviderAdapter",
    "ReasoningStyle",
    "build_adapter",
    "resolve_capabilities",
]
