# -*- coding: utf-8 -*-
"""Recover a JSON object from free-form model output."""

from __future__ import annotations

import logging
from typing import Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE = "```"


def _strip_code_fence(text: str) -> str:
    """Return the body of the first fenced block, or ``text`` unchanged."""

    fence_start = text.find(_FENCE)
    if fence_start < 0:
        return text

    # The opening fence line may carry a language tag such as ```json.
    content_start = text.find("\n", fence_start)
    if content_start < 0:
        return text

    fence_end = text.find(_FENCE, content_start)
    if fence_end <= content_start:
        return text

    return text[content_start:fence_end].strip()


def extract_json_object(raw_text: Optional[str]) -> Optional[str]:
    """Return the text of the first balanced ``{...}`` block in ``raw_text``.

    Braces inside string literals are ignored, as are escaped quotes inside
    those strings. Returns ``None`` when there is no ``{`` or when the depth
    never returns to zero.
    """

    if not raw_text or not raw_text.strip():
        return None

    text = _strip_code_fence(raw_text)

    first_brace = text.find("{")
    if first_brace == -1:
        logger.debug("No JSON object found in response: %s", text[:200])
        return None

    depth = 0
    in_string = False
    escape_next = False

    for index in range(first_brace, len(text)):
        char = text[index]

        if escape_next:
            escape_next = False
            continue

        if char == "\\" and in_string:
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[first_brace:index + 1]

    logger.debug("Unbalanced JSON object in response: %s", text[:200])
    return None


def _try_validate(model_cls: Type[ModelT], text: str) -> Optional[ModelT]:
    try:
        return model_cls.model_validate_json(text)
    except ValidationError as exc:
        logger.debug("Payload did not validate as %s: %s", model_cls.__name__, exc)
        return None


def parse_structured(
    raw_text: Optional[str],
    model_cls: Type[ModelT],
) -> Tuple[Optional[ModelT], Optional[str]]:
    """Validate ``raw_text`` against ``model_cls``.

    Tries the text as-is first, then the block recovered by
    :func:`extract_json_object`. Returns ``(instance, json_text)`` on success
    and ``(None, None)`` when neither attempt yields a valid instance.
    """

    if not raw_text or not raw_text.strip():
        return None, None

    direct = _try_validate(model_cls, raw_text)
    if direct is not None:
        logger.debug("Parsed entire response as %s", model_cls.__name__)
        return direct, raw_text

    extracted = extract_json_object(raw_text)
    if extracted is None:
        return None, None

    recovered = _try_validate(model_cls, extracted)
    if recovered is None:
        return None, None

    logger.debug("Recovered %s from free-form response", model_cls.__name__)
    return recovered, extracted


__all__ = ["extract_json_object", "parse_structured"]
