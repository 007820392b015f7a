# -*- coding: utf-8 -*-
"""Structured-completion client over a provider's HTTP API."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional, Sequence, Type, TypeVar

import aiohttp
from pydantic import BaseModel

from .adapters import ProviderAdapter, build_adapter
from .extractor import parse_structured
from .models import (
    CompletionErrorKind,
    CompletionRequest,
    CompletionResult,
    Message,
    Provider,
    ProviderResponse,
    ReasoningEffort,
    StructuredOutputSchema,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_CANCELLED_MESSAGE = "Request was cancelled"
_SCHEMA_MISMATCH_MESSAGE = "Response did not contain valid JSON matching the expected schema."
_EMPTY_TEXT_MESSAGE = "Response contained no text content."


class CompletionClient:
    """Send prompts to one provider and turn the replies into typed results.

    Outbound calls of one instance go through a single-slot gate, so at most
    one HTTP request per client is in flight at any time. Use separate
    instances for calls that must run in parallel.
    """

    def __init__(
        self,
        provider: Provider,
        base_url: str,
        api_key: str,
        *,
        timeout_sec: float = 120.0,
        release_delay_sec: float = 0.0,
        capability_overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.provider = provider
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout_sec = timeout_sec
        self._release_delay_sec = max(release_delay_sec, 0.0)
        self._capability_overrides = capability_overrides or {}
        self._session = session
        self._owns_session = session is None
        self._gate = asyncio.Semaphore(1)
        self._adapters: Dict[str, ProviderAdapter] = {}

        if not api_key:
            logger.warning(
                "%s client created without an API key; requests will be rejected.",
                provider.value,
            )

    def adapter_for(self, model: str) -> ProviderAdapter:
        adapter = self._adapters.get(model)
        if adapter is None:
            adapter = build_adapter(self.provider, model, self._capability_overrides)
            self._adapters[model] = adapter
        return adapter

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout_sec)
            )
            self._owns_session = True
        return self._session

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def send_text(
        self,
        model: str,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        assistant_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        reasoning_effort: ReasoningEffort = ReasoningEffort.NONE,
        max_tokens: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompletionResult[str]:
        """Send a prompt without a structured-output clause."""

        adapter = self.adapter_for(model)
        return await self.send_messages(
            model,
            adapter.build_messages(user_prompt, system_prompt, assistant_prompt),
            temperature=temperature,
            reasoning_effort=reasoning_effort,
            max_tokens=max_tokens,
            cancel_event=cancel_event,
        )

    async def send_messages(
        self,
        model: str,
        messages: Sequence[Message],
        temperature: Optional[float] = None,
        reasoning_effort: ReasoningEffort = ReasoningEffort.NONE,
        max_tokens: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompletionResult[str]:
        """Send a multi-turn conversation and return the reply text."""

        adapter = self.adapter_for(model)
        request = CompletionRequest(
            model=model,
            messages=adapter.prepare_messages(messages),
            temperature=temperature,
            reasoning_effort=reasoning_effort,
            max_tokens=max_tokens,
        )
        response = await self._execute(adapter, request, cancel_event)

        failed = self._unusable_response(response, model, attempts=1)
        if failed is not None:
            return failed
        return CompletionResult(
            is_success=True,
            data=response.text,
            raw_text=response.text,
            usage=response.usage,
            reasoning_trace=response.reasoning_trace,
            model=model,
            raw=response.raw,
        )

    async def send_structured(
        self,
        model: str,
        user_prompt: str,
        response_model: Type[ModelT],
        schema: Dict[str, Any],
        schema_name: str = "response",
        system_prompt: Optional[str] = None,
        assistant_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        reasoning_effort: ReasoningEffort = ReasoningEffort.NONE,
        max_tokens: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompletionResult[ModelT]:
        """Ask ``model`` for JSON matching ``schema`` and validate it as ``response_model``.

        The first request carries the structured-output clause. When the
        provider refuses that clause the request is sent once more without
        it, and the JSON is recovered from the free-form reply. Failures are
        returned as unsuccessful results, never raised.
        """

        adapter = self.adapter_for(model)
        structured = StructuredOutputSchema(name=schema_name, schema=schema)
        request = CompletionRequest(
            model=model,
            messages=adapter.build_messages(user_prompt, system_prompt, assistant_prompt),
            temperature=temperature,
            reasoning_effort=reasoning_effort,
            max_tokens=max_tokens,
            structured_output=structured if adapter.supports_structured_output else None,
        )

        attempts = 1
        response = await self._execute(adapter, request, cancel_event)

        if request.structured_output is not None and adapter.is_structured_output_rejection(response):
            response = replace(response, error_kind=CompletionErrorKind.STRUCTURED_OUTPUT_REJECTED)
            logger.warning(
                "%s Completions [%s]: %s (%s), retrying as plain text.",
                self.provider.value,
                model,
                response.error_kind.value,
                response.error_message,
            )
            attempts = 2
            response = await self._execute(
                adapter, replace(request, structured_output=None), cancel_event
            )

        failed = self._unusable_response(response, model, attempts)
        if failed is not None:
            return failed

        data, json_text = parse_structured(response.text, response_model)
        if data is None:
            logger.warning(
                "%s Completions [%s]: response did not match %s. Preview: %s",
                self.provider.value,
                model,
                response_model.__name__,
                response.text[:500],
            )
            return CompletionResult.failure(
                _SCHEMA_MISMATCH_MESSAGE,
                CompletionErrorKind.SCHEMA_VALIDATION,
                raw_text=response.text,
                usage=response.usage,
                reasoning_trace=response.reasoning_trace,
                attempts=attempts,
                model=model,
                raw=response.raw,
            )

        return CompletionResult(
            is_success=True,
            data=data,
            raw_text=json_text,
            usage=response.usage,
            reasoning_trace=response.reasoning_trace,
            attempts=attempts,
            model=model,
            raw=response.raw,
        )

    @staticmethod
    def _unusable_response(
        response: ProviderResponse, model: str, attempts: int
    ) -> Optional[CompletionResult[Any]]:
        """Return the failed result for an error or text-less response, else None."""

        if not response.success:
            return CompletionResult.failure(
                response.error_message or "Unknown error",
                response.error_kind or CompletionErrorKind.PROVIDER_ERROR,
                raw_text=response.text,
                usage=response.usage,
                reasoning_trace=response.reasoning_trace,
                attempts=attempts,
                model=model,
                raw=response.raw,
            )
        if not response.text:
            return CompletionResult.failure(
                _EMPTY_TEXT_MESSAGE,
                CompletionErrorKind.SCHEMA_VALIDATION,
                usage=response.usage,
                reasoning_trace=response.reasoning_trace,
                attempts=attempts,
                model=model,
                raw=response.raw,
            )
        return None

    async def _execute(
        self,
        adapter: ProviderAdapter,
        request: CompletionRequest,
        cancel_event: Optional[asyncio.Event],
    ) -> ProviderResponse:
        """Run one gated HTTP call, racing it against ``cancel_event``."""

        if cancel_event is None:
            return await self._post(adapter, request)

        if cancel_event.is_set():
            return self._cancelled()

        post_task = asyncio.ensure_future(self._post(adapter, request))
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {post_task, cancel_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            post_task.cancel()
            raise
        finally:
            cancel_waiter.cancel()

        if post_task in done:
            return post_task.result()

        post_task.cancel()
        try:
            await post_task
        except asyncio.CancelledError:
            pass
        logger.info("%s Completions [%s]: request cancelled.", self.provider.value, request.model)
        return self._cancelled()

    @staticmethod
    def _cancelled() -> ProviderResponse:
        return ProviderResponse(
            success=False,
            error_message=_CANCELLED_MESSAGE,
            error_kind=CompletionErrorKind.CANCELLED,
        )

    async def _post(self, adapter: ProviderAdapter, request: CompletionRequest) -> ProviderResponse:
        body = json.dumps(adapter.build_request(request), ensure_ascii=False)
        url = f"{self._base_url}{adapter.endpoint_path}"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        async with self._gate:
            logger.info(
                "%s Completions Request [%s]: %s", self.provider.value, request.model, body
            )
            try:
                session = await self._get_session()
                async with session.post(url, data=body.encode("utf-8"), headers=headers) as response:
                    status_code = response.status
                    reason = response.reason
                    content = await response.text()
            except asyncio.TimeoutError:
                return ProviderResponse(
                    success=False,
                    error_message=f"Network error: request timed out after {self._timeout_sec}s",
                    error_kind=CompletionErrorKind.NETWORK,
                )
            except aiohttp.ClientError as exc:
                return ProviderResponse(
                    success=False,
                    error_message=f"Network error: {exc}",
                    error_kind=CompletionErrorKind.NETWORK,
                )
            except UnicodeDecodeError as exc:
                return ProviderResponse(
                    success=False,
                    error_message=f"JSON parsing error: {exc}",
                    error_kind=CompletionErrorKind.RESPONSE_PARSE,
                )

            logger.info(
                "%s Completions Response [%s] (HTTP %s): %s",
                self.provider.value,
                request.model,
                status_code,
                content,
            )

            if self._release_delay_sec:
                await asyncio.sleep(self._release_delay_sec)

        return adapter.parse_response(status_code, content, reason)


__all__ = ["CompletionClient"]
