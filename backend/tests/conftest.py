"""Pytest configuration and fixtures."""
import asyncio
import json
import sys
from pathlib import Path

import pytest

# Add backend to path
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))


def chat_body(content, reasoning=None, usage=None):
    """Build a chat-completions envelope around ``content``."""
    message = {"role": "assistant", "content": content}
    if reasoning is not None:
        message["reasoning"] = reasoning
    payload = {"choices": [{"index": 0, "message": message}]}
    if usage is not None:
        payload["usage"] = usage
    return json.dumps(payload)


def question_json(short_title="PARKING_LOT", **overrides):
    payload = {
        "question": f"Design a {short_title.replace('_', ' ').lower()}.",
        "constraints": ["Single process"],
        "short_title": short_title,
        "functional_requirements": ["Issue tickets"],
        "non_functional_requirements": ["Thread-safe"],
    }
    payload.update(overrides)
    return json.dumps(payload)


class FakeResponse:
    """Async context manager standing in for ``aiohttp.ClientResponse``."""

    def __init__(self, session, status, body, reason="OK", error=None):
        self._session = session
        self.status = status
        self.reason = reason
        self._body = body
        self._error = error

    async def __aenter__(self):
        self._session.in_flight += 1
        self._session.max_in_flight = max(self._session.max_in_flight, self._session.in_flight)
        try:
            if self._session.delay:
                await asyncio.sleep(self._session.delay)
            if self._error is not None:
                raise self._error
        except BaseException:
            self._session.in_flight -= 1
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._session.in_flight -= 1
        return False

    async def text(self):
        return self._body


class FakeSession:
    """Replays queued ``(status, body)`` pairs or exceptions, recording each post."""

    def __init__(self, responses=None, delay=0.0):
        self.responses = list(responses or [])
        self.delay = delay
        self.calls = []
        self.closed = False
        self.in_flight = 0
        self.max_in_flight = 0

    def queue(self, status=200, body="", reason="OK"):
        self.responses.append((status, body, reason))

    def post(self, url, data=None, headers=None):
        self.calls.append(
            {"url": url, "json": json.loads(data.decode("utf-8")), "headers": dict(headers or {})}
        )
        item = self.responses.pop(0) if self.responses else (200, chat_body(""), "OK")
        if isinstance(item, BaseException):
            return FakeResponse(self, 0, "", error=item)
        status, body, *rest = item
        return FakeResponse(self, status, body, reason=rest[0] if rest else "OK")

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def settings_file(tmp_path):
    """Minimal valid settings.yaml written to a temporary directory."""
    path = tmp_path / "settings.yaml"
    path.write_text(
        """
providers:
  Groq:
    base_url: https://api.groq.test/openai/v1
    api_key_env: TEST_GROQ_API_KEY
    timeout_sec: 30
  OpenRouter:
    base_url: https://openrouter.test/api/v1
    api_key_env: TEST_OPENROUTER_API_KEY
lld_question:
  temperature: 0.7
  default_reasoning_effort: low
  fallback_provider: groq
  fallback_models:
    - model-one
    - model-two
comparison:
  models:
    - model_id: openai/gpt-oss-120b
      provider: Groq
    - model_id: anthropic/claude-sonnet
      provider: OpenRouter
model_capabilities:
  google/gemma-3-27b-it:
    supports_structured_output: false
""",
        encoding="utf-8",
    )
    return path
