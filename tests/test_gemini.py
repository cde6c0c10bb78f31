"""Tests for the Gemini provider, using a fake client."""

import asyncio
from types import SimpleNamespace

import pytest
from google.genai import errors as genai_errors

from payee.errors import (
    AuthenticationError,
    ExternalServiceError,
    MalformedResponseError,
    RateLimitError,
)
from payee.gemini import GeminiLLMProvider, translate_api_error


def api_error(code: int, status: str) -> genai_errors.APIError:
    body = {"error": {"code": code, "message": "nope", "status": status}}
    if code >= 500:
        return genai_errors.ServerError(code, body)
    return genai_errors.ClientError(code, body)


class FakeModels:
    def __init__(self, text: str | None = "[]", error: Exception | None = None):
        self.text = text
        self.error = error
        self.requests: list[dict] = []

    async def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def fake_client(models: FakeModels) -> SimpleNamespace:
    return SimpleNamespace(aio=SimpleNamespace(models=models))


@pytest.mark.parametrize(
    "code,status,expected",
    [
        (401, "UNAUTHENTICATED", AuthenticationError),
        (403, "PERMISSION_DENIED", AuthenticationError),
        (429, "RESOURCE_EXHAUSTED", RateLimitError),
        (500, "INTERNAL", ExternalServiceError),
        (400, "INVALID_ARGUMENT", ExternalServiceError),
    ],
)
def test_translate_api_error(code, status, expected):
    translated = translate_api_error(api_error(code, status))
    assert type(translated) is expected


def test_query_returns_text():
    models = FakeModels(text='[{"classification": "Business", "confidence": 90}]')
    provider = GeminiLLMProvider(client=fake_client(models))
    assert asyncio.run(provider.query("classify")).startswith("[")
    request = models.requests[0]
    assert request["model"] == GeminiLLMProvider.MODEL
    assert request["contents"] == "classify"
    assert request["config"].response_mime_type == "application/json"


def test_query_custom_model():
    models = FakeModels()
    provider = GeminiLLMProvider(client=fake_client(models), model="gemini-2.5-flash")
    asyncio.run(provider.query("x"))
    assert models.requests[0]["model"] == "gemini-2.5-flash"


def test_query_translates_errors():
    models = FakeModels(error=api_error(429, "RESOURCE_EXHAUSTED"))
    provider = GeminiLLMProvider(client=fake_client(models))
    with pytest.raises(RateLimitError):
        asyncio.run(provider.query("x"))


def test_query_empty_text():
    provider = GeminiLLMProvider(client=fake_client(FakeModels(text=None)))
    with pytest.raises(MalformedResponseError):
        asyncio.run(provider.query("x"))


def test_missing_credentials(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    monkeypatch.setenv("PATH", "")
    with pytest.raises(AuthenticationError):
        GeminiLLMProvider()
