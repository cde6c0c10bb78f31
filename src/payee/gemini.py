"""Google Gemini provider for AI classification."""

from __future__ import annotations

import os
import subprocess

import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from payee.errors import (
    AuthenticationError,
    ExternalServiceError,
    MalformedResponseError,
    RateLimitError,
)

log = structlog.get_logger()

SYSTEM_INSTRUCTION = "You are an expert payee classifier. Return only a valid JSON array, no other text."


def _get_project() -> str:
    project = os.environ.get("GOOGLE_CLOUD_PROJECT")
    if project:
        return project
    try:
        result = subprocess.run(
            ["gcloud", "config", "get-value", "project"],
            capture_output=True, text=True, check=True,
        )
        project = result.stdout.strip()
        if project:
            return project
    except (subprocess.CalledProcessError, FileNotFoundError):
        pass
    raise AuthenticationError(
        "No Gemini credentials found. Set GEMINI_API_KEY, or set GOOGLE_CLOUD_PROJECT / run: "
        "gcloud config set project <PROJECT_ID>"
    )


def _make_client() -> genai.Client:
    api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
    if api_key:
        return genai.Client(api_key=api_key)
    project = _get_project()
    location = os.environ.get("GOOGLE_CLOUD_LOCATION", "us-central1")
    return genai.Client(vertexai=True, project=project, location=location)


def translate_api_error(e: genai_errors.APIError) -> ExternalServiceError:
    """Map a google-genai API error onto our error family by HTTP code."""
    code = getattr(e, "code", None)
    if code in (401, 403):
        return AuthenticationError(f"Gemini rejected credentials ({code}): {e}")
    if code == 429:
        return RateLimitError(f"Gemini rate limit exceeded: {e}")
    return ExternalServiceError(f"Gemini request failed ({code}): {e}")


class GeminiLLMProvider:
    """LLMProvider backed by Gemini 2.0 Flash."""

    MODEL = "gemini-2.0-flash"

    def __init__(self, client: genai.Client | None = None, model: str | None = None) -> None:
        self._client = client or _make_client()
        self.model = model or self.MODEL

    async def query(self, prompt: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=SYSTEM_INSTRUCTION,
                    temperature=0.1,
                    response_mime_type="application/json",
                ),
            )
        except genai_errors.APIError as e:
            raise translate_api_error(e) from e
        if not response.text:
            raise MalformedResponseError("Gemini returned no text")
        return response.text
