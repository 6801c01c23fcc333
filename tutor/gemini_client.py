from __future__ import annotations

import logging
from typing import Protocol

from google import genai
from google.genai import types

from tutor.errors import ProviderError
from tutor.settings import Settings

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    async def complete(self, prompt: str) -> str: ...


class GeminiClient:
    """
    Supports two modes:
    - API key mode (local/dev): GOOGLE_AI_API_KEY or GOOGLE_API_KEY
    - Vertex AI mode (Cloud Run): GOOGLE_CLOUD_PROJECT + GOOGLE_CLOUD_LOCATION

    Construct once at startup: missing configuration raises immediately rather
    than on the first chat request.
    """

    def __init__(self, settings: Settings | None = None, *, temperature: float = 0.7) -> None:
        settings = settings or Settings.from_env()
        self.model = settings.gemini_model
        self.temperature = temperature

        if settings.google_api_key:
            self._mode = "api_key"
            self.client = genai.Client(api_key=settings.google_api_key)
        elif settings.google_cloud_project:
            self._mode = "vertex"
            # Uses ADC (service account) on Cloud Run
            self.client = genai.Client(
                vertexai=True,
                project=settings.google_cloud_project,
                location=settings.google_cloud_location,
            )
        else:
            raise ProviderError(
                "Missing config: set GOOGLE_AI_API_KEY (local) or GOOGLE_CLOUD_PROJECT (+ optional GOOGLE_CLOUD_LOCATION) (Vertex/Cloud Run)."
            )
        logger.info("Gemini client ready (mode=%s, model=%s)", self._mode, self.model)

    async def complete(self, prompt: str) -> str:
        # Single attempt: a failed call fails the current chat turn.
        try:
            resp = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Content(role="user", parts=[types.Part(text=prompt)]),
                ],
                config=types.GenerateContentConfig(temperature=self.temperature),
            )
        except Exception as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        text = getattr(resp, "text", None)
        if not text or not text.strip():
            raise ProviderError("Gemini returned no text")
        return text
