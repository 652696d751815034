"""Google Gemini client used for layout hints.

Uses the google-genai SDK (v1.0+) through its async interface so callers can
bound the call with a timeout.
"""

from dataclasses import dataclass
from typing import Any

import structlog
from google import genai
from google.genai import types

from smart_invoice.config import get_settings

logger = structlog.get_logger(__name__)


class GeminiNotConfigured(RuntimeError):
    """No API key available for Gemini."""

    pass


@dataclass
class GeminiResponse:
    """Response from Gemini API."""

    content: str
    stop_reason: str
    usage: dict[str, int]


class GeminiClient:
    """Thin client for Google's Gemini text generation API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.google_api_key is not None:
            api_key = settings.google_api_key.get_secret_value()
        if not api_key:
            raise GeminiNotConfigured("GOOGLE_API_KEY is not set")

        self._api_key = api_key
        self._model_name = model or settings.gemini_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = temperature if temperature is not None else settings.llm_temperature

        self._client = genai.Client(api_key=self._api_key)
        self._logger = logger.bind(client="gemini", model=self._model_name)

    def _parse_response(self, response: Any) -> GeminiResponse:
        """Parse Gemini response into our format."""
        content = ""
        stop_reason = "end_turn"

        candidates = getattr(response, "candidates", None) or []
        if candidates:
            candidate = candidates[0]
            parts = getattr(getattr(candidate, "content", None), "parts", None) or []
            content = "".join(getattr(part, "text", None) or "" for part in parts)
            finish_reason = getattr(candidate, "finish_reason", None)
            if finish_reason is not None and "MAX_TOKENS" in str(finish_reason):
                stop_reason = "max_tokens"

        usage = {"input_tokens": 0, "output_tokens": 0}
        if hasattr(response, "usage_metadata") and response.usage_metadata:
            usage["input_tokens"] = (
                getattr(response.usage_metadata, "prompt_token_count", 0) or 0
            )
            usage["output_tokens"] = (
                getattr(response.usage_metadata, "candidates_token_count", 0) or 0
            )

        return GeminiResponse(content=content, stop_reason=stop_reason, usage=usage)

    async def generate(self, system_prompt: str, user_prompt: str) -> GeminiResponse:
        """Generate a JSON response from Gemini.

        Args:
            system_prompt: Instructions describing the expected JSON.
            user_prompt: The user's template instructions plus context.

        Returns:
            GeminiResponse with the raw text and usage info.
        """
        self._logger.debug("generating_response", prompt_chars=len(user_prompt))

        config = types.GenerateContentConfig(
            max_output_tokens=self._max_tokens,
            temperature=self._temperature,
            system_instruction=system_prompt,
            response_mime_type="application/json",
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self._model_name,
                contents=user_prompt,
                config=config,
            )
        except Exception as e:
            self._logger.error("api_error", error=str(e))
            raise

        parsed = self._parse_response(response)
        self._logger.info(
            "response_generated",
            stop_reason=parsed.stop_reason,
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed
