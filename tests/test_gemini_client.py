"""Tests for the Gemini client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from smart_invoice.clients.gemini import GeminiClient, GeminiNotConfigured, GeminiResponse


@pytest.fixture
def client():
    """Create a GeminiClient with the SDK mocked out."""
    with patch("smart_invoice.clients.gemini.genai.Client") as mock_sdk:
        mock_sdk.return_value = MagicMock()
        yield GeminiClient(api_key="test-key", model="gemini-test", max_tokens=256)


def _sdk_response(text, finish_reason="STOP"):
    part = MagicMock()
    part.text = text
    candidate = MagicMock()
    candidate.content.parts = [part]
    candidate.finish_reason = finish_reason
    response = MagicMock()
    response.candidates = [candidate]
    response.usage_metadata.prompt_token_count = 120
    response.usage_metadata.candidates_token_count = 40
    return response


class TestGeminiClient:
    """Tests for GeminiClient."""

    def test_client_initialization_with_custom_params(self, client):
        """Test client accepts custom parameters."""
        assert client._api_key == "test-key"
        assert client._model_name == "gemini-test"
        assert client._max_tokens == 256

    def test_client_initialization_with_defaults(self):
        """Test client falls back to settings."""
        with patch("smart_invoice.clients.gemini.genai.Client"):
            client = GeminiClient()

        assert client._api_key == "test-key"
        assert client._temperature == 0.1

    def test_missing_api_key(self):
        """Test an empty key is rejected."""
        with pytest.raises(GeminiNotConfigured):
            GeminiClient(api_key="")

    def test_parse_response(self, client):
        """Test text and usage are extracted."""
        parsed = client._parse_response(_sdk_response('{"periodCell": "C11"}'))

        assert isinstance(parsed, GeminiResponse)
        assert parsed.content == '{"periodCell": "C11"}'
        assert parsed.stop_reason == "end_turn"
        assert parsed.usage == {"input_tokens": 120, "output_tokens": 40}

    def test_parse_truncated_response(self, client):
        """Test MAX_TOKENS maps to max_tokens."""
        parsed = client._parse_response(_sdk_response("{", finish_reason="MAX_TOKENS"))

        assert parsed.stop_reason == "max_tokens"

    def test_parse_empty_response(self, client):
        """Test a response without candidates yields empty content."""
        response = MagicMock()
        response.candidates = []
        response.usage_metadata = None

        parsed = client._parse_response(response)

        assert parsed.content == ""
        assert parsed.usage == {"input_tokens": 0, "output_tokens": 0}

    @pytest.mark.asyncio
    async def test_generate(self, client):
        """Test generate calls the async SDK with the system prompt."""
        client._client.aio.models.generate_content = AsyncMock(
            return_value=_sdk_response('{"hoursPerDay": 8}')
        )

        result = await client.generate("system", "user")

        kwargs = client._client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"] == "user"
        assert kwargs["config"].system_instruction == "system"
        assert result.content == '{"hoursPerDay": 8}'

    @pytest.mark.asyncio
    async def test_generate_propagates_errors(self, client):
        """Test SDK errors are logged and re-raised."""
        client._client.aio.models.generate_content = AsyncMock(
            side_effect=RuntimeError("429 RESOURCE_EXHAUSTED")
        )

        with pytest.raises(RuntimeError):
            await client.generate("system", "user")
