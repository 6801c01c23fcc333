"""Tests for the Gemini completion client (SDK mocked)."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tutor.errors import ProviderError
from tutor.gemini_client import GeminiClient
from tutor.settings import Settings


@pytest.fixture
def mock_genai_client():
    sdk_client = MagicMock()
    sdk_client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text="Here is an answer.\n- Next step")
    )
    with patch("tutor.gemini_client.genai.Client", return_value=sdk_client) as ctor:
        yield ctor, sdk_client


class TestGeminiClientConfig:
    def test_missing_config_fails_fast(self, mock_genai_client):
        ctor, _ = mock_genai_client

        with pytest.raises(ProviderError, match="Missing config"):
            GeminiClient(Settings())
        ctor.assert_not_called()

    def test_api_key_mode(self, mock_genai_client):
        ctor, _ = mock_genai_client

        client = GeminiClient(Settings(google_api_key="key-123", gemini_model="gemini-test"))

        ctor.assert_called_once_with(api_key="key-123")
        assert client.model == "gemini-test"

    def test_vertex_mode(self, mock_genai_client):
        ctor, _ = mock_genai_client

        GeminiClient(Settings(google_cloud_project="proj", google_cloud_location="europe-west1"))

        ctor.assert_called_once_with(vertexai=True, project="proj", location="europe-west1")


class TestGeminiClientComplete:
    async def test_returns_text_verbatim(self, mock_genai_client):
        _, sdk_client = mock_genai_client
        client = GeminiClient(Settings(google_api_key="key"))

        text = await client.complete("Explain derivatives")

        assert text == "Here is an answer.\n- Next step"
        call = sdk_client.aio.models.generate_content.await_args
        assert call.kwargs["model"] == client.model
        assert call.kwargs["contents"][0].parts[0].text == "Explain derivatives"

    async def test_upstream_error_is_single_attempt(self, mock_genai_client):
        _, sdk_client = mock_genai_client
        sdk_client.aio.models.generate_content.side_effect = RuntimeError("503 unavailable")
        client = GeminiClient(Settings(google_api_key="key"))

        with pytest.raises(ProviderError, match="503 unavailable"):
            await client.complete("prompt")
        assert sdk_client.aio.models.generate_content.await_count == 1

    @pytest.mark.parametrize("text", [None, "", "   \n"])
    async def test_empty_text_is_provider_error(self, mock_genai_client, text):
        _, sdk_client = mock_genai_client
        sdk_client.aio.models.generate_content.return_value = SimpleNamespace(text=text)
        client = GeminiClient(Settings(google_api_key="key"))

        with pytest.raises(ProviderError, match="no text"):
            await client.complete("prompt")
