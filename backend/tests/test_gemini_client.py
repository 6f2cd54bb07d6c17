"""
Tests for the Google Gemini client wrapper and throttle detection.
"""

import asyncio
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from google.genai import types

from config import get_settings
from fakes import ThrottledError
from services.errors import is_throttle_error
from services.gemini_client import HARM_CATEGORIES, GeminiClient, build_safety_settings


@pytest.fixture(autouse=True)
def fresh_gemini_client():
    GeminiClient.reset_instance()
    yield
    GeminiClient.reset_instance()


def _sdk_client(generate_content) -> SimpleNamespace:
    return SimpleNamespace(models=SimpleNamespace(generate_content=generate_content))


class TestGeminiClientSingleton:
    def test_get_instance_initializes_once(self):
        with patch("services.gemini_client.genai.Client") as mock_client_cls:
            first = GeminiClient.get_instance()
            second = GeminiClient.get_instance()

        assert first is second
        mock_client_cls.assert_called_once_with(api_key=get_settings().GOOGLE_API_KEY)
        assert first.timeout_seconds > 0

    def test_reset_instance_forgets_client(self):
        with patch("services.gemini_client.genai.Client"):
            first = GeminiClient.get_instance()

        GeminiClient.reset_instance()

        assert GeminiClient._client is None
        assert GeminiClient._initialized is False
        with patch("services.gemini_client.genai.Client"):
            assert GeminiClient.get_instance() is not first

    def test_sdk_construction_failure_propagates(self):
        with patch(
            "services.gemini_client.genai.Client", side_effect=RuntimeError("bad key")
        ):
            with pytest.raises(RuntimeError, match="bad key"):
                GeminiClient.get_instance()
        assert GeminiClient._initialized is False


class TestGenerateContent:
    @pytest.mark.asyncio
    async def test_forwards_call_to_sdk(self):
        calls = []
        reply = SimpleNamespace(text="apple")

        def generate_content(**kwargs):
            calls.append(kwargs)
            return reply

        client = GeminiClient()
        GeminiClient._client = _sdk_client(generate_content)
        client.timeout_seconds = 5.0

        result = await client.generate_content(model="m", contents=["prompt"])

        assert result is reply
        assert calls == [{"model": "m", "contents": ["prompt"], "config": None}]

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self):
        release = threading.Event()

        def generate_content(**kwargs):
            # Blocks the worker thread until the test lets it go
            release.wait(timeout=5)
            return SimpleNamespace(text="too late")

        client = GeminiClient()
        GeminiClient._client = _sdk_client(generate_content)
        client.timeout_seconds = 0.05

        try:
            with pytest.raises(asyncio.TimeoutError):
                await client.generate_content(model="m", contents="prompt")
        finally:
            release.set()

    @pytest.mark.asyncio
    async def test_sdk_error_propagates(self):
        def generate_content(**kwargs):
            raise ThrottledError()

        client = GeminiClient()
        GeminiClient._client = _sdk_client(generate_content)
        client.timeout_seconds = 5.0

        with pytest.raises(ThrottledError):
            await client.generate_content(model="m", contents="prompt")

    @pytest.mark.asyncio
    async def test_uninitialized_client_raises(self):
        client = GeminiClient()
        client.timeout_seconds = 5.0

        with pytest.raises(RuntimeError, match="not initialized"):
            await client.generate_content(model="m", contents="prompt")


class TestSafetySettings:
    def test_blocks_medium_and_above_for_every_category(self):
        settings = build_safety_settings()

        assert len(settings) == 4
        assert [s.category for s in settings] == list(HARM_CATEGORIES)
        assert all(
            s.threshold == types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE for s in settings
        )


class TestIsThrottleError:
    def test_code_429(self):
        error = MagicMock(spec=Exception)
        error.code = 429
        assert is_throttle_error(error) is True

    def test_resource_exhausted_status(self):
        error = Exception("quota")
        error.status = "resource_exhausted"
        assert is_throttle_error(error) is True

    @pytest.mark.parametrize(
        "message",
        [
            "429 Too Many Requests",
            "HTTP error 429: slow down",
            "RESOURCE_EXHAUSTED: quota exceeded",
        ],
    )
    def test_throttle_messages(self, message):
        assert is_throttle_error(RuntimeError(message)) is True

    @pytest.mark.parametrize(
        "message",
        [
            "upload of 14290 bytes failed",
            "request req_84291 was reset",
            "connection refused",
            "500 INTERNAL",
        ],
    )
    def test_unrelated_errors(self, message):
        assert is_throttle_error(RuntimeError(message)) is False

    def test_fake_throttle_error(self):
        assert is_throttle_error(ThrottledError()) is True
