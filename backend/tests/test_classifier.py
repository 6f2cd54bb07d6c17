"""
Tests for doodle classification.
"""

import asyncio
import random
import threading
from types import SimpleNamespace

import pytest

from fakes import FakeGeminiClient, ThrottledError, text_response
from services.classifier import CLASSIFY_PROMPT, GeminiObjectClassifier, parse_label
from services.fallbacks import FALLBACK_LABELS
from services.gemini_client import GeminiClient
from services.image_preprocessor import PreparedImage


class TestParseLabel:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("apple", "apple"),
            ("Apple", "apple"),
            ("  dog.\n", "dog"),
            ("CAT!", "cat"),
            ("house, probably", "house"),
            ("3 trees", "trees"),
        ],
    )
    def test_first_word_lowercased(self, raw, expected):
        assert parse_label(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, "123 !!!"])
    def test_unreadable_reply_is_object(self, raw):
        assert parse_label(raw) == "object"


class TestGeminiObjectClassifier:
    @pytest.mark.asyncio
    async def test_returns_model_label(self, prepared_image):
        client = FakeGeminiClient(response=text_response("Car"))
        classifier = GeminiObjectClassifier(client, "vision-model")

        assert await classifier.classify(prepared_image) == "car"

        call = client.calls[0]
        assert call["model"] == "vision-model"
        assert call["contents"][0] == CLASSIFY_PROMPT
        assert len(call["contents"]) == 2

    @pytest.mark.asyncio
    async def test_empty_reply_is_object(self, prepared_image):
        client = FakeGeminiClient(response=text_response(""))
        classifier = GeminiObjectClassifier(client, "vision-model")

        assert await classifier.classify(prepared_image) == "object"

    @pytest.mark.asyncio
    async def test_throttled_uses_fallback_vocabulary(self, prepared_image):
        client = FakeGeminiClient(side_effect=ThrottledError())
        classifier = GeminiObjectClassifier(client, "vision-model")

        assert await classifier.classify(prepared_image) in FALLBACK_LABELS

    @pytest.mark.asyncio
    async def test_throttled_pick_follows_rng(self, prepared_image):
        client = FakeGeminiClient(side_effect=ThrottledError())
        classifier = GeminiObjectClassifier(client, "vision-model", rng=random.Random(7))

        expected = random.Random(7).choice(FALLBACK_LABELS)
        assert await classifier.classify(prepared_image) == expected

    @pytest.mark.asyncio
    async def test_throttle_detected_from_message_only(self, prepared_image):
        client = FakeGeminiClient(side_effect=RuntimeError("RESOURCE_EXHAUSTED: try later"))
        classifier = GeminiObjectClassifier(client, "vision-model")

        assert await classifier.classify(prepared_image) in FALLBACK_LABELS

    @pytest.mark.asyncio
    async def test_timeout_uses_fallback_vocabulary(self, prepared_image):
        client = FakeGeminiClient(side_effect=asyncio.TimeoutError())
        classifier = GeminiObjectClassifier(client, "vision-model")

        assert await classifier.classify(prepared_image) in FALLBACK_LABELS

    @pytest.mark.asyncio
    async def test_other_failure_is_object(self, prepared_image):
        client = FakeGeminiClient(side_effect=ConnectionError("network down"))
        classifier = GeminiObjectClassifier(client, "vision-model")

        assert await classifier.classify(prepared_image) == "object"

    @pytest.mark.asyncio
    async def test_unreadable_text_property_is_object(self, prepared_image):
        class BlockedResponse:
            @property
            def text(self):
                raise ValueError("response was blocked")

        client = FakeGeminiClient(response=BlockedResponse())
        classifier = GeminiObjectClassifier(client, "vision-model")

        assert await classifier.classify(prepared_image) == "object"

    @pytest.mark.asyncio
    async def test_empty_image_rejected_before_calling_model(self):
        client = FakeGeminiClient(response=text_response("apple"))
        classifier = GeminiObjectClassifier(client, "vision-model")

        with pytest.raises(ValueError):
            await classifier.classify(
                PreparedImage(data=b"", mime_type="image/png", width=0, height=0)
            )
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_error_mentioning_429_bytes_is_not_throttling(self, prepared_image):
        client = FakeGeminiClient(side_effect=RuntimeError("upload of 14290 bytes failed"))
        classifier = GeminiObjectClassifier(client, "vision-model")

        assert await classifier.classify(prepared_image) == "object"

    @pytest.mark.asyncio
    async def test_bounded_client_timeout_uses_fallback_vocabulary(self, prepared_image):
        release = threading.Event()

        def slow_generate_content(**kwargs):
            release.wait(timeout=5)
            return text_response("apple")

        GeminiClient.reset_instance()
        client = GeminiClient()
        GeminiClient._client = SimpleNamespace(
            models=SimpleNamespace(generate_content=slow_generate_content)
        )
        client.timeout_seconds = 0.05
        classifier = GeminiObjectClassifier(client, "vision-model")

        try:
            assert await classifier.classify(prepared_image) in FALLBACK_LABELS
        finally:
            release.set()
            GeminiClient.reset_instance()
