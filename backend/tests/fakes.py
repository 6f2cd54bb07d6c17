"""Stand-ins for the inference boundary used across the test-suite."""

from io import BytesIO
from types import SimpleNamespace

from PIL import Image, ImageDraw

from services.image_preprocessor import PreparedImage


class FakeClassifier:
    """ObjectClassifier returning a fixed label and recording its inputs."""

    def __init__(self, label: str = "apple"):
        self.label = label
        self.calls: list[PreparedImage] = []

    async def classify(self, image: PreparedImage) -> str:
        self.calls.append(image)
        return self.label


class FakeSynthesizer:
    """ImageSynthesizer returning a canned data URL."""

    def __init__(self, image_url: str = "data:image/png;base64,iVBORw0KGgo="):
        self.image_url = image_url
        self.calls: list[str] = []

    async def synthesize(self, label: str) -> str:
        self.calls.append(label)
        return self.image_url


class FakeGeminiClient:
    """
    Stands in for services.gemini_client.GeminiClient.

    ``side_effect`` may be a single exception/response or a list consumed
    one item per call.
    """

    def __init__(self, response=None, side_effect=None):
        self.response = response
        self.side_effect = side_effect
        self.calls: list[dict] = []

    async def generate_content(self, *, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.side_effect is not None:
            effect = self.side_effect
            if isinstance(effect, list):
                effect = effect.pop(0)
            if isinstance(effect, BaseException):
                raise effect
            return effect
        return self.response


class ThrottledError(Exception):
    """Mimics google.genai.errors.ClientError for HTTP 429."""

    def __init__(self, message: str = "429 RESOURCE_EXHAUSTED. Quota exceeded."):
        super().__init__(message)
        self.code = 429
        self.status = "RESOURCE_EXHAUSTED"


def text_response(text: str) -> SimpleNamespace:
    return SimpleNamespace(text=text)


def image_response(image_bytes: bytes, mime_type: str = "image/png") -> SimpleNamespace:
    part = SimpleNamespace(
        text=None,
        inline_data=SimpleNamespace(data=image_bytes, mime_type=mime_type),
    )
    return SimpleNamespace(
        parts=None,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))],
    )


def make_png_bytes(size=(200, 200), transparent: bool = True) -> bytes:
    """A doodle: a dark circle on a (transparent) canvas."""
    mode = "RGBA" if transparent else "RGB"
    background = (0, 0, 0, 0) if transparent else (255, 255, 255)
    img = Image.new(mode, size, background)
    draw = ImageDraw.Draw(img)
    w, h = size
    draw.ellipse((w // 4, h // 4, 3 * w // 4, 3 * h // 4), outline="black", width=4)
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
