"""Error taxonomy for the generation pipeline.

Only ``ImageDataError`` and ``RecordNotFoundError`` ever reach the HTTP layer.
Throttling and inference failures are absorbed by the classifier and
synthesizer fallbacks.
"""

import re

_THROTTLE_CODE_PATTERN = re.compile(r"\b429\b")


class ImageDataError(ValueError):
    """The submitted drawing is missing, not base64, or not a decodable image."""

    def __init__(self, message: str, field: str = "imageData"):
        super().__init__(message)
        self.field = field


class InferenceError(RuntimeError):
    """The provider answered, but without a usable payload."""


class RecordNotFoundError(KeyError):
    """No gallery record with the requested id."""

    def __init__(self, record_id: str):
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"Gallery item not found: {self.record_id}"


def is_throttle_error(error: BaseException) -> bool:
    """
    Tell whether *error* is the provider's rate-limit signal.

    google-genai raises ``errors.ClientError`` with ``code == 429`` and a
    ``RESOURCE_EXHAUSTED`` status; older SDK builds only carry it in the
    message, so both are checked. The bare status code must stand as its own
    token so byte counts or request ids containing "429" do not match.
    """
    code = getattr(error, "code", None)
    if code == 429:
        return True
    status = getattr(error, "status", None)
    if isinstance(status, str) and status.upper() == "RESOURCE_EXHAUSTED":
        return True
    message = str(error)
    return "RESOURCE_EXHAUSTED" in message or _THROTTLE_CODE_PATTERN.search(message) is not None
