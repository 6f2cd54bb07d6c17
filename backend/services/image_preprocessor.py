"""
Canvas snapshot normalization.

The drawing canvas posts its content as a data URL
(``data:image/png;base64,....``). Before the doodle goes to the vision model
it is decoded, validated by magic bytes, flattened onto white, cropped to the
strokes and downsized so the inference payload stays small.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError

from services.errors import ImageDataError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})
MIN_IMAGE_DATA_CHARS = 10
DEFAULT_MAX_SIDE = 800
MAX_IMAGE_WIDTH = 8192
MAX_IMAGE_HEIGHT = 8192
MAX_IMAGE_PIXELS = 16_777_216  # 16 MP
# Grayscale level below which a pixel counts as a stroke.
STROKE_LUMA_THRESHOLD = 232
# Strokes must cover at least this share of the frame before margins are cropped.
MIN_STROKE_OCCUPANCY_RATIO = 0.45
STROKE_CROP_MARGIN_RATIO = 0.15

_DATA_URL_PREFIX = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?,", re.IGNORECASE)


@dataclass(frozen=True)
class PreparedImage:
    """Drawing bytes ready to attach to an inference call."""

    data: bytes
    mime_type: str
    width: int
    height: int


def strip_data_url_prefix(image_data: str) -> str:
    """Return the bare base64 payload of a data URL (or the input unchanged)."""
    text = (image_data or "").strip()
    if "base64," in text:
        return text.split("base64,", 1)[1]
    match = _DATA_URL_PREFIX.match(text)
    if match:
        return text[match.end():]
    return text


def decode_image_data(image_data: str) -> bytes:
    """
    Decode a (possibly prefixed) base64 drawing.

    Raises ImageDataError for empty, too short or non-base64 input.
    """
    if not image_data or len(image_data.strip()) < MIN_IMAGE_DATA_CHARS:
        raise ImageDataError("Image data is required")

    payload = "".join(strip_data_url_prefix(image_data).split())
    # Canvas encoders occasionally drop trailing padding.
    payload += "=" * (-len(payload) % 4)
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ImageDataError("Image data is not valid base64")

    if not content:
        raise ImageDataError("Image data is empty")
    return content


def sniff_image_mime_type(content: bytes) -> str | None:
    """
    Best-effort MIME sniffing by magic bytes.

    Returns "image/png", "image/jpeg", "image/webp" or None.
    """
    if not content:
        return None
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if len(content) >= 12 and content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp"
    return None


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    """Wrap raw image bytes as a displayable data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def _flatten_onto_white(img: Image.Image) -> Image.Image:
    if img.mode in {"RGBA", "LA", "PA"} or "transparency" in img.info:
        rgba = img.convert("RGBA")
        rgb = Image.new("RGB", rgba.size, (255, 255, 255))
        rgb.paste(rgba, mask=rgba.getchannel("A"))
        return rgb
    return img.convert("RGB")


def crop_to_strokes(img: Image.Image) -> Image.Image:
    """
    Crop wide empty margins so the doodle fills more of the frame.

    A small sketch in the corner of a large canvas is hard for the vision
    model to read; when the strokes occupy less than
    MIN_STROKE_OCCUPANCY_RATIO of the frame the image is cropped to their
    bounding box plus a margin.
    """
    rgb = img.convert("RGB")
    luma = np.asarray(rgb.convert("L"), dtype=np.uint8)
    if luma.size == 0:
        return rgb

    strokes = luma < STROKE_LUMA_THRESHOLD
    rows = np.flatnonzero(strokes.any(axis=1))
    if rows.size == 0:
        return rgb
    cols = np.flatnonzero(strokes.any(axis=0))

    h, w = luma.shape
    y0, y1 = int(rows[0]), int(rows[-1])
    x0, x1 = int(cols[0]), int(cols[-1])
    bw = x1 - x0 + 1
    bh = y1 - y0 + 1
    if (bw * bh) / float(max(1, w * h)) >= MIN_STROKE_OCCUPANCY_RATIO:
        return rgb

    margin = int(max(4, max(bw, bh) * STROKE_CROP_MARGIN_RATIO))
    box = (
        max(0, x0 - margin),
        max(0, y0 - margin),
        min(w, x1 + margin + 1),
        min(h, y1 + margin + 1),
    )
    if (box[2] - box[0]) < 8 or (box[3] - box[1]) < 8:
        return rgb
    return rgb.crop(box)


def _downsize(img: Image.Image, max_side: int) -> Image.Image:
    longest = max(img.size)
    if longest <= max_side:
        return img
    scale = max_side / float(longest)
    size = (
        max(1, int(round(img.size[0] * scale))),
        max(1, int(round(img.size[1] * scale))),
    )
    return img.resize(size, Image.Resampling.LANCZOS)


def _check_dimensions(width: int, height: int) -> None:
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ImageDataError(
            f"Image is too large ({width}x{height}). "
            f"Maximum supported size is {MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT}."
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ImageDataError(
            f"Image has too many pixels ({width * height}). "
            f"Maximum supported pixel count is {MAX_IMAGE_PIXELS}."
        )


def prepare_drawing(image_data: str, *, max_side: int = DEFAULT_MAX_SIDE) -> PreparedImage:
    """
    Turn a canvas data URL into the PNG bytes sent to the vision model.

    Raises ImageDataError when the payload is not a PNG/JPEG/WEBP image
    Pillow can decode, or when it exceeds MAX_IMAGE_WIDTH/MAX_IMAGE_HEIGHT
    or MAX_IMAGE_PIXELS.
    """
    content = decode_image_data(image_data)
    sniffed_mime = sniff_image_mime_type(content)
    if sniffed_mime not in ALLOWED_IMAGE_MIME_TYPES:
        raise ImageDataError("Invalid image type. Allowed: PNG, JPG, WEBP")

    try:
        with Image.open(BytesIO(content)) as img:
            # Header only so far; refuse huge canvases before decoding pixels
            _check_dimensions(*img.size)
            img.load()
            original_size = img.size
            prepared = _flatten_onto_white(img)
    except ImageDataError:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, EOFError):
        raise ImageDataError("Unsupported or corrupted image data")

    if original_size[0] <= 0 or original_size[1] <= 0:
        raise ImageDataError("Invalid image dimensions")

    try:
        prepared = _downsize(crop_to_strokes(prepared), max_side)
        out = BytesIO()
        prepared.save(out, format="PNG", optimize=True)
    except Exception as e:
        logger.warning("Failed to normalize drawing, sending raw bytes: %s", e)
        return PreparedImage(
            data=content,
            mime_type=sniffed_mime,
            width=original_size[0],
            height=original_size[1],
        )

    logger.debug(
        "Prepared drawing: mime=%s original=%sx%s prepared=%sx%s",
        sniffed_mime,
        original_size[0],
        original_size[1],
        prepared.size[0],
        prepared.size[1],
    )
    return PreparedImage(
        data=out.getvalue(),
        mime_type="image/png",
        width=prepared.size[0],
        height=prepared.size[1],
    )
