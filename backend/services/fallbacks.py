"""
Fallback vocabulary and placeholder renders.

Used when Gemini throttles, times out or returns nothing usable: the
classifier picks a label from FALLBACK_LABELS and the synthesizer serves a
placeholder from the fallback image table. Both tables are read-only and
built once per process.
"""

import logging
import random
from functools import lru_cache
from io import BytesIO
from types import MappingProxyType
from typing import Mapping

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from services.image_preprocessor import to_data_url

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "object"
DEFAULT_IMAGE_KEY = "default"

FALLBACK_LABELS: tuple[str, ...] = (
    "apple",
    "dog",
    "cat",
    "flower",
    "house",
    "tree",
    "car",
    "sun",
    "moon",
    "ball",
)

PLACEHOLDER_SIZE = 256

# Body colour of each placeholder "toy", keyed by label.
PLACEHOLDER_COLORS: Mapping[str, tuple[int, int, int]] = MappingProxyType(
    {
        "apple": (214, 48, 49),
        "dog": (181, 123, 74),
        "cat": (245, 166, 35),
        "flower": (232, 93, 173),
        "house": (108, 92, 231),
        "tree": (46, 160, 67),
        "car": (9, 132, 227),
        "sun": (253, 203, 110),
        "moon": (178, 190, 195),
        "ball": (0, 184, 148),
        DEFAULT_IMAGE_KEY: (160, 160, 170),
    }
)


def random_fallback_label(rng: random.Random | None = None) -> str:
    """Uniform pick from the fallback vocabulary."""
    return (rng or random).choice(FALLBACK_LABELS)


def _shade(color: tuple[int, int, int], factor: float) -> tuple[int, int, int]:
    return tuple(max(0, min(255, int(c * factor))) for c in color)


def render_placeholder(label: str, color: tuple[int, int, int]) -> bytes:
    """
    Draw a small studio-style placeholder: a shaded disc on a soft shadow
    with the label as caption. Returns PNG bytes.
    """
    size = PLACEHOLDER_SIZE
    img = Image.new("RGB", (size, size), (250, 250, 250))

    shadow = Image.new("L", (size, size), 0)
    ImageDraw.Draw(shadow).ellipse((70, 188, 186, 212), fill=90)
    shadow = shadow.filter(ImageFilter.GaussianBlur(6))
    img.paste((190, 190, 190), mask=shadow)

    draw = ImageDraw.Draw(img)
    # Concentric discs from dark rim to bright core fake the 3D lighting.
    steps = 12
    for i in range(steps):
        inset = i * 4
        factor = 0.7 + 0.5 * (i / (steps - 1))
        draw.ellipse(
            (68 + inset, 56 + inset, 188 - inset // 2, 176 - inset // 2),
            fill=_shade(color, factor),
        )
    draw.ellipse((98, 78, 122, 98), fill=(255, 255, 255))

    caption = label if label != DEFAULT_IMAGE_KEY else "?"
    font = ImageFont.load_default()
    left, top, right, bottom = draw.textbbox((0, 0), caption, font=font)
    draw.text(
        ((size - (right - left)) / 2, 224),
        caption,
        fill=(70, 70, 70),
        font=font,
    )

    out = BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


@lru_cache(maxsize=1)
def get_fallback_image_table() -> Mapping[str, str]:
    """
    Label -> placeholder data URL, rendered once per process.

    The DEFAULT_IMAGE_KEY entry is always present.
    """
    table = {
        label: to_data_url(render_placeholder(label, color))
        for label, color in PLACEHOLDER_COLORS.items()
    }
    logger.debug("Rendered %d fallback placeholder images", len(table))
    return MappingProxyType(table)


def fallback_image_for(label: str) -> str:
    """Placeholder for *label*, or the default placeholder for unknown labels."""
    table = get_fallback_image_table()
    return table.get((label or "").strip().lower(), table[DEFAULT_IMAGE_KEY])
