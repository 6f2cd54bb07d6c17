"""Object label -> playful sound cue played by the gallery UI."""

from types import MappingProxyType
from typing import Mapping

DEFAULT_SOUND_KEY = "default"

SOUND_MAP: Mapping[str, str] = MappingProxyType(
    {
        "apple": "https://assets.coderrocketfuel.com/pomodoro-times-up.mp3",
        "banana": "https://assets.coderrocketfuel.com/pomodoro-times-up.mp3",
        "cat": "https://soundbible.com/mp3/Cat_Meowing-Mr_Smith-780889994.mp3",
        "dog": "https://soundbible.com/mp3/Dog_Bark-Public_Domain-112624444.mp3",
        "flower": "https://soundbible.com/mp3/Blop-Mark_DiAngelo-79054334.mp3",
        "sun": "https://soundbible.com/mp3/Campfire-SoundBible.com-56731569.mp3",
        "table": "https://soundbible.com/mp3/Glass_Ping-Go445-1207030150.mp3",
        "house": "https://soundbible.com/mp3/doorbell-Andrew_Kenneally-667897870.mp3",
        DEFAULT_SOUND_KEY: "https://soundbible.com/mp3/Click-SoundBible.com-1387633738.mp3",
    }
)


def normalize_sound_key(label: str) -> str:
    """Lowercase, trim and drop a plural 's' ("Dogs" -> "dog")."""
    key = (label or "").strip().lower()
    if key.endswith("s") and key[:-1] in SOUND_MAP:
        return key[:-1]
    return key


def resolve_sound(label: str) -> str:
    """Sound URL for *label*; the default click for anything unknown."""
    return SOUND_MAP.get(normalize_sound_key(label), SOUND_MAP[DEFAULT_SOUND_KEY])
