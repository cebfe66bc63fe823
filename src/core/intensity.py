"""JMA seismic intensity (shindo) scale - Pure functions.

The scale is a closed, ordered set of ten keys. Levels 5 and 6 are split
into lower (-) and upper (+) bands. Guidance text here is informational
only; it is never a safety instruction.
"""

from dataclasses import dataclass


INTENSITY_KEYS: tuple[str, ...] = (
    "0", "1", "2", "3", "4", "5-", "5+", "6-", "6+", "7",
)

# Tone used when there is no reading yet
TONE_UNKNOWN = "unknown"
TONE_NEUTRAL = "neutral"
TONE_LOW = "low"
TONE_MEDIUM = "medium"
TONE_HIGH = "high"


@dataclass(frozen=True)
class IntensityGuidance:
    """Display guidance for one intensity key.

    Attributes:
        key: Intensity key (e.g. '5-')
        label: Short label (e.g. 'Shindo 5-')
        tone: Severity tone (neutral/low/medium/high)
        text: One or two informational sentences
    """
    key: str
    label: str
    tone: str
    text: str


GUIDANCE: dict[str, IntensityGuidance] = {
    "0": IntensityGuidance(
        "0", "Shindo 0", TONE_NEUTRAL,
        "Shaking is not felt, but it may be recorded by instruments.",
    ),
    "1": IntensityGuidance(
        "1", "Shindo 1", TONE_LOW,
        "Slight shaking may be felt by some people indoors.",
    ),
    "2": IntensityGuidance(
        "2", "Shindo 2", TONE_LOW,
        "Shaking may be felt by many people indoors, and hanging objects "
        "may move slightly.",
    ),
    "3": IntensityGuidance(
        "3", "Shindo 3", TONE_MEDIUM,
        "Shaking may be felt by most people indoors, and items on shelves "
        "may make noise.",
    ),
    "4": IntensityGuidance(
        "4", "Shindo 4", TONE_MEDIUM,
        "Hanging objects may swing noticeably, and unstable items may fall. "
        "Some transportation services may temporarily slow or stop for "
        "safety checks.",
    ),
    "5-": IntensityGuidance(
        "5-", "Shindo 5-", TONE_HIGH,
        "Some furniture may move, and books or tableware may fall from "
        "shelves. Minor damage such as broken window glass may occur in "
        "some cases.",
    ),
    "5+": IntensityGuidance(
        "5+", "Shindo 5+", TONE_HIGH,
        "Many objects may fall, and it may be difficult to walk without "
        "holding onto something. Lifeline disruptions such as power or "
        "water outages may occur in some areas.",
    ),
    "6-": IntensityGuidance(
        "6-", "Shindo 6-", TONE_HIGH,
        "It may be difficult to remain standing, and unsecured furniture "
        "may move widely or fall. Transportation and building services "
        "may be disrupted.",
    ),
    "6+": IntensityGuidance(
        "6+", "Shindo 6+", TONE_HIGH,
        "It may be very difficult to move, and severe damage may occur "
        "depending on local conditions. Wide-area disruptions to utilities "
        "may occur.",
    ),
    "7": IntensityGuidance(
        "7", "Shindo 7", TONE_HIGH,
        "Severe shaking may cause extensive damage, and many unsecured "
        "objects may be thrown or fall. Major disruptions may occur over a "
        "wide area.",
    ),
}


def normalize_intensity(value: object) -> str | None:
    """Normalize a raw intensity reading to a scale key.

    Pure function. Keys pass through unchanged. Numeric readings are
    rounded onto the scale; the upper/lower band of 5 and 6 can't be
    told apart from a number, so they map to the lower band. Values
    below zero clamp to '0'.

    Examples:
        '5-' -> '5-', 4.5 -> '5-', 6.5 -> '7', -1 -> '0'

    Args:
        value: String or number from upstream (or None)

    Returns:
        Scale key, or None if the value is absent or not recognisable
    """
    if value is None or isinstance(value, bool):
        return None

    text = str(value).strip()
    if not text:
        return None

    if text in INTENSITY_KEYS:
        return text

    try:
        number = float(text)
    except ValueError:
        return None

    if number != number:  # NaN
        return None
    if number <= 0:
        return "0"
    if number < 1.5:
        return "1"
    if number < 2.5:
        return "2"
    if number < 3.5:
        return "3"
    if number < 4.5:
        return "4"
    if number < 5.5:
        return "5-"
    if number < 6.5:
        return "6-"
    return "7"


def intensity_rank(key: str | None) -> int:
    """Position of a key on the scale (-1 for None or unknown keys)."""
    if key not in INTENSITY_KEYS:
        return -1
    return INTENSITY_KEYS.index(key)


def get_tone(key: str | None) -> str:
    """Severity tone for a key; 'unknown' when there is no reading."""
    guidance = GUIDANCE.get(key) if key is not None else None
    if guidance is None:
        return TONE_UNKNOWN
    return guidance.tone


def get_guidance(key: str | None) -> IntensityGuidance | None:
    """Informational guidance for a key, or None if there is no reading."""
    if key is None:
        return None
    return GUIDANCE.get(key)
