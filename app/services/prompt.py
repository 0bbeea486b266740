import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class Style(str, Enum):
    BOLD_GRAPHIC = "Bold & Graphic"
    TECH_FUTURISTIC = "Tech/Futuristic"
    MINIMALIST = "Minimalist"
    PHOTOREALISTIC = "Photorealistic"
    ILLUSTRATED = "Illustrated"


class ColorScheme(str, Enum):
    VIBRANT = "vibrant"
    SUNSET = "sunset"
    FOREST = "forest"
    NEON = "neon"
    PURPLE = "purple"
    MONOCHROME = "monochrome"
    OCEAN = "ocean"
    PASTEL = "pastel"


STYLE_PROMPTS: dict[str, str] = {
    Style.BOLD_GRAPHIC.value: (
        "eye-catching thumbnail, bold typography, vibrant colors, expressive facial reaction, "
        "dramatic lighting, high contrast, click-worthy composition"
    ),
    Style.TECH_FUTURISTIC.value: "futuristic thumbnail, sleek modern design, glowing UI, cyber-tech aesthetic",
    Style.MINIMALIST.value: "minimalist thumbnail, clean layout, simple shapes, modern flat design",
    Style.PHOTOREALISTIC.value: "photorealistic thumbnail, ultra-real lighting, DSLR photo style",
    Style.ILLUSTRATED.value: "illustrated thumbnail, stylized characters, cartoon/vector style",
}

COLOR_SCHEME_DESCRIPTIONS: dict[str, str] = {
    ColorScheme.VIBRANT.value: "vibrant energetic colors, bold contrast",
    ColorScheme.SUNSET.value: "warm sunset tones, orange pink purple",
    ColorScheme.FOREST.value: "natural green earthy tones",
    ColorScheme.NEON.value: "neon glow, cyberpunk colors",
    ColorScheme.PURPLE.value: "purple magenta palette",
    ColorScheme.MONOCHROME.value: "black and white high contrast",
    ColorScheme.OCEAN.value: "cool blue teal tones",
    ColorScheme.PASTEL.value: "soft pastel colors",
}

DEFAULT_STYLE = Style.BOLD_GRAPHIC.value
DEFAULT_ASPECT_RATIO = "16:9"
DEFAULT_COLOR_SCHEME = ColorScheme.VIBRANT.value
DEFAULT_STYLE_PHRASE = "bold thumbnail"


@dataclass(frozen=True)
class ThumbnailOptions:
    """Style options after defaults have been applied."""
    style: str
    aspect_ratio: str
    color_scheme: str


def _clean(value, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def resolve_options(style=None, aspect_ratio=None, color_scheme=None) -> ThumbnailOptions:
    """
    Apply defaults to the user-supplied style options.

    Missing, blank or non-string values fall back to the defaults. Other values
    are trimmed and kept as given, even when they are not a known key; the
    composer handles unknown keys on its own.
    """
    return ThumbnailOptions(
        style=_clean(style, DEFAULT_STYLE),
        aspect_ratio=_clean(aspect_ratio, DEFAULT_ASPECT_RATIO),
        color_scheme=_clean(color_scheme, DEFAULT_COLOR_SCHEME),
    )


def compose_prompt(
    title: str | None = None,
    prompt: str | None = None,
    style: str | None = None,
    aspect_ratio: str | None = None,
    color_scheme: str | None = None,
) -> str:
    """
    Build the text-to-image prompt for a thumbnail.

    Order: style phrase and quoted title, color scheme clause (only for known
    schemes), the user's own prompt, then the aspect ratio suffix. User text
    is interpolated as is.
    """
    options = resolve_options(style, aspect_ratio, color_scheme)

    style_phrase = STYLE_PROMPTS.get(options.style, DEFAULT_STYLE_PHRASE)
    parts = [f'Create a {style_phrase} for: "{title or ""}"']

    color_description = COLOR_SCHEME_DESCRIPTIONS.get(options.color_scheme)
    if color_description:
        parts.append(f"Use {color_description}.")

    if prompt:
        parts.append(f"{prompt}.")

    parts.append(f"Aspect ratio {options.aspect_ratio}, high CTR, YouTube thumbnail.")

    composed = " ".join(parts)
    logger.info("Composed prompt: %s", composed)
    return composed
