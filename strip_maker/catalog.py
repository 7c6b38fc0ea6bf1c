"""
StripMaker — Style & prompt catalog.

Static lookup data: the named art styles offered for a strip, and a handful
of story seeds for the "surprise me" button.
"""

import random
from enum import Enum
from typing import Optional


# ============================================================
# Art Styles
# ============================================================

class ArtStyle(Enum):
    """Available art directions for panel images."""

    CLASSIC_COMIC = "classic_comic"
    MANGA_NOIR = "manga_noir"
    EPIC_FANTASY = "epic_fantasy"
    CYBERPUNK = "cyberpunk"
    WATERCOLOR = "watercolor"
    RETRO_PIXEL = "retro_pixel"


# Insertion order matters: the first entry is the default selection.
ART_STYLES = {
    ArtStyle.CLASSIC_COMIC: {
        "name": "Classic Comic",
        "prompt": "Comic Book style, vibrant colors, bold outlines, silver age aesthetic",
    },
    ArtStyle.MANGA_NOIR: {
        "name": "Manga Noir",
        "prompt": (
            "Modern Manga style, high contrast, black and white, sharp lines, "
            "cinematic screentones"
        ),
    },
    ArtStyle.EPIC_FANTASY: {
        "name": "Epic Fantasy",
        "prompt": "Digital Fantasy Art, detailed, painterly, epic lighting, concept art",
    },
    ArtStyle.CYBERPUNK: {
        "name": "Cyberpunk",
        "prompt": "Cyberpunk 2077 style, neon lights, rainy streets, gritty tech",
    },
    ArtStyle.WATERCOLOR: {
        "name": "Watercolor",
        "prompt": "Studio Ghibli style watercolor, soft edges, whimsical, hand-painted",
    },
    ArtStyle.RETRO_PIXEL: {
        "name": "Retro Pixel",
        "prompt": "16-bit Pixel Art, SNES style, vibrant palette, detailed sprites",
    },
}

DEFAULT_STYLE = next(iter(ART_STYLES))


RANDOM_SEEDS = [
    "A grumpy cat who accidentally becomes a superhero",
    "A detective in a city where everyone is a robot except him",
    "A young wizard whose spells only create various types of cheese",
    "A futuristic pizza delivery pilot racing through an asteroid field",
    "A Victorian ghost trying to learn how to use a smartphone",
    "Two squirrels plotting a heist on the world's most secure birdhouse",
]


def get_art_style(style: ArtStyle = DEFAULT_STYLE) -> dict:
    """Get art style config by enum."""
    return ART_STYLES[style]


def default_style_prompt() -> str:
    return ART_STYLES[DEFAULT_STYLE]["prompt"]


def find_style(name: str) -> Optional[ArtStyle]:
    """
    Look up a style by enum value ("watercolor") or display name ("Watercolor").

    Matching ignores case and treats spaces, dashes and underscores alike.
    Returns None when nothing matches.
    """
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    for style, config in ART_STYLES.items():
        display = config["name"].lower().replace(" ", "_")
        if key in (style.value, display):
            return style
    return None


def random_seed(rng: Optional[random.Random] = None) -> str:
    """Pick a random story idea."""
    return (rng or random).choice(RANDOM_SEEDS)
