"""ARGB color helpers.

Colors arrive already parsed from KML and are handled as 32-bit ARGB
integers.
"""

from __future__ import annotations

import random

OPAQUE_WHITE = 0xFFFFFFFF
TRANSPARENT = 0x00000000


def argb(alpha: int, red: int, green: int, blue: int) -> int:
    return (alpha & 0xFF) << 24 | (red & 0xFF) << 16 | (green & 0xFF) << 8 | (blue & 0xFF)


def alpha(color: int) -> int:
    return (color >> 24) & 0xFF


def red(color: int) -> int:
    return (color >> 16) & 0xFF


def green(color: int) -> int:
    return (color >> 8) & 0xFF


def blue(color: int) -> int:
    return color & 0xFF


def compute_random_color(color: int, rng: random.Random | None = None) -> int:
    """Pick a random color at or below each channel of the base color.

    Every non-zero RGB channel is replaced by a uniform integer in
    [0, channel); zero channels stay zero and alpha is kept.
    """
    rng = rng or random.Random()
    channels = []
    for value in (red(color), green(color), blue(color)):
        channels.append(rng.randrange(value) if value else 0)
    return argb(alpha(color), *channels)
