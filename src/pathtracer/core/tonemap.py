"""Tone mapping and 8-bit encoding of averaged radiance.

Each channel goes through the ACES filmic curve

    f(x) = x (a x + b) / (x (c x + d) + e)

is clamped to ``[0, WHITE_CLAMP]``, gamma corrected with ``1 / GAMMA`` and
scaled to ``[0, 255]``. Rounding is half-up; values above 255 (the curve
may exceed 1 before gamma) are clipped to 255.

Example:
    >>> from pathtracer.core.tonemap import tone_map_color
    >>> tone_map_color((0.0, 0.0, 0.0))
    (0, 0, 0)
"""

import numpy as np
import numpy.typing as npt

# ACES filmic curve constants (Narkowicz fit)
ACES_A = 2.51
ACES_B = 0.03
ACES_C = 2.43
ACES_D = 0.59
ACES_E = 0.14

# Upper clamp applied after the curve
WHITE_CLAMP = 1.1

# Display gamma
GAMMA = 2.2


def aces_filmic(radiance: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Apply the ACES filmic curve element-wise."""
    x = np.asarray(radiance, dtype=np.float64)
    return x * (ACES_A * x + ACES_B) / (x * (ACES_C * x + ACES_D) + ACES_E)


def tone_map(radiance: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Map linear radiance to display-ready 8-bit channel values.

    Args:
        radiance: Array of any shape holding linear radiance per channel.

    Returns:
        Array of the same shape with dtype uint8.
    """
    mapped = np.clip(aces_filmic(radiance), 0.0, WHITE_CLAMP)
    encoded = np.power(mapped, 1.0 / GAMMA) * 255.0
    return np.clip(np.floor(encoded + 0.5), 0.0, 255.0).astype(np.uint8)


def tone_map_color(rgb: tuple[float, float, float]) -> tuple[int, int, int]:
    """Tone map a single RGB triple."""
    r, g, b = tone_map(np.asarray(rgb, dtype=np.float64))
    return int(r), int(g), int(b)


def encode_pixels(radiance: npt.NDArray[np.floating]) -> bytes:
    """Encode an image of mean radiance as packed RGB bytes.

    Args:
        radiance: Array of shape (height, width, 3), row 0 at the top.

    Returns:
        ``width * height * 3`` bytes, row-major, R, G, B per pixel.

    Raises:
        ValueError: If the array is not (height, width, 3).
    """
    if radiance.ndim != 3 or radiance.shape[2] != 3:
        raise ValueError(f"Expected an array of shape (height, width, 3), got {radiance.shape}")
    return tone_map(radiance).tobytes(order="C")
