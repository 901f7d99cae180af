"""Image export for rendered pixel buffers.

The renderer hands over ``width * height * 3`` bytes, row-major RGB with
row 0 at the top. This module writes them to disk.

Supported formats:
    - PPM (binary ``P6``)
    - PNG (8-bit RGB)

Both formats are encoded by Pillow.

Example:
    >>> from pathtracer.core.progressive import render_scene
    >>> from pathtracer.preview.export import save_image
    >>>
    >>> pixels = render_scene(scene, seed=0)
    >>> save_image("output.png", scene.width, scene.height, pixels)
"""

import os
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

# Extensions written as binary PPM; everything else is written as PNG
PPM_EXTENSIONS = (".ppm", ".pnm")


def pixels_to_array(pixels: bytes, width: int, height: int) -> npt.NDArray[np.uint8]:
    """View packed RGB bytes as an array of shape (height, width, 3).

    Raises:
        ValueError: If the byte count does not match the dimensions.
    """
    expected = width * height * 3
    if len(pixels) != expected:
        raise ValueError(
            f"Pixel buffer has {len(pixels)} bytes, expected {expected} for {width}x{height}"
        )
    return np.frombuffer(pixels, dtype=np.uint8).reshape(height, width, 3)


def save_ppm(path: str | os.PathLike, width: int, height: int, pixels: bytes) -> None:
    """Write a binary PPM (``P6``, max value 255).

    Raises:
        ValueError: If the byte count does not match the dimensions.
    """
    image = pixels_to_array(pixels, width, height)
    pil_image = PILImage.fromarray(image, mode="RGB")
    pil_image.save(path, format="PPM")


def save_png(path: str | os.PathLike, width: int, height: int, pixels: bytes) -> None:
    """Write an 8-bit RGB PNG using Pillow.

    Raises:
        ValueError: If the byte count does not match the dimensions.
    """
    image = pixels_to_array(pixels, width, height)
    pil_image = PILImage.fromarray(image, mode="RGB")
    pil_image.save(path, format="PNG")


def save_image(path: str | os.PathLike, width: int, height: int, pixels: bytes) -> None:
    """Write pixels in the format implied by the file extension.

    ``.ppm`` and ``.pnm`` produce binary PPM; any other extension produces
    a PNG.
    """
    if Path(path).suffix.lower() in PPM_EXTENSIONS:
        save_ppm(path, width, height, pixels)
    else:
        save_png(path, width, height, pixels)


def load_ppm(path: str | os.PathLike) -> tuple[int, int, bytes]:
    """Read back a binary PPM written by ``save_ppm``.

    Returns:
        Tuple of (width, height, pixels).

    Raises:
        ValueError: If the file is not an 8-bit RGB PPM.
    """
    try:
        pil_image = PILImage.open(path, formats=["PPM"])
    except UnidentifiedImageError as exc:
        raise ValueError(f"{path} is not a PPM image") from exc
    with pil_image:
        if pil_image.mode != "RGB":
            raise ValueError(f"{path} is not an 8-bit RGB PPM (mode {pil_image.mode})")
        width, height = pil_image.size
        pixels = np.asarray(pil_image, dtype=np.uint8).tobytes()
    return width, height, pixels
