"""Preview module for writing rendered images.

Components:
    export: PPM and PNG writers for packed RGB pixel buffers

Example:
    >>> from pathtracer.preview import save_image
    >>> save_image("output.ppm", width, height, pixels)
"""

from pathtracer.preview.export import (
    load_ppm,
    pixels_to_array,
    save_image,
    save_png,
    save_ppm,
)

__all__ = [
    "save_image",
    "save_ppm",
    "save_png",
    "load_ppm",
    "pixels_to_array",
]
