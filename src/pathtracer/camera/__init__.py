"""Camera module for primary ray generation.

Components:
    pinhole: Pinhole (perspective) camera given by position, axes and FOV

Ray generation uses continuous pixel coordinates:
    column in [0, width): left to right across the image
    row in [0, height): top to bottom across the image

Sub-pixel jitter is added by the caller, which owns the random stream.
"""

from .pinhole import (
    PinholeCamera,
    get_camera_info,
    get_ray,
    setup_camera,
)

__all__ = [
    "PinholeCamera",
    "setup_camera",
    "get_ray",
    "get_camera_info",
]
