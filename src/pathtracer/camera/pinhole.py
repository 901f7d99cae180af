"""Pinhole camera model for primary ray generation.

The camera is given directly by its position and an orthonormal frame
(right, up, forward) plus the horizontal and vertical field of view. The
image plane sits at unit distance along ``forward``; a pixel's ray direction
is

    x * tan(fov_x / 2) * right + y * tan(fov_y / 2) * up + forward

with ``x, y`` in ``[-1, 1]`` and ``y`` growing towards the top row. The
direction is deliberately left unnormalised.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.pinhole import PinholeCamera, setup_camera
    >>> camera = PinholeCamera.from_fov_x(
    ...     position=(0.0, 0.0, 0.0),
    ...     right=(1.0, 0.0, 0.0),
    ...     up=(0.0, 1.0, 0.0),
    ...     forward=(0.0, 0.0, 1.0),
    ...     fov_x=1.5708,
    ...     width=640,
    ...     height=480,
    ... )
    >>> setup_camera(camera)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from pathtracer.core.ray import Ray, make_ray

Vec3 = tuple[float, float, float]

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass(frozen=True)
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        position: Camera position in world space.
        right: Unit vector pointing to the right of the image.
        up: Unit vector pointing to the top of the image.
        forward: Unit viewing direction.
        fov_x: Horizontal field of view in radians.
        fov_y: Vertical field of view in radians.
    """

    position: Vec3
    right: Vec3
    up: Vec3
    forward: Vec3
    fov_x: float
    fov_y: float

    def __post_init__(self) -> None:
        for name in ("fov_x", "fov_y"):
            fov = getattr(self, name)
            if not 0.0 < fov < math.pi:
                raise ValueError(f"{name} must be in (0, pi) radians, got {fov}")

    @classmethod
    def from_fov_x(
        cls,
        position: Vec3,
        right: Vec3,
        up: Vec3,
        forward: Vec3,
        fov_x: float,
        width: int,
        height: int,
    ) -> "PinholeCamera":
        """Build a camera whose vertical FOV matches the image aspect ratio.

        ``fov_y = 2 * atan(tan(fov_x / 2) * height / width)`` keeps pixels
        square.
        """
        fov_y = 2.0 * math.atan(math.tan(fov_x / 2.0) * height / width)
        return cls(
            position=tuple(position),
            right=tuple(right),
            up=tuple(up),
            forward=tuple(forward),
            fov_x=fov_x,
            fov_y=fov_y,
        )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Image-plane axes pre-scaled by tan(fov / 2)
_camera_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_forward = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_camera(camera: PinholeCamera) -> None:
    """Upload camera state for use by ``get_ray``.

    Note:
        This function writes to Taichi fields and should be called from
        Python (not from within a Taichi kernel).
    """
    right = np.asarray(camera.right, dtype=np.float64)
    up = np.asarray(camera.up, dtype=np.float64)
    forward = np.asarray(camera.forward, dtype=np.float64)

    horizontal = right * math.tan(camera.fov_x / 2.0)
    vertical = up * math.tan(camera.fov_y / 2.0)

    _camera_origin[None] = list(camera.position)
    _camera_horizontal[None] = horizontal.tolist()
    _camera_vertical[None] = vertical.tolist()
    _camera_forward[None] = forward.tolist()


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(
    column: ti.f32,
    row: ti.f32,
    width: ti.i32,
    height: ti.i32,
) -> Ray:
    """Generate the primary ray through a continuous pixel position.

    Args:
        column: Horizontal position in pixels; ``column = 0.5`` is the centre
            of the leftmost pixel.
        row: Vertical position in pixels; ``row = 0.5`` is the centre of the
            top pixel row.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A ray from the camera position with an unnormalised direction.
    """
    x = 2.0 * column / ti.cast(width, ti.f32) - 1.0
    y = -(2.0 * row / ti.cast(height, ti.f32) - 1.0)
    direction = (
        x * _camera_horizontal[None] + y * _camera_vertical[None] + _camera_forward[None]
    )
    return make_ray(_camera_origin[None], direction)


def get_camera_info() -> dict[str, Vec3]:
    """Current device-side camera state, for debugging and tests."""

    def _read(field) -> Vec3:
        v = field[None]
        return (float(v[0]), float(v[1]), float(v[2]))

    return {
        "origin": _read(_camera_origin),
        "horizontal": _read(_camera_horizontal),
        "vertical": _read(_camera_vertical),
        "forward": _read(_camera_forward),
    }
