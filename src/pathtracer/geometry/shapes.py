"""Shape variants and the per-shape intersection dispatch.

Shapes live in a canonical local frame centred at the origin. Every variant
is fully described by one 3-vector (plane normal, ellipsoid radii or box
half extents), so on the device a shape is just ``(kind, param)``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.shapes import Box, intersect_shape
    >>> hit = intersect_shape(Box((1.0, 1.0, 1.0)), (5.0, 0.0, 0.0), (-1.0, 0.0, 0.0))
    >>> hit.ts
    (4.0, 6.0)
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

import taichi as ti
import taichi.math as tm

from pathtracer.errors import MalformedGeometryError
from pathtracer.geometry.box import hit_box
from pathtracer.geometry.ellipsoid import hit_ellipsoid
from pathtracer.geometry.hit import ShapeHit, make_miss
from pathtracer.geometry.plane import hit_plane

vec3 = tm.vec3
Vec3 = tuple[float, float, float]


class ShapeKind(IntEnum):
    """Device-side tag of a shape variant."""

    PLANE = 0
    ELLIPSOID = 1
    BOX = 2


def _as_vec3(values, name: str) -> Vec3:
    vector = tuple(float(v) for v in values)
    if len(vector) != 3:
        raise MalformedGeometryError(f"{name} must have 3 components, got {len(vector)}")
    if not all(math.isfinite(v) for v in vector):
        raise MalformedGeometryError(f"{name} has non-finite components: {vector}")
    return vector  # type: ignore[return-value]


@dataclass(frozen=True)
class Plane:
    """Plane through the local origin with the given normal."""

    normal: Vec3

    def __post_init__(self) -> None:
        normal = _as_vec3(self.normal, "Plane normal")
        if not any(normal):
            raise MalformedGeometryError("Plane normal must be non-zero")
        object.__setattr__(self, "normal", normal)

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.PLANE

    @property
    def param(self) -> Vec3:
        return self.normal


@dataclass(frozen=True)
class Ellipsoid:
    """Axis-aligned ellipsoid centred at the local origin."""

    radii: Vec3

    def __post_init__(self) -> None:
        radii = _as_vec3(self.radii, "Ellipsoid radii")
        if min(radii) <= 0.0:
            raise MalformedGeometryError(f"Ellipsoid radii must be positive, got {radii}")
        object.__setattr__(self, "radii", radii)

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.ELLIPSOID

    @property
    def param(self) -> Vec3:
        return self.radii


@dataclass(frozen=True)
class Box:
    """Axis-aligned box centred at the local origin."""

    half_extents: Vec3

    def __post_init__(self) -> None:
        half_extents = _as_vec3(self.half_extents, "Box half extents")
        if min(half_extents) <= 0.0:
            raise MalformedGeometryError(
                f"Box half extents must be positive, got {half_extents}"
            )
        object.__setattr__(self, "half_extents", half_extents)

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.BOX

    @property
    def param(self) -> Vec3:
        return self.half_extents


Shape = Union[Plane, Ellipsoid, Box]


@dataclass(frozen=True)
class Intersection:
    """Host-side copy of a shape intersection.

    Attributes:
        ts: Ray parameters of the reported roots, nearest first.
        normals: One unit normal per root (see ``geometry.hit`` for the
            orientation convention).
        outside: Whether the ray origin lies outside the shape's solid.
    """

    ts: tuple[float, ...]
    normals: tuple[Vec3, ...]
    outside: bool


@ti.func
def hit_shape(kind: ti.i32, param: vec3, origin: vec3, direction: vec3) -> ShapeHit:
    """Dispatch a local-frame ray to the matching shape routine."""
    result = make_miss()
    if kind == int(ShapeKind.PLANE):
        result = hit_plane(origin, direction, param)
    elif kind == int(ShapeKind.ELLIPSOID):
        result = hit_ellipsoid(origin, direction, param)
    elif kind == int(ShapeKind.BOX):
        result = hit_box(origin, direction, param)
    return result


# =============================================================================
# Host-side probing
# =============================================================================

_probe_count = ti.field(dtype=ti.i32, shape=())
_probe_ts = ti.field(dtype=ti.f32, shape=2)
_probe_normals = ti.Vector.field(3, dtype=ti.f32, shape=2)
_probe_outside = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _probe_shape_kernel(kind: ti.i32, param: vec3, origin: vec3, direction: vec3):
    rec = hit_shape(kind, param, origin, direction)
    _probe_count[None] = rec.count
    _probe_ts[0] = rec.t0
    _probe_ts[1] = rec.t1
    _probe_normals[0] = rec.normal0
    _probe_normals[1] = rec.normal1
    _probe_outside[None] = rec.outside


def intersect_shape(shape: Shape, origin: Vec3, direction: Vec3) -> Intersection | None:
    """Intersect a ray with a shape in its local frame.

    This runs the same device routine the renderer uses and copies the
    result back, which makes it convenient for tests and tooling. It is not
    meant for per-pixel use.

    Args:
        shape: The shape to test.
        origin: Ray origin in the shape's local frame.
        direction: Ray direction in the shape's local frame.

    Returns:
        The reported roots, or None if the ray misses.
    """
    _probe_shape_kernel(
        int(shape.kind),
        vec3(*shape.param),
        vec3(*origin),
        vec3(*direction),
    )
    count = int(_probe_count[None])
    if count == 0:
        return None
    ts = tuple(float(_probe_ts[i]) for i in range(count))
    normals = tuple(
        (
            float(_probe_normals[i][0]),
            float(_probe_normals[i][1]),
            float(_probe_normals[i][2]),
        )
        for i in range(count)
    )
    return Intersection(ts=ts, normals=normals, outside=bool(_probe_outside[None]))
