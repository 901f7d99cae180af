"""Scene-level ray intersection over the primitive table.

Primitives are stored in preallocated Taichi fields (structure-of-arrays).
A ray is tested against every primitive in turn (no acceleration
structure): it is moved into the primitive's local frame by undoing the
translation and the rotation, intersected with the canonical shape, and the
resulting normals are rotated back to world space.

NaN values met during the nearest-hit search cannot be ordered and mean the
geometry is broken. Kernels cannot raise, so the search records the
offending primitive in an error field and the host raises
``MalformedGeometryError`` after the kernel returns (``check_geometry_errors``).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.shapes import Ellipsoid
    >>> from pathtracer.scene.scene import Primitive
    >>> from pathtracer.scene.intersection import load_primitives, trace_ray
    >>> load_primitives([Primitive(Ellipsoid((1.0, 1.0, 1.0)), position=(0.0, 0.0, 5.0))])
    >>> trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)).t
    4.0
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import quat_conjugate, quat_rotate, vec3
from pathtracer.errors import MalformedGeometryError
from pathtracer.geometry.hit import T_INFINITY, ShapeHit
from pathtracer.geometry.shapes import hit_shape
from pathtracer.scene.scene import Primitive

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]


@ti.dataclass
class SceneHitRecord:
    """Nearest intersection of a ray with the scene, in world space.

    Attributes:
        hit: 1 if any primitive was hit, 0 otherwise.
        t: Ray parameter of the nearest root.
        normal: World-space unit normal at that root, facing the ray.
        outside: 1 if the ray origin was outside the hit primitive's solid.
        primitive: Index of the hit primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    normal: vec3
    outside: ti.i32
    primitive: ti.i32


# Maximum number of primitives supported in the scene
MAX_PRIMITIVES = 1024

# Primitive storage: Structure of Arrays layout
primitive_shape_kinds = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
primitive_shape_params = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
primitive_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
# Unit quaternions stored as (x, y, z, w)
primitive_rotations = ti.Vector.field(4, dtype=ti.f32, shape=MAX_PRIMITIVES)
primitive_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
primitive_emissions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
primitive_material_kinds = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
primitive_iors = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())

# Index of a primitive that produced NaN during the nearest-hit search, or -1
_nan_primitive = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all primitives and reset the geometry error flag."""
    num_primitives[None] = 0
    _nan_primitive[None] = -1


def load_primitives(primitives: Sequence[Primitive]) -> None:
    """Replace the device primitive table with ``primitives``.

    Args:
        primitives: Primitives in scene order; indices in hit records refer
            to this order.

    Raises:
        RuntimeError: If the maximum number of primitives is exceeded.
    """
    if len(primitives) > MAX_PRIMITIVES:
        raise RuntimeError(
            f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded: {len(primitives)}"
        )
    clear_scene()
    for idx, primitive in enumerate(primitives):
        primitive_shape_kinds[idx] = int(primitive.shape.kind)
        primitive_shape_params[idx] = list(primitive.shape.param)
        primitive_positions[idx] = list(primitive.position)
        primitive_rotations[idx] = list(primitive.rotation)
        primitive_colors[idx] = list(primitive.color)
        primitive_emissions[idx] = list(primitive.emission)
        primitive_material_kinds[idx] = int(primitive.material.kind)
        primitive_iors[idx] = primitive.material.ior
    num_primitives[None] = len(primitives)
    logger.debug("Loaded %d primitives", len(primitives))


def get_primitive_count() -> int:
    """Get the number of primitives in the scene."""
    return int(num_primitives[None])


def check_geometry_errors() -> None:
    """Raise if a kernel met malformed geometry since the last check.

    Raises:
        MalformedGeometryError: Naming the primitive whose intersection
            produced a NaN that could not be compared.
    """
    index = int(_nan_primitive[None])
    if index >= 0:
        _nan_primitive[None] = -1
        raise MalformedGeometryError(
            f"NaN ray parameter while comparing the hit against primitive {index}"
        )


@ti.func
def is_nan(x: ti.f32) -> ti.i32:
    """NaN test on the bit pattern; unaffected by fast-math folding."""
    bits = ti.bit_cast(x, ti.u32) & ti.u32(0x7FFFFFFF)
    return 1 if bits > ti.u32(0x7F800000) else 0


@ti.func
def _vector_has_nan(v: vec3) -> ti.i32:
    return is_nan(v.x) | is_nan(v.y) | is_nan(v.z)


@ti.func
def to_local_ray(index: ti.i32, origin: vec3, direction: vec3):
    """Move a world-space ray into primitive ``index``'s local frame."""
    inverse = quat_conjugate(primitive_rotations[index])
    local_origin = quat_rotate(inverse, origin - primitive_positions[index])
    local_direction = quat_rotate(inverse, direction)
    return local_origin, local_direction


@ti.func
def to_world_point(index: ti.i32, local_point: vec3) -> vec3:
    """Map a point from primitive ``index``'s local frame to world space."""
    return quat_rotate(primitive_rotations[index], local_point) + primitive_positions[index]


@ti.func
def intersect_primitive(index: ti.i32, origin: vec3, direction: vec3) -> ShapeHit:
    """Intersect a world-space ray with one primitive.

    Ray parameters are frame-independent because the transform is rigid;
    only the normals are rotated back into world space.
    """
    local_origin, local_direction = to_local_ray(index, origin, direction)
    rec = hit_shape(
        primitive_shape_kinds[index],
        primitive_shape_params[index],
        local_origin,
        local_direction,
    )
    if _vector_has_nan(local_origin) | _vector_has_nan(local_direction):
        _nan_primitive[None] = index
        rec.count = 0
    rotation = primitive_rotations[index]
    rec.normal0 = quat_rotate(rotation, rec.normal0)
    rec.normal1 = quat_rotate(rotation, rec.normal1)
    return rec


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        normal=vec3(0.0, 0.0, 0.0),
        outside=0,
        primitive=-1,
    )


@ti.func
def intersect_scene(origin: vec3, direction: vec3, max_distance: ti.f32) -> SceneHitRecord:
    """Find the nearest primitive hit along a ray.

    Scans every primitive and keeps the one whose first root is smallest.
    Ties go to the primitive declared first.

    Args:
        origin: World-space ray origin.
        direction: World-space ray direction (any non-zero length).
        max_distance: Reject hits farther than this many world units from
            the origin (``t * |direction|``). Negative means no cap.

    Returns:
        The nearest hit, or a miss record.
    """
    result = _make_miss_record()
    closest_t = T_INFINITY
    direction_length = tm.length(direction)

    for i in range(num_primitives[None]):
        rec = intersect_primitive(i, origin, direction)
        if rec.count > 0:
            if is_nan(rec.t0):
                _nan_primitive[None] = i
            elif max_distance < 0.0 or rec.t0 * direction_length <= max_distance:
                if rec.t0 < closest_t:
                    closest_t = rec.t0
                    result = SceneHitRecord(
                        hit=1,
                        t=rec.t0,
                        normal=rec.normal0,
                        outside=rec.outside,
                        primitive=i,
                    )
    return result


# =============================================================================
# Host-side queries
# =============================================================================


@dataclass(frozen=True)
class SceneIntersection:
    """Host-side copy of the nearest scene hit.

    Attributes:
        t: Ray parameter of the hit.
        point: World-space hit point.
        normal: World-space unit normal facing the ray.
        outside: Whether the ray started outside the primitive's solid.
        primitive: Index of the hit primitive in scene order.
    """

    t: float
    point: Vec3
    normal: Vec3
    outside: bool
    primitive: int


_probe_record = SceneHitRecord.field(shape=())


@ti.kernel
def _probe_scene_kernel(origin: vec3, direction: vec3, max_distance: ti.f32):
    # Single-iteration outer loop keeps the primitive scan serial
    for _ in range(1):
        _probe_record[None] = intersect_scene(origin, direction, max_distance)


def trace_ray(
    origin: Vec3,
    direction: Vec3,
    max_distance: float | None = None,
) -> SceneIntersection | None:
    """Nearest hit of a single world-space ray against the loaded scene.

    Args:
        origin: Ray origin.
        direction: Ray direction; its length scales ``t``.
        max_distance: Optional distance cap in world units.

    Returns:
        The nearest intersection, or None if the ray escapes.

    Raises:
        MalformedGeometryError: If the search met a NaN.
    """
    cap = -1.0 if max_distance is None else float(max_distance)
    _probe_scene_kernel(vec3(*origin), vec3(*direction), cap)
    check_geometry_errors()

    rec = _probe_record[None]
    if rec.hit == 0:
        return None
    t = float(rec.t)
    normal = (float(rec.normal[0]), float(rec.normal[1]), float(rec.normal[2]))
    point = tuple(o + t * d for o, d in zip(origin, direction))
    return SceneIntersection(
        t=t,
        point=point,
        normal=normal,
        outside=bool(rec.outside),
        primitive=int(rec.primitive),
    )


__all__ = [
    "MAX_PRIMITIVES",
    "SceneHitRecord",
    "SceneIntersection",
    "check_geometry_errors",
    "clear_scene",
    "get_primitive_count",
    "intersect_primitive",
    "intersect_scene",
    "is_nan",
    "load_primitives",
    "to_local_ray",
    "to_world_point",
    "trace_ray",
]
