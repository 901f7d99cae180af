"""Infinite plane through the local origin.

The plane is ``{p : dot(p, normal) = 0}``. It has no interior in the usual
sense; "outside" is the half-space the normal points into, so a ray coming
from that side (``dot(direction, normal) < 0``) is outside and sees the
normal unchanged, while a ray from the other side sees it flipped.
"""

import taichi as ti
import taichi.math as tm

from pathtracer.geometry.hit import ShapeHit, make_miss

vec3 = tm.vec3

# Rays whose direction is this close to parallel never hit the plane
PARALLEL_EPSILON = 1e-8


@ti.func
def hit_plane(origin: vec3, direction: vec3, normal: vec3) -> ShapeHit:
    """Intersect a ray with a plane through the origin.

    Solves ``t = -dot(origin, normal) / dot(direction, normal)``.

    Args:
        origin: Ray origin in the plane's local frame.
        direction: Ray direction in the plane's local frame.
        normal: Plane normal (any non-zero length).

    Returns:
        A single-root ShapeHit, or a miss for parallel rays and for planes
        behind the origin.
    """
    unit_normal = tm.normalize(normal)
    denom = tm.dot(direction, unit_normal)
    result = make_miss()
    if ti.abs(denom) > PARALLEL_EPSILON:
        t = -tm.dot(origin, unit_normal) / denom
        if t >= 0.0:
            outside = 1
            facing = unit_normal
            if denom > 0.0:
                outside = 0
                facing = -unit_normal
            result = ShapeHit(
                count=1,
                t0=t,
                t1=0.0,
                normal0=facing,
                normal1=vec3(0.0, 0.0, 0.0),
                outside=outside,
            )
    return result
