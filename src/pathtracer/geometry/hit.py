"""Local-frame hit record shared by all shape intersection routines.

A shape intersection reports every root that matters for the ray:

- origin outside the solid: two roots (entry, exit), ``outside == 1``
- origin inside the solid: one root (exit), ``outside == 0``
- planes: one root

Normal convention: the geometric outward normal is reported unchanged when
the origin is outside the solid and negated when it is inside. The first
reported normal therefore always faces the incoming ray.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Stand-in for an unbounded ray parameter on slabs parallel to a ray
T_INFINITY = 1e30


@ti.dataclass
class ShapeHit:
    """Roots of a ray against one shape, in the shape's local frame.

    Attributes:
        count: Number of valid roots (0 = miss, 1 or 2).
        t0: First root (the nearest one in front of the origin).
        t1: Second root, valid only when ``count == 2``.
        normal0: Unit normal at ``t0``.
        normal1: Unit normal at ``t1``, valid only when ``count == 2``.
        outside: 1 if the ray origin lies outside the shape's solid.
    """

    count: ti.i32
    t0: ti.f32
    t1: ti.f32
    normal0: vec3
    normal1: vec3
    outside: ti.i32


@ti.func
def make_miss() -> ShapeHit:
    """ShapeHit with no roots."""
    return ShapeHit(
        count=0,
        t0=0.0,
        t1=0.0,
        normal0=vec3(0.0, 0.0, 0.0),
        normal1=vec3(0.0, 0.0, 0.0),
        outside=0,
    )


@ti.func
def make_hit_from_roots(
    t_near: ti.f32,
    t_far: ti.f32,
    normal_near: vec3,
    normal_far: vec3,
) -> ShapeHit:
    """Classify an ordered root pair of a closed solid.

    Picks the nearer root if it is non-negative (origin outside, both roots
    reported), else the farther one if it is non-negative (origin inside,
    single root), else reports a miss.

    Args:
        t_near: Smaller root.
        t_far: Larger root.
        normal_near: Geometric outward normal at ``t_near``.
        normal_far: Geometric outward normal at ``t_far``.
    """
    result = make_miss()
    if t_near >= 0.0:
        result = ShapeHit(
            count=2,
            t0=t_near,
            t1=t_far,
            normal0=normal_near,
            normal1=normal_far,
            outside=1,
        )
    elif t_far >= 0.0:
        result = ShapeHit(
            count=1,
            t0=t_far,
            t1=0.0,
            normal0=-normal_far,
            normal1=vec3(0.0, 0.0, 0.0),
            outside=0,
        )
    return result
