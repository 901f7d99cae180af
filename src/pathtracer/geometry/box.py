"""Axis-aligned box centred at the local origin (slab test).

Each axis contributes the interval of ``t`` between the two planes
``x = +-s``; the box is the intersection of the three intervals.
"""

import taichi as ti
import taichi.math as tm

from pathtracer.geometry.hit import T_INFINITY, ShapeHit, make_hit_from_roots, make_miss

vec3 = tm.vec3

# Direction components smaller than this are treated as parallel to a slab
SLAB_EPSILON = 1e-12


@ti.func
def box_normal(point: vec3, half_extents: vec3) -> vec3:
    """Outward face normal at a surface point.

    Picks the axis where ``|point / half_extents|`` is largest and returns
    the signed unit vector along it.
    """
    q = point / half_extents
    aq = ti.abs(q)
    normal = vec3(0.0, 0.0, 1.0 if q.z >= 0.0 else -1.0)
    if aq.x >= aq.y and aq.x >= aq.z:
        normal = vec3(1.0 if q.x >= 0.0 else -1.0, 0.0, 0.0)
    elif aq.y >= aq.z:
        normal = vec3(0.0, 1.0 if q.y >= 0.0 else -1.0, 0.0)
    return normal


@ti.func
def hit_box(origin: vec3, direction: vec3, half_extents: vec3) -> ShapeHit:
    """Intersect a ray with a box.

    Args:
        origin: Ray origin in the box's local frame.
        direction: Ray direction in the box's local frame.
        half_extents: Half of the box size along each axis (all positive).

    Returns:
        Entry and exit roots when the origin is outside, the exit root alone
        when it is inside, or a miss if the slab interval is empty, lies
        entirely behind the origin, or the direction is zero.
    """
    t_low = -T_INFINITY
    t_high = T_INFINITY
    constrained = 0
    for k in ti.static(range(3)):
        if ti.abs(direction[k]) < SLAB_EPSILON:
            # Parallel to this slab pair: either always inside it or never
            if ti.abs(origin[k]) > half_extents[k]:
                t_low = T_INFINITY
                t_high = -T_INFINITY
        else:
            constrained = 1
            ta = (half_extents[k] - origin[k]) / direction[k]
            tb = (-half_extents[k] - origin[k]) / direction[k]
            t_low = ti.max(t_low, ti.min(ta, tb))
            t_high = ti.min(t_high, ti.max(ta, tb))

    result = make_miss()
    # A zero direction leaves every slab unconstrained
    if constrained == 1 and t_low <= t_high and t_high >= 0.0:
        normal_near = box_normal(origin + t_low * direction, half_extents)
        normal_far = box_normal(origin + t_high * direction, half_extents)
        result = make_hit_from_roots(t_low, t_high, normal_near, normal_far)
    return result


@ti.func
def box_area_density(half_extents: vec3) -> ti.f32:
    """Uniform area density over the six faces: ``1 / surface_area``."""
    s = half_extents
    return 1.0 / (8.0 * (s.x * s.y + s.x * s.z + s.y * s.z))
