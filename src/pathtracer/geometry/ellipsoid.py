"""Axis-aligned ellipsoid centred at the local origin.

The ray is mapped into the unit-sphere space of the ellipsoid by dividing
component-wise by the radii, which turns the problem into the quadratic

    a t^2 + b t + c = 0,  a = d.d,  b = 2 p.d,  c = p.p - 1

with ``p = origin / radii`` and ``d = direction / radii``. Roots keep their
meaning as parameters of the original ray because the mapping is linear.
"""

import taichi as ti
import taichi.math as tm

from pathtracer.geometry.hit import ShapeHit, make_hit_from_roots, make_miss

vec3 = tm.vec3

# Quadratic coefficient below which the ray direction counts as zero-length
DEGENERATE_EPSILON = 1e-20


@ti.func
def ellipsoid_normal(point: vec3, radii: vec3) -> vec3:
    """Outward unit normal at a surface point: ``normalize(p / r^2)``.

    This is the gradient of the implicit function ``sum((p / r)^2) - 1``.
    """
    return tm.normalize(point / (radii * radii))


@ti.func
def hit_ellipsoid(origin: vec3, direction: vec3, radii: vec3) -> ShapeHit:
    """Intersect a ray with an ellipsoid.

    Args:
        origin: Ray origin in the ellipsoid's local frame.
        direction: Ray direction in the ellipsoid's local frame.
        radii: Semi-axis lengths (all positive).

    Returns:
        Entry and exit roots when the origin is outside, the exit root alone
        when it is inside, or a miss.
    """
    p = origin / radii
    d = direction / radii
    a = tm.dot(d, d)
    b = 2.0 * tm.dot(p, d)
    c = tm.dot(p, p) - 1.0
    discriminant = b * b - 4.0 * a * c

    result = make_miss()
    if a > DEGENERATE_EPSILON and discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t_near = (-b - sqrt_d) / (2.0 * a)
        t_far = (-b + sqrt_d) / (2.0 * a)
        normal_near = ellipsoid_normal(origin + t_near * direction, radii)
        normal_far = ellipsoid_normal(origin + t_far * direction, radii)
        result = make_hit_from_roots(t_near, t_far, normal_near, normal_far)
    return result


@ti.func
def ellipsoid_area_density(point: vec3, radii: vec3) -> ti.f32:
    """Density of the light-sampling point distribution on the surface.

    Points are generated by scaling a uniform unit-sphere direction ``n`` by
    the radii. The returned value is the density of that map per unit area
    at ``point``:

        1 / (4 pi sqrt((nx ry rz)^2 + (rx ny rz)^2 + (rx ry nz)^2))

    It equals ``1 / area`` only for spheres.
    """
    n = point / radii
    jacobian = ti.sqrt(
        (n.x * radii.y * radii.z) ** 2
        + (radii.x * n.y * radii.z) ** 2
        + (radii.x * radii.y * n.z) ** 2
    )
    return 1.0 / (4.0 * tm.pi * jacobian)
