"""Area-light sampling towards a single primitive.

Sampling picks a point on the light's surface in its local frame (box: a
face chosen by area, then a uniform point on it; ellipsoid: a uniform point
on the unit sphere scaled by the radii), moves it to world space and returns
the direction from the shading point towards it.

The density of a direction is the area density converted to solid angle:

    pdf(w) = sum over roots of  area_pdf * |origin -> hit|^2 / |n_hit . w|

summed over every root of the ray against the light, since a ray can cross
a closed light twice.

The light is described by plain values (shape kind, shape parameter,
position, rotation) rather than a primitive index so that the same
functions serve the scene table and host-side probing alike.
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import quat_conjugate, quat_rotate, safe_normalize, vec3, vec4
from pathtracer.core.sampler import random_float, random_range, random_unit_vector
from pathtracer.geometry.box import box_area_density
from pathtracer.geometry.ellipsoid import ellipsoid_area_density
from pathtracer.geometry.shapes import ShapeKind, hit_shape

# Roots seen this close to edge-on carry an unbounded Jacobian and are skipped
GRAZING_EPSILON = 1e-6


@ti.func
def sample_box_surface(stream: ti.i32, half_extents: vec3) -> vec3:
    """Uniform point on the surface of an axis-aligned box."""
    s = half_extents
    area_x = s.y * s.z
    area_y = s.x * s.z
    area_z = s.x * s.y
    u = random_float(stream) * (area_x + area_y + area_z)
    side = 1.0
    if random_float(stream) < 0.5:
        side = -1.0
    a = random_range(stream, -1.0, 1.0)
    b = random_range(stream, -1.0, 1.0)

    point = vec3(a * s.x, b * s.y, side * s.z)
    if u < area_x:
        point = vec3(side * s.x, a * s.y, b * s.z)
    elif u < area_x + area_y:
        point = vec3(a * s.x, side * s.y, b * s.z)
    return point


@ti.func
def sample_ellipsoid_surface(stream: ti.i32, radii: vec3) -> vec3:
    """Point on an ellipsoid: uniform unit-sphere direction scaled by the radii."""
    return random_unit_vector(stream) * radii


@ti.func
def sample_light(
    stream: ti.i32,
    origin: vec3,
    kind: ti.i32,
    param: vec3,
    position: vec3,
    rotation: vec4,
) -> vec3:
    """Unit direction from ``origin`` towards a random point on the light."""
    local_point = vec3(0.0, 0.0, 0.0)
    if kind == int(ShapeKind.BOX):
        local_point = sample_box_surface(stream, param)
    elif kind == int(ShapeKind.ELLIPSOID):
        local_point = sample_ellipsoid_surface(stream, param)
    world_point = quat_rotate(rotation, local_point) + position
    return safe_normalize(world_point - origin)


@ti.func
def _root_density(
    kind: ti.i32,
    param: vec3,
    local_origin: vec3,
    local_direction: vec3,
    t: ti.f32,
    normal: vec3,
) -> ti.f32:
    density = 0.0
    cos_light = ti.abs(tm.dot(normal, local_direction))
    if cos_light > GRAZING_EPSILON:
        area_pdf = 0.0
        if kind == int(ShapeKind.BOX):
            area_pdf = box_area_density(param)
        elif kind == int(ShapeKind.ELLIPSOID):
            area_pdf = ellipsoid_area_density(local_origin + t * local_direction, param)
        # local_direction is unit length, so t is the distance to the root
        density = area_pdf * t * t / cos_light
    return density


@ti.func
def pdf_light(
    origin: vec3,
    direction: vec3,
    kind: ti.i32,
    param: vec3,
    position: vec3,
    rotation: vec4,
) -> ti.f32:
    """Solid-angle density of ``direction`` under ``sample_light``.

    The query ray is moved into the light's local frame, where the shape
    and its area density are defined.

    Returns:
        The density, 0 when the ray misses the light or the light is a plane.
    """
    total = 0.0
    if kind != int(ShapeKind.PLANE):
        inverse = quat_conjugate(rotation)
        local_origin = quat_rotate(inverse, origin - position)
        local_direction = quat_rotate(inverse, safe_normalize(direction))
        rec = hit_shape(kind, param, local_origin, local_direction)
        if rec.count >= 1:
            total += _root_density(kind, param, local_origin, local_direction, rec.t0, rec.normal0)
        if rec.count >= 2:
            total += _root_density(kind, param, local_origin, local_direction, rec.t1, rec.normal1)
    return total
