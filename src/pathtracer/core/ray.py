"""Ray data structure, vector helpers and quaternion rotation.

Everything here is a Taichi function so it can be used from any kernel. Rays
are not normalised on construction: the length of the direction is part of
the ray, because the scene query compares ``t * |direction|`` against a
distance cap.

Quaternions are stored as ``vec4(x, y, z, w)``, i.e. vector part first and
scalar part last, the same order the scene format writes them in.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.ray import Ray, ray_at, shifted_ray
    >>> # Inside a kernel:
    >>> # ray = Ray(origin=vec3(0, 0, 0), direction=vec3(0, 0, -2))
    >>> # point = ray_at(ray, 0.5)  # (0, 0, -1)
"""

import taichi as ti
import taichi.math as tm

# Type aliases for Taichi vectors
vec3 = tm.vec3
vec4 = tm.vec4

# Distance a continuation ray is pushed along its own direction so it does
# not immediately re-hit the surface it leaves from.
RAY_EPSILON = 1e-4


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3). Not required to be unit
            length; the magnitude scales the ray parameter ``t``.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Point reached after travelling ``t`` direction-lengths along the ray."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


@ti.func
def shifted_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a continuation ray whose origin is nudged along its direction.

    Every bounce starts on a surface. Without the nudge the first
    intersection test of the new ray would find that same surface at
    ``t ~ 0``.

    Args:
        origin: The surface point the bounce starts from.
        direction: The continuation direction (any non-zero length).

    Returns:
        A ray starting ``RAY_EPSILON`` world units past ``origin``.
    """
    offset = vec3(0.0, 0.0, 0.0)
    length_sq = tm.dot(direction, direction)
    if length_sq > 0.0:
        offset = direction * (RAY_EPSILON / ti.sqrt(length_sq))
    return Ray(origin=origin + offset, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Squared Euclidean length, avoiding the square root."""
    return tm.dot(v, v)


@ti.func
def safe_normalize(v: vec3) -> vec3:
    """Normalise ``v``, returning the zero vector for zero-length input.

    ``tm.normalize`` divides by the length unconditionally, which turns a
    zero vector into NaNs.
    """
    result = vec3(0.0, 0.0, 0.0)
    length_sq = tm.dot(v, v)
    if length_sq > 0.0:
        result = v / ti.sqrt(length_sq)
    return result


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror ``incident`` about a unit ``normal``.

    Computes ``incident - 2 (normal . incident) normal``. The length of the
    incident vector is preserved.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(unit_incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract a unit direction through an interface using Snell's law.

    Args:
        unit_incident: Unit incoming direction.
        normal: Unit surface normal on the side the ray arrives from
            (``dot(unit_incident, normal) <= 0``).
        eta: Ratio of refractive indices ``n_from / n_to``.

    Returns:
        The unit refracted direction, or the zero vector when the angle is
        past the critical angle (total internal reflection).
    """
    cos_i = -tm.dot(unit_incident, normal)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * unit_incident + (eta * cos_i - cos_t) * normal
    return result


@ti.func
def schlick_reflectance(cos_incident: ti.f32, n_from: ti.f32, n_to: ti.f32) -> ti.f32:
    """Fresnel reflectance of a dielectric interface, Schlick's approximation.

    ``r0 = ((n1 - n2) / (n1 + n2))^2`` and
    ``R = r0 + (1 - r0) (1 - cos_incident)^5``.
    """
    r0 = (n_from - n_to) / (n_from + n_to)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cos_incident) ** 5)


# =============================================================================
# Quaternion Rotation
# =============================================================================


@ti.func
def quat_conjugate(q: vec4) -> vec4:
    """Conjugate (inverse, for unit quaternions) of ``q``."""
    return vec4(-q.x, -q.y, -q.z, q.w)


@ti.func
def quat_rotate(q: vec4, v: vec3) -> vec3:
    """Rotate ``v`` by the unit quaternion ``q``.

    Uses the expanded form of ``q v q*``:
    ``v + 2w (u x v) + 2 u x (u x v)`` with ``u = q.xyz``.
    """
    u = vec3(q.x, q.y, q.z)
    t = 2.0 * tm.cross(u, v)
    return v + q.w * t + tm.cross(u, t)
