"""Dielectric (glass/water) scattering.

This module implements a smooth dielectric interface that either reflects
or refracts each incoming ray.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when sin(theta2) > 1

The choice between reflection and refraction is a stochastic branch taken
with probability equal to the Schlick reflectance. The chosen branch is not
reweighted by its probability: over many samples the branch frequency
itself splits the energy. Radiance refracted at a hit whose ray started
outside the solid is tinted by the surface color.

Example:
    >>> # Inside a kernel:
    >>> # direction, weight = scatter_dielectric(
    >>> #     stream, ior, color, incident_dir, normal, outside
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import reflect, refract, safe_normalize, schlick_reflectance, vec3
from pathtracer.core.sampler import random_float


@ti.func
def scatter_dielectric(
    stream: ti.i32,
    ior: ti.f32,
    color: vec3,
    incident_direction: vec3,
    normal: vec3,
    outside: ti.i32,
):
    """Reflect or refract a ray at a dielectric interface.

    Args:
        stream: Random stream to draw from.
        ior: Index of refraction of the material.
        color: Absorption tint applied to refracted light.
        incident_direction: Incoming ray direction (any non-zero length).
        normal: Unit normal facing the incoming ray.
        outside: 1 if the ray origin was outside the solid (entering it),
            0 if the ray is travelling inside the material.

    Returns:
        A tuple of (direction, weight) where:
        - direction: The reflected or refracted unit direction.
        - weight: White for reflection, ``color`` or white for refraction.
    """
    # Relative indices: air outside, the material inside
    n_from = 1.0
    n_to = ior
    if outside == 0:
        n_from = ior
        n_to = 1.0

    unit_direction = safe_normalize(incident_direction)
    cos_theta1 = tm.min(-tm.dot(unit_direction, normal), 1.0)
    sin_theta1 = ti.sqrt(ti.max(0.0, 1.0 - cos_theta1 * cos_theta1))
    sin_theta2 = n_from / n_to * sin_theta1

    reflect_coef = schlick_reflectance(cos_theta1, n_from, n_to)

    direction = vec3(0.0, 0.0, 0.0)
    weight = vec3(1.0, 1.0, 1.0)
    if sin_theta2 > 1.0 or random_float(stream) < reflect_coef:
        direction = reflect(unit_direction, normal)
    else:
        direction = refract(unit_direction, normal, n_from / n_to)
        if outside == 1:
            weight = color
    return direction, weight
