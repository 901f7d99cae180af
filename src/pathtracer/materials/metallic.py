"""Metallic (perfect mirror) scattering.

The incoming direction is mirrored about the surface normal:
    r = d - 2 (n . d) n

and the reflected radiance is tinted by the surface color. Mirrors do not
emit.
"""

import taichi as ti

from pathtracer.core.ray import reflect, vec3


@ti.func
def scatter_metallic(color: vec3, incident_direction: vec3, normal: vec3):
    """Reflect a ray off a perfect mirror.

    Args:
        color: Surface reflectance (RGB).
        incident_direction: Incoming ray direction (any length).
        normal: Unit normal facing the incoming ray.

    Returns:
        A tuple of (direction, weight).
    """
    return reflect(incident_direction, normal), color
