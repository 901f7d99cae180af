"""Cosine-weighted hemisphere distribution.

Directions are drawn with density proportional to ``cos(theta)`` around the
surface normal: a uniform point in the unit ball is normalised, added to the
normal and normalised again.

The matching density with respect to solid angle is:
    pdf(w) = max(0, w . n) / pi
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import safe_normalize, vec3
from pathtracer.core.sampler import random_in_unit_ball


@ti.func
def sample_cosine(stream: ti.i32, normal: vec3) -> vec3:
    """Draw a unit direction around ``normal`` proportional to ``cos(theta)``.

    Args:
        stream: Random stream to draw from.
        normal: Unit surface normal.

    Returns:
        A unit direction. Falls back to ``normal`` in the measure-zero case
        where the offset cancels the normal exactly.
    """
    offset = safe_normalize(random_in_unit_ball(stream))
    direction = safe_normalize(normal + offset)
    if tm.dot(direction, direction) == 0.0:
        direction = normal
    return direction


@ti.func
def pdf_cosine(normal: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of ``direction`` under ``sample_cosine``.

    Args:
        normal: Unit surface normal.
        direction: Unit direction to evaluate.

    Returns:
        ``max(0, direction . normal) / pi``.
    """
    return ti.max(0.0, tm.dot(direction, normal)) / tm.pi
