"""Diffuse (Lambertian) scattering with multiple importance sampling.

The Lambertian BRDF is constant:
    f_r = color / pi

Continuation directions are not drawn from the BRDF's own cosine lobe but
from the scene-wide mixture distribution (cosine lobe plus lights), so the
path weight keeps the full Monte Carlo ratio:

    weight = (color / pi) * cos(theta) / pdf(w)

Example:
    >>> # Inside a kernel, after load_distribution(...):
    >>> # direction, weight, valid = scatter_diffuse(stream, color, point, normal)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import vec3
from pathtracer.distribution.distributions import distribution_pdf, sample_distribution


@ti.func
def eval_diffuse(color: vec3) -> vec3:
    """Evaluate the Lambertian BRDF, ``color / pi``."""
    return color / tm.pi


@ti.func
def scatter_diffuse(stream: ti.i32, color: vec3, point: vec3, normal: vec3):
    """Sample a continuation direction for a diffuse surface.

    Args:
        stream: Random stream to draw from.
        color: Surface reflectance (RGB).
        point: World-space hit point.
        normal: Unit normal facing the incoming ray.

    Returns:
        A tuple of (direction, weight, valid) where:
        - direction: The sampled unit direction.
        - weight: ``f_r * cos / pdf``, the factor applied to the radiance
          arriving along ``direction``.
        - valid: 0 when the density is not positive or the direction points
          into the surface; the bounce then contributes nothing.
    """
    direction = sample_distribution(stream, point, normal)
    density = distribution_pdf(point, normal, direction)
    cos_theta = tm.dot(direction, normal)

    weight = vec3(0.0, 0.0, 0.0)
    valid = 0
    if density > 0.0 and cos_theta > 0.0:
        weight = eval_diffuse(color) * (cos_theta / density)
        valid = 1
    return direction, weight, valid
