"""Core rendering module.

This module contains the fundamental building blocks for path tracing:

Components:
    ray: Ray data structure, vector helpers and quaternion rotation
    sampler: Per-pixel random streams
    integrator: Radiance estimator and rendering kernels
    tonemap: ACES tone mapping and 8-bit encoding
    progressive: Batched rendering with progress reporting

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    RAY_EPSILON,
    Ray,
    length_squared,
    make_ray,
    quat_conjugate,
    quat_rotate,
    ray_at,
    reflect,
    refract,
    safe_normalize,
    schlick_reflectance,
    shifted_ray,
    vec3,
    vec4,
)
from .tonemap import encode_pixels, tone_map, tone_map_color

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from pathtracer.core.integrator or pathtracer.core.progressive when needed.
#
# For rendering, use:
#   from pathtracer.core.progressive import ProgressiveRenderer, render_scene

__all__ = [
    "RAY_EPSILON",
    "Ray",
    "ray_at",
    "make_ray",
    "shifted_ray",
    "vec3",
    "vec4",
    "length_squared",
    "safe_normalize",
    "reflect",
    "refract",
    "schlick_reflectance",
    "quat_conjugate",
    "quat_rotate",
    "encode_pixels",
    "tone_map",
    "tone_map_color",
]
