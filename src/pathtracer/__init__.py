"""Offline Monte Carlo path tracer built on Taichi.

Packages:
    core: Rays, random streams, the integrator and tone mapping
    geometry: Plane, ellipsoid and box intersection
    distribution: Importance sampling of bounce directions
    materials: Diffuse, metallic and dielectric scattering
    camera: Pinhole camera
    scene: Scene description, parser and nearest-hit query
    preview: PPM and PNG output

Most submodules allocate Taichi fields when imported, so call
``ti.init`` before importing them.
"""

from pathtracer.errors import (
    EmptyMixtureError,
    MalformedGeometryError,
    RenderError,
    SceneFormatError,
)

__version__ = "0.1.0"

__all__ = [
    "EmptyMixtureError",
    "MalformedGeometryError",
    "RenderError",
    "SceneFormatError",
    "__version__",
]
