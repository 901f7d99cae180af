"""Geometry module: shape variants and closed-form ray intersection.

Components:
    hit: ShapeHit record and root classification shared by closed solids
    plane: Infinite plane through the local origin
    ellipsoid: Axis-aligned ellipsoid (unit-sphere quadratic)
    box: Axis-aligned box (slab test)
    shapes: Host-side shape variants and the device dispatch

All intersections run in the shape's local frame. Transforming rays in and
normals out of that frame is the job of the scene module, which knows each
primitive's position and rotation.

Ray-shape intersection follows the pattern:
    hit = hit_shape(kind, param, local_origin, local_direction)
"""

from .box import box_area_density, box_normal, hit_box
from .ellipsoid import ellipsoid_area_density, ellipsoid_normal, hit_ellipsoid
from .hit import ShapeHit, make_hit_from_roots, make_miss
from .plane import PARALLEL_EPSILON, hit_plane
from .shapes import (
    Box,
    Ellipsoid,
    Intersection,
    Plane,
    Shape,
    ShapeKind,
    hit_shape,
    intersect_shape,
)

__all__ = [
    "Box",
    "Ellipsoid",
    "Plane",
    "Shape",
    "ShapeKind",
    "ShapeHit",
    "Intersection",
    "hit_box",
    "hit_ellipsoid",
    "hit_plane",
    "hit_shape",
    "intersect_shape",
    "make_hit_from_roots",
    "make_miss",
    "box_normal",
    "box_area_density",
    "ellipsoid_normal",
    "ellipsoid_area_density",
    "PARALLEL_EPSILON",
]
