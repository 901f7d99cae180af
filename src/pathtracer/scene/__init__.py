"""Scene module for scene description and ray-scene queries.

This module handles scene representation and ray-scene queries:

Components:
    scene: Immutable Scene and Primitive descriptions
    parser: Text scene format reader
    intersection: Device primitive table and nearest-hit query

Scene data is organized for efficient device access:
    - Structure-of-Arrays layout for primitive data
    - One linear scan per ray (no acceleration structure)
"""

from .intersection import (
    MAX_PRIMITIVES,
    SceneHitRecord,
    SceneIntersection,
    check_geometry_errors,
    clear_scene,
    get_primitive_count,
    intersect_primitive,
    intersect_scene,
    load_primitives,
    trace_ray,
)
from .parser import DEFAULT_RAY_DEPTH, DEFAULT_SAMPLES, load_scene_file, parse_scene
from .scene import IDENTITY_ROTATION, Primitive, Scene, normalize_quaternion

__all__ = [
    # Scene description
    "Primitive",
    "Scene",
    "IDENTITY_ROTATION",
    "normalize_quaternion",
    # Parser
    "parse_scene",
    "load_scene_file",
    "DEFAULT_RAY_DEPTH",
    "DEFAULT_SAMPLES",
    # Intersection
    "SceneHitRecord",
    "SceneIntersection",
    "MAX_PRIMITIVES",
    "load_primitives",
    "clear_scene",
    "get_primitive_count",
    "check_geometry_errors",
    "intersect_primitive",
    "intersect_scene",
    "trace_ray",
]
