"""Path tracing integrator for Monte Carlo light transport.

This module implements the radiance estimator and the rendering kernels.
The estimator is the recursion

    L(ray, d) = 0                                   if d >= ray_depth
              = background                          if the ray escapes
              = material response at the nearest hit, with L(next ray, d + 1)

written as a loop with a radiance accumulator and a throughput weight, so
the depth limit bounds the work per path and no call stack is needed.

Key features:
    - Material dispatch (Diffuse, Metallic, Dielectric)
    - Multiple importance sampling of diffuse bounces via the scene
      distribution (cosine lobe mixed with all lights)
    - One random stream per pixel, so renders are reproducible
    - Batched sample accumulation for progress reporting

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.integrator import load_scene, reset_accumulation, render_batch
    >>> from pathtracer.scene.parser import load_scene_file
    >>>
    >>> scene = load_scene_file("examples/scenes/cornell.txt")
    >>> load_scene(scene)
    >>> reset_accumulation(seed=0)
    >>> render_batch(scene.samples)
    >>> radiance = get_mean_radiance()
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti

from pathtracer.camera.pinhole import get_ray, setup_camera
from pathtracer.core.ray import Ray, shifted_ray, vec3
from pathtracer.core.sampler import random_float, seed_streams
from pathtracer.distribution.distributions import build_scene_distribution, load_distribution
from pathtracer.materials.dielectric import scatter_dielectric
from pathtracer.materials.diffuse import scatter_diffuse
from pathtracer.materials.material import MaterialKind
from pathtracer.materials.metallic import scatter_metallic
from pathtracer.scene.intersection import (
    check_geometry_errors,
    intersect_scene,
    load_primitives,
    primitive_colors,
    primitive_emissions,
    primitive_iors,
    primitive_material_kinds,
)
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]

# =============================================================================
# Render Settings
# =============================================================================

_background = ti.Vector.field(3, dtype=ti.f32, shape=())
_ray_depth = ti.field(dtype=ti.i32, shape=())

# =============================================================================
# Render Target (Radiance Accumulator)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Sum of radiance estimates per pixel, indexed [column, row] with row 0 at the top
_radiance_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_samples_taken = ti.field(dtype=ti.i32, shape=())

_scene_loaded = ti.field(dtype=ti.i32, shape=())


def load_scene(scene: Scene) -> None:
    """Upload a scene: camera, primitives, distribution and settings.

    Sample accumulation is reset; call ``reset_accumulation`` to seed the
    random streams before rendering.

    Args:
        scene: The scene to render.

    Raises:
        ValueError: If the image exceeds the maximum supported size.
        RuntimeError: If the scene has too many primitives.
    """
    if scene.width > MAX_IMAGE_WIDTH or scene.height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({scene.width}x{scene.height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    setup_camera(scene.camera)
    load_primitives(scene.primitives)
    node_count = load_distribution(build_scene_distribution(scene))

    _background[None] = list(scene.background)
    _ray_depth[None] = scene.ray_depth
    _image_width[None] = scene.width
    _image_height[None] = scene.height
    _scene_loaded[None] = 1
    clear_accumulation()

    logger.info(
        "Loaded scene %dx%d: %d primitives, %d distribution nodes, ray depth %d",
        scene.width,
        scene.height,
        len(scene.primitives),
        node_count,
        scene.ray_depth,
    )


def _check_scene_loaded() -> None:
    """Check if a scene is loaded and raise if not."""
    if _scene_loaded[None] == 0:
        raise RuntimeError("No scene loaded. Call load_scene() first.")


def clear_accumulation() -> None:
    """Zero the radiance sums and the sample counter."""
    _radiance_sum.fill(0.0)
    _samples_taken[None] = 0


def reset_accumulation(seed: int = 0) -> None:
    """Start a fresh render: clear the accumulator and reseed every pixel.

    Args:
        seed: Seed for the per-pixel random streams.

    Raises:
        RuntimeError: If no scene is loaded.
    """
    _check_scene_loaded()
    clear_accumulation()
    width, height = get_image_dimensions()
    seed_streams(seed, width * height)


def get_image_dimensions() -> tuple[int, int]:
    """Get the loaded image dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def get_total_samples() -> int:
    """Number of estimates accumulated per pixel since the last reset."""
    return int(_samples_taken[None])


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def trace_path(stream: ti.i32, ray: Ray) -> vec3:
    """Estimate the radiance arriving along ``ray``.

    Args:
        stream: Random stream of the pixel being rendered.
        ray: Camera ray (depth 0).

    Returns:
        One sample of the incoming radiance (RGB).
    """
    ray_depth = _ray_depth[None]
    origin = ray.origin
    direction = ray.direction
    radiance = vec3(0.0, 0.0, 0.0)

    # Product of all material weights along the path so far
    throughput = vec3(1.0, 1.0, 1.0)

    # Active flag for path continuation (no break inside ti.func loops)
    active = 1

    # A zero depth limit is treated as "show the background only"
    if ray_depth == 0:
        radiance = _background[None]
        active = 0

    # Paths still active when the loop ends reach ray_depth and add nothing
    for _ in range(ray_depth):
        if active == 1:
            hit_record = intersect_scene(origin, direction, -1.0)

            if hit_record.hit == 0:
                radiance += throughput * _background[None]
                active = 0
            else:
                point = origin + hit_record.t * direction
                normal = hit_record.normal
                index = hit_record.primitive
                color = primitive_colors[index]
                material = primitive_material_kinds[index]

                next_direction = vec3(0.0, 0.0, 0.0)
                weight = vec3(0.0, 0.0, 0.0)

                if material == int(MaterialKind.DIFFUSE):
                    radiance += throughput * primitive_emissions[index]
                    next_direction, weight, valid = scatter_diffuse(stream, color, point, normal)
                    if valid == 0:
                        active = 0

                elif material == int(MaterialKind.METALLIC):
                    next_direction, weight = scatter_metallic(color, direction, normal)

                elif material == int(MaterialKind.DIELECTRIC):
                    next_direction, weight = scatter_dielectric(
                        stream,
                        primitive_iors[index],
                        color,
                        direction,
                        normal,
                        hit_record.outside,
                    )

                if active == 1:
                    throughput *= weight
                    next_ray = shifted_ray(point, next_direction)
                    origin = next_ray.origin
                    direction = next_ray.direction

    return radiance


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_batch_kernel(width: ti.i32, height: ti.i32, sample_count: ti.i32):
    """Add ``sample_count`` jittered estimates to every pixel's sum."""
    for column, row in ti.ndrange(width, height):
        stream = row * width + column
        total = vec3(0.0, 0.0, 0.0)
        for _ in range(sample_count):
            u = random_float(stream)
            v = random_float(stream)
            ray = get_ray(ti.cast(column, ti.f32) + u, ti.cast(row, ti.f32) + v, width, height)
            total += trace_path(stream, ray)
        _radiance_sum[column, row] += total


_estimate_total = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _estimate_kernel(origin: vec3, direction: vec3, sample_count: ti.i32):
    _estimate_total[None] = vec3(0.0, 0.0, 0.0)
    ti.loop_config(serialize=True)
    for _ in range(sample_count):
        _estimate_total[None] += trace_path(0, Ray(origin=origin, direction=direction))


# =============================================================================
# Public Rendering API
# =============================================================================


def render_batch(sample_count: int) -> None:
    """Accumulate ``sample_count`` more estimates for every pixel.

    Args:
        sample_count: Estimates per pixel to add in this batch.

    Raises:
        RuntimeError: If no scene is loaded.
        ValueError: If ``sample_count`` is not positive.
        MalformedGeometryError: If the batch met NaN geometry; the
            accumulated image is then invalid.
    """
    _check_scene_loaded()
    if sample_count < 1:
        raise ValueError(f"sample_count must be positive, got {sample_count}")

    width, height = get_image_dimensions()
    _render_batch_kernel(width, height, sample_count)
    check_geometry_errors()
    _samples_taken[None] += sample_count
    logger.debug("Rendered batch of %d samples (%d total)", sample_count, get_total_samples())


def estimate_radiance(
    origin: Vec3,
    direction: Vec3,
    sample_count: int,
    seed: int = 0,
) -> Vec3:
    """Average ``sample_count`` estimates of the radiance along one ray.

    Uses the loaded scene's depth limit and background. The estimates run
    serially on random stream 0, which is reseeded here.

    Raises:
        RuntimeError: If no scene is loaded.
        ValueError: If ``sample_count`` is not positive.
        MalformedGeometryError: If a path met NaN geometry.
    """
    _check_scene_loaded()
    if sample_count < 1:
        raise ValueError(f"sample_count must be positive, got {sample_count}")

    seed_streams(seed, 1)
    _estimate_kernel(
        vec3(*origin),
        vec3(*direction),
        sample_count,
    )
    check_geometry_errors()
    total = _estimate_total[None]
    return (
        float(total[0]) / sample_count,
        float(total[1]) / sample_count,
        float(total[2]) / sample_count,
    )


def get_mean_radiance() -> npt.NDArray[np.float32]:
    """Per-pixel mean radiance of all accumulated estimates.

    Returns:
        Array of shape (height, width, 3), row 0 at the top of the image.

    Raises:
        RuntimeError: If no scene is loaded or no samples were rendered.
    """
    _check_scene_loaded()
    samples = get_total_samples()
    if samples == 0:
        raise RuntimeError("No samples rendered. Call render_batch() first.")

    width, height = get_image_dimensions()
    sums = _radiance_sum.to_numpy()[:width, :height, :]

    # (column, row, 3) -> (row, column, 3)
    image = np.transpose(sums, (1, 0, 2)) / np.float32(samples)
    return image.astype(np.float32)
