"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_device_tables():
    """Clear the primitive and distribution tables around each test.

    This ensures tests are isolated from each other.
    """
    # Import here so that Taichi is initialized before fields are allocated
    from pathtracer.distribution.distributions import clear_distribution
    from pathtracer.scene.intersection import clear_scene

    clear_scene()
    clear_distribution()
    yield
    clear_scene()
    clear_distribution()


@pytest.fixture
def make_scene():
    """Factory for small scenes looking down +z from the origin."""

    def _make_scene(
        primitives=(),
        width=4,
        height=3,
        background=(0.0, 0.0, 0.0),
        ray_depth=6,
        samples=4,
        camera_position=(0.0, 0.0, 0.0),
        fov_x=1.2,
    ):
        from pathtracer.camera.pinhole import PinholeCamera
        from pathtracer.scene.scene import Scene

        camera = PinholeCamera.from_fov_x(
            position=camera_position,
            right=(1.0, 0.0, 0.0),
            up=(0.0, 1.0, 0.0),
            forward=(0.0, 0.0, 1.0),
            fov_x=fov_x,
            width=width,
            height=height,
        )
        return Scene(
            width=width,
            height=height,
            background=background,
            camera=camera,
            primitives=tuple(primitives),
            ray_depth=ray_depth,
            samples=samples,
        )

    return _make_scene
