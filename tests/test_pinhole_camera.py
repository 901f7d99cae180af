"""Unit tests for the pinhole camera module.

Tests cover:
- Vertical field of view derived from the aspect ratio
- Field of view validation
- Ray generation for center and corner pixel positions
- Non-axis-aligned camera frames
"""

import math

import pytest
import taichi as ti


def _camera(fov_x=math.pi / 2.0, width=4, height=2, **frame):
    from pathtracer.camera.pinhole import PinholeCamera

    defaults = {
        "position": (0.0, 0.0, 0.0),
        "right": (1.0, 0.0, 0.0),
        "up": (0.0, 1.0, 0.0),
        "forward": (0.0, 0.0, 1.0),
    }
    defaults.update(frame)
    return PinholeCamera.from_fov_x(fov_x=fov_x, width=width, height=height, **defaults)


def _ray_through(column, row, width=4, height=2):
    """Generate the primary ray through a continuous pixel position."""
    from pathtracer.camera.pinhole import get_ray

    origin = ti.Vector.field(3, dtype=ti.f32, shape=())
    direction = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(column: ti.f32, row: ti.f32):
        ray = get_ray(column, row, width, height)
        origin[None] = ray.origin
        direction[None] = ray.direction

    test_kernel(column, row)
    return tuple(origin[None]), tuple(direction[None])


class TestCameraSetup:
    """Tests for camera construction."""

    def test_fov_y_matches_aspect_ratio(self):
        camera = _camera(fov_x=math.pi / 2.0, width=4, height=2)
        assert math.tan(camera.fov_y / 2.0) == pytest.approx(0.5)

    def test_square_image_has_equal_fovs(self):
        camera = _camera(fov_x=1.0, width=8, height=8)
        assert camera.fov_y == pytest.approx(camera.fov_x)

    @pytest.mark.parametrize("fov", [0.0, -0.5, math.pi, 4.0])
    def test_invalid_fov(self, fov):
        from pathtracer.camera.pinhole import PinholeCamera

        with pytest.raises(ValueError, match="fov_x"):
            PinholeCamera(
                position=(0.0, 0.0, 0.0),
                right=(1.0, 0.0, 0.0),
                up=(0.0, 1.0, 0.0),
                forward=(0.0, 0.0, 1.0),
                fov_x=fov,
                fov_y=1.0,
            )

    def test_setup_scales_axes(self):
        from pathtracer.camera.pinhole import get_camera_info, setup_camera

        setup_camera(_camera(position=(1.0, 2.0, 3.0)))
        info = get_camera_info()
        assert info["origin"] == pytest.approx((1.0, 2.0, 3.0))
        assert info["horizontal"] == pytest.approx((1.0, 0.0, 0.0), abs=1e-6)
        assert info["vertical"] == pytest.approx((0.0, 0.5, 0.0), abs=1e-6)
        assert info["forward"] == pytest.approx((0.0, 0.0, 1.0))


class TestRayGeneration:
    """Tests for get_ray."""

    def test_center_ray_is_forward(self):
        from pathtracer.camera.pinhole import setup_camera

        setup_camera(_camera(position=(0.0, 1.0, -2.0)))
        origin, direction = _ray_through(2.0, 1.0)
        assert origin == pytest.approx((0.0, 1.0, -2.0))
        assert direction == pytest.approx((0.0, 0.0, 1.0), abs=1e-6)

    def test_top_left_corner(self):
        """Test that row 0 is the top of the image and column 0 the left."""
        from pathtracer.camera.pinhole import setup_camera

        setup_camera(_camera())
        _, direction = _ray_through(0.0, 0.0)
        assert direction == pytest.approx((-1.0, 0.5, 1.0), abs=1e-6)

    def test_bottom_right_corner(self):
        from pathtracer.camera.pinhole import setup_camera

        setup_camera(_camera())
        _, direction = _ray_through(4.0, 2.0)
        assert direction == pytest.approx((1.0, -0.5, 1.0), abs=1e-6)

    def test_direction_is_not_normalized(self):
        from pathtracer.camera.pinhole import setup_camera

        setup_camera(_camera())
        _, direction = _ray_through(0.0, 0.0)
        assert math.sqrt(sum(c * c for c in direction)) == pytest.approx(1.5)

    def test_rotated_frame(self):
        """Test a camera looking down -x with up along +z."""
        from pathtracer.camera.pinhole import setup_camera

        setup_camera(
            _camera(
                right=(0.0, 1.0, 0.0),
                up=(0.0, 0.0, 1.0),
                forward=(-1.0, 0.0, 0.0),
            )
        )
        _, direction = _ray_through(4.0, 0.0)
        assert direction == pytest.approx((-1.0, 1.0, 0.5), abs=1e-6)
