"""Unit tests for ray helpers and quaternion rotation.

Tests cover:
- Ray construction and evaluation
- Shifted continuation rays
- Reflection, refraction and Schlick reflectance
- Quaternion rotation
"""

import math

import pytest
import taichi as ti


class TestRayBasics:
    """Tests for Ray and ray_at."""

    def test_ray_at_uses_unnormalized_direction(self):
        """Test that t scales with the direction length."""
        from pathtracer.core.ray import Ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 0.0, 0.0), direction=vec3(0.0, 0.0, -2.0))
            result[None] = ray_at(ray, 0.5)

        test_kernel()
        p = result[None]
        assert abs(p[0] - 1.0) < 1e-6
        assert abs(p[1]) < 1e-6
        assert abs(p[2] + 1.0) < 1e-6

    def test_shifted_ray_moves_origin_by_epsilon(self):
        """Test that the origin moves RAY_EPSILON along the unit direction."""
        from pathtracer.core.ray import RAY_EPSILON, shifted_ray, vec3

        origin = ti.Vector.field(3, dtype=ti.f32, shape=())
        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = shifted_ray(vec3(0.0, 1.0, 0.0), vec3(0.0, 0.0, 10.0))
            origin[None] = ray.origin
            direction[None] = ray.direction

        test_kernel()
        assert origin[None][2] == pytest.approx(RAY_EPSILON, rel=1e-3)
        assert origin[None][1] == pytest.approx(1.0)
        # Direction is kept as given
        assert direction[None][2] == pytest.approx(10.0)

    def test_shifted_ray_zero_direction(self):
        """Test that a zero direction leaves the origin in place without NaN."""
        from pathtracer.core.ray import shifted_ray, vec3

        origin = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            origin[None] = shifted_ray(vec3(1.0, 2.0, 3.0), vec3(0.0, 0.0, 0.0)).origin

        test_kernel()
        assert tuple(origin[None]) == pytest.approx((1.0, 2.0, 3.0))


class TestVectorHelpers:
    """Tests for normalisation, reflection and refraction."""

    def test_safe_normalize_zero(self):
        """Test that a zero vector normalises to zero instead of NaN."""
        from pathtracer.core.ray import safe_normalize, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = safe_normalize(vec3(0.0, 0.0, 0.0))

        test_kernel()
        assert tuple(result[None]) == (0.0, 0.0, 0.0)

    def test_reflect(self):
        """Test mirror reflection about an axis-aligned normal."""
        from pathtracer.core.ray import reflect, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        assert tuple(result[None]) == pytest.approx((1.0, 1.0, 0.0))

    def test_refract_straight_through(self):
        """Test that normal incidence is not bent."""
        from pathtracer.core.ray import refract, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = refract(vec3(0.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0), 1.0 / 1.5)

        test_kernel()
        assert tuple(result[None]) == pytest.approx((0.0, -1.0, 0.0), abs=1e-6)

    def test_refract_snell_angle(self):
        """Test that the refracted angle satisfies Snell's law."""
        from pathtracer.core.ray import refract, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())
        s = math.sqrt(0.5)

        @ti.kernel
        def test_kernel():
            result[None] = refract(vec3(s, -s, 0.0), vec3(0.0, 1.0, 0.0), 1.0 / 1.5)

        test_kernel()
        r = result[None]
        sin_t = r[0] / math.sqrt(r[0] ** 2 + r[1] ** 2)
        assert sin_t == pytest.approx(s / 1.5, rel=1e-4)

    def test_refract_total_internal_reflection(self):
        """Test that refraction past the critical angle yields zero."""
        from pathtracer.core.ray import refract, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())
        s = math.sqrt(0.5)

        @ti.kernel
        def test_kernel():
            result[None] = refract(vec3(s, -s, 0.0), vec3(0.0, 1.0, 0.0), 1.5)

        test_kernel()
        assert tuple(result[None]) == (0.0, 0.0, 0.0)

    def test_schlick_at_normal_incidence(self):
        """Test that Schlick reflectance at normal incidence equals r0."""
        from pathtracer.core.ray import schlick_reflectance

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = schlick_reflectance(1.0, 1.0, 1.5)

        test_kernel()
        assert result[None] == pytest.approx(0.04, rel=1e-4)

    def test_schlick_at_grazing_incidence(self):
        """Test that reflectance approaches 1 at grazing incidence."""
        from pathtracer.core.ray import schlick_reflectance

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = schlick_reflectance(0.0, 1.0, 1.5)

        test_kernel()
        assert result[None] == pytest.approx(1.0, rel=1e-5)


class TestQuaternionRotation:
    """Tests for quat_rotate and quat_conjugate."""

    def test_quarter_turn_about_y(self):
        """Test that a 90 degree turn about +y maps +z to +x."""
        from pathtracer.core.ray import quat_rotate, vec3, vec4

        result = ti.Vector.field(3, dtype=ti.f32, shape=())
        s = math.sqrt(0.5)

        @ti.kernel
        def test_kernel():
            result[None] = quat_rotate(vec4(0.0, s, 0.0, s), vec3(0.0, 0.0, 1.0))

        test_kernel()
        assert tuple(result[None]) == pytest.approx((1.0, 0.0, 0.0), abs=1e-6)

    def test_conjugate_undoes_rotation(self):
        """Test that rotating by q then by its conjugate is the identity."""
        from pathtracer.core.ray import quat_conjugate, quat_rotate, vec3, vec4

        result = ti.Vector.field(3, dtype=ti.f32, shape=())
        norm = math.sqrt(0.1**2 + 0.2**2 + 0.3**2 + 0.9**2)

        @ti.kernel
        def test_kernel():
            q = vec4(0.1, 0.2, 0.3, 0.9) / norm
            v = vec3(1.0, -2.0, 0.5)
            result[None] = quat_rotate(quat_conjugate(q), quat_rotate(q, v))

        test_kernel()
        assert tuple(result[None]) == pytest.approx((1.0, -2.0, 0.5), abs=1e-5)
