"""Unit tests for bounce-direction distributions.

Tests cover:
- Cosine lobe sampling statistics and density
- Light sampling towards spheres and boxes, and the matching densities
- Mixtures: uniform averaging, nesting limits and validation
- The scene-wide mixture used for diffuse bounces
"""

import math

import numpy as np
import pytest

ORIGIN = (0.0, 0.0, 0.0)
UP_Z = (0.0, 0.0, 1.0)


def _sphere_light(position=(0.0, 0.0, 5.0), radius=1.0):
    from pathtracer.geometry import Ellipsoid
    from pathtracer.scene.scene import Primitive

    return Primitive(
        Ellipsoid((radius, radius, radius)), position=position, emission=(1.0, 1.0, 1.0)
    )


class TestCosineWeighted:
    """Tests for the cosine-weighted hemisphere."""

    def test_samples_are_unit_and_in_hemisphere(self):
        from pathtracer.distribution import CosineWeighted

        samples = CosineWeighted().sample_many(ORIGIN, UP_Z, 10000, seed=1)
        assert samples.shape == (10000, 3)
        np.testing.assert_allclose(np.linalg.norm(samples, axis=1), 1.0, atol=1e-4)
        assert samples[:, 2].min() >= -1e-6

    def test_mean_cosine(self):
        """Test E[cos(theta)] = 2/3 for a cosine-weighted lobe."""
        from pathtracer.distribution import CosineWeighted

        samples = CosineWeighted().sample_many(ORIGIN, UP_Z, 100000, seed=2)
        assert abs(samples[:, 2].mean() - 2.0 / 3.0) < 0.01

    def test_follows_tilted_normal(self):
        from pathtracer.distribution import CosineWeighted

        normal = (1.0 / math.sqrt(2.0), 1.0 / math.sqrt(2.0), 0.0)
        samples = CosineWeighted().sample_many(ORIGIN, normal, 10000, seed=3)
        cosines = samples @ np.asarray(normal)
        assert cosines.min() >= -1e-6
        assert abs(cosines.mean() - 2.0 / 3.0) < 0.02

    def test_pdf_along_normal(self):
        from pathtracer.distribution import CosineWeighted

        assert CosineWeighted().pdf(ORIGIN, UP_Z, UP_Z) == pytest.approx(1.0 / math.pi)

    def test_pdf_below_surface_is_zero(self):
        from pathtracer.distribution import CosineWeighted

        assert CosineWeighted().pdf(ORIGIN, UP_Z, (0.0, 0.0, -1.0)) == 0.0

    def test_single_sample_is_reproducible(self):
        from pathtracer.distribution import CosineWeighted

        first = CosineWeighted().sample(ORIGIN, UP_Z, seed=9)
        second = CosineWeighted().sample(ORIGIN, UP_Z, seed=9)
        assert first == second

    def test_sample_count_validation(self):
        from pathtracer.distribution import CosineWeighted

        with pytest.raises(ValueError):
            CosineWeighted().sample_many(ORIGIN, UP_Z, 0)


class TestLightSource:
    """Tests for area-light sampling."""

    def test_sphere_pdf(self):
        """Test the density through the centre of a unit sphere 5 units away.

        Both roots (t = 4 and t = 6) face the ray head-on, so the density is
        (4^2 + 6^2) / (4 pi) = 13 / pi.
        """
        from pathtracer.distribution import LightSource

        pdf = LightSource(_sphere_light()).pdf(ORIGIN, UP_Z, UP_Z)
        assert pdf == pytest.approx(13.0 / math.pi, rel=1e-4)

    def test_box_pdf(self):
        """Test the density through a unit cube: (16 + 36) / 24."""
        from pathtracer.distribution import LightSource
        from pathtracer.geometry import Box
        from pathtracer.scene.scene import Primitive

        light = LightSource(Primitive(Box((1.0, 1.0, 1.0)), position=(0.0, 0.0, 5.0)))
        assert light.pdf(ORIGIN, UP_Z, UP_Z) == pytest.approx(13.0 / 6.0, rel=1e-4)

    def test_pdf_ignores_direction_length(self):
        from pathtracer.distribution import LightSource

        light = LightSource(_sphere_light())
        assert light.pdf(ORIGIN, UP_Z, (0.0, 0.0, 3.0)) == pytest.approx(
            light.pdf(ORIGIN, UP_Z, UP_Z), rel=1e-5
        )

    def test_pdf_is_zero_when_missing_the_light(self):
        from pathtracer.distribution import LightSource

        assert LightSource(_sphere_light()).pdf(ORIGIN, UP_Z, (1.0, 0.0, 0.0)) == 0.0

    def test_pdf_in_rotated_frame(self):
        """Test that rotation is undone before evaluating the shape."""
        from pathtracer.distribution import LightSource
        from pathtracer.geometry import Box
        from pathtracer.scene.scene import Primitive

        s = math.sin(math.pi / 4.0)
        # Long axis along local x, turned to point along world z
        box = Primitive(Box((2.0, 1.0, 1.0)), position=(0.0, 0.0, 5.0), rotation=(0.0, s, 0.0, s))
        # Roots at z = 3 and z = 7 through the end faces (area 4 each of 40 total)
        pdf = LightSource(box).pdf(ORIGIN, UP_Z, UP_Z)
        assert pdf == pytest.approx((9.0 + 49.0) / 40.0, rel=1e-4)

    def test_samples_point_at_the_sphere(self):
        """Test that every direction lies inside the cone subtended by the sphere."""
        from pathtracer.distribution import LightSource

        samples = LightSource(_sphere_light()).sample_many(ORIGIN, UP_Z, 4096, seed=4)
        cone_cos = math.sqrt(24.0) / 5.0
        assert samples[:, 2].min() >= cone_cos - 1e-4
        np.testing.assert_allclose(np.linalg.norm(samples, axis=1), 1.0, atol=1e-4)

    def test_samples_cover_the_box(self):
        from pathtracer.distribution import LightSource
        from pathtracer.geometry import Box
        from pathtracer.scene.scene import Primitive

        light = LightSource(Primitive(Box((1.0, 1.0, 1.0)), position=(0.0, 0.0, 5.0)))
        samples = light.sample_many(ORIGIN, UP_Z, 4096, seed=5)
        # Rays towards the cube leave within atan(sqrt(2) / 4) of the axis
        assert samples[:, 2].min() >= math.cos(math.atan(math.sqrt(2.0) / 4.0)) - 1e-4
        assert samples[:, 0].min() < 0.0 < samples[:, 0].max()

    def test_plane_is_rejected(self):
        from pathtracer.distribution import LightSource
        from pathtracer.geometry import Plane
        from pathtracer.scene.scene import Primitive

        with pytest.raises(ValueError, match="Planes"):
            LightSource(Primitive(Plane((0.0, 1.0, 0.0))))


class TestMixture:
    """Tests for uniform mixtures."""

    def test_pdf_is_mean_of_members(self):
        from pathtracer.distribution import CosineWeighted, LightSource, Mixture

        mixture = Mixture([CosineWeighted(), LightSource(_sphere_light())])
        assert mixture.pdf(ORIGIN, UP_Z, UP_Z) == pytest.approx(7.0 / math.pi, rel=1e-4)

    def test_nested_weights(self):
        """Test that nested members carry the product of 1/n along their path."""
        from pathtracer.distribution import CosineWeighted, LightSource, Mixture

        light = LightSource(_sphere_light())
        mixture = Mixture([CosineWeighted(), Mixture([light, light, CosineWeighted()])])
        expected = 0.5 / math.pi + 0.5 * (13.0 / math.pi + 13.0 / math.pi + 1.0 / math.pi) / 3.0
        assert mixture.pdf(ORIGIN, UP_Z, UP_Z) == pytest.approx(expected, rel=1e-4)

    def test_sampling_frequency_follows_members(self):
        """Test that about half the samples come from each member."""
        from pathtracer.distribution import CosineWeighted, LightSource, Mixture

        mixture = Mixture([CosineWeighted(), LightSource(_sphere_light())])
        samples = mixture.sample_many(ORIGIN, UP_Z, 20000, seed=6)
        towards_light = np.mean(samples[:, 2] >= math.sqrt(24.0) / 5.0)
        # Cosine lobe alone lands in the cone with probability 1/25
        expected = 0.5 + 0.5 * (1.0 / 25.0)
        assert abs(towards_light - expected) < 0.02

    def test_empty_mixture(self):
        from pathtracer.distribution import Mixture
        from pathtracer.errors import EmptyMixtureError

        with pytest.raises(EmptyMixtureError):
            Mixture([])
        # Also usable as a plain ValueError
        with pytest.raises(ValueError):
            Mixture([])

    def test_non_distribution_member(self):
        from pathtracer.distribution import CosineWeighted, Mixture

        with pytest.raises(TypeError):
            Mixture([CosineWeighted(), "light"])

    def test_nesting_limit(self):
        from pathtracer.distribution import (
            MAX_MIXTURE_DEPTH,
            CosineWeighted,
            Mixture,
            load_distribution,
        )

        deepest_allowed = CosineWeighted()
        for _ in range(MAX_MIXTURE_DEPTH):
            deepest_allowed = Mixture([deepest_allowed])
        assert load_distribution(deepest_allowed) == MAX_MIXTURE_DEPTH + 1

        with pytest.raises(ValueError, match="nest deeper"):
            load_distribution(Mixture([deepest_allowed]))

    def test_node_capacity(self):
        from pathtracer.distribution import (
            MAX_DISTRIBUTION_NODES,
            CosineWeighted,
            Mixture,
            load_distribution,
        )

        with pytest.raises(RuntimeError, match="distribution nodes"):
            load_distribution(Mixture([CosineWeighted()] * MAX_DISTRIBUTION_NODES))


class TestSceneDistribution:
    """Tests for build_scene_distribution."""

    def test_cosine_and_light_mixture(self, make_scene):
        from pathtracer.distribution import (
            CosineWeighted,
            LightSource,
            Mixture,
            build_scene_distribution,
        )
        from pathtracer.geometry import Plane
        from pathtracer.scene.scene import Primitive

        floor = Primitive(Plane((0.0, 1.0, 0.0)), position=(0.0, -1.0, 0.0))
        light = _sphere_light()
        dim_sphere = _sphere_light(position=(3.0, 0.0, 5.0))
        scene = make_scene(primitives=[floor, light, dim_sphere])

        distribution = build_scene_distribution(scene)
        assert isinstance(distribution, Mixture)
        cosine, lights = distribution.members
        assert isinstance(cosine, CosineWeighted)
        assert isinstance(lights, Mixture)
        assert all(isinstance(member, LightSource) for member in lights.members)
        # Planes are skipped, every other primitive is a candidate
        assert [member.primitive for member in lights.members] == [light, dim_sphere]

    def test_no_lights(self, make_scene):
        from pathtracer.distribution import CosineWeighted, build_scene_distribution

        distribution = build_scene_distribution(make_scene())
        assert len(distribution.members) == 1
        assert isinstance(distribution.members[0], CosineWeighted)
