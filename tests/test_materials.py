"""Tests for material system."""

import pytest
import math
import numpy as np

from spheretrace.vec3 import Vec3, Point3, Color
from spheretrace.ray import Ray
from spheretrace.shapes import HitRecord
from spheretrace.materials import (
    Diffuse, Metal, Glass, ScatterResult, scatter, reflectance, MATERIAL_KINDS
)


def make_hit(point=Point3(0, 0, 0), normal=Vec3(0, 1, 0), front_face=True, t=1.0):
    return HitRecord(point=point, normal=normal, t=t, front_face=front_face)


@pytest.fixture
def rng():
    return np.random.default_rng(2024)


class TestDiffuse:
    """Test Diffuse (Lambertian) material."""

    def test_scatter_always_succeeds(self, rng):
        mat = Diffuse(Color(0.5, 0.5, 0.5))
        ray_in = Ray(Point3(0, 1, 0), Vec3(0, -1, 0))
        for _ in range(100):
            assert scatter(mat, ray_in, make_hit(), rng) is not None

    def test_scattered_in_hemisphere(self, rng):
        mat = Diffuse(Color(0.5, 0.5, 0.5))
        ray_in = Ray(Point3(0, 1, 0), Vec3(0, -1, 0))
        normal = Vec3(0, 1, 0)
        for _ in range(200):
            result = scatter(mat, ray_in, make_hit(normal=normal), rng)
            assert result.scattered_ray.direction.dot(normal) >= -1e-9

    def test_scatter_starts_at_hit_point(self, rng):
        mat = Diffuse()
        hit = make_hit(point=Point3(1, 2, 3))
        result = scatter(mat, Ray(Point3(1, 5, 3), Vec3(0, -1, 0)), hit, rng)
        assert result.scattered_ray.origin == Point3(1, 2, 3)

    def test_attenuation_matches_albedo(self, rng):
        albedo = Color(0.8, 0.2, 0.3)
        result = scatter(Diffuse(albedo), Ray(Point3(0, 1, 0), Vec3(0, -1, 0)), make_hit(), rng)
        assert result.attenuation == albedo

    def test_default_albedo(self):
        assert Diffuse().albedo == Color(0.5, 0.5, 0.5)


class TestMetal:
    """Test Metal material."""

    def test_perfect_reflection(self, rng):
        mat = Metal(Color(1, 1, 1), fuzz=0.0)
        ray_in = Ray(Point3(0, 0, 0), Vec3(1, -1, 0))
        result = scatter(mat, ray_in, make_hit(point=Point3(1, 0, 0)), rng)
        assert result is not None

        expected = Vec3(1, 1, 0).normalize()
        assert result.scattered_ray.direction.normalize() == expected

    def test_fuzz_spreads_directions(self, rng):
        mat = Metal(Color(1, 1, 1), fuzz=0.5)
        ray_in = Ray(Point3(0, 1, 0), Vec3(0, -1, 0))
        directions = []
        for _ in range(100):
            result = scatter(mat, ray_in, make_hit(), rng)
            if result:
                directions.append(result.scattered_ray.direction.normalize())
        xs = [d.x for d in directions]
        assert max(xs) - min(xs) > 0.1

    def test_fuzz_clamped(self):
        assert Metal(Color(1, 1, 1), fuzz=5.0).fuzz == 1.0
        assert Metal(Color(1, 1, 1), fuzz=-0.5).fuzz == 0.0
        assert Metal(Color(1, 1, 1), fuzz=0.25).fuzz == 0.25

    def test_grazing_reflection_absorbed(self, rng):
        mat = Metal(Color(1, 1, 1), fuzz=0.0)
        # Direction parallel to surface reflects to itself: dot with normal is 0
        ray_in = Ray(Point3(-1, 0, 0), Vec3(1, 0, 0))
        assert scatter(mat, ray_in, make_hit(), rng) is None

    def test_heavy_fuzz_sometimes_absorbs(self, rng):
        mat = Metal(Color(1, 1, 1), fuzz=1.0)
        ray_in = Ray(Point3(-1, 0.05, 0), Vec3(1, -0.05, 0))
        results = [scatter(mat, ray_in, make_hit(), rng) for _ in range(200)]
        assert any(r is None for r in results)
        for r in results:
            if r is not None:
                assert r.scattered_ray.direction.dot(Vec3(0, 1, 0)) > 0

    def test_attenuation_is_albedo(self, rng):
        albedo = Color(0.9, 0.5, 0.1)
        result = scatter(Metal(albedo), Ray(Point3(0, 1, 0), Vec3(0, -1, 0)), make_hit(), rng)
        assert result.attenuation == albedo


class TestGlass:
    """Test Glass (dielectric) material."""

    def test_attenuation_is_white(self, rng):
        result = scatter(Glass(1.5), Ray(Point3(0, 1, 0), Vec3(0, -1, 0)), make_hit(), rng)
        assert result.attenuation == Color(1, 1, 1)

    def test_always_scatters(self, rng):
        mat = Glass(1.5)
        ray_in = Ray(Point3(0, 1, 0), Vec3(0.3, -1, 0))
        for _ in range(50):
            assert scatter(mat, ray_in, make_hit(), rng) is not None

    def test_head_on_mostly_refracts(self, rng):
        mat = Glass(1.5)
        ray_in = Ray(Point3(0, 1, 0), Vec3(0, -1, 0))
        down = 0
        for _ in range(400):
            result = scatter(mat, ray_in, make_hit(), rng)
            if result.scattered_ray.direction.y < 0:
                down += 1
        # Normal-incidence reflectance of glass is 4%
        assert down / 400 > 0.9

    def test_total_internal_reflection(self, rng):
        mat = Glass(1.5)
        # Exiting glass at a shallow angle: ratio 1.5 * sin > 1
        ray_in = Ray(Point3(-1, 0.1, 0), Vec3(1, -0.1, 0))
        for _ in range(50):
            result = scatter(mat, ray_in, make_hit(front_face=False), rng)
            assert result.scattered_ray.direction.y > 0

    def test_critical_angle_never_scatters_zero_direction(self, rng):
        mat = Glass(1.5)
        critical = math.asin(1 / 1.5)
        hit = make_hit(front_face=False)
        # Sweep a few thousand representable angles around the critical one
        for k in range(-1000, 1001):
            angle = critical + k * 1e-15
            incoming = Vec3(math.sin(angle), -math.cos(angle), 0)
            result = scatter(mat, Ray(Point3(-1, 1, 0), incoming), hit, rng)
            direction = result.scattered_ray.direction
            assert not direction.near_zero()
            assert direction.length() == pytest.approx(1.0)

    def test_index_must_be_positive(self):
        for index in (0.0, -1.5):
            with pytest.raises(ValueError):
                Glass(index)

    def test_refraction_bends_toward_normal_when_entering(self, rng):
        mat = Glass(1.5)
        incoming = Vec3(1, -1, 0).normalize()
        refracted = []
        for _ in range(200):
            result = scatter(mat, Ray(Point3(-1, 1, 0), incoming), make_hit(), rng)
            d = result.scattered_ray.direction.normalize()
            if d.y < 0:
                refracted.append(d)
        assert refracted
        # sin(45 deg) / 1.5
        expected_sin = math.sin(math.pi / 4) / 1.5
        for d in refracted:
            assert abs(d.x - expected_sin) < 1e-9

    def test_index_one_passes_straight(self, rng):
        mat = Glass(1.0)
        incoming = Vec3(0.5, -1, 0).normalize()
        result = scatter(mat, Ray(Point3(0, 1, 0), incoming), make_hit(), rng)
        assert result.scattered_ray.direction.normalize() == incoming


class TestReflectance:
    def test_normal_incidence(self):
        assert abs(reflectance(1.0, 1.5) - 0.04) < 1e-12

    def test_grazing_incidence(self):
        assert abs(reflectance(0.0, 1.5) - 1.0) < 1e-12

    def test_monotonic(self):
        values = [reflectance(c, 1.5) for c in (0.0, 0.25, 0.5, 0.75, 1.0)]
        assert values == sorted(values, reverse=True)


class TestDispatch:
    def test_unknown_material(self, rng):
        with pytest.raises(TypeError):
            scatter(object(), Ray(Point3(0, 1, 0), Vec3(0, -1, 0)), make_hit(), rng)

    def test_material_kinds(self):
        assert MATERIAL_KINDS == {'diffuse': Diffuse, 'metal': Metal, 'glass': Glass}

    def test_materials_are_values(self):
        assert Diffuse(Color(1, 0, 0)) == Diffuse(Color(1, 0, 0))
        assert Metal(Color(1, 1, 1), 0.2) != Metal(Color(1, 1, 1), 0.3)
        with pytest.raises(AttributeError):
            Glass(1.5).refraction_index = 2.0

    def test_seeded_scatter_reproducible(self):
        mat = Diffuse()
        ray_in = Ray(Point3(0, 1, 0), Vec3(0, -1, 0))
        a = scatter(mat, ray_in, make_hit(), np.random.default_rng(9))
        b = scatter(mat, ray_in, make_hit(), np.random.default_rng(9))
        assert a.scattered_ray.direction == b.scattered_ray.direction
