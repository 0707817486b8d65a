"""
Materials: how a surface scatters an incoming ray.

Implements:
- Diffuse (Lambertian with albedo)
- Metal (specular reflection with fuzz)
- Glass (dielectric refraction with Schlick reflectance)

Each material kind is a small record carrying only its own parameters.
``scatter`` dispatches on the kind.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Union, TYPE_CHECKING
import math

import numpy as np

from .vec3 import Vec3, Color
from .ray import Ray

if TYPE_CHECKING:
    from .shapes import HitRecord


@dataclass
class ScatterResult:
    """Result of a material scatter operation."""
    scattered_ray: Ray
    attenuation: Color


@dataclass(frozen=True)
class Diffuse:
    """Diffuse material with Lambertian (ideal matte) scattering."""
    albedo: Color = field(default_factory=lambda: Color(0.5, 0.5, 0.5))


@dataclass(frozen=True)
class Metal:
    """Metallic material with specular reflection.

    Attributes:
        albedo: The reflection color
        fuzz: Surface roughness, clamped to [0, 1] (0 = mirror)
    """
    albedo: Color = field(default_factory=lambda: Color(0.8, 0.8, 0.8))
    fuzz: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'fuzz', min(max(self.fuzz, 0.0), 1.0))


@dataclass(frozen=True)
class Glass:
    """Dielectric (glass-like) material with refraction.

    Attributes:
        refraction_index: Index of refraction (1.0 = air, 1.5 = glass, 2.4 = diamond)
    """
    refraction_index: float = 1.5

    def __post_init__(self):
        if self.refraction_index <= 0:
            raise ValueError(f"refraction_index must be positive, got {self.refraction_index}")


Material = Union[Diffuse, Metal, Glass]

MATERIAL_KINDS = {
    'diffuse': Diffuse,
    'metal': Metal,
    'glass': Glass,
}


def reflectance(cosine: float, ref_idx: float) -> float:
    """Schlick's approximation for reflectance."""
    r0 = (1 - ref_idx) / (1 + ref_idx)
    r0 = r0 * r0
    return r0 + (1 - r0) * pow(1 - cosine, 5)


def scatter(material: Material, ray_in: Ray, hit: HitRecord,
            rng: np.random.Generator) -> Optional[ScatterResult]:
    """Compute the scattered ray and attenuation for a hit.

    Args:
        material: The material at the hit point
        ray_in: The incoming ray
        hit: Intersection record (normal faces against ray_in)
        rng: Random generator for stochastic scattering

    Returns:
        ScatterResult if the ray scatters, None if it is absorbed
    """
    if isinstance(material, Diffuse):
        return _scatter_diffuse(material, hit, rng)
    if isinstance(material, Metal):
        return _scatter_metal(material, ray_in, hit, rng)
    if isinstance(material, Glass):
        return _scatter_glass(material, ray_in, hit, rng)
    raise TypeError(f"Unknown material kind: {type(material).__name__}")


def _scatter_diffuse(material: Diffuse, hit: HitRecord,
                     rng: np.random.Generator) -> ScatterResult:
    scatter_direction = hit.normal + Vec3.random_unit_vector(rng)

    # Catch degenerate scatter direction
    if scatter_direction.near_zero():
        scatter_direction = hit.normal

    return ScatterResult(
        scattered_ray=Ray(hit.point, scatter_direction),
        attenuation=material.albedo,
    )


def _scatter_metal(material: Metal, ray_in: Ray, hit: HitRecord,
                   rng: np.random.Generator) -> Optional[ScatterResult]:
    reflected = ray_in.direction.normalize().reflect(hit.normal)
    if material.fuzz > 0:
        reflected = reflected + Vec3.random_in_unit_sphere(rng) * material.fuzz

    # Grazing or inward scatter is absorbed
    if reflected.dot(hit.normal) <= 0:
        return None

    return ScatterResult(
        scattered_ray=Ray(hit.point, reflected),
        attenuation=material.albedo,
    )


def _scatter_glass(material: Glass, ray_in: Ray, hit: HitRecord,
                   rng: np.random.Generator) -> ScatterResult:
    # Determine refraction ratio based on whether we're entering or exiting
    ior = material.refraction_index
    refraction_ratio = 1.0 / ior if hit.front_face else ior

    unit_direction = ray_in.direction.normalize()
    cos_theta = min(-unit_direction.dot(hit.normal), 1.0)
    sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))

    cannot_refract = refraction_ratio * sin_theta > 1.0
    refracted = unit_direction.refract(hit.normal, refraction_ratio)

    # refract() returns zero at total internal reflection; rounding near the
    # critical angle can get there even when cannot_refract is False
    if cannot_refract or refracted.near_zero() or reflectance(cos_theta, refraction_ratio) > rng.random():
        direction = unit_direction.reflect(hit.normal)
    else:
        direction = refracted

    return ScatterResult(
        scattered_ray=Ray(hit.point, direction),
        attenuation=Color(1.0, 1.0, 1.0),
    )
