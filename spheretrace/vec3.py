"""
Three-component vectors for points, directions and linear RGB colors.

Vectors are immutable values: every operation returns a new Vec3.
Random sampling takes an explicit ``numpy.random.Generator`` so that
renders seeded with the same value are reproducible.
"""

from __future__ import annotations
import math
from typing import Union
import numpy as np

Operand = Union['Vec3', float]


class Vec3:
    """Immutable 3-vector stored as a float64 numpy array.

    Arithmetic operators work component-wise and accept either another
    Vec3 or a scalar.
    """

    __slots__ = ('_data',)

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self._data = np.array((x, y, z), dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> Vec3:
        """Wrap a copy of a length-3 array."""
        vec = cls.__new__(cls)
        vec._data = np.array(arr, dtype=np.float64)
        return vec

    @classmethod
    def splat(cls, value: float) -> Vec3:
        """Vector with all three components equal to ``value``."""
        return cls(value, value, value)

    @staticmethod
    def _operand(other: Operand):
        return other._data if isinstance(other, Vec3) else other

    x = property(lambda self: float(self._data[0]))
    y = property(lambda self: float(self._data[1]))
    z = property(lambda self: float(self._data[2]))

    # Color channel names
    r = x
    g = y
    b = z

    def __repr__(self) -> str:
        return "Vec3(%.4f, %.4f, %.4f)" % tuple(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Vec3):
            return bool(np.allclose(self._data, other._data))
        return NotImplemented

    # Equality is approximate, so no hash can agree with it
    __hash__ = None

    def __iter__(self):
        return (float(c) for c in self._data)

    def __getitem__(self, index: int) -> float:
        return float(self._data[index])

    def __neg__(self) -> Vec3:
        return Vec3.from_array(np.negative(self._data))

    def __add__(self, other: Operand) -> Vec3:
        return Vec3.from_array(self._data + self._operand(other))

    __radd__ = __add__

    def __sub__(self, other: Operand) -> Vec3:
        return Vec3.from_array(self._data - self._operand(other))

    def __rsub__(self, other: float) -> Vec3:
        return Vec3.from_array(other - self._data)

    def __mul__(self, other: Operand) -> Vec3:
        return Vec3.from_array(self._data * self._operand(other))

    __rmul__ = __mul__

    def __truediv__(self, other: Operand) -> Vec3:
        return Vec3.from_array(self._data / self._operand(other))

    def length_squared(self) -> float:
        return float(self._data @ self._data)

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalize(self) -> Vec3:
        """Unit vector with the same direction.

        A zero vector has no direction and is returned as zero instead of NaN.
        """
        norm = self.length()
        return Vec3.from_array(self._data / norm) if norm > 0 else Vec3()

    def dot(self, other: Vec3) -> float:
        return float(self._data @ other._data)

    def cross(self, other: Vec3) -> Vec3:
        return Vec3.from_array(np.cross(self._data, other._data))

    def lerp(self, other: Vec3, t: float) -> Vec3:
        """Linear interpolation: ``self`` at t=0, ``other`` at t=1."""
        return self * (1.0 - t) + other * t

    def reflect(self, normal: Vec3) -> Vec3:
        """Mirror this direction about a unit normal."""
        return self - normal * (2.0 * self.dot(normal))

    def refract(self, normal: Vec3, eta_ratio: float) -> Vec3:
        """Snell refraction of this unit direction.

        Args:
            normal: Unit surface normal on the incoming side
            eta_ratio: Incident index over transmitted index

        Returns:
            The transmitted direction, or the zero vector when the ray is
            totally internally reflected
        """
        cos_theta = min(-self.dot(normal), 1.0)
        perpendicular = (self + normal * cos_theta) * eta_ratio
        sin2 = perpendicular.length_squared()
        if sin2 > 1.0:
            return Vec3()
        return perpendicular - normal * math.sqrt(abs(1.0 - sin2))

    def near_zero(self, epsilon: float = 1e-8) -> bool:
        """True when every component magnitude is below ``epsilon``."""
        return bool((np.abs(self._data) < epsilon).all())

    def is_finite(self) -> bool:
        """True when no component is NaN or infinite."""
        return bool(np.isfinite(self._data).all())

    def to_array(self) -> np.ndarray:
        """Copy of the components as a numpy array."""
        return self._data.copy()

    def clamp(self, min_val: float = 0.0, max_val: float = 1.0) -> Vec3:
        return Vec3.from_array(np.clip(self._data, min_val, max_val))

    @staticmethod
    def random(rng: np.random.Generator, min_val: float = 0.0, max_val: float = 1.0) -> Vec3:
        """Components drawn uniformly from [min_val, max_val)."""
        return Vec3.from_array(rng.uniform(min_val, max_val, 3))

    @staticmethod
    def random_in_unit_sphere(rng: np.random.Generator) -> Vec3:
        """Uniform random point inside the unit ball.

        Polar method: azimuth uniform in [0, 2pi), polar angle from an
        inverse-cosine of a uniform variate, radius from a cube root so
        that volume is sampled uniformly. No rejection loop.
        """
        u, v, w = rng.random(3)
        theta = u * 2.0 * math.pi
        phi = math.acos(2.0 * v - 1.0)
        radius = w ** (1.0 / 3.0)
        sin_phi = math.sin(phi)
        return Vec3(
            radius * sin_phi * math.cos(theta),
            radius * sin_phi * math.sin(theta),
            radius * math.cos(phi),
        )

    @staticmethod
    def random_unit_vector(rng: np.random.Generator) -> Vec3:
        """Uniform random direction on the unit sphere."""
        return Vec3.random_in_unit_sphere(rng).normalize()

    @staticmethod
    def random_in_unit_disk(rng: np.random.Generator) -> Vec3:
        """Uniform random point inside the unit disk in the z=0 plane."""
        u, v = rng.random(2)
        radius = math.sqrt(u)
        theta = v * 2.0 * math.pi
        return Vec3(radius * math.cos(theta), radius * math.sin(theta), 0.0)


Point3 = Vec3
Color = Vec3
