"""
Primary ray generation.

A camera maps viewport coordinates (s, t) in [0, 1]² to rays. It supports
a clamped vertical field of view, an optional thin lens for defocus blur
and placement either by look-at points or by yaw/pitch angles.
"""

from __future__ import annotations
import math
from typing import Optional, Tuple

import numpy as np

from .vec3 import Vec3, Point3
from .ray import Ray

# Field of view bounds in radians
MIN_FOV = 0.1
MAX_FOV = 0.75 * math.pi

WORLD_UP = Vec3(0, 1, 0)


def clamp_fov(fov: float) -> float:
    """Clamp a vertical field of view (radians) to [MIN_FOV, MAX_FOV]."""
    return min(max(fov, MIN_FOV), MAX_FOV)


def direction_from_angles(yaw: float, pitch: float) -> Vec3:
    """Unit look direction for yaw/pitch in radians.

    yaw = pitch = 0 looks down -Z. Positive yaw turns toward +X,
    positive pitch looks up toward +Y.
    """
    cos_pitch = math.cos(pitch)
    return Vec3(
        math.sin(yaw) * cos_pitch,
        math.sin(pitch),
        -math.cos(yaw) * cos_pitch,
    )


def _basis(look_from: Point3, look_at: Point3, vup: Vec3) -> Tuple[Vec3, Vec3, Vec3]:
    """Right-handed orthonormal (u, v, w): right, up, and backward."""
    w = (look_from - look_at).normalize()
    u = vup.cross(w).normalize()
    return u, w.cross(u), w


class Camera:
    """Perspective camera with an optional thin lens.

    Every derived quantity is computed once in the constructor; to move
    or zoom, build a new Camera (RenderConfig.to_camera does this).

    Attributes:
        vfov: Vertical field of view in degrees, after clamping
        origin: Lens center
        u, v, w: Camera basis (right, up, backward)
        horizontal, vertical: Viewport edge vectors on the focus plane
        lower_left_corner: Viewport corner at (s, t) = (0, 0)
        lens_radius: Half the aperture; 0 for a pinhole
    """

    def __init__(
        self,
        look_from: Point3,
        look_at: Point3,
        vup: Vec3 = WORLD_UP,
        vfov: float = 90.0,
        aspect_ratio: float = 16.0 / 9.0,
        aperture: float = 0.0,
        focus_dist: float = 1.0,
    ):
        """
        Args:
            look_from: Lens position
            look_at: Point the view is centered on
            vup: Up hint used to orient the basis
            vfov: Vertical field of view in degrees; clamped to [MIN_FOV, MAX_FOV] radians
            aspect_ratio: Viewport width over height
            aperture: Lens diameter (0 disables defocus blur)
            focus_dist: Distance from the lens to the plane in focus
        """
        theta = clamp_fov(math.radians(vfov))
        self.vfov = math.degrees(theta)
        self.aspect_ratio = aspect_ratio
        self.focus_dist = focus_dist

        self.viewport_height = 2.0 * math.tan(0.5 * theta)
        self.viewport_width = self.viewport_height * aspect_ratio

        self.u, self.v, self.w = _basis(look_from, look_at, vup)
        self.origin = look_from

        # Viewport spans live on the focus plane so lens rays converge there
        self.horizontal = self.u * (self.viewport_width * focus_dist)
        self.vertical = self.v * (self.viewport_height * focus_dist)
        center = self.origin - self.w * focus_dist
        self.lower_left_corner = center - (self.horizontal + self.vertical) * 0.5

        self.lens_radius = 0.5 * aperture

    @classmethod
    def from_angles(
        cls,
        origin: Point3,
        yaw: float = 0.0,
        pitch: float = 0.0,
        vfov: float = 90.0,
        aspect_ratio: float = 16.0 / 9.0,
        aperture: float = 0.0,
        focus_dist: float = 1.0,
    ) -> Camera:
        """Create a camera looking along the yaw/pitch direction (radians)."""
        return cls(
            look_from=origin,
            look_at=origin + direction_from_angles(yaw, pitch),
            vfov=vfov,
            aspect_ratio=aspect_ratio,
            aperture=aperture,
            focus_dist=focus_dist,
        )

    def get_ray(self, s: float, t: float, rng: Optional[np.random.Generator] = None) -> Ray:
        """Ray through viewport point (s, t); (0, 0) is bottom left.

        The direction is not normalized: ``ray.at(1)`` lies on the focus
        plane. Without ``rng`` the ray starts at the lens center.
        """
        target = self.lower_left_corner + self.horizontal * s + self.vertical * t

        start = self.origin
        if rng is not None and self.lens_radius > 0:
            disk = Vec3.random_in_unit_disk(rng) * self.lens_radius
            start = start + self.u * disk.x + self.v * disk.y

        return Ray(start, target - start)

    def __repr__(self) -> str:
        return f"Camera(origin={self.origin}, vfov={self.vfov:.2f}, lens_radius={self.lens_radius})"
