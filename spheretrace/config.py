"""
Render configuration and interactive camera parameter updates.

RenderConfig is the single mutable description of what to render from
where. Cameras and render settings are derived from it on demand; every
mutation bumps ``revision`` so a progressive renderer can tell that its
accumulated image is stale.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field, fields
from typing import Optional

from .vec3 import Vec3, Point3
from .camera import Camera, clamp_fov
from .renderer import RenderSettings

# Keeps the look direction off the world up axis
PITCH_LIMIT = math.pi / 2 - 0.01

DEFAULT_MAX_FRAMES = 1000

# Relative FOV change per wheel notch
ZOOM_STEP = 0.01


@dataclass
class RenderConfig:
    """Camera and sampling parameters.

    Angles (yaw, pitch) are radians; ``fov_degrees`` is the vertical
    field of view in degrees and is always kept inside the FOV clamp.
    """
    width: int = 400
    height: int = 225
    fov_degrees: float = 90.0
    origin: Point3 = field(default_factory=lambda: Point3(0, 0, 0))
    yaw: float = 0.0
    pitch: float = 0.0
    aperture: float = 0.0
    focus_distance: float = 1.0
    samples_per_pixel: int = 4
    max_depth: int = 5
    seed: Optional[int] = None
    accumulate: bool = True
    max_frames: int = DEFAULT_MAX_FRAMES
    look_sensitivity: float = 0.002
    revision: int = field(default=0, compare=False)

    def __post_init__(self):
        self.fov_degrees = math.degrees(clamp_fov(math.radians(self.fov_degrees)))
        self.pitch = _clamp_pitch(self.pitch)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def fov(self) -> float:
        """Vertical field of view in radians."""
        return math.radians(self.fov_degrees)

    def _changed(self) -> None:
        self.revision += 1

    def set_fov(self, fov: float) -> None:
        """Set the vertical field of view in radians (clamped)."""
        self.fov_degrees = math.degrees(clamp_fov(fov))
        self._changed()

    def zoom(self, delta: float) -> None:
        """Apply one wheel step; positive delta widens the view."""
        adjustment = math.copysign(1.0, delta) if delta else 0.0
        self.set_fov(self.fov * (1.0 + adjustment * ZOOM_STEP))

    def set_angles(self, yaw: float, pitch: float) -> None:
        self.yaw = yaw
        self.pitch = _clamp_pitch(pitch)
        self._changed()

    def look(self, dx: float, dy: float) -> None:
        """Turn by pointer deltas in screen convention (dy > 0 is down).

        Turning is scaled by the field of view so a zoomed-in view moves slower.
        """
        scale = self.look_sensitivity * self.fov
        self.set_angles(self.yaw + dx * scale, self.pitch - dy * scale)

    def translate(self, forward: float = 0.0, right: float = 0.0, up: float = 0.0) -> None:
        """Move the origin in the camera's horizontal frame."""
        forward_dir = Vec3(math.sin(self.yaw), 0.0, -math.cos(self.yaw))
        right_dir = Vec3(math.cos(self.yaw), 0.0, math.sin(self.yaw))
        self.origin = (
            self.origin
            + forward_dir * forward
            + right_dir * right
            + Vec3(0.0, up, 0.0)
        )
        self._changed()

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._changed()

    def set_accumulate(self, accumulate: bool) -> None:
        self.accumulate = accumulate
        self._changed()

    def set_seed(self, seed: Optional[int]) -> None:
        """Restart the random stream from ``seed`` (None for fresh entropy)."""
        self.seed = seed
        self._changed()

    def reset(self) -> None:
        """Restore every parameter except the image size to its default."""
        defaults = RenderConfig(width=self.width, height=self.height)
        for f in fields(self):
            if f.name != 'revision':
                setattr(self, f.name, getattr(defaults, f.name))
        self._changed()

    def to_camera(self) -> Camera:
        """Build the camera for the current parameters."""
        return Camera.from_angles(
            origin=self.origin,
            yaw=self.yaw,
            pitch=self.pitch,
            vfov=self.fov_degrees,
            aspect_ratio=self.aspect_ratio,
            aperture=self.aperture,
            focus_dist=self.focus_distance,
        )

    def to_settings(self, tile_size: int = 32, num_threads: int = 0) -> RenderSettings:
        """Build renderer settings for the current parameters."""
        return RenderSettings(
            width=self.width,
            height=self.height,
            samples_per_pixel=self.samples_per_pixel,
            max_depth=self.max_depth,
            tile_size=tile_size,
            num_threads=num_threads,
            seed=self.seed,
        )


def _clamp_pitch(pitch: float) -> float:
    return min(max(pitch, -PITCH_LIMIT), PITCH_LIMIT)
