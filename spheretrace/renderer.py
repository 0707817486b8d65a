"""
Frame rendering: from camera rays to a linear image and RGBA bytes.

A ray picks up color by scattering off materials until it escapes to the
sky or runs out of bounces. Each pixel averages several jittered rays,
and frames are rendered in tiles that can run on a thread pool.
"""

from __future__ import annotations
import itertools
import logging
import math
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from .vec3 import Color
from .ray import Ray
from .camera import Camera
from .shapes import HittableList
from .materials import scatter

logger = logging.getLogger(__name__)

# Offset for secondary rays to avoid self-intersection ("shadow acne")
T_MIN = 0.001

BYTES_PER_PIXEL = 4

WHITE = Color(1.0, 1.0, 1.0)
SKY_BLUE = Color(0.5, 0.7, 1.0)

Seed = Union[None, int, np.random.SeedSequence]


@dataclass
class RenderSettings:
    """Image size, sampling and threading for one Renderer.

    ``num_threads`` of 0 means one thread per CPU.
    """
    width: int = 400
    height: int = 225
    samples_per_pixel: int = 4
    max_depth: int = 5
    tile_size: int = 32
    num_threads: int = 0
    seed: Optional[int] = None

    def __post_init__(self):
        if self.num_threads == 0:
            self.num_threads = os.cpu_count() or 4

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


def sky_color(ray: Ray) -> Color:
    """Vertical white-to-blue gradient used for rays that hit nothing."""
    unit_direction = ray.direction.normalize()
    t = 0.5 * (unit_direction.y + 1.0)
    return WHITE.lerp(SKY_BLUE, t)


def ray_color(ray: Ray, world: HittableList, depth: int, max_depth: int,
              rng: np.random.Generator) -> Color:
    """Compute the color carried back along a ray.

    Args:
        ray: The ray to trace
        world: The scene to trace against
        depth: Number of bounces taken so far (0 for camera rays)
        max_depth: Bounce limit; at or beyond it no light is gathered
        rng: Random generator for material scattering

    Returns:
        The linear color for this ray
    """
    if depth >= max_depth:
        return Color(0, 0, 0)

    hit_record = world.hit(ray, T_MIN, math.inf)
    if hit_record is None:
        return sky_color(ray)

    # Geometry without a material is shown by its normal
    if hit_record.material is None:
        return (hit_record.normal + 1.0) * 0.5

    scatter_result = scatter(hit_record.material, ray, hit_record, rng)
    if scatter_result is None:
        return Color(0, 0, 0)

    return scatter_result.attenuation * ray_color(
        scatter_result.scattered_ray, world, depth + 1, max_depth, rng
    )


def sample_pixel(world: HittableList, camera: Camera, i: int, j: int,
                 settings: RenderSettings, rng: np.random.Generator) -> Color:
    """Average ``samples_per_pixel`` jittered rays through pixel (i, j).

    j counts rows from the bottom of the image.
    """
    width, height = settings.width, settings.height
    pixel_color = Color(0, 0, 0)

    for _ in range(settings.samples_per_pixel):
        u = (i + rng.random()) / width
        v = (j + rng.random()) / height
        ray = camera.get_ray(u, v, rng)
        pixel_color = pixel_color + ray_color(ray, world, 0, settings.max_depth, rng)

    return pixel_color / settings.samples_per_pixel


def color_to_rgba(color: Color) -> Tuple[int, int, int, int]:
    """Map a linear color to gamma-2 corrected 8-bit RGBA."""
    r, g, b = to_rgba_array(color.to_array().reshape(1, 1, 3))[0, 0, :3]
    return int(r), int(g), int(b), 255


def to_rgba_array(image: np.ndarray) -> np.ndarray:
    """Convert a linear (height, width, 3) image to (height, width, 4) uint8.

    NaN maps to 0 and +inf to full scale before the sqrt gamma curve,
    so a bad sample cannot corrupt the output silently.
    """
    linear = np.nan_to_num(image, nan=0.0, posinf=1.0, neginf=0.0)
    corrected = np.sqrt(np.clip(linear, 0.0, None))
    corrected = np.clip(corrected, 0.0, 0.999)
    rgb = np.floor(256.0 * corrected).astype(np.uint8)

    height, width = image.shape[:2]
    rgba = np.full((height, width, BYTES_PER_PIXEL), 255, dtype=np.uint8)
    rgba[:, :, :3] = rgb
    return rgba


def to_rgba_bytes(image: np.ndarray) -> bytes:
    """Flat row-major RGBA bytes; the first row is the bottom of the image."""
    return to_rgba_array(image).tobytes()


def flip_rows(rgba: bytes, width: int, height: int) -> bytes:
    """Turn a bottom-left origin RGBA buffer into a top-left origin one."""
    rows = np.frombuffer(rgba, dtype=np.uint8).reshape(height, width, BYTES_PER_PIXEL)
    return rows[::-1].tobytes()


Tile = Tuple[int, int, int, int]


def tile_grid(width: int, height: int, tile_size: int) -> List[Tile]:
    """Split the image into (x0, y0, x1, y1) tiles, row by row from the bottom.

    Edge tiles are clipped to the image, so every pixel is in exactly one tile.
    """
    return [
        (x0, y0, min(x0 + tile_size, width), min(y0 + tile_size, height))
        for y0 in range(0, height, tile_size)
        for x0 in range(0, width, tile_size)
    ]


class Renderer:
    """Renders whole frames tile by tile, optionally on a thread pool.

    Pixels are independent, so tiles may finish in any order. Each tile
    draws from its own generator spawned from one seed sequence, which
    keeps a seeded render identical for any thread count.
    """

    def __init__(self, settings: Optional[RenderSettings] = None):
        self.settings = settings or RenderSettings()
        self._progress_callback: Optional[Callable[[float], None]] = None
        self._lock = threading.Lock()

    def set_progress_callback(self, callback: Callable[[float], None]) -> None:
        """Register ``callback(fraction_done)``, called after every finished tile."""
        self._progress_callback = callback

    def render(self, world: HittableList, camera: Camera, seed: Seed = None) -> np.ndarray:
        """Render one frame.

        Args:
            world: Spheres to trace against
            camera: Source of primary rays
            seed: Int or SeedSequence for this frame; falls back to settings.seed

        Returns:
            Linear image of shape (height, width, 3); row 0 is the bottom row
        """
        settings = self.settings
        if seed is None:
            seed = settings.seed
        if not isinstance(seed, np.random.SeedSequence):
            seed = np.random.SeedSequence(seed)

        tiles = tile_grid(settings.width, settings.height, settings.tile_size)
        jobs = list(zip(tiles, (np.random.default_rng(s) for s in seed.spawn(len(tiles)))))
        done = itertools.count(1)

        def run(job: Tuple[Tile, np.random.Generator]) -> Tuple[Tile, np.ndarray]:
            (x0, y0, x1, y1), rng = job
            block = np.empty((y1 - y0, x1 - x0, 3), dtype=np.float64)
            for j in range(y0, y1):
                for i in range(x0, x1):
                    block[j - y0, i - x0] = sample_pixel(world, camera, i, j, settings, rng).to_array()
            self._report(next(done), len(tiles))
            return job[0], block

        started = time.perf_counter()
        if settings.num_threads > 1:
            with ThreadPoolExecutor(max_workers=settings.num_threads) as pool:
                finished = list(pool.map(run, jobs))
        else:
            finished = [run(job) for job in jobs]

        image = np.zeros((settings.height, settings.width, 3), dtype=np.float64)
        for (x0, y0, x1, y1), block in finished:
            image[y0:y1, x0:x1] = block

        logger.debug(
            "Rendered %dx%d at %d spp (depth %d) in %.2fs",
            settings.width, settings.height, settings.samples_per_pixel,
            settings.max_depth, time.perf_counter() - started,
        )
        return image

    def _report(self, finished: int, total: int) -> None:
        if self._progress_callback is None:
            return
        with self._lock:
            self._progress_callback(finished / total)


def render_rgba(world: HittableList, camera: Camera, settings: RenderSettings,
                seed: Seed = None) -> bytes:
    """Render one frame straight to RGBA bytes (bottom-left origin)."""
    return to_rgba_bytes(Renderer(settings).render(world, camera, seed))
