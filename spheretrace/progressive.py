"""
Progressive accumulation of rendered frames.

Each new frame is blended into the previously displayed one with weight
1/n, where n is the number of frames since the last reset capped at
``max_frames``. The result is the running mean of the frames, so noise
shrinks as frames are added. With accumulation disabled every frame is
shown on its own.

Two buffers are used in turn: the one written last frame is the source,
the other one receives the blend.
"""

from __future__ import annotations
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional

import numpy as np

from .camera import Camera
from .config import RenderConfig, DEFAULT_MAX_FRAMES
from .renderer import Renderer, RenderSettings, Seed, to_rgba_bytes
from .shapes import HittableList

logger = logging.getLogger(__name__)

# Number of recent frames averaged by RenderState.average_fps()
FPS_WINDOW = 10


@dataclass
class RenderState:
    """Accumulation state for one render target.

    Single writer: only one frame may be accumulated at a time.
    """
    width: int
    height: int
    accumulate: bool = True
    max_frames: int = DEFAULT_MAX_FRAMES
    frame_count: int = 0
    even_odd: int = 0
    buffers: List[np.ndarray] = field(default_factory=list, repr=False)

    # Host-side frame timing, never used for shading
    last_timestamp: Optional[float] = None
    elapsed_ms: float = 0.0
    fps_history: Deque[float] = field(default_factory=lambda: deque(maxlen=FPS_WINDOW), repr=False)

    def __post_init__(self):
        if not self.buffers:
            self.buffers = [self._blank(), self._blank()]

    def _blank(self) -> np.ndarray:
        return np.zeros((self.height, self.width, 3), dtype=np.float64)

    @property
    def source(self) -> np.ndarray:
        """Buffer holding the previously displayed image."""
        return self.buffers[(self.even_odd + 1) % 2]

    @property
    def destination(self) -> np.ndarray:
        """Buffer receiving (or holding) the latest image."""
        return self.buffers[self.even_odd % 2]

    def reset(self) -> None:
        """Forget accumulated frames; the next frame starts a new average."""
        self.frame_count = 0
        logger.debug("Accumulation reset")

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.buffers = [self._blank(), self._blank()]
        self.even_odd = 0
        self.reset()
        logger.debug("Render target resized to %dx%d", width, height)

    def tick(self, now: float) -> None:
        """Record a frame finishing at monotonic time ``now`` (seconds)."""
        if self.last_timestamp is not None:
            elapsed = now - self.last_timestamp
            self.elapsed_ms = elapsed * 1000.0
            if elapsed > 0:
                self.fps_history.append(1.0 / elapsed)
        self.last_timestamp = now

    def average_fps(self) -> float:
        if not self.fps_history:
            return 0.0
        return sum(self.fps_history) / len(self.fps_history)


def accumulate(state: RenderState, frame: np.ndarray) -> np.ndarray:
    """Blend a newly rendered linear frame into the accumulation state.

    Args:
        state: Accumulation state, updated in place
        frame: Linear image of shape (height, width, 3)

    Returns:
        The buffer now holding the image to display
    """
    if frame.shape != (state.height, state.width, 3):
        raise ValueError(
            f"Frame shape {frame.shape} does not match render target "
            f"{(state.height, state.width, 3)}"
        )

    frame = np.nan_to_num(frame, nan=0.0, posinf=1.0, neginf=0.0)
    state.even_odd += 1
    destination = state.destination

    if not state.accumulate:
        state.frame_count = 1
        np.copyto(destination, frame)
        return destination

    state.frame_count += 1
    n = min(state.frame_count, state.max_frames)
    weight = 1.0 / n
    np.copyto(destination, state.source * (1.0 - weight) + frame * weight)
    return destination


def render_next(world: HittableList, camera: Camera, settings: RenderSettings,
                state: RenderState, seed: Seed = None) -> bytes:
    """Render one frame, accumulate it and return display RGBA bytes."""
    frame = Renderer(settings).render(world, camera, seed)
    return to_rgba_bytes(accumulate(state, frame))


class ProgressiveRenderer:
    """Renders a scene frame after frame, refining the displayed image.

    Accumulation restarts whenever the config's revision changes or a new
    scene is set.
    """

    def __init__(self, world: HittableList, config: RenderConfig,
                 tile_size: int = 32, num_threads: int = 1):
        self.world = world
        self.config = config
        self.tile_size = tile_size
        self.num_threads = num_threads
        self.state = RenderState(config.width, config.height)
        self._sync()

    @property
    def frame_count(self) -> int:
        return self.state.frame_count

    def _sync(self) -> None:
        """Derive camera and settings from the config and reset."""
        config = self.config
        self.camera = config.to_camera()
        self.settings = config.to_settings(self.tile_size, self.num_threads)
        if (config.width, config.height) != (self.state.width, self.state.height):
            self.state.resize(config.width, config.height)
        self.state.accumulate = config.accumulate
        self.state.max_frames = config.max_frames
        self.state.reset()
        # Every reset restarts the frame seeds from config.seed
        self._seed_seq = np.random.SeedSequence(config.seed)
        self._revision = config.revision

    def set_world(self, world: HittableList) -> None:
        self.world = world
        self.state.reset()

    def scene_changed(self) -> None:
        """Call after mutating the current scene in place."""
        self.state.reset()

    def step(self, now: Optional[float] = None) -> bytes:
        """Render and accumulate the next frame.

        Args:
            now: Monotonic timestamp in seconds for frame timing
                (defaults to time.perf_counter())

        Returns:
            RGBA bytes of the displayed image, bottom row first
        """
        if self.config.revision != self._revision:
            self._sync()

        seed = self._seed_seq.spawn(1)[0]
        rgba = render_next(self.world, self.camera, self.settings, self.state, seed)
        self.state.tick(time.perf_counter() if now is None else now)
        return rgba

    def image(self) -> np.ndarray:
        """Linear image currently displayed."""
        return self.state.destination.copy()
