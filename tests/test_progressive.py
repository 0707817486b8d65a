"""Tests for progressive accumulation and the frame loop."""

import pytest
import numpy as np

from spheretrace.vec3 import Point3, Color
from spheretrace.shapes import Sphere, HittableList
from spheretrace.materials import Diffuse, Metal
from spheretrace.config import RenderConfig
from spheretrace.renderer import RenderSettings
from spheretrace.progressive import (
    RenderState, ProgressiveRenderer, accumulate, render_next, FPS_WINDOW,
)


def tiny_config(**kwargs):
    params = dict(width=4, height=3, samples_per_pixel=1, max_depth=3, seed=5)
    params.update(kwargs)
    return RenderConfig(**params)


def tiny_world():
    return HittableList([
        Sphere(Point3(0, -100.5, -1), 100, Diffuse(Color(0.5, 0.5, 0.5)), uuid=0),
        Sphere(Point3(0, 0, -1), 0.5, Metal(Color(0.8, 0.6, 0.2), 0.5), uuid=1),
    ])


class TestAccumulate:
    """Test the running-mean blend."""

    def test_first_frame_shown_as_is(self):
        state = RenderState(2, 2)
        frame = np.full((2, 2, 3), 0.3)
        result = accumulate(state, frame)
        assert state.frame_count == 1
        assert np.allclose(result, frame)

    def test_running_mean(self):
        state = RenderState(2, 1)
        frames = [np.full((1, 2, 3), v) for v in (0.0, 1.0, 0.5, 0.25)]
        for frame in frames:
            result = accumulate(state, frame)
        assert state.frame_count == 4
        assert np.allclose(result, np.mean(frames, axis=0))

    def test_variance_does_not_grow(self):
        rng = np.random.default_rng(0)
        state = RenderState(16, 16)
        errors = []
        for _ in range(30):
            frame = 0.5 + rng.normal(0.0, 0.2, (16, 16, 3))
            result = accumulate(state, frame)
            errors.append(np.var(result - 0.5))
        # Noise of the mean shrinks roughly as 1/n
        assert errors[-1] < errors[0] / 10
        assert errors[-1] <= errors[4]

    def test_disabled_shows_latest_frame(self):
        state = RenderState(2, 2, accumulate=False)
        accumulate(state, np.full((2, 2, 3), 0.9))
        result = accumulate(state, np.full((2, 2, 3), 0.1))
        assert state.frame_count == 1
        assert np.allclose(result, 0.1)

    def test_max_frames_caps_weight(self):
        state = RenderState(1, 1, max_frames=2)
        accumulate(state, np.zeros((1, 1, 3)))
        accumulate(state, np.zeros((1, 1, 3)))
        result = accumulate(state, np.ones((1, 1, 3)))
        # Third frame still blended at 1/2
        assert state.frame_count == 3
        assert np.allclose(result, 0.5)

    def test_reset_restarts_average(self):
        state = RenderState(1, 1)
        for _ in range(5):
            accumulate(state, np.zeros((1, 1, 3)))
        state.reset()
        assert state.frame_count == 0
        result = accumulate(state, np.ones((1, 1, 3)))
        assert np.allclose(result, 1.0)

    def test_ping_pong_buffers(self):
        state = RenderState(1, 1)
        first = accumulate(state, np.full((1, 1, 3), 0.2))
        second = accumulate(state, np.full((1, 1, 3), 0.4))
        assert first is not second
        assert state.source is first
        assert state.destination is second
        assert state.even_odd == 2

    def test_nan_frame_is_guarded(self):
        state = RenderState(1, 1)
        frame = np.array([[[np.nan, np.inf, -np.inf]]])
        result = accumulate(state, frame)
        assert np.all(np.isfinite(result))
        assert np.allclose(result, [[[0.0, 1.0, 0.0]]])

    def test_shape_mismatch(self):
        state = RenderState(4, 3)
        with pytest.raises(ValueError):
            accumulate(state, np.zeros((4, 3, 3)))


class TestRenderState:
    def test_buffers_allocated(self):
        state = RenderState(5, 2)
        assert len(state.buffers) == 2
        assert state.buffers[0].shape == (2, 5, 3)

    def test_resize_resets(self):
        state = RenderState(2, 2)
        accumulate(state, np.ones((2, 2, 3)))
        state.resize(3, 1)
        assert state.frame_count == 0
        assert state.destination.shape == (1, 3, 3)
        assert not state.destination.any()

    def test_tick_records_fps(self):
        state = RenderState(1, 1)
        state.tick(1.0)
        assert state.average_fps() == 0.0
        state.tick(1.5)
        assert state.elapsed_ms == pytest.approx(500.0)
        state.tick(1.75)
        assert state.average_fps() == pytest.approx((2.0 + 4.0) / 2)

    def test_fps_window(self):
        state = RenderState(1, 1)
        for i in range(FPS_WINDOW + 5):
            state.tick(i * 0.1)
        assert len(state.fps_history) == FPS_WINDOW
        assert state.average_fps() == pytest.approx(10.0)


class TestRenderNext:
    def test_returns_rgba(self):
        config = tiny_config()
        state = RenderState(4, 3)
        rgba = render_next(tiny_world(), config.to_camera(), config.to_settings(num_threads=1), state, seed=1)
        assert len(rgba) == 4 * 3 * 4
        assert state.frame_count == 1

    def test_disabled_accumulation_matches_single_render(self):
        config = tiny_config()
        settings = config.to_settings(num_threads=1)
        camera = config.to_camera()
        world = tiny_world()

        fresh = RenderState(4, 3, accumulate=False)
        direct = render_next(world, camera, settings, fresh, seed=99)

        used = RenderState(4, 3, accumulate=False)
        render_next(world, camera, settings, used, seed=3)
        render_next(world, camera, settings, used, seed=4)
        assert render_next(world, camera, settings, used, seed=99) == direct


class TestProgressiveRenderer:
    """Test the frame loop driven by a RenderConfig."""

    def test_frame_count_grows(self):
        renderer = ProgressiveRenderer(tiny_world(), tiny_config())
        for n in range(1, 4):
            rgba = renderer.step(now=float(n))
            assert renderer.frame_count == n
            assert len(rgba) == 4 * 3 * 4

    def test_seeded_sequence_reproducible(self):
        a = ProgressiveRenderer(tiny_world(), tiny_config())
        b = ProgressiveRenderer(tiny_world(), tiny_config())
        for n in range(3):
            assert a.step(now=float(n)) == b.step(now=float(n))
        assert np.array_equal(a.image(), b.image())

    def test_config_change_resets(self):
        config = tiny_config()
        renderer = ProgressiveRenderer(tiny_world(), config)
        renderer.step(now=0.0)
        renderer.step(now=1.0)
        config.zoom(1.0)
        renderer.step(now=2.0)
        assert renderer.frame_count == 1

    def test_resize_follows_config(self):
        config = tiny_config()
        renderer = ProgressiveRenderer(tiny_world(), config)
        renderer.step(now=0.0)
        config.set_size(2, 2)
        rgba = renderer.step(now=1.0)
        assert len(rgba) == 2 * 2 * 4
        assert renderer.image().shape == (2, 2, 3)

    def test_disable_accumulation(self):
        config = tiny_config()
        renderer = ProgressiveRenderer(tiny_world(), config)
        config.set_accumulate(False)
        for n in range(3):
            renderer.step(now=float(n))
        assert renderer.frame_count == 1

    def test_set_world_resets(self):
        renderer = ProgressiveRenderer(tiny_world(), tiny_config())
        renderer.step(now=0.0)
        renderer.step(now=1.0)
        renderer.set_world(HittableList())
        assert renderer.frame_count == 0
        renderer.step(now=2.0)
        assert renderer.frame_count == 1

    def test_scene_changed_resets(self):
        world = tiny_world()
        renderer = ProgressiveRenderer(world, tiny_config())
        renderer.step(now=0.0)
        world.add(Sphere(Point3(1, 0, -1), 0.5, Diffuse()))
        renderer.scene_changed()
        assert renderer.frame_count == 0

    def test_seed_change_restarts_stream(self):
        config = tiny_config()
        renderer = ProgressiveRenderer(tiny_world(), config)
        renderer.step(now=0.0)
        renderer.step(now=1.0)
        config.set_seed(6)
        fresh = ProgressiveRenderer(tiny_world(), tiny_config(seed=6))
        assert renderer.step(now=2.0) == fresh.step(now=0.0)

    def test_restart_replays_first_frame(self):
        config = tiny_config()
        renderer = ProgressiveRenderer(tiny_world(), config)
        first = renderer.step(now=0.0)
        renderer.step(now=1.0)
        config.set_accumulate(True)
        assert renderer.step(now=2.0) == first
        assert renderer.frame_count == 1

    def test_settings_derived_from_config(self):
        renderer = ProgressiveRenderer(tiny_world(), tiny_config(max_depth=2), num_threads=1)
        assert isinstance(renderer.settings, RenderSettings)
        assert renderer.settings.max_depth == 2
        assert renderer.settings.num_threads == 1
