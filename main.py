#!/usr/bin/env python3
"""
spheretrace - A progressive sphere ray tracer

Main entry point: renders a number of progressive frames and saves the
accumulated image as a PNG.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from spheretrace.vec3 import Color, Point3
from spheretrace.shapes import Sphere, HittableList, assign_uuids, pick
from spheretrace.materials import Diffuse, Metal, Glass
from spheretrace.config import RenderConfig
from spheretrace.progressive import ProgressiveRenderer
from spheretrace.renderer import flip_rows
from spheretrace.scene_parser import SceneParseError, load_scene


def create_demo_scene() -> HittableList:
    """Create a demo scene with one sphere of each material."""
    world = HittableList()

    world.add(Sphere(Point3(0, -100.5, -1), 100, Diffuse(Color(0.8, 0.8, 0.0))))
    world.add(Sphere(Point3(0, 0, -1), 0.5, Diffuse(Color(0.1, 0.2, 0.5))))
    world.add(Sphere(Point3(-1, 0, -1), 0.5, Glass(1.5)))
    world.add(Sphere(Point3(1, 0, -1), 0.5, Metal(Color(0.8, 0.6, 0.2), 0.3)))

    assign_uuids(world)
    return world


def save_png(rgba: bytes, width: int, height: int, filename: str) -> None:
    """Save a bottom-left origin RGBA buffer as an image file."""
    image = Image.frombytes('RGBA', (width, height), flip_rows(rgba, width, height))
    image.save(filename)


def build_scene(args: argparse.Namespace) -> Tuple[HittableList, RenderConfig]:
    """Load the scene file if given, else the demo scene, then apply CLI overrides."""
    if args.scene:
        world, config = load_scene(args.scene)
    else:
        world, config = create_demo_scene(), RenderConfig()

    if args.width is not None or args.height is not None:
        config.set_size(args.width or config.width, args.height or config.height)
    if args.samples is not None:
        config.samples_per_pixel = args.samples
    if args.depth is not None:
        config.max_depth = args.depth
    if args.seed is not None:
        config.set_seed(args.seed)
    if args.no_accumulate:
        config.accumulate = False

    return world, config


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='spheretrace - A progressive sphere ray tracer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python main.py --frames 8 --output render.png
  python main.py --width 320 --height 180 --samples 2 --seed 7
  python main.py --scene scenes/three_spheres.yaml --frames 16
        '''
    )

    parser.add_argument('--scene', type=str, default=None, help='Scene file (YAML or JSON); demo scene if omitted')
    parser.add_argument('--width', type=int, default=None, help='Image width')
    parser.add_argument('--height', type=int, default=None, help='Image height')
    parser.add_argument('--samples', type=int, default=None, help='Samples per pixel per frame')
    parser.add_argument('--depth', type=int, default=None, help='Max ray depth')
    parser.add_argument('--frames', type=int, default=4, help='Progressive frames to accumulate (default: 4)')
    parser.add_argument('--no-accumulate', action='store_true', help='Show each frame on its own')
    parser.add_argument('--seed', type=int, default=None, help='Seed for reproducible renders')
    parser.add_argument('--threads', type=int, default=1, help='Number of threads (0=auto)')
    parser.add_argument('--output', type=str, default='output/render.png', help='Output filename')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)
    if args.frames < 1:
        parser.error("--frames must be at least 1")
    for name in ('width', 'height', 'samples'):
        value = getattr(args, name)
        if value is not None and value < 1:
            parser.error(f"--{name} must be at least 1")
    if args.depth is not None and args.depth < 0:
        parser.error("--depth must not be negative")
    if args.threads < 0:
        parser.error("--threads must not be negative")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        world, config = build_scene(args)
    except SceneParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Print header
    print("=" * 60)
    print("spheretrace")
    print("=" * 60)

    print(f"\nRender Settings:")
    print(f"  Resolution: {config.width}x{config.height}")
    print(f"  Samples: {config.samples_per_pixel} per frame")
    print(f"  Max Depth: {config.max_depth}")
    print(f"  Frames: {args.frames} ({'accumulated' if config.accumulate else 'independent'})")
    print(f"  Objects in scene: {len(world)}")

    renderer = ProgressiveRenderer(world, config, num_threads=args.threads)

    centered = pick(world, renderer.camera)
    if centered is not None:
        print(f"  Object at view center: {centered.uuid} (t={centered.t:.3f})")

    print("\nRendering...")
    start_time = time.time()

    rgba = b''
    bar_len = 40
    for frame in range(1, args.frames + 1):
        rgba = renderer.step()
        filled = int(bar_len * frame / args.frames)
        bar = '█' * filled + '░' * (bar_len - filled)
        print(f'\rFrames: [{bar}] {frame}/{args.frames}', end='', flush=True)

    elapsed = time.time() - start_time
    print(f"\nRender completed in {elapsed:.2f} seconds")
    print(f"  Accumulated frames: {renderer.frame_count}")
    print(f"  Average FPS: {renderer.state.average_fps():.2f}")

    # Ensure output directory exists
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    print(f"\nSaving to: {args.output}")
    save_png(rgba, config.width, config.height, args.output)

    print("\nDone!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
