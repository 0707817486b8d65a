"""
spheretrace - A progressive sphere ray tracer

Traces rays from a virtual camera through a pixel grid into a scene of
spheres with diffuse, metal and glass materials, and refines the image
by accumulating successive stochastic frames:
- Analytic ray/sphere intersection with closest-hit traversal
- Recursive material scattering with a bounce limit
- Anti-aliased multi-sample pixels with gamma-corrected RGBA output
- Progressive accumulation that resets on camera or scene changes
"""

__version__ = "0.1.0"

from .vec3 import Vec3, Point3, Color
from .ray import Ray
from .camera import Camera, clamp_fov, direction_from_angles, MIN_FOV, MAX_FOV
from .shapes import Sphere, HittableList, HitRecord, assign_uuids, pick
from .materials import Material, Diffuse, Metal, Glass, ScatterResult, scatter, reflectance
from .renderer import (
    Renderer, RenderSettings, ray_color, sky_color, sample_pixel,
    color_to_rgba, to_rgba_array, to_rgba_bytes, flip_rows, render_rgba, tile_grid
)
from .config import RenderConfig
from .progressive import RenderState, ProgressiveRenderer, accumulate, render_next
from .scene_parser import (
    SceneParser, SceneParseError, load_scene, parse_scene, parse_vec3, parse_color, parse_material
)
