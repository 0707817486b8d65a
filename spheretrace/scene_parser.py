"""
Scene description files.

A scene is a YAML or JSON mapping with three optional sections:

```yaml
camera:            # RenderConfig fields
  width: 400
  height: 225
  fov_degrees: 90
  origin: [0, 0, 0]
  samples_per_pixel: 4
  seed: 7

materials:         # named, reusable materials
  ground:
    type: diffuse
    albedo: [0.8, 0.8, 0.0]
  glass:
    type: glass    # 'lambertian' and 'dielectric' are accepted too
    refraction_index: 1.5

spheres:           # material by name, inline mapping, or omitted
  - center: [0, -100.5, -1]
    radius: 100
    material: ground
  - center: {x: -1, y: 0, z: -1}
    radius: 0.5
    material: {type: metal, albedo: "#ccb380", fuzz: 0.2}
```

Vectors are 3-item lists or x/y/z mappings; colors may also be r/g/b
mappings or ``#rrggbb`` strings. Anything malformed raises SceneParseError.
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .vec3 import Vec3, Color
from .config import RenderConfig
from .shapes import Sphere, HittableList
from .materials import Material, Diffuse, Metal, Glass

logger = logging.getLogger(__name__)

MATERIAL_ALIASES = {
    'lambertian': 'diffuse',
    'dielectric': 'glass',
}

Scene = Tuple[HittableList, RenderConfig]


class SceneParseError(Exception):
    """The scene description is missing, unreadable or invalid."""


def parse_vec3(value: Any) -> Vec3:
    """Vec3 from ``[x, y, z]`` or ``{x:, y:, z:}`` (missing keys are 0)."""
    if isinstance(value, Mapping):
        value = [value.get(axis, 0) for axis in 'xyz']
    if not isinstance(value, (list, tuple)):
        raise SceneParseError(f"Expected a 3-vector, got {value!r}")
    if len(value) != 3:
        raise SceneParseError(f"Expected 3 components, got {len(value)}: {value!r}")
    try:
        return Vec3(*(float(c) for c in value))
    except (TypeError, ValueError) as e:
        raise SceneParseError(f"Non-numeric vector component in {value!r}") from e


def parse_color(value: Any) -> Color:
    """Color from a 3-vector, an ``{r:, g:, b:}`` mapping or a ``#rrggbb`` string."""
    if isinstance(value, str):
        digits = value[1:] if value.startswith('#') else None
        if digits is None or len(digits) != 6:
            raise SceneParseError(f"Colors given as text must look like #rrggbb, got {value!r}")
        try:
            channels = [int(digits[k:k + 2], 16) / 255.0 for k in (0, 2, 4)]
        except ValueError as e:
            raise SceneParseError(f"Bad hex color {value!r}") from e
        return Color(*channels)
    if isinstance(value, Mapping):
        return parse_vec3({'x': value.get('r', 0), 'y': value.get('g', 0), 'z': value.get('b', 0)})
    return parse_vec3(value)


def parse_material(spec: Mapping[str, Any]) -> Material:
    """Build one material from its mapping; ``type`` defaults to diffuse."""
    kind = str(spec.get('type', 'diffuse')).lower()
    kind = MATERIAL_ALIASES.get(kind, kind)

    if kind == 'diffuse':
        return Diffuse(parse_color(spec.get('albedo', [0.5, 0.5, 0.5])))
    if kind == 'metal':
        return Metal(parse_color(spec.get('albedo', [0.8, 0.8, 0.8])), float(spec.get('fuzz', 0.0)))
    if kind == 'glass':
        index = float(spec.get('refraction_index', spec.get('ior', 1.5)))
        if index <= 0:
            raise SceneParseError(f"Refraction index must be positive, got {index}")
        return Glass(index)
    raise SceneParseError(f"Unknown material type: {kind}")


class SceneParser:
    """Builds a world and a RenderConfig from a scene description.

    Named materials are kept in ``materials`` so spheres can share them.
    """

    def __init__(self):
        self.materials: Dict[str, Material] = {}
        self.world = HittableList()
        self.config: Optional[RenderConfig] = None

    def parse_file(self, filepath: str) -> Scene:
        """Read a ``.json`` file with json and anything else as YAML."""
        path = Path(filepath)
        if not path.is_file():
            raise SceneParseError(f"Scene file not found: {filepath}")

        text = path.read_text()
        try:
            data = json.loads(text) if path.suffix.lower() == '.json' else yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise SceneParseError(f"Cannot read scene file {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise SceneParseError(f"Scene file must contain a mapping: {filepath}")

        logger.debug("Loading scene from %s", path)
        return self.parse_dict(data)

    def parse_dict(self, data: Mapping[str, Any]) -> Scene:
        """Parse materials, then spheres, then the camera section."""
        try:
            for name, spec in (data.get('materials') or {}).items():
                self.materials[name] = parse_material(spec)
            for index, spec in enumerate(data.get('spheres') or []):
                self.world.add(self._sphere(index, spec))
            self.config = self._camera(data.get('camera') or {})
        except (TypeError, ValueError, AttributeError) as e:
            raise SceneParseError(f"Invalid scene description: {e}") from e

        logger.debug("Parsed %d spheres, %d materials", len(self.world), len(self.materials))
        return self.world, self.config

    def _material(self, ref: Any) -> Optional[Material]:
        if ref is None:
            return None
        if isinstance(ref, str):
            try:
                return self.materials[ref]
            except KeyError:
                raise SceneParseError(f"Unknown material: {ref}") from None
        if isinstance(ref, Mapping):
            return parse_material(ref)
        raise SceneParseError(f"Invalid material reference: {ref!r}")

    def _sphere(self, index: int, spec: Mapping[str, Any]) -> Sphere:
        """A sphere without an explicit uuid gets its list index."""
        radius = float(spec.get('radius', 1.0))
        if radius <= 0:
            raise SceneParseError(f"Sphere radius must be positive, got {radius}")
        return Sphere(
            parse_vec3(spec.get('center', [0, 0, 0])),
            radius,
            self._material(spec.get('material')),
            int(spec.get('uuid', index)),
        )

    def _camera(self, spec: Mapping[str, Any]) -> RenderConfig:
        defaults = RenderConfig()
        seed = spec.get('seed')
        config = RenderConfig(
            width=int(spec.get('width', defaults.width)),
            height=int(spec.get('height', defaults.height)),
            fov_degrees=float(spec.get('fov_degrees', 90.0)),
            origin=parse_vec3(spec.get('origin', [0, 0, 0])),
            yaw=float(spec.get('yaw', defaults.yaw)),
            pitch=float(spec.get('pitch', defaults.pitch)),
            aperture=float(spec.get('aperture', defaults.aperture)),
            focus_distance=float(spec.get('focus_distance', defaults.focus_distance)),
            samples_per_pixel=int(spec.get('samples_per_pixel', defaults.samples_per_pixel)),
            max_depth=int(spec.get('max_depth', defaults.max_depth)),
            seed=None if seed is None else int(seed),
            accumulate=bool(spec.get('accumulate', defaults.accumulate)),
            max_frames=int(spec.get('max_frames', defaults.max_frames)),
        )

        problems = [
            message for failed, message in (
                (config.width <= 0 or config.height <= 0,
                 f"image size must be positive, got {config.width}x{config.height}"),
                (config.samples_per_pixel <= 0,
                 f"samples_per_pixel must be positive, got {config.samples_per_pixel}"),
                (config.max_depth < 0, f"max_depth must not be negative, got {config.max_depth}"),
                (config.max_frames <= 0, f"max_frames must be positive, got {config.max_frames}"),
                (config.aperture < 0, f"aperture must not be negative, got {config.aperture}"),
                (config.focus_distance <= 0,
                 f"focus_distance must be positive, got {config.focus_distance}"),
            ) if failed
        ]
        if problems:
            raise SceneParseError("Invalid camera: " + "; ".join(problems))
        return config


def load_scene(filepath: str) -> Scene:
    """Load ``(world, config)`` from a YAML or JSON file."""
    return SceneParser().parse_file(filepath)


def parse_scene(data: Mapping[str, Any]) -> Scene:
    """Build ``(world, config)`` from an already loaded mapping."""
    return SceneParser().parse_dict(data)
