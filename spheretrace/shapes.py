"""
Scene geometry: spheres and the ordered scene list.

The scene is a homogeneous list of spheres scanned linearly; the closest
hit within the shrinking [t_min, closest_so_far] range wins.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, TYPE_CHECKING
import math

from .vec3 import Vec3, Point3
from .ray import Ray

if TYPE_CHECKING:
    from .camera import Camera
    from .materials import Material


@dataclass
class HitRecord:
    """Where and how a ray met a sphere.

    Attributes:
        point: World-space position of the hit
        normal: Unit normal, flipped so it opposes the ray direction
        t: Ray parameter of the hit
        front_face: Whether the ray arrived from outside the sphere
        material: Surface material of the sphere, if any
        uuid: Identity of the sphere that was hit, if it has one
    """
    point: Point3
    normal: Vec3
    t: float
    front_face: bool
    material: Optional[Material] = None
    uuid: Optional[int] = None

    @classmethod
    def facing(cls, ray: Ray, t: float, outward_normal: Vec3,
               material: Optional[Material] = None, uuid: Optional[int] = None) -> HitRecord:
        """Build a record at ``ray.at(t)`` with the normal turned toward the ray."""
        record = cls(ray.at(t), outward_normal, t, True, material, uuid)
        record.set_face_normal(ray, outward_normal)
        return record

    def set_face_normal(self, ray: Ray, outward_normal: Vec3) -> None:
        """Orient the stored normal against ``ray`` and record which side was hit."""
        self.front_face = outward_normal.dot(ray.direction) < 0
        self.normal = outward_normal if self.front_face else -outward_normal


@dataclass(eq=False)
class Sphere:
    """Sphere with an optional material and a stable identity.

    Attributes:
        center: Center of the sphere
        radius: Radius, expected > 0
        material: Shading material (None shades by normal)
        uuid: Identity reported in hit records
    """
    center: Point3
    radius: float
    material: Optional[Material] = None
    uuid: Optional[int] = None

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Closest intersection with ``t`` in [t_min, t_max], or None.

        Solves |O + tD - C|² = r² with the half-b form of the quadratic:
        a = D·D, h = D·(O-C), c = |O-C|² - r², roots (-h ± sqrt(h² - ac)) / a.
        The near root is tried first, then the far one.
        """
        to_origin = ray.origin - self.center
        a = ray.direction.length_squared()
        if a == 0.0:
            return None
        h = ray.direction.dot(to_origin)
        c = to_origin.length_squared() - self.radius ** 2

        disc = h * h - a * c
        if disc < 0:
            return None
        root_disc = math.sqrt(disc)

        for t in ((-h - root_disc) / a, (-h + root_disc) / a):
            if t_min <= t <= t_max:
                outward = (ray.at(t) - self.center) / self.radius
                return HitRecord.facing(ray, t, outward, self.material, self.uuid)
        return None


class HittableList:
    """Ordered spheres making up the scene."""

    def __init__(self, objects: Optional[Iterable[Sphere]] = None):
        self.objects: List[Sphere] = list(objects or [])

    def add(self, obj: Sphere) -> None:
        self.objects.append(obj)

    def clear(self) -> None:
        self.objects.clear()

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Nearest hit over all spheres.

        Each sphere is tested against the range narrowed by the best hit so
        far, so the result does not depend on list order.
        """
        nearest: Optional[HitRecord] = None
        for sphere in self.objects:
            found = sphere.hit(ray, t_min, nearest.t if nearest else t_max)
            if found is not None:
                nearest = found
        return nearest

    def __len__(self) -> int:
        return len(self.objects)

    def __iter__(self) -> Iterator[Sphere]:
        return iter(self.objects)


def assign_uuids(world: HittableList) -> None:
    """Number every sphere by its position in the scene."""
    for i, sphere in enumerate(world):
        sphere.uuid = i


def pick(world: HittableList, camera: Camera, u: float = 0.5, v: float = 0.5) -> Optional[HitRecord]:
    """Return the closest hit under a viewport point (default: center).

    The pinhole ray is used so the result does not depend on lens sampling.
    """
    ray = camera.get_ray(u, v)
    return world.hit(ray, 0.0, math.inf)
