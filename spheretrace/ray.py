"""Half-lines P(t) = origin + t * direction."""

from __future__ import annotations
from .vec3 import Vec3, Point3


class Ray:
    """Origin plus direction; the direction need not be unit length.

    ``at`` accepts any t, including negative and infinite values. Callers
    restrict t to the range they care about.
    """

    __slots__ = ('origin', 'direction')

    def __init__(self, origin: Point3, direction: Vec3):
        self.origin = origin
        self.direction = direction

    def at(self, t: float) -> Point3:
        """Point reached after travelling ``t`` direction lengths from the origin."""
        return self.origin + self.direction * t

    def __repr__(self) -> str:
        return "Ray(origin=%r, direction=%r)" % (self.origin, self.direction)
