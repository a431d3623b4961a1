"""Plane vectors and the corner geometry of three finder circles."""

import math
from dataclasses import dataclass

DEFAULT_TOLERANCE = 300.0


@dataclass(frozen=True)
class Vector2D:
    """An immutable two-dimensional vector."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other):
        return Vector2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other):
        return Vector2D(self.x - other.x, self.y - other.y)

    def __neg__(self):
        return Vector2D(-self.x, -self.y)

    def __pos__(self):
        return Vector2D(self.x, self.y)

    def __mul__(self, other):
        """Dot product with a vector, or scaling by a number."""
        if isinstance(other, Vector2D):
            return self.x * other.x + self.y * other.y
        return Vector2D(self.x * other, self.y * other)

    def norm(self):
        """Euclidean length."""
        return math.hypot(self.x, self.y)

    @staticmethod
    def angle(v1, v2):
        """Inner angle between two vectors, in radians."""
        lengths = v1.norm() * v2.norm()
        if lengths == 0:
            raise ValueError("angle is undefined for a zero-length vector")
        cosine = (v1 * v2) / lengths
        return math.acos(max(-1.0, min(1.0, cosine)))


@dataclass(frozen=True)
class Triangle:
    """Three corners of a square: the right-angle corner and the two others."""

    right_angle: tuple
    other1: tuple
    other2: tuple


def find_right_angle(circles):
    """Pick the circle centre with the widest inner angle among the first three.

    ``circles`` holds ``(x, y, radius)`` triples.  Raises ``ValueError`` for
    fewer than three circles or when no single angle is the largest.
    """
    if len(circles) < 3:
        raise ValueError("at least three circles are needed")
    c0, c1, c2 = ((float(c[0]), float(c[1])) for c in circles[:3])
    p0, p1, p2 = Vector2D(*c0), Vector2D(*c1), Vector2D(*c2)

    angle0 = Vector2D.angle(p1 - p0, p2 - p0)
    angle1 = Vector2D.angle(p0 - p1, p2 - p1)
    angle2 = Vector2D.angle(p0 - p2, p1 - p2)

    if angle0 > angle1 and angle0 > angle2:
        return Triangle(c0, c2, c1)
    if angle1 > angle0 and angle1 > angle2:
        return Triangle(c1, c0, c2)
    if angle2 > angle0 and angle2 > angle1:
        return Triangle(c2, c0, c1)
    raise ValueError("no single widest angle among the circles")


def missing_corner(triangle, tolerance=DEFAULT_TOLERANCE):
    """Return the fourth corner of the square spanned by ``triangle``.

    Of the two candidates across the diagonal, the one lying within
    ``tolerance`` of the right-angle corner on both axes is rejected.
    """
    (ax, ay), (bx, by) = triangle.other1, triangle.other2
    centre_x, centre_y = (ax + bx) / 2, (ay + by) / 2
    half_x, half_y = (ax - bx) / 2, (ay - by) / 2

    first = (centre_x - half_y, centre_y + half_x)
    second = (centre_x + half_y, centre_y - half_x)

    rx, ry = triangle.right_angle
    if abs(first[0] - rx) < tolerance and abs(first[1] - ry) < tolerance:
        return second
    return first